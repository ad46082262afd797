"""
Hover record API client
"""

from .client import HOVER_BASE_URL, HoverClient, validate_address
from .types import (
    RECORD_TTL,
    Authenticated,
    Cookie,
    CreateRecord,
    HoverSession,
    SessionState,
    Unauthenticated,
)

__all__ = [
    "HoverClient",
    "HOVER_BASE_URL",
    "RECORD_TTL",
    "validate_address",
    "Authenticated",
    "Unauthenticated",
    "SessionState",
    "HoverSession",
    "Cookie",
    "CreateRecord",
]
