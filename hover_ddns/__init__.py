"""
hover-ddns

Keeps A/AAAA records at Hover pointed at this machine's public IP addresses.
"""

from .engine import Credentials, DDNSUpdater, UpdateOptions
from .scheduler import DDNSScheduler
from .types import (
    AddressFamily,
    DesiredState,
    DomainTarget,
    FamilyOutcome,
    OutcomeStatus,
    RecordType,
    RunReport,
)

__version__ = "0.1.0"

__all__ = [
    "DDNSUpdater",
    "DDNSScheduler",
    "Credentials",
    "UpdateOptions",
    "AddressFamily",
    "DesiredState",
    "DomainTarget",
    "FamilyOutcome",
    "OutcomeStatus",
    "RecordType",
    "RunReport",
]
