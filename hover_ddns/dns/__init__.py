"""
Authoritative DNS lookups used to read the currently published records.
"""

from .checker import AuthoritativeDNSChecker, NameServer, query_addresses

__all__ = [
    "AuthoritativeDNSChecker",
    "NameServer",
    "query_addresses",
]
