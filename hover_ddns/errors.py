"""
Exception hierarchy for hover-ddns.

Only AuthenticationError ends a run early. Everything else is scoped to the
host or address family that raised it.
"""


class HoverDDNSError(Exception):
    """Base error for all hover-ddns failures."""


class ConfigurationError(HoverDDNSError):
    """Raised when the configuration cannot be loaded or is invalid."""


class AuthenticationError(HoverDDNSError):
    """Raised when the two-step cookie login does not yield a session."""


class NotAuthenticatedError(HoverDDNSError):
    """Raised when an authenticated call is made before login."""


class RemoteRequestError(HoverDDNSError):
    """Raised when a request to the record API fails or is rejected."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class DomainNotFoundError(RemoteRequestError):
    """Raised when the account has no domain with the requested name."""


class RecordMissingError(RemoteRequestError):
    """
    Raised when an existing record was deleted but its replacement could not
    be created. The record stays absent until the next successful run.
    """

    def __init__(self, message: str, record_id: str, status_code: int | None = None):
        super().__init__(message, status_code)
        self.record_id = record_id


class AddressLookupError(HoverDDNSError):
    """Raised when an address could not be determined for a family."""


class PublicIPError(AddressLookupError):
    """Raised when a public IP provider cannot produce an address."""


class DNSLookupError(AddressLookupError):
    """Raised when the authoritative name server gives no usable answer."""


class InvalidAddressError(HoverDDNSError, ValueError):
    """Raised when a value does not parse as an address of the claimed type."""
