from ipaddress import IPv4Address, IPv6Address
from typing import cast

from ..errors import PublicIPError
from ..logger import logger
from ..types import AddressFamily, IPAddressT
from .base import PublicIPProvider, parse_address


class ManualProvider(PublicIPProvider):
    """
    Serves caller-provided literals instead of looking anything up.

    Each literal is parsed once, here. A missing or unparsable literal makes
    that family fail on every call, which callers treat as "unknown, skip".
    """

    name = "manual"

    def __init__(self, ipv4: str | None = None, ipv6: str | None = None) -> None:
        self._given = {
            AddressFamily.IPV4: ipv4 is not None,
            AddressFamily.IPV6: ipv6 is not None,
        }
        self._results: dict[AddressFamily, IPAddressT | PublicIPError] = {
            AddressFamily.IPV4: self._parse(ipv4, AddressFamily.IPV4),
            AddressFamily.IPV6: self._parse(ipv6, AddressFamily.IPV6),
        }

    @staticmethod
    def _parse(literal: str | None, family: AddressFamily) -> IPAddressT | PublicIPError:
        if literal is None:
            return PublicIPError(f"No manual {family.value} address configured")
        try:
            return parse_address(literal, family)
        except PublicIPError as e:
            logger.warning(f"Ignoring manual {family.value} address: {e}")
            return e

    def _result(self, family: AddressFamily) -> IPAddressT:
        result = self._results[family]
        if isinstance(result, PublicIPError):
            raise result
        return result

    async def get_public_ip(self) -> IPv4Address:
        return cast(IPv4Address, self._result(AddressFamily.IPV4))

    async def get_public_ipv6(self) -> IPv6Address:
        return cast(IPv6Address, self._result(AddressFamily.IPV6))

    def has(self, family: AddressFamily) -> bool:
        """Whether a literal (valid or not) was given for the family"""
        return self._given[family]
