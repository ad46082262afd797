from ipaddress import IPv4Address, IPv6Address
from typing import cast

from ..dns import query_addresses
from ..errors import DNSLookupError, PublicIPError
from ..logger import logger
from ..types import AddressFamily, IPAddressT
from .base import PublicIPProvider

OPENDNS_TARGET = "myip.opendns.com"
OPENDNS_RESOLVERS = {
    AddressFamily.IPV4: "208.67.222.222",
    AddressFamily.IPV6: "2620:119:35::35",
}


class OpenDNSProvider(PublicIPProvider):
    """
    OpenDNS answers queries for myip.opendns.com with the address the query
    came from. Querying its IPv6 resolver for AAAA yields the IPv6 address.
    """

    name = "opendns"

    def __init__(self, timeout: float = 5.0, port: int = 53) -> None:
        self._timeout = timeout
        self._port = port

    async def get_public_ip(self) -> IPv4Address:
        return cast(IPv4Address, await self._lookup(AddressFamily.IPV4))

    async def get_public_ipv6(self) -> IPv6Address:
        return cast(IPv6Address, await self._lookup(AddressFamily.IPV6))

    async def _lookup(self, family: AddressFamily) -> IPAddressT:
        try:
            addresses = await query_addresses(
                OPENDNS_TARGET,
                family.record_type,
                OPENDNS_RESOLVERS[family],
                self._port,
                self._timeout,
            )
        except DNSLookupError as e:
            raise PublicIPError(f"OpenDNS {family.value} lookup failed: {e}") from e

        if not addresses:
            raise PublicIPError("Didn't get any results for the query")
        logger.debug(f"OpenDNS reported {family.value} address {addresses[0]}")
        return addresses[0]
