"""
Public IP lookup from the addresses assigned to a local network interface.
"""

import socket
from ipaddress import IPv4Address, IPv6Address, ip_address
from typing import cast

import psutil
from asyncer import asyncify

from ..errors import PublicIPError
from ..logger import logger
from ..types import AddressFamily, IPAddressT
from .base import PublicIPProvider

_SOCKET_FAMILY = {
    AddressFamily.IPV4: socket.AF_INET,
    AddressFamily.IPV6: socket.AF_INET6,
}


def is_global_unicast(address: IPAddressT) -> bool:
    """
    True for any unicast address that is not loopback, link-local or
    unspecified. Private and documentation ranges count as global unicast.
    """
    if (
        address.is_loopback
        or address.is_link_local
        or address.is_multicast
        or address.is_unspecified
    ):
        return False
    if isinstance(address, IPv4Address) and address == IPv4Address("255.255.255.255"):
        return False
    return True


@asyncify
def _interface_addresses(interface_name: str) -> list:
    interfaces = psutil.net_if_addrs()
    if interface_name not in interfaces:
        raise PublicIPError(f"Interface '{interface_name}' does not exist")
    return interfaces[interface_name]


class LocalInterfaceProvider(PublicIPProvider):
    name = "local_interface"

    def __init__(self, interface_name: str) -> None:
        self._interface_name = interface_name

    async def get_public_ip(self) -> IPv4Address:
        return cast(IPv4Address, await self._lookup(AddressFamily.IPV4))

    async def get_public_ipv6(self) -> IPv6Address:
        return cast(IPv6Address, await self._lookup(AddressFamily.IPV6))

    async def _lookup(self, family: AddressFamily) -> IPAddressT:
        wanted = _SOCKET_FAMILY[family]

        for snic in await _interface_addresses(self._interface_name):
            if snic.family != wanted:
                continue
            # link-local IPv6 addresses carry a "%<zone>" suffix
            address = ip_address(snic.address.split("%", 1)[0])
            logger.debug(f"Looking at address {address} on {self._interface_name}")
            if is_global_unicast(address):
                return address

        raise PublicIPError(
            f"Was not able to find {family.value} address on interface '{self._interface_name}'"
        )
