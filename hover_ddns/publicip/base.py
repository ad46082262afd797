from ipaddress import IPv4Address, IPv6Address, ip_address

from ..errors import PublicIPError
from ..types import AddressFamily, IPAddressT


class PublicIPProvider:
    """
    abstract class for public ip providers

    Providers that cannot serve a family raise PublicIPError for it. Callers
    treat that exactly like a failed lookup.
    """

    name: str = "abstract"

    async def get_public_ip(self) -> IPv4Address: ...

    async def get_public_ipv6(self) -> IPv6Address: ...

    async def get_address(self, family: AddressFamily) -> IPAddressT:
        if family is AddressFamily.IPV4:
            return await self.get_public_ip()
        return await self.get_public_ipv6()

    async def close(self):
        pass


def parse_address(text: str, family: AddressFamily) -> IPAddressT:
    """
    Parse ``text`` as an address of the requested family.

    Raises:
        PublicIPError: if the text is not an address or belongs to the other family
    """
    candidate = text.strip()
    try:
        address = ip_address(candidate)
    except ValueError:
        raise PublicIPError(f"'{candidate}' is not a valid IP address")

    expected = IPv4Address if family is AddressFamily.IPV4 else IPv6Address
    if not isinstance(address, expected):
        raise PublicIPError(f"'{candidate}' is not an {family.value} address")
    return address
