"""
Public IP lookup through HTTP services that answer with the bare address.
"""

import asyncio
from ipaddress import IPv4Address, IPv6Address
from typing import NamedTuple, cast

import httpx

from ..errors import PublicIPError
from ..logger import logger
from ..types import AddressFamily, IPAddressT
from .base import PublicIPProvider, parse_address

DEFAULT_RETRIES = 3
DEFAULT_RETRY_DELAY = 1.0

# Binding the local side of the socket pins the connection to one family,
# whatever the endpoint host name resolves to.
_LOCAL_BIND_ADDRESS = {
    AddressFamily.IPV4: "0.0.0.0",
    AddressFamily.IPV6: "::",
}


class TextEndpoint(NamedTuple):
    ipv4_url: str | None
    ipv6_url: str | None


TEXT_ENDPOINTS: dict[str, TextEndpoint] = {
    "ipify": TextEndpoint(
        "https://api.ipify.org?format=text",
        "https://api6.ipify.org?format=text",
    ),
    "icanhazip": TextEndpoint("https://icanhazip.com", "https://icanhazip.com"),
    "amazon": TextEndpoint("https://checkip.amazonaws.com", None),
}


def family_transport(family: AddressFamily) -> httpx.AsyncHTTPTransport:
    """Transport whose connections only ever use the given address family"""
    return httpx.AsyncHTTPTransport(local_address=_LOCAL_BIND_ADDRESS[family])


class TextEndpointProvider(PublicIPProvider):
    """
    Asks a plain-text "what is my IP" service, once per family, over a
    connection forced to that family.

    Each lookup is attempted ``retries`` times with ``retry_delay`` seconds
    between attempts before giving up.
    """

    def __init__(
        self,
        name: str,
        endpoint: TextEndpoint,
        retries: int = DEFAULT_RETRIES,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        timeout: float = 10.0,
        transports: dict[AddressFamily, httpx.AsyncBaseTransport] | None = None,
    ) -> None:
        if retries < 1:
            raise ValueError("retries must be at least 1")

        self.name = name
        self._endpoint = endpoint
        self._retries = retries
        self._retry_delay = retry_delay
        self._timeout = httpx.Timeout(timeout, connect=min(timeout, 5.0))
        self._transports = transports or {}
        self._clients: dict[AddressFamily, httpx.AsyncClient] = {}

    @classmethod
    def from_preset(cls, name: str, **kwargs) -> "TextEndpointProvider":
        if name not in TEXT_ENDPOINTS:
            raise ValueError(f"Unknown text endpoint provider: {name}")
        return cls(name, TEXT_ENDPOINTS[name], **kwargs)

    async def get_public_ip(self) -> IPv4Address:
        return cast(IPv4Address, await self._lookup(AddressFamily.IPV4))

    async def get_public_ipv6(self) -> IPv6Address:
        return cast(IPv6Address, await self._lookup(AddressFamily.IPV6))

    def _url_for(self, family: AddressFamily) -> str:
        if family is AddressFamily.IPV4:
            url = self._endpoint.ipv4_url
        else:
            url = self._endpoint.ipv6_url
        if url is None:
            raise PublicIPError(f"Provider {self.name} doesn't support {family.value}")
        return url

    def _client_for(self, family: AddressFamily) -> httpx.AsyncClient:
        if family not in self._clients:
            transport = self._transports.get(family) or family_transport(family)
            self._clients[family] = httpx.AsyncClient(
                transport=transport,
                timeout=self._timeout,
                limits=httpx.Limits(keepalive_expiry=30.0),
            )
        return self._clients[family]

    async def _fetch(self, client: httpx.AsyncClient, url: str) -> str:
        response = await client.get(url)
        if response.status_code != httpx.codes.OK:
            raise PublicIPError(f"Received status code {response.status_code}")
        return response.text

    async def _lookup(self, family: AddressFamily) -> IPAddressT:
        url = self._url_for(family)
        client = self._client_for(family)

        errors: list[str] = []
        for attempt in range(1, self._retries + 1):
            try:
                body = await self._fetch(client, url)
            except (httpx.HTTPError, PublicIPError) as e:
                errors.append(f"{type(e).__name__}: {e}")
                logger.warning(
                    f"{self.name} {family.value} request {attempt}/{self._retries} failed: {e}"
                )
                if attempt < self._retries:
                    await asyncio.sleep(self._retry_delay)
                continue

            address = parse_address(body, family)
            logger.debug(f"{self.name} reported {family.value} address {address}")
            return address

        raise PublicIPError(
            f"Was not able to get a valid response from {self.name} after "
            f"{self._retries} attempts ({'; '.join(errors)})"
        )

    async def close(self):
        for client in self._clients.values():
            await client.aclose()
        self._clients.clear()
