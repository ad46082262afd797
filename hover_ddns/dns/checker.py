"""
Direct queries against an explicitly configured name server.

Records are read straight from the server that publishes them so a change made
by a previous run is visible immediately, without waiting for caches to expire.
"""

from ipaddress import ip_address
from typing import NamedTuple

import dns.asyncquery
import dns.asyncresolver
import dns.exception
import dns.message
import dns.rcode
import dns.rdatatype
import dns.resolver

from ..errors import DNSLookupError
from ..logger import logger
from ..types import IPAddressT, RecordType

DEFAULT_DNS_PORT = 53


class NameServer(NamedTuple):
    host: str
    port: int

    @classmethod
    def parse(cls, value: str) -> "NameServer":
        """
        Parse ``host``, ``host:port``, ``[v6]:port`` or a bare IPv6 literal.
        """
        value = value.strip()
        if not value:
            raise ValueError("Name server address is empty")

        if value.startswith("["):
            host, sep, rest = value[1:].partition("]")
            if not sep:
                raise ValueError(f"Unterminated IPv6 literal in '{value}'")
            port = rest.removeprefix(":") or str(DEFAULT_DNS_PORT)
        elif value.count(":") > 1:
            host, port = value, str(DEFAULT_DNS_PORT)
        else:
            host, _, port = value.partition(":")
            port = port or str(DEFAULT_DNS_PORT)

        if not port.isdigit() or not 0 < int(port) < 65536:
            raise ValueError(f"Invalid port in name server address '{value}'")
        return cls(host, int(port))

    def __str__(self) -> str:
        if ":" in self.host:
            return f"[{self.host}]:{self.port}"
        return f"{self.host}:{self.port}"


async def query_addresses(
    qname: str, record_type: RecordType, where: str, port: int, timeout: float
) -> list[IPAddressT]:
    """
    Send a single A/AAAA question to ``where`` and return the addresses in the
    answer section, in server order.
    """
    query = dns.message.make_query(qname, dns.rdatatype.from_text(record_type.value))
    try:
        response = await dns.asyncquery.udp(query, where, timeout=timeout, port=port)
    except (dns.exception.DNSException, OSError) as e:
        raise DNSLookupError(f"{record_type.value} query for {qname} failed: {e}") from e

    if response.rcode() != dns.rcode.NOERROR:
        raise DNSLookupError(
            f"{record_type.value} query for {qname} returned {dns.rcode.to_text(response.rcode())}"
        )

    rdtype = dns.rdatatype.from_text(record_type.value)
    return [
        ip_address(rdata.address)
        for rrset in response.answer
        if rrset.rdtype == rdtype
        for rdata in rrset
    ]


class AuthoritativeDNSChecker:
    """
    Looks up the currently published address of a record on one name server.
    """

    def __init__(self, name_server: str, timeout: float = 5.0) -> None:
        self._name_server = NameServer.parse(name_server)
        self._timeout = timeout
        self._server_address: str | None = None

    @property
    def name_server(self) -> NameServer:
        return self._name_server

    async def _resolve_server_address(self) -> str:
        if self._server_address is not None:
            return self._server_address

        host = self._name_server.host
        try:
            self._server_address = str(ip_address(host))
        except ValueError:
            self._server_address = await self._resolve_host(host)
            logger.debug(f"Resolved name server {host} to {self._server_address}")
        return self._server_address

    async def _resolve_host(self, host: str) -> str:
        """IPv4 address of ``host``, or its IPv6 address if it has no A record"""
        for rdtype in ("A", "AAAA"):
            try:
                answer = await dns.asyncresolver.resolve(host, rdtype, lifetime=self._timeout)
            except dns.resolver.NoAnswer:
                continue
            except dns.exception.DNSException as e:
                raise DNSLookupError(f"Could not resolve name server {host}: {e}") from e
            return answer[0].address
        raise DNSLookupError(f"Name server {host} has no A or AAAA record")

    async def lookup(self, fqdn: str, record_type: RecordType) -> IPAddressT:
        """
        Return the first address the name server publishes for ``fqdn``.

        Raises:
            DNSLookupError: the query failed or the answer held no address
        """
        where = await self._resolve_server_address()
        addresses = await query_addresses(
            fqdn, record_type, where, self._name_server.port, self._timeout
        )
        if not addresses:
            raise DNSLookupError(
                f"No {record_type.value} record for {fqdn} on {self._name_server}"
            )

        if len(addresses) > 1:
            logger.warning(
                f"Received {len(addresses)} {record_type.value} records for {fqdn}, "
                f"using {addresses[0]} and ignoring {', '.join(map(str, addresses[1:]))}"
            )
        return addresses[0]
