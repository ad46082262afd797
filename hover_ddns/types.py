"""
Type definitions shared by the resolver, checker, client and engine
"""

from dataclasses import dataclass, field
from enum import Enum
from ipaddress import IPv4Address, IPv6Address
from typing import NamedTuple

IPAddressT = IPv4Address | IPv6Address


class RecordType(str, Enum):
    A = "A"
    AAAA = "AAAA"

    @property
    def family(self) -> "AddressFamily":
        return AddressFamily.IPV4 if self is RecordType.A else AddressFamily.IPV6


class AddressFamily(str, Enum):
    IPV4 = "ipv4"
    IPV6 = "ipv6"

    @property
    def record_type(self) -> RecordType:
        return RecordType.A if self is AddressFamily.IPV4 else RecordType.AAAA


class DomainTarget(NamedTuple):
    """One configured domain and the host names managed under it"""

    domain_name: str
    hosts: tuple[str, ...]

    def fqdn(self, host: str) -> str:
        """Fully qualified name for a host, ``@`` being the zone apex"""
        if host == "@":
            return self.domain_name
        return f"{host}.{self.domain_name}"


class DesiredState(NamedTuple):
    """
    Target addresses for one run.

    A family left as None is not touched at all during the run.
    """

    ipv4: IPv4Address | None = None
    ipv6: IPv6Address | None = None

    def get(self, family: AddressFamily) -> IPAddressT | None:
        return self.ipv4 if family is AddressFamily.IPV4 else self.ipv6

    def families(self) -> list[AddressFamily]:
        return [family for family in AddressFamily if self.get(family) is not None]

    def addresses(self) -> list[tuple[AddressFamily, IPAddressT]]:
        """Known addresses, paired with their family"""
        return [
            (family, address)
            for family in AddressFamily
            if (address := self.get(family)) is not None
        ]


class OutcomeStatus(str, Enum):
    SKIPPED = "skipped"
    UPDATED = "updated"
    WOULD_UPDATE = "would_update"
    FAILED = "failed"


class FamilyOutcome(NamedTuple):
    """Result of reconciling one record type of one host"""

    domain: str
    host: str
    record_type: RecordType
    status: OutcomeStatus
    value: str | None = None
    reason: str | None = None


@dataclass
class RunReport:
    """
    Everything a single run did, in processing order.

    ``started`` is False when a stop request kept the run from starting at all.
    """

    desired: DesiredState = field(default_factory=DesiredState)
    outcomes: list[FamilyOutcome] = field(default_factory=list)
    aborted: bool = False
    started: bool = True

    @property
    def failed(self) -> list[FamilyOutcome]:
        return [o for o in self.outcomes if o.status is OutcomeStatus.FAILED]

    @property
    def updated(self) -> list[FamilyOutcome]:
        return [o for o in self.outcomes if o.status is OutcomeStatus.UPDATED]

    @property
    def ok(self) -> bool:
        return not self.aborted and not self.failed

    def summary(self) -> str:
        counts = {status: 0 for status in OutcomeStatus}
        for outcome in self.outcomes:
            counts[outcome.status] += 1
        parts = [f"{status.value}={count}" for status, count in counts.items()]
        if self.aborted:
            parts.append("aborted")
        return ", ".join(parts)
