"""
Reconciliation engine

Compares the machine's public addresses with what the authoritative name
server publishes for every configured host and replaces the records that
differ. One run visits domains, hosts and address families strictly in order.
"""

import asyncio
from typing import Callable, NamedTuple

from .dns import AuthoritativeDNSChecker
from .errors import (
    AddressLookupError,
    AuthenticationError,
    HoverDDNSError,
    RecordMissingError,
)
from .hover import HoverClient
from .logger import logger
from .publicip import ManualProvider, PublicIPProvider
from .types import (
    AddressFamily,
    DesiredState,
    DomainTarget,
    FamilyOutcome,
    IPAddressT,
    OutcomeStatus,
    RecordType,
    RunReport,
)

HoverClientFactory = Callable[[], HoverClient]


class Credentials(NamedTuple):
    username: str
    password: str

    def __repr__(self) -> str:
        return f"Credentials(username={self.username!r}, password='***')"


class UpdateOptions(NamedTuple):
    force_update: bool = False
    dry_run: bool = False
    ipv4_enabled: bool = True
    ipv6_enabled: bool = False
    manual_ipv4: str | None = None
    manual_ipv6: str | None = None

    def enabled(self, family: AddressFamily) -> bool:
        return self.ipv4_enabled if family is AddressFamily.IPV4 else self.ipv6_enabled


class DDNSUpdater:
    """
    Runs reconciliation passes over all configured domains and hosts.

    Runs never overlap: ``run()`` holds a lock for its whole duration, so a
    caller that triggers a run while another is in progress waits for it.
    Each run creates its own Hover client and logs in at most once, and only
    when some record actually needs to change.
    """

    def __init__(
        self,
        targets: list[DomainTarget],
        provider: PublicIPProvider,
        checker: AuthoritativeDNSChecker,
        client_factory: HoverClientFactory,
        credentials: Credentials,
        options: UpdateOptions | None = None,
    ) -> None:
        self._targets = list(targets)
        self._provider = provider
        self._checker = checker
        self._client_factory = client_factory
        self._credentials = credentials
        self._options = options or UpdateOptions()
        self._manual = ManualProvider(self._options.manual_ipv4, self._options.manual_ipv6)

        self._run_lock = asyncio.Lock()
        self._stop_requested = asyncio.Event()

    @property
    def is_running(self) -> bool:
        return self._run_lock.locked()

    def request_stop(self):
        """
        Let the host in progress finish, then end the current run. No run
        starts after this.
        """
        self._stop_requested.set()

    async def close(self):
        await self._provider.close()

    async def wait_idle(self):
        """Wait until no run holds the run lock"""
        async with self._run_lock:
            pass

    async def run(self) -> RunReport:
        async with self._run_lock:
            if self._stop_requested.is_set():
                logger.info("Stop requested, not starting a DNS update run")
                return RunReport(started=False)
            logger.info("Starting DNS update run...")
            report = await self._run()
            logger.info(f"DNS update run finished: {report.summary()}")
            return report

    async def resolve_desired_state(self) -> DesiredState:
        """
        Determine the target address for every enabled family.

        A manual override replaces the live lookup for its family. Any failure
        leaves the family empty, which means it is left alone for this run.
        """
        addresses: dict[AddressFamily, IPAddressT | None] = {}
        for family in AddressFamily:
            addresses[family] = None
            if not self._options.enabled(family):
                logger.debug(f"{family.value} updates are disabled")
                continue

            source = self._manual if self._manual.has(family) else self._provider
            try:
                addresses[family] = await source.get_address(family)
            except AddressLookupError as e:
                logger.warning(
                    f"Could not determine public {family.value} address, skipping it: {e}"
                )
                continue
            logger.info(f"Using public {family.value} address {addresses[family]} from {source.name}")

        return DesiredState(
            ipv4=addresses[AddressFamily.IPV4],  # type: ignore[arg-type]
            ipv6=addresses[AddressFamily.IPV6],  # type: ignore[arg-type]
        )

    async def needs_update(self, fqdn: str, record_type: RecordType, desired: IPAddressT) -> bool:
        """
        Decide whether the published record differs from ``desired``.

        A record whose current value cannot be read counts as different.
        """
        try:
            current = await self._checker.lookup(fqdn, record_type)
        except AddressLookupError as e:
            logger.warning(
                f"Could not resolve current {record_type.value} record of {fqdn}, updating: {e}"
            )
            return True

        logger.info(f"Current {record_type.value} record of {fqdn} is {current}")
        if current != desired:
            logger.info(f"IPs differ for {fqdn} ({current} -> {desired}), update required")
            return True
        if self._options.force_update:
            logger.info(f"{record_type.value} record of {fqdn} is up to date, but update forced")
            return True
        logger.info(f"{record_type.value} record of {fqdn} already up to date")
        return False

    async def _run(self) -> RunReport:
        report = RunReport(desired=await self.resolve_desired_state())
        if not report.desired.families():
            logger.warning("No public address available for any enabled family, nothing to do")
            return report

        client: HoverClient | None = None
        domain_ids: dict[str, str] = {}

        try:
            for target, host in self._hosts():
                if self._stop_requested.is_set():
                    logger.info("Stop requested, not processing remaining hosts")
                    break

                pending = await self._check_host(target, host, report)
                if not pending:
                    continue

                if self._options.dry_run:
                    for record_type in pending:
                        logger.info(
                            f"Dry run: would set {record_type.value} record of "
                            f"{target.fqdn(host)} to {report.desired.get(record_type.family)}"
                        )
                        self._record(report, target, host, record_type, OutcomeStatus.WOULD_UPDATE)
                    continue

                if client is None:
                    client = self._client_factory()
                    try:
                        await client.login(
                            self._credentials.username, self._credentials.password
                        )
                    except AuthenticationError as e:
                        logger.error(f"Failed to log in to Hover, aborting run: {e}")
                        report.aborted = True
                        self._fail_remaining(report, target, host, pending, str(e))
                        break

                await self._update_host(client, target, host, pending, report, domain_ids)
        finally:
            if client is not None:
                await client.close()

        return report

    def _hosts(self) -> list[tuple[DomainTarget, str]]:
        return [(target, host) for target in self._targets for host in target.hosts]

    async def _check_host(
        self, target: DomainTarget, host: str, report: RunReport
    ) -> list[RecordType]:
        """Return the record types of ``host`` that need to be replaced"""
        pending = []
        for family, desired in report.desired.addresses():
            record_type = family.record_type
            if await self.needs_update(target.fqdn(host), record_type, desired):
                pending.append(record_type)
            else:
                self._record(report, target, host, record_type, OutcomeStatus.SKIPPED)
        return pending

    @staticmethod
    def _record(
        report: RunReport,
        target: DomainTarget,
        host: str,
        record_type: RecordType,
        status: OutcomeStatus,
        reason: str | None = None,
    ):
        value = report.desired.get(record_type.family)
        report.outcomes.append(
            FamilyOutcome(
                target.domain_name,
                host,
                record_type,
                status,
                str(value) if value is not None else None,
                reason,
            )
        )

    async def _update_host(
        self,
        client: HoverClient,
        target: DomainTarget,
        host: str,
        pending: list[RecordType],
        report: RunReport,
        domain_ids: dict[str, str],
    ):
        domain_id = domain_ids.get(target.domain_name)
        if domain_id is None:
            try:
                domain_id = await client.get_domain_id(target.domain_name)
            except HoverDDNSError as e:
                logger.error(f"Failed to get domain ID for {target.domain_name}: {e}")
                for record_type in pending:
                    self._record(report, target, host, record_type, OutcomeStatus.FAILED, str(e))
                return
            logger.info(f"Found domain ID {domain_id} for {target.domain_name}")
            domain_ids[target.domain_name] = domain_id

        addresses = dict(report.desired.addresses())
        for record_type in pending:
            value = addresses[record_type.family]
            try:
                await client.upsert(domain_id, host, value, record_type)
            except RecordMissingError as e:
                logger.error(
                    f"{record_type.value} record of {target.fqdn(host)} is missing until the next run: {e}"
                )
                self._record(report, target, host, record_type, OutcomeStatus.FAILED, str(e))
            except HoverDDNSError as e:
                logger.error(
                    f"Was not able to update {record_type.value} record of {target.fqdn(host)}: {e}"
                )
                self._record(report, target, host, record_type, OutcomeStatus.FAILED, str(e))
            else:
                logger.info(f"Updated {record_type.value} record of {target.fqdn(host)} to {value}")
                self._record(report, target, host, record_type, OutcomeStatus.UPDATED)

    def _fail_remaining(
        self,
        report: RunReport,
        target: DomainTarget,
        host: str,
        pending: list[RecordType],
        reason: str,
    ):
        """
        After a login failure, mark the current host's pending record types
        and every family of every later host as failed. Later hosts are not
        checked against DNS.
        """
        for record_type in pending:
            self._record(report, target, host, record_type, OutcomeStatus.FAILED, reason)

        hosts = self._hosts()
        for later_target, later_host in hosts[hosts.index((target, host)) + 1 :]:
            for family in report.desired.families():
                self._record(
                    report, later_target, later_host, family.record_type, OutcomeStatus.FAILED, reason
                )
