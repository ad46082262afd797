import argparse
import asyncio
import logging
import signal
import sys
from functools import partial

from .config import Settings, load_settings
from .dns import AuthoritativeDNSChecker
from .engine import Credentials, DDNSUpdater, UpdateOptions
from .errors import ConfigurationError
from .hover import HoverClient
from .logger import configure_logging, logger
from .publicip import create_provider
from .scheduler import DDNSScheduler

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CONFIG_ERROR = 2


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="hover-ddns",
        description="Keep Hover A/AAAA records pointed at this machine's public addresses.",
    )
    parser.add_argument("--config", type=str, default=None, help="Config file")
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Turns on verbose information on the update process. Otherwise, only errors cause output.",
    )
    parser.add_argument("--debug", action="store_true", help="Turns on debug information")
    parser.add_argument(
        "--ip-address",
        type=str,
        default=None,
        help="Specify the IPv4 address to be submitted instead of looking it up",
    )
    parser.add_argument(
        "--ipv6-address",
        type=str,
        default=None,
        help="Specify the IPv6 address to be submitted instead of looking it up",
    )
    parser.add_argument("--force", action="store_true", help="Update records even if they match")
    parser.add_argument(
        "--dry-run", action="store_true", help="Report what would change without changing it"
    )
    parser.add_argument(
        "--once", action="store_true", help="Run a single update and ignore the cron expression"
    )
    return parser.parse_args(argv)


def build_updater(settings: Settings, args: argparse.Namespace) -> DDNSUpdater:
    options = UpdateOptions(
        force_update=settings.force_update or args.force,
        dry_run=settings.dry_run or args.dry_run,
        ipv4_enabled=settings.ipv4.enabled,
        ipv6_enabled=settings.ipv6.enabled,
        manual_ipv4=args.ip_address or settings.ipv4.manual_address,
        manual_ipv6=args.ipv6_address or settings.ipv6.manual_address,
    )
    try:
        checker = AuthoritativeDNSChecker(settings.dns_server, timeout=settings.dns_timeout)
    except ValueError as e:
        raise ConfigurationError(f"Invalid dns_server: {e}") from e

    return DDNSUpdater(
        targets=settings.targets,
        provider=create_provider(settings.public_ip_provider, timeout=settings.http_timeout),
        checker=checker,
        client_factory=partial(HoverClient, timeout=settings.http_timeout),
        credentials=Credentials(settings.username, settings.password),
        options=options,
    )


def _install_signal_handlers(on_signal):
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, on_signal)
        except NotImplementedError:
            # not available on Windows event loops
            pass


async def serve(settings: Settings, args: argparse.Namespace) -> int:
    updater = build_updater(settings, args)

    try:
        if args.once or settings.cron_expression is None:
            _install_signal_handlers(updater.request_stop)
            report = await updater.run()
            return EXIT_OK if report.ok else EXIT_FAILED

        ddns_scheduler = DDNSScheduler(updater, settings.cron_expression)
        stop_requested = asyncio.Event()
        _install_signal_handlers(stop_requested.set)

        ddns_scheduler.start()
        await stop_requested.wait()
        logger.info("Received stop signal, shutting down...")
        await ddns_scheduler.stop()

        report = ddns_scheduler.last_report
        return EXIT_OK if report is None or report.ok else EXIT_FAILED
    finally:
        await updater.close()


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)

    cli_level = None
    if args.debug:
        cli_level = logging.DEBUG
    elif args.verbose:
        cli_level = logging.INFO
    configure_logging(cli_level or logging.WARNING)

    try:
        settings = load_settings(args.config)
    except ConfigurationError as e:
        logger.error(f"Could not load config file: {e}")
        return EXIT_CONFIG_ERROR
    configure_logging(cli_level or settings.log_level, settings.log_file)

    try:
        return asyncio.run(serve(settings, args))
    except ConfigurationError as e:
        logger.error(str(e))
        return EXIT_CONFIG_ERROR


if __name__ == "__main__":
    sys.exit(main())
