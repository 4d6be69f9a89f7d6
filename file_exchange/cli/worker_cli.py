"""
Worker CLI for the file exchange pipeline.

Usage:
    python -m file_exchange.cli.worker_cli consume [--queue file.received]
    python -m file_exchange.cli.worker_cli poll [--once]
    python -m file_exchange.cli.worker_cli monitor-issues --mail-root <maildirs> [--once]
    python -m file_exchange.cli.worker_cli validate-file --vendor <vendor_id> --path <file>

Configuration comes from environment variables (a .env file is loaded
first); vendor profiles from VENDOR_CONFIG_PATH.
"""

import argparse
import signal
import sys
import threading
from pathlib import Path

from dotenv import load_dotenv

from file_exchange.archive import AuditIndex, DatabaseConnectionPool, FileArchiver
from file_exchange.cli.admin_cli import build_secret_provider
from file_exchange.config import Settings, VendorProfileStore
from file_exchange.core.constants import FILE_RECEIVED_QUEUE
from file_exchange.core.rules import RuleEngine
from file_exchange.ingestion import IngestionPoller, IssueMonitor, LocalDropSource, MaildirMailboxSource
from file_exchange.messaging import BrokerConnectionManager, MessageBroker
from file_exchange.observability.logger import ROOT_LOGGER_NAME, get_logger, setup_logger
from file_exchange.observability.metrics import start_metrics_server
from file_exchange.parsing import FileParser
from file_exchange.pipeline import ConsumerWorker, PipelineOrchestrator
from file_exchange.security import AesCbcDecryptor

logger = get_logger(__name__)


def install_signal_handlers(stop_event: threading.Event) -> None:
    """SIGINT/SIGTERM request a cooperative stop."""

    def _handle(signum, frame):
        logger.info(f"Received signal {signum}, stopping")
        stop_event.set()

    signal.signal(signal.SIGINT, _handle)
    signal.signal(signal.SIGTERM, _handle)


def build_decryptor(settings: Settings, profiles: VendorProfileStore) -> AesCbcDecryptor | None:
    """Decryptor for encrypted vendors; None when no vendor sends encrypted files."""
    if not any(profile.encrypted for profile in profiles):
        return None
    key = build_secret_provider(settings).get_secret(settings.decryption_key_secret)
    return AesCbcDecryptor.from_base64(key)


def build_archiver(settings: Settings) -> tuple[FileArchiver, DatabaseConnectionPool | None]:
    if not settings.database.enabled:
        return FileArchiver(settings.archive_root), None

    pool = DatabaseConnectionPool(settings.database)
    pool.open()
    index = AuditIndex(pool)
    index.ensure_schema()
    return FileArchiver(settings.archive_root, index), pool


def consume_command(args, settings: Settings, stop_event: threading.Event) -> int:
    profiles = VendorProfileStore.from_yaml(settings.vendor_config_path)
    archiver, pool = build_archiver(settings)

    with BrokerConnectionManager(settings.broker) as connection:
        broker = MessageBroker(connection, settings.retry)
        orchestrator = PipelineOrchestrator(
            profiles=profiles,
            publisher=broker,
            archiver=archiver,
            decryptor=build_decryptor(settings, profiles),
            stop_event=stop_event,
        )
        try:
            ConsumerWorker(broker, orchestrator, args.queue, stop_event).run()
        finally:
            if pool is not None:
                pool.close()
    return 0


def poll_command(args, settings: Settings, stop_event: threading.Event) -> int:
    profiles = VendorProfileStore.from_yaml(settings.vendor_config_path)
    source = LocalDropSource(settings.drop_root, settings.staging_root)

    with BrokerConnectionManager(settings.broker) as connection:
        poller = IngestionPoller(profiles, source, MessageBroker(connection, settings.retry), stop_event)
        if args.once:
            published = poller.poll_once()
            print(f"Published {published} file event(s)")
        else:
            poller.run()
    return 0


def monitor_issues_command(args, settings: Settings, stop_event: threading.Event) -> int:
    profiles = VendorProfileStore.from_yaml(settings.vendor_config_path)
    source = MaildirMailboxSource(args.mail_root)

    with BrokerConnectionManager(settings.broker) as connection:
        monitor = IssueMonitor(
            profiles, source, MessageBroker(connection, settings.retry), args.interval, stop_event
        )
        if args.once:
            published = monitor.poll_once()
            print(f"Published {published} issue report(s)")
        else:
            monitor.run()
    return 0


def validate_file_command(args, settings: Settings, stop_event: threading.Event) -> int:
    """
    Parse and validate one file offline, printing every discrepancy.

    Returns:
        0 when the file is valid, 2 when discrepancies were found
    """
    config_path = args.vendor_config or settings.vendor_config_path
    profiles = VendorProfileStore.from_yaml(config_path)
    profile = profiles.get(args.vendor)

    content = Path(args.path).read_bytes()
    if profile.encrypted:
        content = build_decryptor(settings, profiles).decrypt(content)

    records = FileParser().parse(profile, content)
    result = RuleEngine(profiles).validate(args.vendor, records)

    for d in result.discrepancies:
        print(f"{d.record_id}\t{d.field_name}\t{d.rule_kind.value}\t{d.actual!r}\t{d.description}")

    verdict = "VALID" if result.is_valid else "INVALID"
    print(f"{verdict}: {result.record_count} record(s), {len(result.discrepancies)} discrepancy(ies)")
    return 0 if result.is_valid else 2


COMMANDS = {
    "consume": consume_command,
    "poll": poll_command,
    "monitor-issues": monitor_issues_command,
    "validate-file": validate_file_command,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="File exchange pipeline workers",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Run the orchestrator against file.received
  python -m file_exchange.cli.worker_cli consume

  # Scan vendor drop folders once
  python -m file_exchange.cli.worker_cli poll --once

  # Check a file against a vendor's rules without the broker
  python -m file_exchange.cli.worker_cli validate-file --vendor acme --path data/acme.csv
        """,
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    consume_parser = subparsers.add_parser("consume", help="Consume file-arrival events")
    consume_parser.add_argument(
        "--queue",
        default=FILE_RECEIVED_QUEUE,
        help=f"Inbound queue (default: {FILE_RECEIVED_QUEUE})",
    )

    poll_parser = subparsers.add_parser("poll", help="Poll vendor drop folders for new files")
    poll_parser.add_argument("--once", action="store_true", help="Run a single polling pass")

    issues_parser = subparsers.add_parser("monitor-issues", help="Poll vendor mailboxes for issue reports")
    issues_parser.add_argument("--mail-root", required=True, help="Directory of per-vendor Maildir folders")
    issues_parser.add_argument("--interval", type=float, default=300.0, help="Poll interval in seconds")
    issues_parser.add_argument("--once", action="store_true", help="Run a single polling pass")

    validate_parser = subparsers.add_parser("validate-file", help="Parse and validate a file offline")
    validate_parser.add_argument("--vendor", required=True, help="Vendor ID")
    validate_parser.add_argument("--path", required=True, help="Path to the vendor file")
    validate_parser.add_argument("--vendor-config", help="Vendor profiles YAML (default: VENDOR_CONFIG_PATH)")

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    load_dotenv()
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    stop_event = threading.Event()

    try:
        settings = Settings.from_env()
        setup_logger(ROOT_LOGGER_NAME, settings.log_level, settings.log_format)

        if args.command in ("consume", "poll", "monitor-issues"):
            install_signal_handlers(stop_event)
            if settings.metrics_port:
                start_metrics_server(settings.metrics_port)

        return COMMANDS[args.command](args, settings, stop_event)
    except KeyboardInterrupt:
        print("Interrupted by user")
        return 130
    except Exception as e:
        logger.error(f"{args.command} failed: {e}", exc_info=True)
        print(f"Error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
