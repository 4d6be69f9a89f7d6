"""
Admin CLI for secrets, certificates and health of the file exchange pipeline.

Usage:
    python -m file_exchange.cli.admin_cli get-secret --name <name>
    python -m file_exchange.cli.admin_cli rotate-secret --name <name> --value <value>
    python -m file_exchange.cli.admin_cli check-cert --path <pem> [--warning-days 30]
    python -m file_exchange.cli.admin_cli rotate-cert --name <name> [--out <pem>]
    python -m file_exchange.cli.admin_cli health

Every command prints a one-line result. The exit code is 0 on success and
1 on any error; no traceback is printed.
"""

import argparse
import sys
from pathlib import Path

from dotenv import load_dotenv

from file_exchange.config.settings import Settings
from file_exchange.core.errors import PipelineError
from file_exchange.messaging import BrokerConnectionManager
from file_exchange.observability.health import (
    HealthStatus,
    aggregate,
    check_broker,
    check_certificate,
    check_secret_store,
)
from file_exchange.observability.logger import get_logger
from file_exchange.security import (
    CertificateAuthorityClient,
    EnvSecretProvider,
    HttpSecretProvider,
    SecretProvider,
    read_certificate_expiry,
)

logger = get_logger(__name__)


def build_secret_provider(settings: Settings) -> SecretProvider:
    """HTTP secret store when SECRET_STORE_URL is set, environment otherwise."""
    if settings.secret_store_url:
        return HttpSecretProvider(settings.secret_store_url, settings.secret_store_token)
    return EnvSecretProvider()


def build_ca_client(settings: Settings) -> CertificateAuthorityClient:
    if not settings.ca_url:
        raise PipelineError("CA_URL is not configured")
    return CertificateAuthorityClient(settings.ca_url, settings.secret_store_token)


def build_broker_connection(settings: Settings) -> BrokerConnectionManager:
    return BrokerConnectionManager(settings.broker)


def get_secret_command(args, settings: Settings) -> str:
    value = build_secret_provider(settings).get_secret(args.name)
    return f"Secret {args.name}: {value}"


def rotate_secret_command(args, settings: Settings) -> str:
    build_secret_provider(settings).rotate_secret(args.name, args.value)
    return f"Successfully rotated secret {args.name}"


def check_cert_command(args, settings: Settings) -> str:
    path = args.path or settings.service_cert_path
    if not path:
        raise PipelineError("No certificate path given (use --path or SERVICE_CERT_PATH)")

    status = read_certificate_expiry(path)
    if status.expired:
        raise PipelineError(f"Certificate {path} expired {abs(status.days_remaining)} days ago")
    message = f"Certificate {path} expires in {status.days_remaining} days ({status.not_after:%Y-%m-%d})"
    warning_days = args.warning_days if args.warning_days is not None else settings.cert_warning_days
    if status.days_remaining < warning_days:
        message += f" - WARNING: fewer than {warning_days} days remaining"
    return message


def rotate_cert_command(args, settings: Settings) -> str:
    issued = build_ca_client(settings).rotate(args.name)

    if args.out:
        Path(args.out).write_text(issued.certificate_pem, encoding="ascii")
        destination = args.out
    else:
        build_secret_provider(settings).rotate_secret(f"certificates/{args.name}", issued.certificate_pem)
        destination = "secret store"

    return (
        f"Successfully rotated certificate {args.name} "
        f"(serial {issued.serial_number}, expires {issued.not_after:%Y-%m-%d}, saved to {destination})"
    )


def health_command(args, settings: Settings) -> str:
    checks = []

    connection = build_broker_connection(settings)
    try:
        checks.append(check_broker(connection.check_connectivity))
    finally:
        connection.close()

    if settings.secret_store_url:
        checks.append(check_secret_store(build_secret_provider(settings).check_connectivity))

    if settings.service_cert_path:
        checks.append(check_certificate(settings.service_cert_path, settings.cert_warning_days))

    report = aggregate(checks)
    if report.status is HealthStatus.UNHEALTHY:
        raise PipelineError(f"Health: {report.summary()}")
    return f"Health: {report.summary()}"


COMMANDS = {
    "get-secret": get_secret_command,
    "rotate-secret": rotate_secret_command,
    "check-cert": check_cert_command,
    "rotate-cert": rotate_cert_command,
    "health": health_command,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Admin CLI for the file exchange pipeline",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    get_parser = subparsers.add_parser("get-secret", help="Retrieve a secret")
    get_parser.add_argument("--name", required=True, help="Secret name")

    rotate_parser = subparsers.add_parser("rotate-secret", help="Rotate a secret")
    rotate_parser.add_argument("--name", required=True, help="Secret name")
    rotate_parser.add_argument("--value", required=True, help="New secret value")

    check_parser = subparsers.add_parser("check-cert", help="Check certificate expiry")
    check_parser.add_argument("--path", help="PEM certificate path (default: SERVICE_CERT_PATH)")
    check_parser.add_argument(
        "--warning-days",
        type=int,
        default=None,
        help="Warn when fewer days remain (default: CERT_WARNING_DAYS or 30)",
    )

    cert_parser = subparsers.add_parser("rotate-cert", help="Rotate a certificate through the CA")
    cert_parser.add_argument("--name", required=True, help="Certificate name")
    cert_parser.add_argument("--out", help="Write the new PEM here instead of the secret store")

    subparsers.add_parser("health", help="Check broker, secret store and certificate health")

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point for admin CLI."""
    load_dotenv()
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    try:
        settings = Settings.from_env()
        message = COMMANDS[args.command](args, settings)
    except KeyboardInterrupt:
        print("Interrupted by user")
        return 130
    except Exception as e:
        logger.debug(f"Command {args.command} failed", exc_info=True)
        print(f"Error: {e}")
        return 1

    print(message)
    return 0


if __name__ == "__main__":
    sys.exit(main())
