"""
Pytest configuration and fixtures for file exchange pipeline tests

This module provides shared fixtures for unit, integration, and E2E tests.
"""
import os
from collections.abc import Generator

import pytest

from file_exchange.config import VendorProfileStore, build_profile
from file_exchange.core.models import VendorProfile


# =======================
# PYTEST CONFIGURATION
# =======================

def pytest_configure(config):
    """Configure pytest with custom markers"""
    config.addinivalue_line(
        "markers", "unit: Unit tests that don't require external services"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests that require Docker containers"
    )
    config.addinivalue_line(
        "markers", "e2e: End-to-end tests that test the full pipeline"
    )
    config.addinivalue_line(
        "markers", "slow: Tests that take more than 5 seconds to run"
    )


def docker_available() -> bool:
    """Whether a Docker daemon is reachable for testcontainers"""
    try:
        import docker

        client = docker.from_env()
        client.ping()
        client.close()
        return True
    except Exception:
        return False


# =======================
# VENDOR FIXTURES
# =======================

VENDOR_CONFIG = {
    "vendors": {
        "acme": {
            "name": "ACME Corp",
            "file_format": "csv",
            "notification_recipients": ["ops@acme.example"],
            "rules": {
                "Id": [{"type": "required"}],
                "Amount": [{"type": "range", "params": {"min": 0, "max": 1000}}],
            },
        },
        "strict": {
            "file_format": "csv",
            "rules": {
                "Amount": [{"type": "range", "params": {"min": 0, "max": 50}}],
            },
        },
        "jsonco": {
            "file_format": "json",
            "rules": {"account": [{"type": "required"}]},
        },
    }
}


@pytest.fixture
def vendor_config() -> dict:
    """Raw vendor configuration mapping (deep enough copy for mutation)"""
    import copy

    return copy.deepcopy(VENDOR_CONFIG)


@pytest.fixture
def profile_store(vendor_config) -> VendorProfileStore:
    """Vendor profile store with acme (valid amounts <= 1000) and strict (<= 50)"""
    return VendorProfileStore.from_dict(vendor_config)


@pytest.fixture
def make_profile():
    """Factory building a profile from keyword configuration"""

    def _make(vendor_id: str = "acme", **config) -> VendorProfile:
        return build_profile(vendor_id, config)

    return _make


# =======================
# BROKER FIXTURES (Testcontainers)
# =======================

@pytest.fixture(scope="session")
def rabbitmq_container():
    """
    Start RabbitMQ container for broker integration tests

    Yields:
        RabbitMqContainer instance
    """
    if not docker_available():
        pytest.skip("Docker daemon not reachable")

    from testcontainers.rabbitmq import RabbitMqContainer

    with RabbitMqContainer(image="rabbitmq:3.13-alpine") as rabbitmq:
        yield rabbitmq


@pytest.fixture
def broker_settings(rabbitmq_container):
    """BrokerSettings pointing at the RabbitMQ container"""
    from file_exchange.config import BrokerSettings

    params = rabbitmq_container.get_connection_params()
    return BrokerSettings(
        host=params.host,
        port=params.port,
        username=params.credentials.username,
        password=params.credentials.password,
        virtual_host=params.virtual_host,
    )


# =======================
# DATABASE FIXTURES (Testcontainers)
# =======================

@pytest.fixture(scope="session")
def postgres_container():
    """
    Start PostgreSQL container for audit index tests

    Yields:
        PostgresContainer instance
    """
    if not docker_available():
        pytest.skip("Docker daemon not reachable")

    from testcontainers.postgres import PostgresContainer

    with PostgresContainer(
        image="postgres:16.2-alpine",
        username="test_pipeline",
        password="test_password",
        dbname="test_file_exchange",
    ) as postgres:
        yield postgres


@pytest.fixture
def db_pool(postgres_container) -> Generator:
    """Open DatabaseConnectionPool against the container, with a clean file_audit table"""
    from file_exchange.archive import AuditIndex, DatabaseConnectionPool
    from file_exchange.config import DatabaseSettings

    settings = DatabaseSettings(
        host=postgres_container.get_container_host_ip(),
        port=int(postgres_container.get_exposed_port(5432)),
        database="test_file_exchange",
        user="test_pipeline",
        password="test_password",
    )
    pool = DatabaseConnectionPool(settings)
    pool.open()
    AuditIndex(pool).ensure_schema()
    pool.execute_command("TRUNCATE TABLE file_audit")
    yield pool
    pool.close()


# =======================
# CONFIGURATION FIXTURES
# =======================

@pytest.fixture(scope="session")
def test_env_vars():
    """
    Set test environment variables

    This fixture loads config/test.env when present
    """
    from dotenv import load_dotenv

    env_path = os.path.join(
        os.path.dirname(os.path.dirname(__file__)),
        "config",
        "test.env"
    )

    if os.path.exists(env_path):
        load_dotenv(env_path, override=True)


# =======================
# CERTIFICATE FIXTURES
# =======================

def build_certificate_pem(not_after, not_before=None, common_name: str = "file-exchange.test") -> bytes:
    """Self-signed PEM certificate valid until ``not_after``"""
    from datetime import timedelta

    from cryptography import x509
    from cryptography.hazmat.primitives import hashes, serialization
    from cryptography.hazmat.primitives.asymmetric import ec
    from cryptography.x509.oid import NameOID

    key = ec.generate_private_key(ec.SECP256R1())
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)])
    certificate = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(not_before or not_after - timedelta(days=365))
        .not_valid_after(not_after)
        .sign(key, hashes.SHA256())
    )
    return certificate.public_bytes(serialization.Encoding.PEM)


@pytest.fixture
def cert_file(tmp_path):
    """Factory writing a certificate that expires ``days`` days from ``now``"""
    from datetime import datetime, timedelta, timezone

    now = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)

    def _write(days: float, name: str = "service.pem"):
        path = tmp_path / name
        path.write_bytes(build_certificate_pem(now + timedelta(days=days)))
        return path, now

    return _write


@pytest.fixture
def certificate_pem():
    """Factory returning a self-signed PEM certificate"""
    return build_certificate_pem
