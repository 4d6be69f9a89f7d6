"""
Process settings read from environment variables.

Settings are built once per process with ``Settings.from_env()``. The CLI
entry points load a ``.env`` file (python-dotenv) before calling it.
"""

import os
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class BrokerSettings(BaseModel):
    """
    RabbitMQ connection settings.

    Attributes:
        host: Broker host (RABBITMQ_HOST)
        port: Broker port (RABBITMQ_PORT)
        username: Login user (RABBITMQ_USERNAME)
        password: Login password (RABBITMQ_PASSWORD)
        virtual_host: Virtual host (RABBITMQ_VHOST)
        use_tls: Connect over TLS (RABBITMQ_USE_TLS)
        heartbeat: Heartbeat interval in seconds (RABBITMQ_HEARTBEAT)
    """

    model_config = ConfigDict(frozen=True)

    host: str = "localhost"
    port: int = Field(5672, gt=0)
    username: str = "guest"
    password: str = "guest"
    virtual_host: str = "/"
    use_tls: bool = False
    heartbeat: int = Field(60, ge=0)
    connection_attempts: int = Field(3, ge=1)
    retry_delay: float = Field(2.0, ge=0)


class RetrySettings(BaseModel):
    """
    Bounded requeue policy.

    Attributes:
        max_attempts: Deliveries allowed before a message is dead-lettered
        backoff_seconds: Delay before the first requeue
        backoff_max_seconds: Ceiling of the exponential backoff
    """

    model_config = ConfigDict(frozen=True)

    max_attempts: int = Field(5, ge=1)
    backoff_seconds: float = Field(1.0, ge=0)
    backoff_max_seconds: float = Field(30.0, ge=0)

    def backoff_for(self, attempt: int) -> float:
        """Delay before requeueing after the given (1-based) failed attempt."""
        return min(self.backoff_seconds * 2 ** max(attempt - 1, 0), self.backoff_max_seconds)


class DatabaseSettings(BaseModel):
    """Optional PostgreSQL audit index settings (disabled when no password is set)."""

    model_config = ConfigDict(frozen=True)

    host: str = "localhost"
    port: int = 5432
    database: str = "file_exchange"
    user: str = "pipeline"
    password: str | None = None

    @property
    def enabled(self) -> bool:
        return bool(self.password)


class Settings(BaseModel):
    """
    Complete process configuration.
    """

    model_config = ConfigDict(frozen=True)

    broker: BrokerSettings = Field(default_factory=BrokerSettings)
    retry: RetrySettings = Field(default_factory=RetrySettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)

    vendor_config_path: Path = Path("config/vendors.yaml")
    archive_root: Path = Path("archive")
    drop_root: Path = Path("drop")
    staging_root: Path = Path("staging")

    decryption_key_secret: str = "file-decryption-key"
    service_cert_path: Path | None = None
    cert_warning_days: int = Field(30, ge=0)
    secret_store_url: str | None = None
    secret_store_token: str | None = None
    ca_url: str | None = None

    log_level: str = "INFO"
    log_format: str = "json"
    metrics_port: int | None = None

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from environment variables, falling back to defaults."""
        cert_path = os.getenv("SERVICE_CERT_PATH")
        metrics_port = os.getenv("METRICS_PORT")

        return cls(
            broker=BrokerSettings(
                host=os.getenv("RABBITMQ_HOST", "localhost"),
                port=int(os.getenv("RABBITMQ_PORT", "5672")),
                username=os.getenv("RABBITMQ_USERNAME", "guest"),
                password=os.getenv("RABBITMQ_PASSWORD", "guest"),
                virtual_host=os.getenv("RABBITMQ_VHOST", "/"),
                use_tls=_env_bool("RABBITMQ_USE_TLS", False),
                heartbeat=int(os.getenv("RABBITMQ_HEARTBEAT", "60")),
            ),
            retry=RetrySettings(
                max_attempts=int(os.getenv("PIPELINE_MAX_ATTEMPTS", "5")),
                backoff_seconds=float(os.getenv("PIPELINE_RETRY_BACKOFF_SECONDS", "1.0")),
                backoff_max_seconds=float(os.getenv("PIPELINE_RETRY_BACKOFF_MAX_SECONDS", "30.0")),
            ),
            database=DatabaseSettings(
                host=os.getenv("DB_HOST", "localhost"),
                port=int(os.getenv("DB_PORT", "5432")),
                database=os.getenv("DB_NAME", "file_exchange"),
                user=os.getenv("DB_USER", "pipeline"),
                password=os.getenv("DB_PASSWORD") or None,
            ),
            vendor_config_path=Path(os.getenv("VENDOR_CONFIG_PATH", "config/vendors.yaml")),
            archive_root=Path(os.getenv("ARCHIVE_ROOT", "archive")),
            drop_root=Path(os.getenv("DROP_ROOT", "drop")),
            staging_root=Path(os.getenv("STAGING_ROOT", "staging")),
            decryption_key_secret=os.getenv("DECRYPTION_KEY_SECRET", "file-decryption-key"),
            service_cert_path=Path(cert_path) if cert_path else None,
            cert_warning_days=int(os.getenv("CERT_WARNING_DAYS", "30")),
            secret_store_url=os.getenv("SECRET_STORE_URL") or None,
            secret_store_token=os.getenv("SECRET_STORE_TOKEN") or None,
            ca_url=os.getenv("CA_URL") or None,
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_format=os.getenv("LOG_FORMAT", "json"),
            metrics_port=int(metrics_port) if metrics_port else None,
        )
