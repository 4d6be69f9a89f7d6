"""
Liveness and readiness checks.

Each check reports healthy, degraded or unhealthy; the overall status is
the worst individual status.
"""

from collections.abc import Callable
from datetime import datetime
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict

from file_exchange.core.errors import CertificateError
from file_exchange.security.certificates import read_certificate_expiry


class HealthStatus(str, Enum):
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


_SEVERITY = {HealthStatus.HEALTHY: 0, HealthStatus.DEGRADED: 1, HealthStatus.UNHEALTHY: 2}


class CheckResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    status: HealthStatus
    message: str


class HealthReport(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: HealthStatus
    checks: tuple[CheckResult, ...] = ()

    def summary(self) -> str:
        """One-line human-readable summary."""
        details = "; ".join(f"{c.name}: {c.status.value} ({c.message})" for c in self.checks)
        return f"{self.status.value}: {details}" if details else self.status.value


def worst_status(statuses) -> HealthStatus:
    return max(statuses, key=_SEVERITY.__getitem__, default=HealthStatus.HEALTHY)


def check_broker(check_connectivity: Callable[[], bool]) -> CheckResult:
    if check_connectivity():
        return CheckResult(name="broker", status=HealthStatus.HEALTHY, message="reachable")
    return CheckResult(name="broker", status=HealthStatus.UNHEALTHY, message="unreachable")


def check_secret_store(check_connectivity: Callable[[], bool]) -> CheckResult:
    if check_connectivity():
        return CheckResult(name="secret_store", status=HealthStatus.HEALTHY, message="reachable")
    return CheckResult(name="secret_store", status=HealthStatus.UNHEALTHY, message="unreachable")


def check_certificate(path: str | Path, warning_days: int = 30, now: datetime | None = None) -> CheckResult:
    """Expired -> unhealthy; fewer than ``warning_days`` left -> degraded."""

    try:
        status = read_certificate_expiry(path, now)
    except CertificateError as e:
        return CheckResult(name="certificate", status=HealthStatus.UNHEALTHY, message=f"check failed: {e}")

    days = status.days_remaining
    if days < 0:
        return CheckResult(
            name="certificate", status=HealthStatus.UNHEALTHY, message=f"expired {abs(days)} days ago"
        )
    if days < warning_days:
        return CheckResult(name="certificate", status=HealthStatus.DEGRADED, message=f"expires in {days} days")
    return CheckResult(name="certificate", status=HealthStatus.HEALTHY, message=f"valid for {days} days")


def aggregate(checks: list[CheckResult]) -> HealthReport:
    return HealthReport(status=worst_status(c.status for c in checks), checks=tuple(checks))
