"""
Unit tests for health checks.
"""

from file_exchange.observability.health import (
    CheckResult,
    HealthStatus,
    aggregate,
    check_broker,
    check_certificate,
    check_secret_store,
    worst_status,
)


class TestChecks:
    """Tests for individual checks"""

    def test_broker(self):
        assert check_broker(lambda: True).status is HealthStatus.HEALTHY
        assert check_broker(lambda: False).status is HealthStatus.UNHEALTHY

    def test_secret_store(self):
        result = check_secret_store(lambda: False)

        assert result.name == "secret_store"
        assert result.message == "unreachable"

    def test_certificate_healthy(self, cert_file):
        path, now = cert_file(days=90)

        result = check_certificate(path, warning_days=30, now=now)

        assert result.status is HealthStatus.HEALTHY
        assert result.message == "valid for 90 days"

    def test_certificate_near_expiry_is_degraded(self, cert_file):
        path, now = cert_file(days=12)

        result = check_certificate(path, warning_days=30, now=now)

        assert result.status is HealthStatus.DEGRADED
        assert result.message == "expires in 12 days"

    def test_certificate_expired(self, cert_file):
        path, now = cert_file(days=-2)

        result = check_certificate(path, now=now)

        assert result.status is HealthStatus.UNHEALTHY
        assert result.message == "expired 2 days ago"

    def test_unreadable_certificate(self, tmp_path):
        result = check_certificate(tmp_path / "missing.pem")

        assert result.status is HealthStatus.UNHEALTHY
        assert result.message.startswith("check failed")


class TestAggregate:
    """Tests for the overall status"""

    def test_worst_status_wins(self):
        checks = [
            CheckResult(name="broker", status=HealthStatus.HEALTHY, message="reachable"),
            CheckResult(name="certificate", status=HealthStatus.DEGRADED, message="expires in 5 days"),
        ]

        report = aggregate(checks)

        assert report.status is HealthStatus.DEGRADED
        assert report.summary() == (
            "degraded: broker: healthy (reachable); certificate: degraded (expires in 5 days)"
        )

    def test_no_checks_is_healthy(self):
        assert worst_status([]) is HealthStatus.HEALTHY
        assert aggregate([]).summary() == "healthy"
