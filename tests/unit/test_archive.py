"""
Unit tests for file archival and audit metadata.
"""

import hashlib
import json
from datetime import datetime, timezone
from unittest.mock import MagicMock

import psycopg
import pytest

from file_exchange.archive import AuditIndex, DatabaseConnectionPool, FileArchiver
from file_exchange.archive.file_archiver import atomic_write
from file_exchange.config import DatabaseSettings
from file_exchange.core.errors import ArchiveError
from file_exchange.core.models import Discrepancy, FileArrivalEvent, RuleKind, ValidationResult

CONTENT = b"Id,Amount\n1,100\n"


@pytest.fixture
def event() -> FileArrivalEvent:
    return FileArrivalEvent(
        file_id="f-001",
        vendor_id="acme",
        storage_path="/staging/acme/f-001.csv",
        file_name="Payments.CSV",
        correlation_id="corr-1",
        received_at=datetime(2026, 10, 19, 8, 15, tzinfo=timezone.utc),
    )


@pytest.fixture
def invalid_result() -> ValidationResult:
    return ValidationResult(
        discrepancies=(
            Discrepancy(
                record_id="record_0",
                field_name="Amount",
                rule_kind=RuleKind.RANGE,
                expected="Between 0 and 50",
                actual="100",
                description="Field Amount value 100 exceeds maximum 50",
            ),
        ),
        record_count=1,
    )


class TestFileArchiver:
    """Tests for FileArchiver"""

    def test_layout_and_audit_record(self, tmp_path, event, invalid_result):
        archiver = FileArchiver(tmp_path)

        audit = archiver.archive(event, CONTENT, invalid_result, notification_published=True)

        content_path = tmp_path / "acme" / "2026-10-19" / "f-001.csv"
        assert content_path.read_bytes() == CONTENT
        assert audit.archive_path == str(content_path)
        assert audit.content_hash == hashlib.sha256(CONTENT).hexdigest()
        assert audit.size == len(CONTENT)
        assert audit.is_valid is False
        assert audit.discrepancy_count == 1
        assert audit.discrepancies_by_kind == {"range": 1}
        assert audit.notification_published is True

        stored = json.loads((tmp_path / "acme" / "2026-10-19" / "f-001.audit.json").read_text())
        assert stored["file_id"] == "f-001"
        assert stored["correlation_id"] == "corr-1"

    def test_rearchiving_overwrites(self, tmp_path, event):
        archiver = FileArchiver(tmp_path)

        archiver.archive(event, b"old", ValidationResult())
        archiver.archive(event, CONTENT, ValidationResult(record_count=1))

        day_dir = tmp_path / "acme" / "2026-10-19"
        assert sorted(p.name for p in day_dir.iterdir()) == ["f-001.audit.json", "f-001.csv"]
        assert (day_dir / "f-001.csv").read_bytes() == CONTENT
        assert archiver.read_audit(event).record_count == 1

    def test_read_audit_missing(self, tmp_path, event):
        assert FileArchiver(tmp_path).read_audit(event) is None

    def test_unwritable_root_raises_archive_error(self, tmp_path, event):
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("x")

        with pytest.raises(ArchiveError) as exc_info:
            FileArchiver(blocker).archive(event, CONTENT, ValidationResult())

        assert exc_info.value.retryable

    def test_indexes_when_configured(self, tmp_path, event):
        index = MagicMock(spec=AuditIndex)

        audit = FileArchiver(tmp_path, index=index).archive(event, CONTENT, ValidationResult())

        index.upsert.assert_called_once_with(audit)

    def test_extension_falls_back_to_storage_path(self, event):
        assert FileArchiver.extension(event.model_copy(update={"file_name": None})) == ".csv"


class TestAtomicWrite:
    """Tests for atomic_write"""

    def test_leaves_no_temp_files(self, tmp_path):
        target = tmp_path / "out.bin"
        atomic_write(target, b"data")
        atomic_write(target, b"newer")

        assert target.read_bytes() == b"newer"
        assert [p.name for p in tmp_path.iterdir()] == ["out.bin"]


class TestAuditIndex:
    """Tests for AuditIndex against a mocked pool"""

    def test_upsert_passes_jsonb(self, tmp_path, event):
        pool = MagicMock(spec=DatabaseConnectionPool)
        audit = FileArchiver(tmp_path).archive(event, CONTENT, ValidationResult())

        AuditIndex(pool).upsert(audit)

        sql, params = pool.execute_command.call_args.args
        assert "ON CONFLICT (file_id)" in sql
        assert params["file_id"] == "f-001"
        assert params["discrepancies_by_kind"].obj == {}

    def test_database_error_becomes_archive_error(self, tmp_path, event):
        pool = MagicMock(spec=DatabaseConnectionPool)
        pool.execute_command.side_effect = psycopg.OperationalError("connection lost")
        audit = FileArchiver(tmp_path).archive(event, CONTENT, ValidationResult())

        with pytest.raises(ArchiveError):
            AuditIndex(pool).upsert(audit)


class TestDatabaseConnectionPool:
    """Tests for pool configuration"""

    def test_requires_password(self):
        with pytest.raises(ValueError):
            DatabaseConnectionPool(DatabaseSettings())
