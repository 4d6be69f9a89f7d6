"""
Queryable index of archived files in PostgreSQL.

Writes use INSERT ... ON CONFLICT (file_id) DO UPDATE so that archiving
the same file again (redelivery) overwrites its row.
"""

import json
from typing import Any

import psycopg
from psycopg.types.json import Jsonb

from file_exchange.core.errors import ArchiveError
from file_exchange.core.models import AuditRecord
from file_exchange.observability.logger import get_logger, log_operation

from .connection import DatabaseConnectionPool

logger = get_logger(__name__)

CREATE_TABLE_SQL = """
    CREATE TABLE IF NOT EXISTS file_audit (
        file_id TEXT PRIMARY KEY,
        vendor_id TEXT NOT NULL,
        correlation_id TEXT NOT NULL,
        file_name TEXT,
        content_hash TEXT NOT NULL,
        size BIGINT NOT NULL,
        received_at TIMESTAMPTZ NOT NULL,
        processed_at TIMESTAMPTZ NOT NULL,
        record_count INTEGER NOT NULL,
        is_valid BOOLEAN NOT NULL,
        discrepancy_count INTEGER NOT NULL,
        discrepancies_by_kind JSONB NOT NULL DEFAULT '{}'::jsonb,
        notification_published BOOLEAN NOT NULL DEFAULT FALSE,
        archive_path TEXT NOT NULL
    );
    CREATE INDEX IF NOT EXISTS idx_file_audit_vendor ON file_audit (vendor_id, received_at DESC);
"""

UPSERT_SQL = """
    INSERT INTO file_audit (
        file_id, vendor_id, correlation_id, file_name, content_hash, size,
        received_at, processed_at, record_count, is_valid, discrepancy_count,
        discrepancies_by_kind, notification_published, archive_path
    ) VALUES (
        %(file_id)s, %(vendor_id)s, %(correlation_id)s, %(file_name)s, %(content_hash)s, %(size)s,
        %(received_at)s, %(processed_at)s, %(record_count)s, %(is_valid)s, %(discrepancy_count)s,
        %(discrepancies_by_kind)s, %(notification_published)s, %(archive_path)s
    )
    ON CONFLICT (file_id) DO UPDATE SET
        correlation_id = EXCLUDED.correlation_id,
        content_hash = EXCLUDED.content_hash,
        size = EXCLUDED.size,
        processed_at = EXCLUDED.processed_at,
        record_count = EXCLUDED.record_count,
        is_valid = EXCLUDED.is_valid,
        discrepancy_count = EXCLUDED.discrepancy_count,
        discrepancies_by_kind = EXCLUDED.discrepancies_by_kind,
        notification_published = file_audit.notification_published OR EXCLUDED.notification_published,
        archive_path = EXCLUDED.archive_path
"""


def _row_to_record(row: dict[str, Any]) -> AuditRecord:
    data = dict(row)
    if isinstance(data.get("discrepancies_by_kind"), str):
        data["discrepancies_by_kind"] = json.loads(data["discrepancies_by_kind"])
    return AuditRecord.model_validate(data)


class AuditIndex:
    """
    Upserts and queries file audit rows.
    """

    def __init__(self, pool: DatabaseConnectionPool):
        """
        Initialize audit index.

        Args:
            pool: Open database connection pool
        """
        self.pool = pool

    def ensure_schema(self) -> None:
        """Create the file_audit table if it does not exist."""
        try:
            with log_operation("Ensuring file_audit schema", logger=logger):
                self.pool.execute_command(CREATE_TABLE_SQL)
        except psycopg.Error as e:
            raise ArchiveError(f"Failed to create file_audit table: {e}") from e

    def upsert(self, record: AuditRecord) -> None:
        """
        Insert or overwrite the audit row of a file.

        Raises:
            ArchiveError: If the database write fails
        """
        params = record.model_dump()
        params["discrepancies_by_kind"] = Jsonb(record.discrepancies_by_kind)

        try:
            self.pool.execute_command(UPSERT_SQL, params)
        except psycopg.Error as e:
            logger.error(f"Failed to upsert audit row: {e}", extra={"file_id": record.file_id})
            raise ArchiveError(f"Failed to index audit record for {record.file_id}: {e}") from e

        logger.debug("Upserted audit row", extra={"file_id": record.file_id, "vendor_id": record.vendor_id})

    def get(self, file_id: str) -> AuditRecord | None:
        """Audit record of a file, or None."""
        try:
            rows = self.pool.execute_query(
                "SELECT * FROM file_audit WHERE file_id = %(file_id)s",
                {"file_id": file_id},
            )
        except psycopg.Error as e:
            raise ArchiveError(f"Failed to query audit record {file_id}: {e}") from e
        return _row_to_record(rows[0]) if rows else None

    def list_by_vendor(self, vendor_id: str, limit: int = 100) -> list[AuditRecord]:
        """Most recent audit records of a vendor."""
        try:
            rows = self.pool.execute_query(
                """
                SELECT * FROM file_audit
                WHERE vendor_id = %(vendor_id)s
                ORDER BY received_at DESC
                LIMIT %(limit)s
                """,
                {"vendor_id": vendor_id, "limit": limit},
            )
        except psycopg.Error as e:
            raise ArchiveError(f"Failed to query audit records of {vendor_id}: {e}") from e
        return [_row_to_record(row) for row in rows]
