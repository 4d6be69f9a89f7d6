"""
PostgreSQL connection pool behind the audit index (psycopg3 + psycopg_pool).

The pool is opened explicitly by the worker that owns it. Rows come back
as dictionaries so they map straight onto AuditRecord.
"""
import time
from contextlib import contextmanager

from psycopg import OperationalError
from psycopg.conninfo import make_conninfo
from psycopg.rows import dict_row
from psycopg_pool import ConnectionPool, PoolTimeout

from file_exchange.config.settings import DatabaseSettings
from file_exchange.core.errors import ArchiveError
from file_exchange.observability.logger import get_logger

logger = get_logger(__name__)


class DatabaseConnectionPool:
    """
    Pooled connections to the audit database.
    """

    def __init__(
        self,
        settings: DatabaseSettings,
        min_size: int = 1,
        max_size: int = 4,
        timeout: float = 30.0,
    ) -> None:
        """
        Args:
            settings: Database settings; a password is mandatory
            min_size: Connections kept open
            max_size: Upper bound of concurrent connections
            timeout: Seconds to wait for a connection

        Raises:
            ValueError: If no database password is configured
        """
        if not settings.password:
            raise ValueError("Audit database password must be provided (set DB_PASSWORD)")

        self.settings = settings
        self.min_size = min_size
        self.max_size = max_size
        self.timeout = timeout
        self.conninfo = make_conninfo(
            host=settings.host,
            port=settings.port,
            dbname=settings.database,
            user=settings.user,
            password=settings.password,
            connect_timeout=int(timeout),
        )
        self._pool: ConnectionPool | None = None

    def open(self, max_retries: int = 3, retry_delay: float = 2.0) -> None:
        """
        Open the pool, retrying while the database comes up.

        Raises:
            ArchiveError: If the database stays unreachable
        """
        if self._pool is not None:
            return

        pool = ConnectionPool(
            conninfo=self.conninfo,
            min_size=self.min_size,
            max_size=self.max_size,
            timeout=self.timeout,
            kwargs={"row_factory": dict_row},
            open=False,
        )

        for attempt in range(1, max_retries + 1):
            try:
                pool.open(wait=True, timeout=self.timeout)
                break
            except (OperationalError, PoolTimeout) as e:
                logger.warning(
                    f"Audit database not reachable (attempt {attempt}/{max_retries}): {e}",
                    extra={"db_host": self.settings.host},
                )
                if attempt == max_retries:
                    pool.close()
                    raise ArchiveError(
                        f"Cannot open audit database at {self.settings.host}:{self.settings.port}: {e}"
                    ) from e
                time.sleep(retry_delay)

        self._pool = pool
        logger.info("Audit database pool opened", extra={"db_host": self.settings.host})

    def close(self) -> None:
        pool, self._pool = self._pool, None
        if pool is not None:
            pool.close()

    @contextmanager
    def cursor(self, commit: bool = False):
        """Cursor on a pooled connection, committing on exit when ``commit`` is set."""
        if self._pool is None:
            raise RuntimeError("Audit database pool is not open; call open() first")

        with self._pool.connection() as conn:
            with conn.cursor() as cur:
                yield cur
            if commit:
                conn.commit()

    def execute_query(self, query: str, params: dict | None = None) -> list[dict]:
        with self.cursor() as cur:
            cur.execute(query, params)
            return cur.fetchall()

    def execute_command(self, command: str, params: dict | None = None) -> int:
        """Run a write or DDL statement; returns the affected row count."""
        with self.cursor(commit=True) as cur:
            cur.execute(command, params)
            return cur.rowcount

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
