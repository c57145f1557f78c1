"""
DuckDB access for campaign data.

Web requests open read-only connections so they can run next to the loader
scripts; a read-only open that hits a lock conflict is retried with
exponential backoff.
"""

import logging
import random
import threading
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Optional, Sequence

import duckdb
import pandas as pd

logger = logging.getLogger(__name__)

MEMORY_DATABASE = ":memory:"
SQL_DIR = Path(__file__).parent.parent.parent / "sql"


def _backoff(attempt: int, jitter: float) -> float:
    return (2**attempt) + random.uniform(0, jitter)  # nosec B311


def _is_lock_conflict(error: Exception) -> bool:
    return "lock" in str(error).lower()


class DatabaseConnectionManager:
    """Opens DuckDB connections, serializing opens across threads."""

    def __init__(self):
        self.lock = threading.Lock()

    def _open(self, db_path: str, read_only: bool) -> duckdb.DuckDBPyConnection:
        # DuckDB can only open existing files read-only
        if read_only and db_path != MEMORY_DATABASE and Path(db_path).exists():
            logger.debug(f"Opening {db_path} read-only")
            return duckdb.connect(db_path, read_only=True)
        logger.debug(f"Opening {db_path} read-write")
        return duckdb.connect(db_path)

    def get_connection(
        self, db_path: str, read_only: bool = True, max_retries: int = 3
    ) -> duckdb.DuckDBPyConnection:
        """
        Open a connection, retrying while another process holds the file lock.

        Raises:
            duckdb.IOException: when the database is still locked after
                max_retries attempts, or on any other I/O failure
        """
        for attempt in range(1, max_retries + 1):
            try:
                with self.lock:
                    return self._open(db_path, read_only)
            except duckdb.IOException as e:
                if not _is_lock_conflict(e) or attempt == max_retries:
                    logger.error(f"Could not open {db_path} (attempt {attempt}): {e}")
                    raise
                wait = _backoff(attempt - 1, 1.0)
                logger.warning(
                    f"{db_path} is locked, attempt {attempt}/{max_retries}, "
                    f"waiting {wait:.2f}s"
                )
                time.sleep(wait)

        raise duckdb.IOException(f"Could not open {db_path}")

    @contextmanager
    def get_temporary_connection(self, db_path: str, read_only: bool = True):
        """Yield a connection that is closed when the block exits."""
        conn = self.get_connection(db_path, read_only)
        try:
            yield conn
        finally:
            try:
                conn.close()
            except duckdb.Error as e:
                logger.warning(f"Failed to close temporary connection: {e}")


_connection_manager = DatabaseConnectionManager()


class CampaignDatabase:
    """
    One DuckDB database holding districts, voters, relationships and
    contacts. The connection is opened lazily on first use.
    """

    def __init__(self, db_path: Optional[str] = None, read_only: bool = True):
        """
        Args:
            db_path: DuckDB file; None means a private in-memory database
            read_only: Open existing files read-only (the analysis default)
        """
        self.db_path = str(db_path) if db_path else MEMORY_DATABASE
        self.read_only = read_only
        self.sql_dir = SQL_DIR
        self._conn = None

    @property
    def conn(self) -> duckdb.DuckDBPyConnection:
        if self._conn is None:
            self._conn = _connection_manager.get_connection(
                self.db_path, self.read_only
            )
        return self._conn

    def execute_script(self, script_name: str, fetch: bool = True) -> pd.DataFrame:
        """
        Run sql/<script_name>.sql.

        Returns:
            Result of the script's last statement, or an empty frame when
            fetch is False
        """
        script_path = self.sql_dir / f"{script_name}.sql"
        if not script_path.exists():
            raise FileNotFoundError(f"SQL script not found: {script_path}")

        try:
            result = self.conn.execute(script_path.read_text())
        except duckdb.Error as e:
            logger.error(f"Script {script_name} failed: {e}")
            raise

        logger.info(f"Ran SQL script {script_name}")
        return result.fetchdf() if fetch else pd.DataFrame()

    def create_schema(self):
        """Create the campaign tables; existing tables are left alone."""
        self.execute_script("01_create_schema", fetch=False)

    def query(
        self,
        sql: str,
        params: Optional[Sequence[Any]] = None,
        use_temporary_connection: bool = False,
    ) -> pd.DataFrame:
        """
        Run a query with ? placeholders and return a DataFrame.

        With use_temporary_connection the query runs on a short-lived
        read-only connection instead of this object's connection.
        """
        params = list(params) if params else []
        if use_temporary_connection and self.db_path != MEMORY_DATABASE:
            with _connection_manager.get_temporary_connection(self.db_path) as conn:
                return conn.execute(sql, params).fetchdf()
        return self.conn.execute(sql, params).fetchdf()

    def query_with_retry(
        self, sql: str, params: Optional[Sequence[Any]] = None, max_retries: int = 3
    ) -> pd.DataFrame:
        """Like query, but reconnects and retries on I/O errors."""
        for attempt in range(1, max_retries + 1):
            try:
                return self.query(sql, params)
            except duckdb.IOException as e:
                if attempt == max_retries:
                    logger.error(f"Query failed after {max_retries} attempts: {e}")
                    raise
                wait = _backoff(attempt - 1, 0.5)
                logger.warning(f"Query failed ({e}), reconnecting in {wait:.2f}s")
                self.close()
                time.sleep(wait)

    def table_exists(self, table_name: str) -> bool:
        row = self.conn.execute(
            "SELECT COUNT(*) FROM information_schema.tables WHERE table_name = ?",
            [table_name],
        ).fetchone()
        return row[0] > 0

    def get_table_info(self, table_name: str) -> pd.DataFrame:
        """Column names and types of a campaign table."""
        if not self.table_exists(table_name):
            raise ValueError(f"Unknown table: {table_name}")
        return self.conn.execute(f"DESCRIBE {table_name}").fetchdf()

    def close(self):
        if self._conn is None:
            return
        try:
            self._conn.close()
            logger.debug(f"Closed connection to {self.db_path}")
        except duckdb.Error as e:
            logger.warning(f"Failed to close connection to {self.db_path}: {e}")
        finally:
            self._conn = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
