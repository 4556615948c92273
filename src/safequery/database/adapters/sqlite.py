"""SQLite database adapter implementation."""

import logging
import sqlite3
from typing import Optional, Union
from urllib.parse import quote

from ...constants import DB_CONNECT_TIMEOUT, DB_QUERY_TIMEOUT
from ...encryption import SecretResolver
from ...errors import ConfigurationError, DatabaseConnectionError, QueryTimeoutError
from ..logging import QueryTimer, log_connection
from ..models import ConnectionConfig, DatabaseType, QueryRequest, QueryResult
from .base import BaseAdapter

logger = logging.getLogger(__name__)

URL_PREFIXES = ("sqlite://", "file:")


def database_path_from_url(url: str) -> str:
    """Strip a leading ``sqlite://`` or ``file:`` prefix, leaving the file path."""
    path = url
    for prefix in URL_PREFIXES:
        if path.startswith(prefix):
            path = path[len(prefix):]
    return path


class SQLiteAdapter(BaseAdapter):
    """SQLite database adapter; files are always opened read-only."""

    db_type = DatabaseType.SQLITE

    def __init__(
        self,
        config: ConnectionConfig,
        secrets: Optional[SecretResolver] = None,
        timeout: float = DB_CONNECT_TIMEOUT,
        query_timeout: float = DB_QUERY_TIMEOUT,
    ):
        """Initialize SQLite adapter.

        Raises:
            ConfigurationError: If neither a connection URL nor a database
                path is configured
        """
        super().__init__(config, secrets, timeout, query_timeout)

        if config.uses_connection_url:
            self.database_path = database_path_from_url(self._decrypt(config.connection_url_encrypted))
        elif config.database:
            self.database_path = config.database
        else:
            raise ConfigurationError(
                "SQLite requires database path\n"
                "  Hint: Set database to the path of the SQLite file"
            )

    @property
    def dsn(self) -> str:
        return f"sqlite:///{self.database_path}"

    def connect(self) -> None:
        """Open the database file in read-only mode."""
        timer = QueryTimer()
        try:
            with timer:
                # Open in read-only mode using URI
                uri = f"file:{quote(self.database_path)}?mode=ro"
                connection = sqlite3.connect(
                    uri,
                    timeout=self.timeout,
                    uri=True,
                    check_same_thread=False,  # Allow use across threads
                )
                try:
                    connection.row_factory = sqlite3.Row
                    connection.execute(f"PRAGMA busy_timeout = {int(self.query_timeout * 1000)}")
                except sqlite3.Error:
                    self._close_quietly(connection)
                    raise
            self.connection = connection

        except sqlite3.Error as e:
            error_msg = f"Failed to connect to SQLite: {e}"
            log_connection(self.db_type, self.dsn, success=False, error=error_msg, duration=timer.duration)
            raise DatabaseConnectionError(
                f"{error_msg}\n"
                f"  Hint: Check that {self.database_path} exists and is readable",
                db_type=self.db_type.value,
            ) from e

        log_connection(self.db_type, self.dsn, success=True, duration=timer.duration)
        logger.info(f"Connected to SQLite database (read-only): {self.database_path}")

    def query(self, request: Union[str, QueryRequest]) -> QueryResult:
        """Execute SQL and return rows keyed by column name.

        SQLite reports no column types for result sets, so ``fields`` is
        left unset.

        Raises:
            NotConnectedError: If not connected
            QueryTimeoutError: If the database stays locked past the busy timeout
            QueryExecutionError: If SQLite rejects the query
        """
        sql = self._sql_text(request)
        self._require_connection()

        timer = QueryTimer()
        try:
            with timer:
                cursor = self.connection.cursor()
                try:
                    cursor.execute(sql)
                    rows = [dict(row) for row in cursor.fetchall()]
                finally:
                    cursor.close()

        except sqlite3.OperationalError as e:
            error_str = str(e).lower()

            if "timeout" in error_str or "locked" in error_str:
                raise self._query_failed(
                    sql, timer.duration,
                    f"Query exceeded timeout ({self.query_timeout}s): {e}",
                    QueryTimeoutError,
                ) from e

            # Check if it's a write attempt (read-only mode)
            if "readonly" in error_str or "attempt to write" in error_str:
                raise self._query_failed(
                    sql, timer.duration,
                    f"Write operation blocked by database: {e}\n"
                    f"  Hint: SQLite opened in read-only mode (URI parameter mode=ro)",
                ) from e

            raise self._query_failed(sql, timer.duration, f"SQLite error: {e}") from e

        except sqlite3.Error as e:
            raise self._query_failed(sql, timer.duration, f"SQLite error: {e}") from e

        self._query_succeeded(sql, timer.duration, len(rows))
        return QueryResult(rows=rows, row_count=len(rows))

    def disconnect(self) -> None:
        """Close database connection."""
        if self.connection is not None:
            try:
                self._close_quietly(self.connection)
            finally:
                self.connection = None
