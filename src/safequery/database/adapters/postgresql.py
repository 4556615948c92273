"""PostgreSQL database adapter implementation."""

import logging
from typing import Optional, Union

import psycopg2
import psycopg2.errors
import psycopg2.extras

from ...constants import DB_CONNECT_TIMEOUT, DB_QUERY_TIMEOUT, DEFAULT_HOST, DEFAULT_PORTS
from ...encryption import SecretResolver
from ...errors import DatabaseConnectionError, QueryTimeoutError
from ..logging import QueryTimer, log_connection
from ..models import ConnectionConfig, DatabaseType, FieldInfo, QueryRequest, QueryResult
from .base import BaseAdapter, url_label

logger = logging.getLogger(__name__)


class PostgreSQLAdapter(BaseAdapter):
    """PostgreSQL database adapter with a read-only session."""

    db_type = DatabaseType.POSTGRESQL

    def __init__(
        self,
        config: ConnectionConfig,
        secrets: Optional[SecretResolver] = None,
        timeout: float = DB_CONNECT_TIMEOUT,
        query_timeout: float = DB_QUERY_TIMEOUT,
    ):
        """Initialize PostgreSQL adapter.

        A connection URL, when present, is handed to libpq as-is; otherwise
        keyword parameters are built from the discrete fields.
        """
        super().__init__(config, secrets, timeout, query_timeout)

        if config.uses_connection_url:
            url = self._decrypt(config.connection_url_encrypted)
            self._label = url_label(url, self.db_type)
            self._conn_params = {"dsn": url}
        else:
            self._conn_params = {
                "host": config.host or DEFAULT_HOST,
                "port": config.port or DEFAULT_PORTS["postgresql"],
                "dbname": config.database,
                "user": config.username,
                "password": self._decrypt(config.password_encrypted) if config.password_encrypted else "",
            }
            if config.ssl:
                self._conn_params["sslmode"] = "require"
            user_part = f"{config.username}@" if config.username else ""
            self._label = (
                f"postgresql://{user_part}{self._conn_params['host']}:"
                f"{self._conn_params['port']}/{config.database or ''}"
            )

        self._conn_params["connect_timeout"] = int(self.timeout)
        self._conn_params["options"] = f"-c statement_timeout={int(self.query_timeout * 1000)}"  # milliseconds

    @property
    def dsn(self) -> str:
        return self._label

    def connect(self) -> None:
        """Establish database connection with read-only mode."""
        timer = QueryTimer()
        try:
            with timer:
                connection = psycopg2.connect(**self._conn_params)
                try:
                    connection.autocommit = True
                    # Enforce read-only mode at session level
                    with connection.cursor() as cursor:
                        cursor.execute("SET SESSION CHARACTERISTICS AS TRANSACTION READ ONLY")
                except psycopg2.Error:
                    self._close_quietly(connection)
                    raise
            self.connection = connection

        except psycopg2.Error as e:
            error_msg = f"Failed to connect to PostgreSQL: {e}"
            log_connection(self.db_type, self.dsn, success=False, error=error_msg, duration=timer.duration)
            raise DatabaseConnectionError(
                f"{error_msg}\n"
                f"  Hint: Check that PostgreSQL is reachable at {self.dsn} and credentials are correct",
                db_type=self.db_type.value,
            ) from e

        log_connection(self.db_type, self.dsn, success=True, duration=timer.duration)
        logger.info(f"Connected to PostgreSQL database: {self.dsn}")

    def query(self, request: Union[str, QueryRequest]) -> QueryResult:
        """Execute SQL and return rows keyed by column name.

        Raises:
            NotConnectedError: If not connected
            QueryTimeoutError: If the statement timeout fires
            QueryExecutionError: If PostgreSQL rejects the query
        """
        sql = self._sql_text(request)
        self._require_connection()

        timer = QueryTimer()
        try:
            with timer:
                # Dict cursor for named columns
                with self.connection.cursor(cursor_factory=psycopg2.extras.RealDictCursor) as cursor:
                    cursor.execute(sql)
                    description = cursor.description or []
                    rows = [dict(row) for row in cursor.fetchall()] if cursor.description else []

        except psycopg2.errors.QueryCanceled as e:
            raise self._query_failed(
                sql, timer.duration,
                f"PostgreSQL query exceeded timeout ({self.query_timeout}s): {e}",
                QueryTimeoutError,
            ) from e

        except (psycopg2.errors.InsufficientPrivilege, psycopg2.errors.ReadOnlySqlTransaction) as e:
            raise self._query_failed(
                sql, timer.duration,
                f"Write operation blocked by database: {e}\n"
                f"  Hint: PostgreSQL session is set to READ ONLY mode",
            ) from e

        except psycopg2.Error as e:
            raise self._query_failed(sql, timer.duration, f"PostgreSQL error: {e}") from e

        self._query_succeeded(sql, timer.duration, len(rows))
        return QueryResult(
            rows=rows,
            row_count=len(rows),
            fields=[FieldInfo(name=column.name, data_type=str(column.type_code)) for column in description],
        )

    def disconnect(self) -> None:
        """Close database connection."""
        if self.connection is not None:
            try:
                self._close_quietly(self.connection)
            finally:
                self.connection = None
