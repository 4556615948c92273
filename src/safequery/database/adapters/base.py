"""Abstract base class for database adapters."""

import logging
from abc import ABC, abstractmethod
from typing import Any, Optional, Union
from urllib.parse import urlparse

from ...constants import DB_CONNECT_TIMEOUT, DB_QUERY_TIMEOUT, TRIVIAL_QUERY
from ...encryption import SecretResolver
from ...errors import NotConnectedError, QueryExecutionError, QueryTypeError
from ..logging import log_query_execution
from ..models import ConnectionConfig, DatabaseType, DocumentOperation, QueryRequest, QueryResult, SQLQuery

logger = logging.getLogger(__name__)


class BaseAdapter(ABC):
    """Abstract base class for engine-specific adapters.

    Each engine (PostgreSQL, MySQL, SQL Server, SQLite, MongoDB) implements
    connect / query / disconnect against its native driver. An adapter owns
    at most one native handle and moves strictly
    Disconnected -> Connected -> Disconnected.
    """

    db_type: DatabaseType
    trivial_query = TRIVIAL_QUERY

    def __init__(
        self,
        config: ConnectionConfig,
        secrets: Optional[SecretResolver] = None,
        timeout: float = DB_CONNECT_TIMEOUT,
        query_timeout: float = DB_QUERY_TIMEOUT,
    ):
        """Initialize adapter with connection parameters.

        Args:
            config: Connection to open
            secrets: Resolver for encrypted credentials; built from the
                environment on first use when omitted
            timeout: Connect timeout in seconds
            query_timeout: Per-statement timeout in seconds
        """
        self.config = config
        self.timeout = timeout
        self.query_timeout = query_timeout
        self.connection: Optional[Any] = None
        self._secrets = secrets

    @property
    @abstractmethod
    def dsn(self) -> str:
        """Connection description for logs and errors (never contains a password)."""

    @property
    def is_connected(self) -> bool:
        return self.connection is not None

    @abstractmethod
    def connect(self) -> None:
        """Open the native connection.

        Raises:
            DatabaseConnectionError: If connection fails
        """

    @abstractmethod
    def query(self, request: Union[str, QueryRequest]) -> QueryResult:
        """Run one request on the open connection.

        Raises:
            NotConnectedError: If called outside the Connected state
            QueryExecutionError: If the engine rejects the query
        """

    @abstractmethod
    def disconnect(self) -> None:
        """Release the native connection. Never raises."""

    def test_connection(self) -> bool:
        """Connect, run a trivial probe, disconnect.

        Returns:
            True if every step succeeded, False on any failure
        """
        try:
            self.connect()
            self._probe()
            return True
        except Exception as e:
            logger.warning(f"Connection test failed for {self.dsn}: {e}")
            return False
        finally:
            self.disconnect()

    def _probe(self) -> None:
        self.query(SQLQuery(self.trivial_query))

    def _decrypt(self, ciphertext: str) -> str:
        if self._secrets is None:
            self._secrets = SecretResolver.from_env()
        return self._secrets.decrypt(ciphertext)

    def _require_connection(self) -> None:
        if self.connection is None:
            raise NotConnectedError(
                f"Not connected to {self.db_type.value} database. Call connect() first."
            )

    def _sql_text(self, request: Union[str, QueryRequest]) -> str:
        """Extract SQL from the request, refusing document operations."""
        if isinstance(request, DocumentOperation):
            raise QueryTypeError(
                f"{self.db_type.value} adapter expects SQL text, got a document operation"
            )
        if isinstance(request, SQLQuery):
            return request.sql
        if isinstance(request, str):
            return request
        raise QueryTypeError(f"Unsupported query request: {type(request).__name__}")

    def _query_failed(self, sql: str, duration: float, message: str,
                      error_class=QueryExecutionError) -> QueryExecutionError:
        """Log a failed execution and build the error to raise."""
        logger.error(message)
        log_query_execution(
            query=sql,
            dsn=self.dsn,
            success=False,
            db_type=self.db_type,
            error=message,
            duration=duration,
        )
        return error_class(message, db_type=self.db_type.value)

    def _query_succeeded(self, sql: str, duration: float, row_count: int) -> None:
        log_query_execution(
            query=sql,
            dsn=self.dsn,
            success=True,
            db_type=self.db_type,
            row_count=row_count,
            duration=duration,
        )

    def _close_quietly(self, handle: Any) -> None:
        """Close a native handle, logging instead of raising."""
        try:
            handle.close()
            logger.info(f"Closed {self.db_type.value} connection to {self.dsn}")
        except Exception as e:
            logger.warning(f"Error closing {self.db_type.value} connection: {e}")

    def quote_identifier(self, name: str) -> str:
        """Quote a table or column name in the engine's dialect."""
        return '"' + name.replace('"', '""') + '"'

    def __enter__(self):
        """Context manager entry."""
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.disconnect()


def url_label(url: str, db_type: DatabaseType) -> str:
    """Describe a connection URL without its credentials or query string."""
    parsed = urlparse(url)
    if not parsed.scheme or not parsed.netloc:
        return f"{db_type.value}://<connection url>"
    try:
        port = f":{parsed.port}" if parsed.port else ""
    except ValueError:
        port = ""
    return f"{parsed.scheme}://{parsed.hostname or ''}{port}{parsed.path}"
