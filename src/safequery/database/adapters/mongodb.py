"""MongoDB database adapter implementation."""

import json
import logging
from typing import Any, Optional
from urllib.parse import quote_plus

from pymongo import MongoClient
from pymongo.errors import ExecutionTimeout, NetworkTimeout, OperationFailure, PyMongoError

from ...constants import DB_CONNECT_TIMEOUT, DB_QUERY_TIMEOUT, DEFAULT_HOST, DEFAULT_PORTS, DOCUMENT_FIND_OPTIONS
from ...encryption import SecretResolver
from ...errors import DatabaseConnectionError, QueryTimeoutError, QueryTypeError
from ..logging import QueryTimer, log_connection
from ..models import ConnectionConfig, DatabaseType, DocumentOperation, FieldInfo, QueryRequest, QueryResult
from .base import BaseAdapter, url_label

logger = logging.getLogger(__name__)


class MongoDBAdapter(BaseAdapter):
    """MongoDB adapter that only runs find, aggregate and count operations."""

    db_type = DatabaseType.MONGODB

    def __init__(
        self,
        config: ConnectionConfig,
        secrets: Optional[SecretResolver] = None,
        timeout: float = DB_CONNECT_TIMEOUT,
        query_timeout: float = DB_QUERY_TIMEOUT,
    ):
        """Initialize MongoDB adapter."""
        super().__init__(config, secrets, timeout, query_timeout)
        self.database: Optional[Any] = None

        if config.uses_connection_url:
            self._uri = self._decrypt(config.connection_url_encrypted)
            self._label = url_label(self._uri, self.db_type)
        else:
            host = config.host or DEFAULT_HOST
            port = config.port or DEFAULT_PORTS["mongodb"]
            if config.username:
                password = self._decrypt(config.password_encrypted) if config.password_encrypted else ""
                auth = f"{quote_plus(config.username)}:{quote_plus(password)}@"
            else:
                auth = ""
            self._uri = f"mongodb://{auth}{host}:{port}/{config.database or ''}"
            user_part = f"{config.username}@" if config.username else ""
            self._label = f"mongodb://{user_part}{host}:{port}/{config.database or ''}"

    @property
    def dsn(self) -> str:
        return self._label

    def connect(self) -> None:
        """Open a client, ping the server and select the database."""
        timer = QueryTimer()
        client_options = {
            "serverSelectionTimeoutMS": int(self.timeout * 1000),
            "connectTimeoutMS": int(self.timeout * 1000),
            "socketTimeoutMS": int(self.query_timeout * 1000),
            # Prefer reading from secondary (read-only intent)
            "readPreference": "secondaryPreferred",
        }
        if self.config.ssl:
            client_options["tls"] = True

        client = None
        try:
            with timer:
                client = MongoClient(self._uri, **client_options)
                client.admin.command("ping")
                database = client.get_default_database(default=self.config.database)
        except PyMongoError as e:
            if client is not None:
                self._close_quietly(client)
            error_msg = f"Failed to connect to MongoDB: {e}"
            log_connection(self.db_type, self.dsn, success=False, error=error_msg, duration=timer.duration)
            raise DatabaseConnectionError(
                f"{error_msg}\n"
                f"  Hint: Check that MongoDB is reachable at {self.dsn} and the URL names a database",
                db_type=self.db_type.value,
            ) from e

        self.connection = client
        self.database = database
        log_connection(self.db_type, self.dsn, success=True, duration=timer.duration)
        logger.info(f"Connected to MongoDB database: {self.dsn}")

    def query(self, request: QueryRequest) -> QueryResult:
        """Run a read operation against one collection.

        Raises:
            QueryTypeError: If given SQL text instead of a DocumentOperation
            NotConnectedError: If not connected
            QueryTimeoutError: If the server or socket timeout fires
            QueryExecutionError: If MongoDB rejects the operation
        """
        if not isinstance(request, DocumentOperation):
            raise QueryTypeError(
                "MongoDB adapter expects a DocumentOperation, not SQL text\n"
                "  Hint: Build one with DocumentOperation.from_json(...)"
            )
        self._require_connection()

        description = json.dumps({
            "collection": request.collection,
            "operation": request.operation,
            "query": request.query,
        }, default=str)

        timer = QueryTimer()
        try:
            with timer:
                results = self._run(request)
        except (ExecutionTimeout, NetworkTimeout) as e:
            raise self._query_failed(
                description, timer.duration,
                f"MongoDB query exceeded timeout ({self.query_timeout}s): {e}",
                QueryTimeoutError,
            ) from e
        except OperationFailure as e:
            raise self._query_failed(description, timer.duration, f"MongoDB operation failed: {e}") from e
        except PyMongoError as e:
            raise self._query_failed(description, timer.duration, f"MongoDB query error: {e}") from e

        for doc in results:
            if "_id" in doc:
                doc["_id"] = str(doc["_id"])

        self._query_succeeded(description, timer.duration, len(results))
        return QueryResult(
            rows=results,
            row_count=len(results),
            fields=[
                FieldInfo(name=key, data_type=type(value).__name__)
                for key, value in results[0].items()
            ] if results else None,
        )

    def _run(self, request: DocumentOperation) -> list[dict[str, Any]]:
        collection = self.database[request.collection]
        allowed = DOCUMENT_FIND_OPTIONS if request.operation == "find" else ()
        dropped = sorted(key for key in request.options if key not in allowed)
        if dropped:
            logger.debug(f"Ignoring unsupported {request.operation} options: {', '.join(dropped)}")

        if request.operation == "find":
            options = {key: value for key, value in request.options.items() if key in allowed}
            if isinstance(options.get("sort"), list):
                options["sort"] = [tuple(item) if isinstance(item, list) else item for item in options["sort"]]
            return list(collection.find(request.query, **options))

        if request.operation == "aggregate":
            return list(collection.aggregate(request.query))

        return [{"count": collection.count_documents(request.query)}]

    def _probe(self) -> None:
        self.connection.admin.command("ping")

    def disconnect(self) -> None:
        """Close database connection."""
        if self.connection is not None:
            try:
                self._close_quietly(self.connection)
            finally:
                self.connection = None
                self.database = None
