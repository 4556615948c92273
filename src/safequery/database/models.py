"""Connection, request, result and schema types shared by every engine."""

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Union

from ..constants import DB_SUPPORTED_TYPES, DOCUMENT_OPERATIONS, DOCUMENT_WRITE_STAGES
from ..errors import ConfigurationError, InvalidDocumentOperationError, UnsupportedEngineError


class DatabaseType(str, Enum):
    POSTGRESQL = "postgresql"
    MYSQL = "mysql"
    MSSQL = "mssql"
    SQLITE = "sqlite"
    MONGODB = "mongodb"

    @classmethod
    def parse(cls, value: Union[str, "DatabaseType"]) -> "DatabaseType":
        """Resolve an engine tag, raising UnsupportedEngineError for unknown ones."""
        try:
            return cls(value)
        except ValueError:
            raise UnsupportedEngineError(value, DB_SUPPORTED_TYPES) from None


# camelCase keys used by the external record format
_CONFIG_KEY_ALIASES = {
    "passwordEncrypted": "password_encrypted",
    "connectionUrlEncrypted": "connection_url_encrypted",
}


@dataclass(frozen=True)
class ConnectionConfig:
    """How to reach one database.

    ``password_encrypted`` and ``connection_url_encrypted`` hold ciphertext;
    when a connection URL is present it wins over the discrete fields.
    """

    id: str
    type: DatabaseType
    host: Optional[str] = None
    port: Optional[int] = None
    database: Optional[str] = None
    username: Optional[str] = None
    password_encrypted: Optional[str] = None
    connection_url_encrypted: Optional[str] = None
    ssl: bool = False

    def __post_init__(self):
        object.__setattr__(self, "type", DatabaseType.parse(self.type))
        object.__setattr__(self, "ssl", bool(self.ssl))

    @classmethod
    def from_dict(cls, data: dict) -> "ConnectionConfig":
        """Build a config from either snake_case or camelCase keys."""
        values = {}
        for key, value in data.items():
            key = _CONFIG_KEY_ALIASES.get(key, key)
            if key in cls.__dataclass_fields__:
                values[key] = value
        missing = [name for name in ("id", "type") if not values.get(name)]
        if missing:
            raise ConfigurationError(f"Connection record is missing: {', '.join(missing)}")
        if values.get("port") is not None:
            try:
                values["port"] = int(values["port"])
            except (TypeError, ValueError) as e:
                raise ConfigurationError(f"Invalid port: {values['port']!r}") from e
        return cls(**values)

    @property
    def uses_connection_url(self) -> bool:
        return bool(self.connection_url_encrypted)


@dataclass(frozen=True)
class SQLQuery:
    """SQL text bound for a relational engine."""

    sql: str


@dataclass(frozen=True)
class DocumentOperation:
    """Read operation against a document-store collection.

    ``query`` is a filter document for find/count and a pipeline (list of
    stages) for aggregate.
    """

    collection: str
    operation: str
    query: Any = field(default_factory=dict)
    options: dict = field(default_factory=dict)

    def __post_init__(self):
        if not self.collection or not isinstance(self.collection, str):
            raise InvalidDocumentOperationError("Document operation requires a collection name")
        if self.operation not in DOCUMENT_OPERATIONS:
            raise InvalidDocumentOperationError(
                f"Unsupported operation: {self.operation}\n"
                f"  Hint: Use one of {', '.join(DOCUMENT_OPERATIONS)}"
            )
        if self.operation == "aggregate":
            if not isinstance(self.query, list):
                raise InvalidDocumentOperationError(
                    "Aggregate operation requires a pipeline (list of stages) as query"
                )
            for stage in self.query:
                if not isinstance(stage, dict):
                    raise InvalidDocumentOperationError("Each pipeline stage must be a document")
                written = [key for key in stage if key in DOCUMENT_WRITE_STAGES]
                if written:
                    raise InvalidDocumentOperationError(
                        f"Write stage '{written[0]}' is not allowed in a read-only pipeline"
                    )
        elif not isinstance(self.query, dict):
            raise InvalidDocumentOperationError(
                f"{self.operation} operation requires a filter document as query"
            )

    @classmethod
    def from_json(cls, payload: str) -> "DocumentOperation":
        """Parse ``{"collection", "operation", "query", "options"}`` JSON."""
        try:
            data = json.loads(payload)
        except (TypeError, ValueError) as e:
            raise InvalidDocumentOperationError(f"Document operation is not valid JSON: {e}") from e
        if not isinstance(data, dict):
            raise InvalidDocumentOperationError("Document operation must be a JSON object")

        default_query = [] if data.get("operation") == "aggregate" else {}
        return cls(
            collection=data.get("collection"),
            operation=data.get("operation"),
            query=data.get("query") if data.get("query") is not None else default_query,
            options=data.get("options") or {},
        )


QueryRequest = Union[SQLQuery, DocumentOperation]


@dataclass
class FieldInfo:
    name: str
    data_type: str


@dataclass
class QueryResult:
    """Rows exactly as the engine returned them.

    Each row is a dict whose key order is the result column order.
    """

    rows: list[dict[str, Any]]
    row_count: int
    fields: Optional[list[FieldInfo]] = None


@dataclass
class ColumnInfo:
    column: str
    type: str
    nullable: bool
    is_primary: bool = False
    default_value: Optional[str] = None


@dataclass
class RelationshipInfo:
    column: str
    foreign_table: str
    foreign_column: str


@dataclass
class IndexInfo:
    name: str
    columns: list[str]


@dataclass
class TableSchema:
    table_name: str
    columns: list[ColumnInfo] = field(default_factory=list)
    relationships: list[RelationshipInfo] = field(default_factory=list)
    indexes: list[IndexInfo] = field(default_factory=list)


@dataclass
class SchemaContext:
    tables: list[TableSchema]
    formatted: str
