"""Database access for safequery.

Architecture:
- models.py: Connection configs, query requests, results and schema types
- adapters/: Engine-specific implementations (PostgreSQL, MySQL, SQL Server, SQLite, MongoDB)
- connection.py: Connection-string parsing and scoped query execution
- validation.py: SQL cleaning and read-only enforcement
- introspection.py: Catalog queries normalized into TableSchema
- formatting.py: Schema text for AI consumption
- logging.py: Structured JSON logging of connections and queries
"""

from safequery.database.adapters import create_adapter
from safequery.database.connection import adapter_session, execute_query, parse_dsn
from safequery.database.formatting import format_schema_for_ai
from safequery.database.introspection import get_schema_context, introspect_tables
from safequery.database.models import (
    ColumnInfo,
    ConnectionConfig,
    DatabaseType,
    DocumentOperation,
    FieldInfo,
    IndexInfo,
    QueryResult,
    RelationshipInfo,
    SchemaContext,
    SQLQuery,
    TableSchema,
)
from safequery.database.validation import clean_sql, is_safe_query, validate_and_clean_sql

__all__ = [
    "create_adapter",
    "adapter_session",
    "execute_query",
    "parse_dsn",
    "format_schema_for_ai",
    "get_schema_context",
    "introspect_tables",
    "clean_sql",
    "is_safe_query",
    "validate_and_clean_sql",
    "ColumnInfo",
    "ConnectionConfig",
    "DatabaseType",
    "DocumentOperation",
    "FieldInfo",
    "IndexInfo",
    "QueryResult",
    "RelationshipInfo",
    "SchemaContext",
    "SQLQuery",
    "TableSchema",
]
