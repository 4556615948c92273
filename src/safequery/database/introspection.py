"""Schema introspection for relational engines.

Every engine goes through the same pipeline: run a column catalog query and
a foreign-key catalog query on one connection, group column rows by table
in ordinal order, then attach foreign keys to their owning table. Engines
differ only in the catalog SQL and in how a row maps to ColumnInfo and
RelationshipInfo.
"""

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Optional

from ..constants import DB_INTROSPECTABLE_TYPES
from ..encryption import SecretResolver
from ..errors import QueryExecutionError, SchemaIntrospectionError, UnsupportedEngineError
from .connection import adapter_session
from .formatting import format_schema_for_ai
from .models import ColumnInfo, ConnectionConfig, DatabaseType, RelationshipInfo, SchemaContext, SQLQuery, TableSchema

if TYPE_CHECKING:
    from ..cache import SchemaCache

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CatalogStrategy:
    """Catalog SQL and row mappers for one engine.

    Both queries must return a ``table_name`` column; column rows must come
    back in ordinal order within each table.
    """

    columns_sql: str
    foreign_keys_sql: str
    to_column: Callable[[dict], ColumnInfo]
    to_relationship: Callable[[dict], RelationshipInfo]


def _is_yes(value) -> bool:
    return str(value).upper() == "YES"


def _relationship(row: dict) -> RelationshipInfo:
    return RelationshipInfo(
        column=row["column_name"],
        foreign_table=row["foreign_table"],
        foreign_column=row["foreign_column"],
    )


POSTGRESQL_COLUMNS_SQL = """
SELECT
  c.table_name,
  c.column_name,
  c.data_type,
  c.is_nullable,
  c.column_default,
  CASE WHEN pk.column_name IS NOT NULL THEN 1 ELSE 0 END AS is_primary
FROM information_schema.tables t
JOIN information_schema.columns c
  ON t.table_name = c.table_name AND t.table_schema = c.table_schema
LEFT JOIN (
  SELECT ku.table_name, ku.column_name
  FROM information_schema.table_constraints tc
  JOIN information_schema.key_column_usage ku
    ON tc.constraint_name = ku.constraint_name
   AND tc.table_schema = ku.table_schema
   AND tc.table_name = ku.table_name
  WHERE tc.constraint_type = 'PRIMARY KEY'
    AND tc.table_schema = 'public'
) pk ON c.table_name = pk.table_name AND c.column_name = pk.column_name
WHERE t.table_schema = 'public'
  AND t.table_type = 'BASE TABLE'
ORDER BY c.table_name, c.ordinal_position
"""

# Pairs each referencing column with the referenced column at the same
# position, so composite keys map column-to-column.
POSTGRESQL_FOREIGN_KEYS_SQL = """
SELECT
  kcu.table_name,
  kcu.column_name,
  ref.table_name AS foreign_table,
  ref.column_name AS foreign_column
FROM information_schema.table_constraints tc
JOIN information_schema.key_column_usage kcu
  ON tc.constraint_name = kcu.constraint_name
 AND tc.table_schema = kcu.table_schema
JOIN information_schema.referential_constraints rc
  ON rc.constraint_name = tc.constraint_name
 AND rc.constraint_schema = tc.table_schema
JOIN information_schema.key_column_usage ref
  ON ref.constraint_name = rc.unique_constraint_name
 AND ref.constraint_schema = rc.unique_constraint_schema
 AND ref.ordinal_position = kcu.position_in_unique_constraint
WHERE tc.constraint_type = 'FOREIGN KEY'
  AND tc.table_schema = 'public'
ORDER BY kcu.table_name, tc.constraint_name, kcu.ordinal_position
"""

MYSQL_COLUMNS_SQL = """
SELECT
  t.TABLE_NAME AS table_name,
  c.COLUMN_NAME AS column_name,
  c.DATA_TYPE AS data_type,
  c.IS_NULLABLE AS is_nullable,
  c.COLUMN_KEY AS column_key,
  c.COLUMN_DEFAULT AS column_default
FROM information_schema.TABLES t
JOIN information_schema.COLUMNS c
  ON t.TABLE_NAME = c.TABLE_NAME AND t.TABLE_SCHEMA = c.TABLE_SCHEMA
WHERE t.TABLE_SCHEMA = DATABASE()
  AND t.TABLE_TYPE = 'BASE TABLE'
ORDER BY t.TABLE_NAME, c.ORDINAL_POSITION
"""

MYSQL_FOREIGN_KEYS_SQL = """
SELECT
  kcu.TABLE_NAME AS table_name,
  kcu.COLUMN_NAME AS column_name,
  kcu.REFERENCED_TABLE_NAME AS foreign_table,
  kcu.REFERENCED_COLUMN_NAME AS foreign_column
FROM information_schema.KEY_COLUMN_USAGE kcu
WHERE kcu.TABLE_SCHEMA = DATABASE()
  AND kcu.REFERENCED_TABLE_NAME IS NOT NULL
ORDER BY kcu.TABLE_NAME, kcu.CONSTRAINT_NAME, kcu.ORDINAL_POSITION
"""

MSSQL_COLUMNS_SQL = """
SELECT
  t.TABLE_NAME AS table_name,
  c.COLUMN_NAME AS column_name,
  c.DATA_TYPE AS data_type,
  c.IS_NULLABLE AS is_nullable,
  CASE WHEN pk.COLUMN_NAME IS NOT NULL THEN 1 ELSE 0 END AS is_primary,
  c.COLUMN_DEFAULT AS column_default
FROM INFORMATION_SCHEMA.TABLES t
JOIN INFORMATION_SCHEMA.COLUMNS c
  ON t.TABLE_NAME = c.TABLE_NAME AND t.TABLE_SCHEMA = c.TABLE_SCHEMA
LEFT JOIN (
  SELECT ku.TABLE_NAME, ku.COLUMN_NAME
  FROM INFORMATION_SCHEMA.TABLE_CONSTRAINTS tc
  JOIN INFORMATION_SCHEMA.KEY_COLUMN_USAGE ku
    ON tc.CONSTRAINT_NAME = ku.CONSTRAINT_NAME
   AND tc.TABLE_SCHEMA = ku.TABLE_SCHEMA
  WHERE tc.CONSTRAINT_TYPE = 'PRIMARY KEY'
    AND tc.TABLE_SCHEMA = 'dbo'
) pk ON c.TABLE_NAME = pk.TABLE_NAME AND c.COLUMN_NAME = pk.COLUMN_NAME
WHERE t.TABLE_TYPE = 'BASE TABLE'
  AND t.TABLE_SCHEMA = 'dbo'
ORDER BY t.TABLE_NAME, c.ORDINAL_POSITION
"""

MSSQL_FOREIGN_KEYS_SQL = """
SELECT
  tp.name AS table_name,
  cp.name AS column_name,
  tr.name AS foreign_table,
  cr.name AS foreign_column
FROM sys.foreign_keys fk
INNER JOIN sys.foreign_key_columns fkc
  ON fk.object_id = fkc.constraint_object_id
INNER JOIN sys.tables tp
  ON fkc.parent_object_id = tp.object_id
INNER JOIN sys.columns cp
  ON fkc.parent_object_id = cp.object_id
 AND fkc.parent_column_id = cp.column_id
INNER JOIN sys.tables tr
  ON fkc.referenced_object_id = tr.object_id
INNER JOIN sys.columns cr
  ON fkc.referenced_object_id = cr.object_id
 AND fkc.referenced_column_id = cr.column_id
WHERE SCHEMA_NAME(tp.schema_id) = 'dbo'
ORDER BY tp.name, fk.name, fkc.constraint_column_id
"""

SQLITE_COLUMNS_SQL = """
SELECT
  m.name AS table_name,
  p.name AS column_name,
  p.type AS data_type,
  p."notnull" AS not_null,
  p.pk AS pk,
  p.dflt_value AS column_default
FROM sqlite_master AS m, pragma_table_info(m.name) AS p
WHERE m.type = 'table'
  AND m.name NOT LIKE 'sqlite_%'
ORDER BY m.name, p.cid
"""

SQLITE_FOREIGN_KEYS_SQL = """
SELECT
  m.name AS table_name,
  f."from" AS column_name,
  f."table" AS foreign_table,
  f."to" AS foreign_column
FROM sqlite_master AS m, pragma_foreign_key_list(m.name) AS f
WHERE m.type = 'table'
  AND m.name NOT LIKE 'sqlite_%'
ORDER BY m.name, f.id, f.seq
"""


STRATEGIES = {
    DatabaseType.POSTGRESQL: CatalogStrategy(
        columns_sql=POSTGRESQL_COLUMNS_SQL,
        foreign_keys_sql=POSTGRESQL_FOREIGN_KEYS_SQL,
        to_column=lambda row: ColumnInfo(
            column=row["column_name"],
            type=row["data_type"],
            nullable=_is_yes(row["is_nullable"]),
            is_primary=bool(row["is_primary"]),
            default_value=row["column_default"],
        ),
        to_relationship=_relationship,
    ),
    DatabaseType.MYSQL: CatalogStrategy(
        columns_sql=MYSQL_COLUMNS_SQL,
        foreign_keys_sql=MYSQL_FOREIGN_KEYS_SQL,
        to_column=lambda row: ColumnInfo(
            column=row["column_name"],
            type=row["data_type"],
            nullable=_is_yes(row["is_nullable"]),
            is_primary=row["column_key"] == "PRI",
            default_value=row["column_default"],
        ),
        to_relationship=_relationship,
    ),
    DatabaseType.MSSQL: CatalogStrategy(
        columns_sql=MSSQL_COLUMNS_SQL,
        foreign_keys_sql=MSSQL_FOREIGN_KEYS_SQL,
        to_column=lambda row: ColumnInfo(
            column=row["column_name"],
            type=row["data_type"],
            nullable=_is_yes(row["is_nullable"]),
            is_primary=row["is_primary"] == 1,
            default_value=row["column_default"],
        ),
        to_relationship=_relationship,
    ),
    DatabaseType.SQLITE: CatalogStrategy(
        columns_sql=SQLITE_COLUMNS_SQL,
        foreign_keys_sql=SQLITE_FOREIGN_KEYS_SQL,
        to_column=lambda row: ColumnInfo(
            column=row["column_name"],
            type=row["data_type"],
            nullable=row["not_null"] == 0,
            is_primary=row["pk"] > 0,
            default_value=row["column_default"],
        ),
        to_relationship=_relationship,
    ),
}


def _catalog_query(adapter, sql: str, what: str) -> list[dict]:
    try:
        return adapter.query(SQLQuery(sql)).rows
    except QueryExecutionError as e:
        raise SchemaIntrospectionError(
            f"Failed to read {what} catalog from {adapter.dsn}: {e}",
            db_type=adapter.db_type.value,
        ) from e


def _build_tables(strategy: CatalogStrategy, column_rows: list[dict],
                  foreign_key_rows: list[dict], db_type: DatabaseType) -> list[TableSchema]:
    tables: dict[str, TableSchema] = {}

    table_name = None
    try:
        for row in column_rows:
            table_name = row["table_name"]
            table = tables.setdefault(table_name, TableSchema(table_name=table_name))
            table.columns.append(strategy.to_column(row))

        for row in foreign_key_rows:
            table_name = row["table_name"]
            table = tables.get(table_name)
            if table is None:
                continue
            relationship = strategy.to_relationship(row)
            if relationship.foreign_column is None:
                # SQLite leaves the target column unset for REFERENCES <table>
                relationship.foreign_column = _primary_key_of(tables.get(relationship.foreign_table))
            table.relationships.append(relationship)
    except (KeyError, TypeError) as e:
        raise SchemaIntrospectionError(
            f"Unexpected {db_type.value} catalog row for table {table_name}: {e}",
            db_type=db_type.value,
            table_name=table_name,
        ) from e

    return sorted(tables.values(), key=lambda t: t.table_name)


def _primary_key_of(table: Optional[TableSchema]) -> Optional[str]:
    if table is None:
        return None
    for column in table.columns:
        if column.is_primary:
            return column.column
    return None


def introspect_tables(config: ConnectionConfig, secrets: Optional[SecretResolver] = None) -> list[TableSchema]:
    """Read tables, columns and foreign keys from the default schema.

    Only ``public`` (PostgreSQL), the connected database (MySQL), ``dbo``
    (SQL Server) or the single SQLite namespace is read.

    Args:
        config: Relational connection to introspect
        secrets: Resolver for encrypted credentials

    Returns:
        Tables sorted by name, columns in ordinal order

    Raises:
        UnsupportedEngineError: For engines without a catalog (mongodb)
        DatabaseConnectionError: If the connection cannot be opened
        SchemaIntrospectionError: If any catalog query fails; no partial
            table list is returned
    """
    strategy = STRATEGIES.get(config.type)
    if strategy is None:
        raise UnsupportedEngineError(config.type.value, DB_INTROSPECTABLE_TYPES)

    with adapter_session(config, secrets=secrets) as adapter:
        column_rows = _catalog_query(adapter, strategy.columns_sql, "column")
        foreign_key_rows = _catalog_query(adapter, strategy.foreign_keys_sql, "foreign key")

    tables = _build_tables(strategy, column_rows, foreign_key_rows, config.type)
    logger.info(f"Introspected {len(tables)} tables from {config.type.value} connection {config.id}")
    return tables


def get_schema_context(
    config: ConnectionConfig,
    secrets: Optional[SecretResolver] = None,
    cache: Optional["SchemaCache"] = None,
) -> SchemaContext:
    """Introspect a connection and render its schema text.

    Args:
        config: Relational connection to introspect
        secrets: Resolver for encrypted credentials
        cache: Optional schema cache keyed by connection id; consulted
            before introspecting and filled afterwards

    Returns:
        SchemaContext with tables and the formatted schema block
    """
    if cache is not None:
        cached = cache.get(config.id)
        if cached is not None:
            return cached

    tables = introspect_tables(config, secrets=secrets)
    context = SchemaContext(tables=tables, formatted=format_schema_for_ai(tables, config.type))

    if cache is not None:
        cache.set(config.id, context)
    return context
