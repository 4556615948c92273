"""Database adapters for different database types."""

from typing import Optional

from ...constants import DB_SUPPORTED_TYPES
from ...encryption import SecretResolver
from ...errors import UnsupportedEngineError
from ..models import ConnectionConfig, DatabaseType
from .base import BaseAdapter
from .mongodb import MongoDBAdapter
from .mssql import MSSQLAdapter
from .mysql import MySQLAdapter
from .postgresql import PostgreSQLAdapter
from .sqlite import SQLiteAdapter

__all__ = [
    "BaseAdapter",
    "MySQLAdapter",
    "PostgreSQLAdapter",
    "MSSQLAdapter",
    "SQLiteAdapter",
    "MongoDBAdapter",
    "ADAPTERS",
    "create_adapter",
]

ADAPTERS = {
    DatabaseType.POSTGRESQL: PostgreSQLAdapter,
    DatabaseType.MYSQL: MySQLAdapter,
    DatabaseType.MSSQL: MSSQLAdapter,
    DatabaseType.SQLITE: SQLiteAdapter,
    DatabaseType.MONGODB: MongoDBAdapter,
}


def create_adapter(
    config: ConnectionConfig,
    secrets: Optional[SecretResolver] = None,
) -> BaseAdapter:
    """Factory function to create the adapter for a connection config.

    No network activity happens here; credentials are decrypted by the
    adapter constructor.

    Args:
        config: Connection config; ``config.type`` selects the adapter
        secrets: Resolver for encrypted credentials

    Returns:
        Disconnected adapter instance

    Raises:
        UnsupportedEngineError: If the type has no adapter
    """
    adapter_class = ADAPTERS.get(config.type)
    if adapter_class is None:
        raise UnsupportedEngineError(config.type.value, DB_SUPPORTED_TYPES)
    return adapter_class(config, secrets=secrets)
