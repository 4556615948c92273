"""Exception hierarchy for safequery.

Every error derives from SafeQueryError and from the builtin a caller would
naturally catch for that condition, so ``except ValueError`` around a
validation call or ``except ConnectionError`` around a connect keeps working.
"""


class SafeQueryError(Exception):
    """Base class for all safequery errors."""


class UnsupportedEngineError(SafeQueryError, ValueError):
    """Connection config names an engine type this package cannot handle."""

    def __init__(self, db_type, supported=None):
        self.db_type = db_type
        message = f"Unsupported database type: {db_type}"
        if supported:
            message += f"\n  Supported types: {', '.join(supported)}"
        super().__init__(message)


class ConfigurationError(SafeQueryError, ValueError):
    """Connection config lacks the fields an adapter needs."""


class DecryptionError(SafeQueryError, ValueError):
    """Ciphertext is malformed or was encrypted with a different key."""


class DatabaseConnectionError(SafeQueryError, ConnectionError):
    """Native driver failed to open a connection."""

    def __init__(self, message: str, db_type: str = None):
        self.db_type = db_type
        super().__init__(message)


class NotConnectedError(SafeQueryError, RuntimeError):
    """``query`` was called while the adapter holds no open handle."""


class QueryExecutionError(SafeQueryError, RuntimeError):
    """Native driver failed while running a query."""

    def __init__(self, message: str, db_type: str = None):
        self.db_type = db_type
        super().__init__(message)


class QueryTimeoutError(QueryExecutionError, TimeoutError):
    """Query exceeded the driver-level timeout."""


class QueryTypeError(SafeQueryError, TypeError):
    """Request variant does not match the adapter (SQL vs document operation)."""


class InvalidDocumentOperationError(SafeQueryError, ValueError):
    """Document-store operation descriptor is malformed or not read-only."""


class SchemaIntrospectionError(SafeQueryError, RuntimeError):
    """A catalog query failed; the whole introspection is abandoned."""

    def __init__(self, message: str, db_type: str = None, table_name: str = None):
        self.db_type = db_type
        self.table_name = table_name
        super().__init__(message)


class SQLValidationError(SafeQueryError, ValueError):
    """Base class for SQL text rejected before reaching a connection."""


class EmptySQLError(SQLValidationError):
    """Nothing left once formatting artifacts are stripped."""


class DangerousOperationError(SQLValidationError):
    """Statement contains a mutating or privileged keyword."""

    def __init__(self, message: str, operation: str = None):
        self.operation = operation
        super().__init__(message)


class DisallowedStatementError(SQLValidationError):
    """Statement does not start with an allowed read-only keyword."""


class MalformedCTEError(SQLValidationError):
    """A ``WITH`` statement that never reaches a ``SELECT``."""
