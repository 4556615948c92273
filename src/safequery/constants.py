"""Constants and static configuration for safequery."""

# Application constants
VERSION = "1.0.0"
EXIT_SUCCESS = 0
EXIT_FAILURE = 1
MIN_ARGS = 2  # command and its first argument

# Secret resolution
ENCRYPTION_KEY_ENV = "ENCRYPTION_KEY"
ENCRYPTION_KEY_LENGTH = 32  # AES-256
ENCRYPTION_IV_BYTES = 16

# Database constants
DB_CONNECT_TIMEOUT = 10.0  # seconds, applied through each driver's own timeout options
DB_QUERY_TIMEOUT = 30.0  # seconds, per-statement limit where the driver supports one
DB_SUPPORTED_TYPES = ["postgresql", "mysql", "mssql", "sqlite", "mongodb"]
DB_INTROSPECTABLE_TYPES = ["postgresql", "mysql", "mssql", "sqlite"]
DEFAULT_PORTS = {
    "postgresql": 5432,
    "mysql": 3306,
    "mssql": 1433,
    "mongodb": 27017,
}
DEFAULT_HOST = "localhost"
TRIVIAL_QUERY = "SELECT 1"

# SQL validation
SQL_PREVIEW_LENGTH = 50  # chars of rejected SQL echoed back in errors
LOG_QUERY_PREVIEW_LENGTH = 100
ALLOWED_STATEMENT_PREFIXES = ("SELECT", "WITH", "EXPLAIN", "DESCRIBE", "SHOW", "(")
DANGEROUS_SQL_PATTERNS = [
    (r"\bDROP\b", "DROP"),
    (r"\bTRUNCATE\b", "TRUNCATE"),
    (r"\bDELETE\s+FROM\b", "DELETE"),
    (r"\bUPDATE\b", "UPDATE"),
    (r"\bINSERT\s+INTO\b", "INSERT"),
    (r"\bALTER\b", "ALTER"),
    (r"\bCREATE\b", "CREATE"),
    (r"\bGRANT\b", "GRANT"),
    (r"\bREVOKE\b", "REVOKE"),
    (r"\bEXEC\s*\(", "EXEC"),
    (r"\bEXECUTE\s*\(", "EXECUTE"),
]

# Document store
DOCUMENT_OPERATIONS = ("find", "aggregate", "count")
DOCUMENT_WRITE_STAGES = ("$out", "$merge")
DOCUMENT_FIND_OPTIONS = ("projection", "sort", "limit", "skip")

# Schema cache
SCHEMA_CACHE_TTL_MINUTES = 120  # 2 hours
SCHEMA_CACHE_SWEEP_MINUTES = 30
