"""Structured logging for database operations.

Each connection attempt and each query (executed or rejected) becomes one
JSON object on the ``safequery.database`` logger. DSNs are sanitized before
they are written and SQL appears only as a hash plus a short preview.
"""

import hashlib
import json
import logging
import re
import time
from typing import Optional

from ..constants import LOG_QUERY_PREVIEW_LENGTH

db_logger = logging.getLogger("safequery.database")

CREDENTIALS_IN_DSN = re.compile(r"://([^@/]+)@")


def sanitize_dsn(dsn: str) -> str:
    """Mask the user-info part of a DSN.

    Args:
        dsn: Database connection string

    Returns:
        DSN with ``user:password@`` replaced by ``***:***@``
    """
    return CREDENTIALS_IN_DSN.sub("://***:***@", dsn)


def hash_query(query: str) -> str:
    """SHA256 of the query, first 16 hex chars (for deduplication in logs)."""
    return hashlib.sha256(query.encode()).hexdigest()[:16]


def _engine(db_type) -> Optional[str]:
    return getattr(db_type, "value", db_type)


def _emit(log_data: dict, level: int) -> None:
    db_logger.log(level, json.dumps(log_data, default=str))


def log_connection(
    db_type,
    dsn: str,
    success: bool,
    error: Optional[str] = None,
    duration: float = 0.0,
) -> None:
    """Log a connection attempt; failures at ERROR, successes at INFO."""
    log_data = {
        "event": "database_connection",
        "engine": _engine(db_type),
        "dsn": sanitize_dsn(dsn),
        "success": success,
        "duration_seconds": round(duration, 3),
    }
    if error:
        log_data["error"] = error

    _emit(log_data, logging.INFO if success else logging.ERROR)


def log_query_execution(
    query: str,
    dsn: str,
    success: bool,
    db_type=None,
    row_count: int = 0,
    duration: float = 0.0,
    error: Optional[str] = None,
    blocked: bool = False,
    operation: Optional[str] = None,
) -> None:
    """Log one query with metadata.

    Rejected statements are an audit trail: they go out at WARNING with the
    query hash and, for dangerous keywords, the operation that tripped the
    validator.

    Args:
        query: SQL text or serialized document operation
        dsn: Connection description (will be sanitized)
        success: Whether the query ran
        db_type: Engine tag or DatabaseType
        row_count: Number of rows returned
        duration: Execution time in seconds
        error: Error message if failed
        blocked: Whether the query was rejected before reaching a connection
        operation: Keyword that caused the rejection, if any
    """
    ellipsis = "..." if len(query) > LOG_QUERY_PREVIEW_LENGTH else ""
    log_data = {
        "event": "query_execution",
        "engine": _engine(db_type),
        "query_hash": hash_query(query),
        "query_preview": query[:LOG_QUERY_PREVIEW_LENGTH] + ellipsis,
        "dsn": sanitize_dsn(dsn),
        "success": success,
        "blocked": blocked,
        "row_count": row_count,
        "duration_seconds": round(duration, 3),
        "timestamp": time.time(),
    }
    if error:
        log_data["error"] = error

    if blocked:
        if operation:
            log_data["blocked_operation"] = operation
        _emit(log_data, logging.WARNING)
    else:
        _emit(log_data, logging.INFO if success else logging.ERROR)


class QueryTimer:
    """Measures wall time of a ``with`` block into ``duration`` (seconds).

    ``duration`` is set even when the block raises, so failure logs carry
    the time spent before the error.
    """

    def __init__(self):
        self.start_time: float = 0.0
        self.duration: float = 0.0

    def __enter__(self):
        self.start_time = time.monotonic()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.duration = time.monotonic() - self.start_time

