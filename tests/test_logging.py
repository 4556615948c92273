import json
import logging

from safequery.database.logging import QueryTimer, hash_query, log_connection, log_query_execution, sanitize_dsn
from safequery.database.models import DatabaseType


def _events(caplog):
    return [json.loads(r.getMessage()) for r in caplog.records if r.name == "safequery.database"]


def test_sanitize_dsn_masks_credentials():
    assert sanitize_dsn("mysql://root:s3cret@db:3306/app") == "mysql://***:***@db:3306/app"
    assert sanitize_dsn("postgresql://db:5432/app") == "postgresql://db:5432/app"


def test_hash_query_is_stable_prefix():
    assert hash_query("SELECT 1") == hash_query("SELECT 1")
    assert len(hash_query("SELECT 1")) == 16
    assert hash_query("SELECT 1") != hash_query("SELECT 2")


def test_connection_failure_logged_at_error(caplog):
    caplog.set_level(logging.INFO, logger="safequery.database")
    log_connection(DatabaseType.MYSQL, "mysql://u:pw@db/app", success=False, error="refused", duration=0.1234)

    (event,) = _events(caplog)
    assert caplog.records[-1].levelno == logging.ERROR
    assert event == {
        "event": "database_connection",
        "engine": "mysql",
        "dsn": "mysql://***:***@db/app",
        "success": False,
        "duration_seconds": 0.123,
        "error": "refused",
    }


def test_query_preview_is_truncated(caplog):
    caplog.set_level(logging.INFO, logger="safequery.database")
    sql = "SELECT " + ", ".join(f"c{i}" for i in range(60)) + " FROM t"
    log_query_execution(sql, "sqlite:///x.db", success=True, db_type="sqlite", row_count=4)

    (event,) = _events(caplog)
    assert event["query_preview"] == sql[:100] + "..."
    assert event["row_count"] == 4
    assert event["engine"] == "sqlite"
    assert "blocked_operation" not in event


def test_blocked_query_logged_at_warning(caplog):
    caplog.set_level(logging.INFO, logger="safequery.database")
    log_query_execution("DELETE FROM t", "pg", success=False, error="nope", blocked=True, operation="DELETE")

    (event,) = _events(caplog)
    assert caplog.records[-1].levelno == logging.WARNING
    assert event["blocked_operation"] == "DELETE"


def test_query_timer_records_duration_on_error():
    timer = QueryTimer()
    try:
        with timer:
            raise RuntimeError("boom")
    except RuntimeError:
        pass
    assert timer.duration >= 0.0
