import pytest

from safequery.database.validation import clean_sql, is_safe_query, validate_and_clean_sql
from safequery.errors import (
    DangerousOperationError,
    DisallowedStatementError,
    EmptySQLError,
    MalformedCTEError,
    SQLValidationError,
)


def test_strips_sql_fence():
    assert validate_and_clean_sql("```sql\nSELECT * FROM users;\n```") == "SELECT * FROM users;"


def test_drop_is_rejected_with_message():
    with pytest.raises(DangerousOperationError) as exc_info:
        validate_and_clean_sql("DROP TABLE users;")
    assert "Dangerous SQL operation detected" in str(exc_info.value)
    assert exc_info.value.operation == "DROP"


@pytest.mark.parametrize(
    "sql",
    [
        "DROP TABLE users",
        "select 1; delete from users",
        "UPDATE users SET name = 'x'",
        "insert into users values (1)",
        "ALTER TABLE users ADD COLUMN x INT",
        "CREATE TABLE t (id INT)",
        "truncate users",
        "GRANT SELECT ON users TO bob",
        "REVOKE SELECT ON users FROM bob",
        "SELECT 1; EXEC('xp_cmdshell')",
        "SELECT 1; execute (something)",
        "```sql\nDROP TABLE users;\n```",
        "```SQL\nselect * from t; Delete From t\n```",
    ],
)
def test_dangerous_keywords_are_rejected(sql):
    with pytest.raises(DangerousOperationError):
        validate_and_clean_sql(sql)
    assert not is_safe_query(sql)


@pytest.mark.parametrize(
    "sql",
    [
        "SELECT id FROM users",
        "select id from users",
        "WITH x AS (SELECT 1) SELECT * FROM x",
        "EXPLAIN SELECT * FROM users",
        "DESCRIBE users",
        "SHOW TABLES",
        "(SELECT 1) UNION (SELECT 2)",
        "WITH x AS (SELECT '(' AS p) SELECT * FROM x",
        "WITH x AS (SELECT 1 AS n) (SELECT n FROM x)",
    ],
)
def test_read_only_statements_pass(sql):
    assert validate_and_clean_sql(sql) == sql
    assert is_safe_query(sql)


def test_whole_word_matching_allows_similar_identifiers():
    sql = "SELECT created_at, updated_by, dropped FROM audit"
    assert validate_and_clean_sql(sql) == sql


def test_keyword_in_string_literal_is_still_rejected():
    # Detection is lexical, literals are not parsed
    with pytest.raises(DangerousOperationError):
        validate_and_clean_sql("SELECT * FROM t WHERE name = 'DROP ME'")


@pytest.mark.parametrize("sql", ["", "   ", "```sql```", "```\n```", "``"])
def test_empty_after_cleaning(sql):
    with pytest.raises(EmptySQLError, match="cannot be empty"):
        validate_and_clean_sql(sql)


def test_disallowed_statement_echoes_prefix():
    sql = "PRAGMA table_info(users) " + "x" * 80
    with pytest.raises(DisallowedStatementError) as exc_info:
        validate_and_clean_sql(sql)
    message = str(exc_info.value)
    assert "Only SELECT, WITH (CTE), and EXPLAIN queries are allowed" in message
    assert sql[:50] + "..." in message
    assert sql[:51] not in message


def test_cte_without_final_select():
    with pytest.raises(MalformedCTEError, match="WITH clause must contain a SELECT statement"):
        validate_and_clean_sql("WITH x AS (SELECT 1) x")


@pytest.mark.parametrize(
    "sql",
    [
        "WITH x AS (SELECT ')' AS p) x",
        "WITH x AS MATERIALIZED (SELECT 1) x",
        "WITH x AS (SELECT 1), y AS (SELECT 2) y",
    ],
)
def test_cte_select_only_inside_definitions_is_rejected(sql):
    with pytest.raises(MalformedCTEError):
        validate_and_clean_sql(sql)


def test_validation_errors_share_a_base():
    for sql in ["", "DROP TABLE t", "VACUUM", "WITH x AS (SELECT 1) x"]:
        with pytest.raises(SQLValidationError):
            validate_and_clean_sql(sql)
        with pytest.raises(ValueError):
            validate_and_clean_sql(sql)


@pytest.mark.parametrize(
    "sql",
    [
        "```sql\nSELECT * FROM users;\n```",
        "  ```\nSELECT 1\n```  ",
        "`SELECT 1`",
        "```sql\n```sql\nSELECT 1\n```\n```",
        "WITH x AS (SELECT 1) SELECT * FROM x",
    ],
)
def test_validation_is_idempotent(sql):
    once = validate_and_clean_sql(sql)
    assert validate_and_clean_sql(once) == once


def test_clean_sql_handles_none_and_plain_text():
    assert clean_sql(None) == ""
    assert clean_sql("SELECT 1") == "SELECT 1"
    assert clean_sql("\n```sql\nSELECT 1\n```\n") == "SELECT 1"
