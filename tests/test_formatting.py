from safequery.database.formatting import format_schema_for_ai
from safequery.database.models import ColumnInfo, IndexInfo, RelationshipInfo, TableSchema


def _tables():
    users = TableSchema(
        table_name="users",
        columns=[
            ColumnInfo(column="id", type="integer", nullable=False, is_primary=True),
            ColumnInfo(column="email", type="text", nullable=True),
            ColumnInfo(column="status", type="text", nullable=False, default_value="'active'"),
        ],
    )
    orders = TableSchema(
        table_name="orders",
        columns=[
            ColumnInfo(column="id", type="integer", nullable=False, is_primary=True, default_value=""),
            ColumnInfo(column="user_id", type="integer", nullable=True),
        ],
        relationships=[RelationshipInfo(column="user_id", foreign_table="users", foreign_column="id")],
    )
    return [users, orders]


def test_exact_layout():
    expected = (
        "DATABASE TYPE: POSTGRESQL\n"
        "\n"
        "DATABASE SCHEMA:\n"
        "\n"
        "TABLE: orders\n"
        "Columns:\n"
        "  - id: integer (required) [PRIMARY KEY]\n"
        "  - user_id: integer\n"
        "Foreign Keys:\n"
        "  - user_id references users.id\n"
        "\n"
        "TABLE: users\n"
        "Columns:\n"
        "  - id: integer (required) [PRIMARY KEY]\n"
        "  - email: text\n"
        "  - status: text (required) [DEFAULT: 'active']\n"
        "\n"
    )
    assert format_schema_for_ai(_tables(), "postgresql") == expected


def test_no_tables():
    assert format_schema_for_ai([], "sqlite") == "DATABASE TYPE: SQLITE\n\nDATABASE SCHEMA:\n\n"


def test_foreign_key_block_only_when_present():
    text = format_schema_for_ai(_tables(), "mysql")
    assert text.count("Foreign Keys:") == 1
    assert text.index("Foreign Keys:") < text.index("TABLE: users")


def test_output_is_deterministic():
    tables = _tables()
    assert format_schema_for_ai(tables, "mssql") == format_schema_for_ai(list(reversed(tables)), "mssql")


def test_indexes_block():
    table = TableSchema(
        table_name="events",
        columns=[ColumnInfo(column="id", type="int", nullable=False, is_primary=True)],
        indexes=[IndexInfo(name="idx_events_kind", columns=["kind", "created_at"])],
    )
    text = format_schema_for_ai([table], "postgresql")
    assert "Indexes:\n  - idx_events_kind: (kind, created_at)\n" in text
    assert "Foreign Keys:" not in text
