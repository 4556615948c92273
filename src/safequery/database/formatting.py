"""Schema formatting for AI consumption."""

from typing import Union

from .models import DatabaseType, TableSchema


def format_schema_for_ai(tables: list[TableSchema], db_type: Union[DatabaseType, str]) -> str:
    """Render introspected tables as the plain-text schema block.

    The layout is consumed verbatim by a SQL generator and used as a cache
    key, so it must not change shape:

        DATABASE TYPE: <ENGINE>

        DATABASE SCHEMA:

        TABLE: <table_name>
        Columns:
          - <col>: <type>[ (required)][ [PRIMARY KEY]][ [DEFAULT: <value>]]
        Foreign Keys:
          - <col> references <foreign_table>.<foreign_column>

    Tables are rendered alphabetically by name and columns in the order
    given. The Foreign Keys block (and the Indexes block, when indexes are
    present) is omitted for tables without any.

    Args:
        tables: Introspected tables
        db_type: Engine tag, printed uppercased

    Returns:
        Formatted schema text
    """
    engine = DatabaseType(db_type).value.upper()
    output = [
        f"DATABASE TYPE: {engine}",
        "",
        "DATABASE SCHEMA:",
        "",
    ]

    for table in sorted(tables, key=lambda t: t.table_name):
        output.append(f"TABLE: {table.table_name}")
        output.append("Columns:")

        for col in table.columns:
            col_info = f"  - {col.column}: {col.type}"
            if not col.nullable:
                col_info += " (required)"
            if col.is_primary:
                col_info += " [PRIMARY KEY]"
            if col.default_value not in (None, ""):
                col_info += f" [DEFAULT: {col.default_value}]"
            output.append(col_info)

        if table.relationships:
            output.append("Foreign Keys:")
            for rel in table.relationships:
                output.append(f"  - {rel.column} references {rel.foreign_table}.{rel.foreign_column}")

        if table.indexes:
            output.append("Indexes:")
            for idx in table.indexes:
                output.append(f"  - {idx.name}: ({', '.join(idx.columns)})")

        output.append("")

    return "\n".join(output) + "\n"
