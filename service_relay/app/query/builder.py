"""
Builders for the four statement shapes the relay sends to ClickHouse.

The LIMIT/FORMAT checks on arbitrary queries are substring tests on an
uppercased copy of the statement, not SQL parsing. A query that mentions
"LIMIT" or "FORMAT " inside a string literal or comment is treated as
already carrying that clause.
"""

from typing import Optional

from shared.errors import ValidationError

from ..domain.models import SortDirection
from .identifiers import escape_string_literal, quote_identifier

PREVIEW_DEFAULT_LIMIT = 200
PREVIEW_MAX_LIMIT = 1000
QUERY_DEFAULT_LIMIT = 500
QUERY_MAX_LIMIT = 10_000

EXCLUDED_SCHEMAS = ("INFORMATION_SCHEMA", "information_schema", "system")

STATUS_QUERY = (
    "SELECT version() AS version, currentDatabase() AS current_database FORMAT JSON"
)


def clamp_limit(limit: Optional[int], default: int, maximum: int) -> int:
    """Apply ``default`` when no limit is given, then clamp to [1, maximum]."""
    if limit is None:
        limit = default
    return max(1, min(int(limit), maximum))


def build_schema_tables_query(database: Optional[str] = None) -> str:
    """List tables with their row counts, optionally for a single database."""
    columns = "SELECT database, name, total_rows FROM system.tables"

    if database is not None and database.strip():
        escaped = escape_string_literal(database.strip())
        return f"{columns} WHERE database = '{escaped}' ORDER BY database, name FORMAT JSON"

    excluded = ", ".join(f"'{name}'" for name in EXCLUDED_SCHEMAS)
    return f"{columns} WHERE database NOT IN ({excluded}) ORDER BY database, name FORMAT JSON"


def build_table_preview_query(
    schema: str,
    table: str,
    limit: Optional[int] = None,
    sort_column: Optional[str] = None,
    sort_direction: Optional[str] = None,
) -> str:
    """Build ``SELECT * FROM `schema`.`table` [ORDER BY ...] LIMIT n FORMAT JSON``."""
    schema = (schema or "").strip()
    if not schema:
        raise ValidationError("Schema is required", details={"field": "schema"})

    table = (table or "").strip()
    if not table:
        raise ValidationError("Table is required", details={"field": "table"})

    applied_limit = clamp_limit(limit, PREVIEW_DEFAULT_LIMIT, PREVIEW_MAX_LIMIT)

    query = f"SELECT * FROM {quote_identifier(schema)}.{quote_identifier(table)}"

    column = (sort_column or "").strip()
    if column:
        direction = SortDirection.parse(sort_direction).value.upper()
        query += f" ORDER BY {quote_identifier(column)} {direction}"

    return f"{query} LIMIT {applied_limit} FORMAT JSON"


def build_run_query(query: str, limit: Optional[int] = None) -> str:
    """Prepare an arbitrary statement, adding LIMIT and FORMAT JSON when absent."""
    statement = (query or "").strip().rstrip(";").strip()
    if not statement:
        raise ValidationError("Query is required", details={"field": "query"})

    uppercase = statement.upper()
    applied_limit = clamp_limit(limit, QUERY_DEFAULT_LIMIT, QUERY_MAX_LIMIT)

    if uppercase.startswith("SELECT ") and " LIMIT " not in uppercase:
        statement += f" LIMIT {applied_limit}"

    if "FORMAT " not in uppercase:
        statement += " FORMAT JSON"

    return statement


def build_status_query() -> str:
    return STATUS_QUERY
