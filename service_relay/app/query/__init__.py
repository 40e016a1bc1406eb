"""
SQL text construction for the relay commands.
"""

from .identifiers import escape_identifier, escape_string_literal
from .builder import (
    build_run_query,
    build_schema_tables_query,
    build_status_query,
    build_table_preview_query,
    clamp_limit,
)

__all__ = [
    "escape_identifier",
    "escape_string_literal",
    "build_run_query",
    "build_schema_tables_query",
    "build_status_query",
    "build_table_preview_query",
    "clamp_limit",
]
