"""
Escaping helpers for interpolating user-supplied names into ClickHouse SQL.
"""


def escape_identifier(identifier: str) -> str:
    """Escape a name for use between backticks by doubling every backtick."""
    return identifier.replace("`", "``")


def quote_identifier(identifier: str) -> str:
    return f"`{escape_identifier(identifier)}`"


def escape_string_literal(value: str) -> str:
    """Escape a value for use between single quotes by doubling every quote."""
    return value.replace("'", "''")
