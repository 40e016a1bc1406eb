"""
Decoding of ClickHouse ``FORMAT JSON`` replies into relay results.

ClickHouse answers ``FORMAT JSON`` with ``{meta, data, rows, statistics}``;
only ``meta`` and ``data`` are consumed. Schema listing, table preview and
the status probe decode strictly. Arbitrary queries fall back to a single
``result`` cell when the body is not tabular JSON (DDL, DML, ``Ok.``).
"""

from collections import defaultdict
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field, ValidationError as PydanticValidationError

from shared.errors import DecodingError, ProtocolInvariantError

from .models import ConnectionStatus, SchemaTableItem, SchemaTables, TablePreview

RESULT_COLUMN = "result"
EMPTY_RESULT_MESSAGE = "Query executed successfully"

Body = Union[str, bytes]


class _MetaColumn(BaseModel):
    name: str


class _PreviewPayload(BaseModel):
    meta: List[_MetaColumn]
    data: List[Any]


class _TableRow(BaseModel):
    database: str
    name: str
    # UInt64 arrives quoted unless output_format_json_quote_64bit_integers=0
    total_rows: Optional[int] = Field(None, ge=0)


class _TablesPayload(BaseModel):
    data: List[_TableRow]


class _StatusRow(BaseModel):
    version: str
    current_database: str


class _StatusPayload(BaseModel):
    data: List[_StatusRow]


def _describe(exc: PydanticValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error.get("loc", ()))
        message = error.get("msg", "invalid value")
        parts.append(f"{location}: {message}" if location else message)
    return "; ".join(parts) or str(exc)


def _decoding_error(exc: PydanticValidationError) -> DecodingError:
    return DecodingError(
        f"Could not parse ClickHouse response: {_describe(exc)}",
        details={"error_count": exc.error_count()},
    )


def _preview_from_payload(payload: _PreviewPayload) -> TablePreview:
    return TablePreview(
        columns=[column.name for column in payload.meta],
        rows=payload.data,
    )


def parse_schema_tables(body: Body) -> List[SchemaTables]:
    """Group ``system.tables`` rows by database, sorted by schema then table."""
    try:
        payload = _TablesPayload.model_validate_json(body)
    except PydanticValidationError as exc:
        raise _decoding_error(exc) from exc

    grouped: Dict[str, List[SchemaTableItem]] = defaultdict(list)
    for row in payload.data:
        grouped[row.database].append(SchemaTableItem(name=row.name, row_count=row.total_rows))

    return [
        SchemaTables(schema=schema, tables=sorted(tables, key=lambda item: item.name))
        for schema, tables in sorted(grouped.items())
    ]


def parse_table_preview(body: Body) -> TablePreview:
    """Strictly decode a ``{meta, data}`` reply."""
    try:
        payload = _PreviewPayload.model_validate_json(body)
    except PydanticValidationError as exc:
        raise _decoding_error(exc) from exc

    return _preview_from_payload(payload)


def parse_query_result(body: str) -> TablePreview:
    """
    Decode an arbitrary query reply.

    Tabular JSON becomes a regular preview. Anything else becomes one
    ``result`` cell holding the trimmed body, or a confirmation message when
    the body is blank.
    """
    try:
        payload = _PreviewPayload.model_validate_json(body)
    except PydanticValidationError:
        text = body.strip()
        return TablePreview(
            columns=[RESULT_COLUMN],
            rows=[{RESULT_COLUMN: text or EMPTY_RESULT_MESSAGE}],
        )

    return _preview_from_payload(payload)


def parse_connection_status(body: Body, latency_ms: int) -> ConnectionStatus:
    """Decode the status probe reply; an empty ``data`` array is an error."""
    try:
        payload = _StatusPayload.model_validate_json(body)
    except PydanticValidationError as exc:
        raise _decoding_error(exc) from exc

    if not payload.data:
        raise ProtocolInvariantError("ClickHouse status query returned no rows")

    row = payload.data[0]
    return ConnectionStatus(
        connected=True,
        latency_ms=max(0, int(latency_ms)),
        version=row.version,
        current_database=row.current_database,
    )
