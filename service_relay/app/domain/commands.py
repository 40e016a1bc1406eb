"""
The four relay commands.

Each command is single-shot: validate, build SQL, send it, decode the
reply. Failures are raised as ``shared.errors.RelayError`` subclasses and
nothing is retained between calls.
"""

import time
from typing import List, Optional

from ..adapters.clickhouse_client import ClickHouseClient
from ..query.builder import (
    build_run_query,
    build_schema_tables_query,
    build_status_query,
    build_table_preview_query,
)
from .models import (
    ConnectionDescriptor,
    ConnectionStatus,
    QueryRequest,
    SchemaTables,
    TablePreview,
    TablePreviewRequest,
)
from .normalizer import (
    parse_connection_status,
    parse_query_result,
    parse_schema_tables,
    parse_table_preview,
)


class ClickHouseCommands:
    """Command facade over the query builder, transport and normalizer."""

    def __init__(self, client: Optional[ClickHouseClient] = None):
        self.client = client or ClickHouseClient()

    async def fetch_schema_tables(self, connection: ConnectionDescriptor) -> List[SchemaTables]:
        """List tables with row counts, grouped by schema."""
        self.client.validate_connection(connection)
        sql = build_schema_tables_query(connection.database)

        async with self.client.open_query(connection, sql) as response:
            body = await self.client.read_body(response)

        return parse_schema_tables(body)

    async def fetch_table_preview(self, request: TablePreviewRequest) -> TablePreview:
        """Fetch the first rows of a table, optionally sorted by one column."""
        self.client.validate_connection(request.connection)
        sql = build_table_preview_query(
            request.schema_name,
            request.table,
            limit=request.limit,
            sort_column=request.sort_column,
            sort_direction=request.sort_direction,
        )

        async with self.client.open_query(request.connection, sql) as response:
            body = await self.client.read_body(response)

        return parse_table_preview(body)

    async def run_query(self, request: QueryRequest) -> TablePreview:
        """Run an arbitrary statement and normalize whatever it returns."""
        self.client.validate_connection(request.connection)
        sql = build_run_query(request.query, limit=request.limit)

        async with self.client.open_query(request.connection, sql) as response:
            await self.client.read_body(response)
            text = response.text

        return parse_query_result(text)

    async def get_connection_status(self, connection: ConnectionDescriptor) -> ConnectionStatus:
        """Probe the server for its version and current database."""
        self.client.validate_connection(connection)
        sql = build_status_query()

        start_time = time.perf_counter()
        async with self.client.open_query(connection, sql) as response:
            latency_ms = int((time.perf_counter() - start_time) * 1000)
            body = await self.client.read_body(response)

        return parse_connection_status(body, latency_ms)
