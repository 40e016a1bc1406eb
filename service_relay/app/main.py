"""
Relay service for the Housecat ClickHouse viewer.

Exposes the four relay commands to the desktop client over HTTP.
"""

import time
from typing import Any, Awaitable, List, Optional

from fastapi import Response

from shared.base_service import BaseService
from shared.errors import RelayError
from shared.logging import set_command

from .adapters.clickhouse_client import ClickHouseClient
from .domain.commands import ClickHouseCommands
from .domain.models import (
    ConnectionDescriptor,
    ConnectionStatus,
    QueryRequest,
    SchemaTables,
    TablePreview,
    TablePreviewRequest,
)

QUERY_DURATION_HEADER = "X-Query-Duration-Ms"


class RelayService(BaseService):
    """Relay service implementation."""

    def __init__(self, clickhouse_client: Optional[ClickHouseClient] = None):
        super().__init__("relay", 8125)
        self.commands = ClickHouseCommands(clickhouse_client or ClickHouseClient())

        self._setup_relay_routes()

        # Expose service instance via app state for introspection/testing
        self.app.state.relay_service = self

    async def _run_command(self, command: str, response: Response, call: Awaitable[Any]) -> Any:
        """Await a command, recording its outcome, duration and log line."""
        set_command(command)
        start_time = time.perf_counter()
        outcome = "error"
        error: Optional[RelayError] = None
        try:
            result = await call
            outcome = "ok"
            return result
        except RelayError as exc:
            outcome = exc.kind.value
            error = exc
            raise
        finally:
            duration = time.perf_counter() - start_time
            self.metrics.record_command(command, outcome, duration)
            duration_ms = str(round(duration * 1000))
            response.headers[QUERY_DURATION_HEADER] = duration_ms
            # The error handler builds its own response
            if error is not None:
                error.headers[QUERY_DURATION_HEADER] = duration_ms
            self.logger.info(
                "Relay command finished",
                command=command,
                outcome=outcome,
                duration_ms=round(duration * 1000, 2),
            )

    def _setup_relay_routes(self):
        """Set up relay command routes."""

        @self.app.get("/")
        async def root():
            """Root endpoint."""
            return {
                "service": "relay",
                "message": "Housecat - ClickHouse Relay",
                "version": "1.0.0",
                "commands": [
                    "fetch_schema_tables",
                    "fetch_table_preview",
                    "run_query",
                    "connection_status",
                ],
            }

        @self.app.post("/commands/fetch_schema_tables", response_model=List[SchemaTables])
        async def fetch_schema_tables(connection: ConnectionDescriptor, response: Response):
            """List schemas and their tables with row counts."""
            return await self._run_command(
                "fetch_schema_tables",
                response,
                self.commands.fetch_schema_tables(connection),
            )

        @self.app.post("/commands/fetch_table_preview", response_model=TablePreview)
        async def fetch_table_preview(request: TablePreviewRequest, response: Response):
            """Preview the first rows of a table."""
            return await self._run_command(
                "fetch_table_preview",
                response,
                self.commands.fetch_table_preview(request),
            )

        @self.app.post("/commands/run_query", response_model=TablePreview)
        async def run_query(request: QueryRequest, response: Response):
            """Run an arbitrary query."""
            return await self._run_command(
                "run_query",
                response,
                self.commands.run_query(request),
            )

        @self.app.post("/commands/connection_status", response_model=ConnectionStatus)
        async def connection_status(connection: ConnectionDescriptor, response: Response):
            """Probe the connection for server version and current database."""
            return await self._run_command(
                "connection_status",
                response,
                self.commands.get_connection_status(connection),
            )


def create_app(clickhouse_client: Optional[ClickHouseClient] = None):
    """Create FastAPI application."""
    service = RelayService(clickhouse_client)
    return service.app


if __name__ == "__main__":
    service = RelayService()
    service.run()
