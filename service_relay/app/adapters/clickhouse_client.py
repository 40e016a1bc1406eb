"""
Async ClickHouse HTTP client used by the relay commands.
"""

from __future__ import annotations

import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional, Tuple

import httpx

from shared.errors import ConfigurationError, ConnectivityError, ServerError, ValidationError
from shared.logging import get_logger

from ..domain.models import ConnectionDescriptor

REQUEST_TIMEOUT_SECONDS = 10.0


class ClickHouseClient:
    """Stateless client for ClickHouse's HTTP interface.

    Every query gets its own ``httpx.AsyncClient``; nothing (connections,
    credentials) is shared between calls.
    """

    def __init__(
        self,
        *,
        timeout: float = REQUEST_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.timeout = timeout
        self.logger = get_logger("relay.clickhouse")
        self._transport = transport

    @staticmethod
    def validate_connection(connection: ConnectionDescriptor) -> Tuple[str, str]:
        """Return the trimmed host and username, or raise when either is blank."""
        host = connection.host.strip()
        if not host:
            raise ValidationError("Host is required", details={"field": "host"})

        username = connection.username.strip()
        if not username:
            raise ValidationError("Username is required", details={"field": "username"})

        return host, username

    def _create_client(self, connection: ConnectionDescriptor, username: str) -> httpx.AsyncClient:
        try:
            return httpx.AsyncClient(
                base_url=connection.endpoint,
                auth=httpx.BasicAuth(username, connection.password),
                timeout=httpx.Timeout(self.timeout),
                transport=self._transport,
            )
        except (httpx.InvalidURL, ValueError, TypeError) as exc:
            raise ConfigurationError(f"Could not initialize ClickHouse client: {exc}") from exc

    @asynccontextmanager
    async def open_query(self, connection: ConnectionDescriptor, sql: str) -> AsyncIterator[httpx.Response]:
        """
        POST ``sql`` to the connection's endpoint and yield the 2xx response.

        The body is left unread so the caller can decide how to decode it
        (see ``read_body``). Non-2xx replies raise ``ServerError`` carrying
        the status and body text.
        """
        host, username = self.validate_connection(connection)
        client = self._create_client(connection, username)

        async with client:
            self.logger.debug(
                "Dispatching ClickHouse query",
                host=host,
                port=connection.port,
                secure=connection.secure,
                statement_bytes=len(sql.encode("utf-8")),
            )
            start_time = time.perf_counter()
            try:
                request = client.build_request("POST", "/", content=sql.encode("utf-8"))
                response = await client.send(request, stream=True)
            except httpx.RequestError as exc:
                raise ConnectivityError(
                    f"Could not connect to ClickHouse: {exc}",
                    details={"host": host, "port": connection.port},
                ) from exc

            try:
                self.logger.debug(
                    "ClickHouse responded",
                    host=host,
                    status_code=response.status_code,
                    duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
                )
                if not response.is_success:
                    body = await self._read_error_body(response)
                    raise ServerError(response.status_code, response.reason_phrase, body)

                yield response
            finally:
                await response.aclose()

    async def read_body(self, response: httpx.Response) -> bytes:
        """Read a streamed response body in full."""
        try:
            return await response.aread()
        except httpx.HTTPError as exc:
            raise ConnectivityError(f"Could not read ClickHouse response: {exc}") from exc

    async def _read_error_body(self, response: httpx.Response) -> str:
        try:
            await response.aread()
            return response.text
        except httpx.HTTPError:
            return "Unable to read error body"
