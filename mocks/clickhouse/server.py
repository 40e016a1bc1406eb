"""
Mock ClickHouse server speaking the subset of the HTTP interface the relay uses.

SQL arrives as the POST body on ``/``, credentials as HTTP basic auth.
Tabular statements are answered in ``FORMAT JSON`` shape, DDL/DML with an
empty body, and failures with ClickHouse-style ``Code: N. DB::Exception``
text and a non-2xx status.
"""

import base64
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse

from shared.logging import get_logger

SERVER_VERSION = "24.3.2.23"

SCHEMA_QUERY = re.compile(
    r"^SELECT database, name, total_rows FROM system\.tables WHERE "
    r"(?:database = '(?P<database>(?:[^']|'')*)'|database NOT IN \((?P<excluded>[^)]*)\)) "
    r"ORDER BY database, name$"
)
PREVIEW_QUERY = re.compile(
    r"^SELECT \* FROM `(?P<schema>(?:[^`]|``)+)`\.`(?P<table>(?:[^`]|``)+)`"
    r"(?: ORDER BY `(?P<column>(?:[^`]|``)+)` (?P<direction>ASC|DESC))?"
    r"(?: LIMIT (?P<limit>\d+))?$",
    re.IGNORECASE,
)
STATUS_QUERY = re.compile(r"^SELECT version\(\) AS version, currentDatabase\(\) AS current_database$")
SCALAR_QUERY = re.compile(r"^SELECT (?P<value>-?\d+)(?: LIMIT \d+)?$", re.IGNORECASE)
MUTATING_PREFIXES = ("CREATE", "DROP", "INSERT", "ALTER", "TRUNCATE", "RENAME", "OPTIMIZE")


@dataclass
class MockTable:
    """Mock ClickHouse table."""
    name: str
    columns: Dict[str, str]  # column_name -> type
    data: List[Dict[str, Any]] = field(default_factory=list)


class ClickHouseMockError(Exception):
    """A ClickHouse exception rendered as a text reply."""

    def __init__(self, code: int, message: str, status_code: int = 400):
        self.code = code
        self.status_code = status_code
        super().__init__(f"Code: {code}. DB::Exception: {message}")


class MockClickHouseServer:
    """Mock ClickHouse server implementation."""

    def __init__(self, users: Optional[Dict[str, str]] = None, current_database: str = "default"):
        self.logger = get_logger("mock.clickhouse")
        self.app = FastAPI(title="Mock ClickHouse", version="1.0.0")
        self.users = users if users is not None else {"default": ""}
        self.current_database = current_database
        self.received_queries: List[str] = []

        self.databases: Dict[str, Dict[str, MockTable]] = {}
        self._create_default_tables()

        self._setup_routes()

    def _create_default_tables(self):
        """Create default tables with sample data."""
        self.add_table("default", MockTable(
            name="instruments",
            columns={"id": "String", "symbol": "String", "exchange": "String"},
            data=[
                {"id": "INST001", "symbol": "BRN", "exchange": "ICE"},
                {"id": "INST002", "symbol": "WTI", "exchange": "NYMEX"},
                {"id": "INST003", "symbol": "NG", "exchange": "NYMEX"},
            ],
        ))
        self.add_table("default", MockTable(
            name="curves",
            columns={"id": "UInt32", "tenor": "String", "points": "Array(Float64)"},
            data=[
                {"id": 1, "tenor": "1M", "points": [50.0, 50.5]},
                {"id": 2, "tenor": "3M", "points": [52.0, 52.25]},
            ],
        ))
        self.add_table("analytics", MockTable(
            name="events",
            columns={"id": "UInt32", "kind": "String", "payload": "JSON"},
            data=[
                {"id": 7, "kind": "click", "payload": {"x": 1}},
                {"id": 3, "kind": "view", "payload": {"x": 2}},
                {"id": 5, "kind": "click", "payload": {"x": 3}},
            ],
        ))
        self.add_table("system", MockTable(name="one", columns={"dummy": "UInt8"}, data=[{"dummy": 0}]))
        self.add_table("INFORMATION_SCHEMA", MockTable(name="TABLES", columns={}, data=[]))

    def add_table(self, database: str, table: MockTable) -> None:
        self.databases.setdefault(database, {})[table.name] = table

    def _setup_routes(self):
        """Set up mock ClickHouse routes."""

        @self.app.get("/ping")
        async def ping():
            return PlainTextResponse("Ok.\n")

        @self.app.post("/")
        async def execute(request: Request):
            """Execute the SQL statement carried in the request body."""
            try:
                self._authenticate(request.headers.get("authorization"))
                sql = (await request.body()).decode("utf-8")
                self.received_queries.append(sql)
                return self._execute_query(sql)
            except ClickHouseMockError as exc:
                self.logger.warning("Mock query failed", code=exc.code, error=str(exc))
                return PlainTextResponse(f"{exc}\n", status_code=exc.status_code)

    def _authenticate(self, header: Optional[str]) -> None:
        username, password = "default", ""
        if header and header.lower().startswith("basic "):
            decoded = base64.b64decode(header[6:]).decode("utf-8")
            username, _, password = decoded.partition(":")

        if self.users.get(username) != password:
            raise ClickHouseMockError(
                516,
                f"{username}: Authentication failed: password is incorrect, or there is no user with such name. "
                "(AUTHENTICATION_FAILED)",
                status_code=401,
            )

    def _execute_query(self, sql: str):
        """Execute SQL query."""
        statement, output_format = self._split_format(sql.strip())

        if statement.upper().startswith(MUTATING_PREFIXES):
            return PlainTextResponse("")

        if output_format != "JSON":
            raise ClickHouseMockError(73, f"Unknown format {output_format}. (UNKNOWN_FORMAT)")

        match = SCHEMA_QUERY.match(statement)
        if match:
            return self._json_reply(*self._execute_schema_listing(match))

        match = STATUS_QUERY.match(statement)
        if match:
            return self._json_reply(
                [("version", "String"), ("current_database", "String")],
                [{"version": SERVER_VERSION, "current_database": self.current_database}],
            )

        match = PREVIEW_QUERY.match(statement)
        if match:
            return self._json_reply(*self._execute_preview(match))

        match = SCALAR_QUERY.match(statement)
        if match:
            value = match.group("value")
            return self._json_reply([(value, "UInt8")], [{value: int(value)}])

        raise ClickHouseMockError(62, f"Syntax error: failed at position 1 ('{statement[:20]}'). (SYNTAX_ERROR)")

    def _split_format(self, sql: str) -> Tuple[str, Optional[str]]:
        head, sep, tail = sql.rpartition(" FORMAT ")
        if not sep:
            return sql, None
        return head.strip(), tail.strip()

    def _execute_schema_listing(self, match: "re.Match[str]"):
        if match.group("database") is not None:
            wanted = {match.group("database").replace("''", "'")}
        else:
            excluded = {name.strip().strip("'") for name in match.group("excluded").split(",")}
            wanted = {name for name in self.databases if name not in excluded}

        rows = [
            # UInt64 values are quoted in ClickHouse JSON output
            {"database": database, "name": table.name, "total_rows": str(len(table.data))}
            for database in sorted(wanted)
            for table in sorted(self.databases.get(database, {}).values(), key=lambda t: t.name)
        ]
        columns = [("database", "String"), ("name", "String"), ("total_rows", "Nullable(UInt64)")]
        return columns, rows

    def _execute_preview(self, match: "re.Match[str]"):
        database = match.group("schema").replace("``", "`")
        table_name = match.group("table").replace("``", "`")
        table = self.databases.get(database, {}).get(table_name)
        if table is None:
            raise ClickHouseMockError(
                60, f"Table {database}.{table_name} does not exist. (UNKNOWN_TABLE)", status_code=404
            )

        rows = list(table.data)
        column = match.group("column")
        if column:
            column = column.replace("``", "`")
            if column not in table.columns:
                raise ClickHouseMockError(47, f"Missing columns: '{column}'. (UNKNOWN_IDENTIFIER)")
            rows.sort(key=lambda row: row[column], reverse=match.group("direction").upper() == "DESC")

        if match.group("limit"):
            rows = rows[: int(match.group("limit"))]

        return list(table.columns.items()), rows

    def _json_reply(self, columns: List[Tuple[str, str]], rows: List[Dict[str, Any]]) -> JSONResponse:
        return JSONResponse({
            "meta": [{"name": name, "type": type_name} for name, type_name in columns],
            "data": rows,
            "rows": len(rows),
            "statistics": {"elapsed": 0.000123, "rows_read": len(rows), "bytes_read": 0},
        })


def create_app():
    """Create mock ClickHouse application."""
    server = MockClickHouseServer()
    return server.app


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(create_app(), host="0.0.0.0", port=8123)
