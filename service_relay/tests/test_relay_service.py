"""
Unit tests for the Relay service HTTP surface.
"""

import json

import httpx
import pytest
from fastapi.testclient import TestClient

from service_relay.app.adapters.clickhouse_client import ClickHouseClient
from service_relay.app.main import RelayService, create_app


class TestRelayService:
    """Test cases for RelayService."""

    @pytest.fixture
    def queries(self):
        """SQL statements received by the stub ClickHouse."""
        return []

    @pytest.fixture
    def replies(self):
        """Canned (status, body) replies keyed by statement prefix."""
        return {
            "SELECT database, name, total_rows": (200, json.dumps({"data": [
                {"database": "default", "name": "trades", "total_rows": "120"},
            ]})),
            "SELECT * FROM": (200, json.dumps({
                "meta": [{"name": "id", "type": "UInt32"}, {"name": "val", "type": "String"}],
                "data": [{"id": 1, "val": "a"}],
            })),
            "SELECT version()": (200, json.dumps({
                "meta": [{"name": "version"}, {"name": "current_database"}],
                "data": [{"version": "24.3.2.23", "current_database": "default"}],
            })),
            "DROP": (200, ""),
            "BROKEN": (500, "Code: 62. DB::Exception: Syntax error"),
        }

    @pytest.fixture
    def client(self, queries, replies):
        """Create test client backed by a stub ClickHouse transport."""
        def handler(request: httpx.Request) -> httpx.Response:
            sql = request.content.decode("utf-8")
            queries.append(sql)
            for prefix, (status, body) in replies.items():
                if sql.startswith(prefix):
                    return httpx.Response(status, text=body)
            return httpx.Response(200, text="Ok.")

        app = create_app(ClickHouseClient(transport=httpx.MockTransport(handler)))
        return TestClient(app)

    @pytest.fixture
    def connection(self):
        return {"host": "localhost", "port": 8123, "username": "default", "password": "", "secure": False}

    def test_root_endpoint(self, client):
        response = client.get("/")
        assert response.status_code == 200
        data = response.json()
        assert data["service"] == "relay"
        assert "run_query" in data["commands"]

    def test_health_endpoint(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    def test_fetch_schema_tables(self, client, connection, queries):
        response = client.post("/commands/fetch_schema_tables", json=connection)

        assert response.status_code == 200
        assert response.json() == [{"schema": "default", "tables": [{"name": "trades", "rowCount": 120}]}]
        assert "NOT IN ('INFORMATION_SCHEMA', 'information_schema', 'system')" in queries[0]
        assert "X-Query-Duration-Ms" in response.headers

    def test_fetch_table_preview_accepts_wire_names(self, client, connection, queries):
        response = client.post("/commands/fetch_table_preview", json={
            "connection": connection,
            "schema": "default",
            "table": "trades",
            "limit": 5000,
            "sortColumn": "id",
            "sortDirection": "DESC",
        })

        assert response.status_code == 200
        assert response.json() == {"columns": ["id", "val"], "rows": [{"id": 1, "val": "a"}]}
        assert queries == ["SELECT * FROM `default`.`trades` ORDER BY `id` DESC LIMIT 1000 FORMAT JSON"]

    def test_run_query_text_result(self, client, connection):
        response = client.post("/commands/run_query", json={"connection": connection, "query": "DROP TABLE t"})

        assert response.status_code == 200
        assert response.json() == {"columns": ["result"], "rows": [{"result": "Query executed successfully"}]}

    def test_connection_status(self, client, connection):
        response = client.post("/commands/connection_status", json=connection)

        assert response.status_code == 200
        data = response.json()
        assert data["connected"] is True
        assert data["version"] == "24.3.2.23"
        assert data["currentDatabase"] == "default"
        assert data["latencyMs"] >= 0

    def test_validation_error(self, client, connection, queries):
        """Blank host maps to a 400 with the structured error body."""
        response = client.post("/commands/connection_status", json={**connection, "host": "  "})

        assert response.status_code == 400
        assert response.json() == {
            "code": "VALIDATION_ERROR",
            "kind": "validation",
            "message": "Host is required",
            "details": {"field": "host"},
        }
        assert queries == []
        assert "X-Query-Duration-Ms" in response.headers

    def test_server_error(self, client, connection):
        response = client.post("/commands/run_query", json={"connection": connection, "query": "BROKEN"})

        assert response.status_code == 502
        body = response.json()
        assert body["code"] == "SERVER_ERROR"
        assert body["message"] == "ClickHouse returned 500 Internal Server Error: Code: 62. DB::Exception: Syntax error"
        assert int(response.headers["X-Query-Duration-Ms"]) >= 0

    def test_malformed_request_body(self, client):
        response = client.post("/commands/run_query", json={"query": "SELECT 1"})

        assert response.status_code == 422

    def test_request_id_is_echoed(self, client):
        response = client.get("/", headers={"X-Request-ID": "req-123"})

        assert response.headers["X-Request-ID"] == "req-123"

    def test_metrics_record_commands(self, client, connection):
        client.post("/commands/connection_status", json=connection)
        client.post("/commands/connection_status", json={**connection, "username": ""})

        metrics = client.get("/metrics").text

        assert 'relay_commands_total{command="connection_status",outcome="ok"} 1.0' in metrics
        assert 'relay_commands_total{command="connection_status",outcome="validation"} 1.0' in metrics


def test_unhandled_error_has_the_structured_body():
    """Unexpected failures still answer with code, kind, message and details."""
    def handler(request: httpx.Request) -> httpx.Response:
        raise RuntimeError("transport exploded")

    app = create_app(ClickHouseClient(transport=httpx.MockTransport(handler)))
    client = TestClient(app, raise_server_exceptions=False)
    connection = {"host": "localhost", "port": 8123, "username": "default", "password": ""}

    response = client.post("/commands/connection_status", json=connection)

    assert response.status_code == 500
    assert response.json() == {
        "code": "INTERNAL_ERROR",
        "kind": "internal",
        "message": "Internal server error",
        "details": {},
    }


def test_service_instances_do_not_share_metrics():
    """Each service owns a registry, so two can coexist in one process."""
    first = RelayService()
    second = RelayService()

    assert first.metrics.registry is not second.metrics.registry
    assert first.app.state.relay_service is first
