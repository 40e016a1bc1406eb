"""
Unit tests for ClickHouse reply normalization.
"""

import json

import pytest

from service_relay.app.domain.normalizer import (
    EMPTY_RESULT_MESSAGE,
    parse_connection_status,
    parse_query_result,
    parse_schema_tables,
    parse_table_preview,
)
from shared.errors import DecodingError, ProtocolInvariantError


def clickhouse_json(meta, data):
    """Render a FORMAT JSON style body."""
    return json.dumps({
        "meta": [{"name": name, "type": "String"} for name in meta],
        "data": data,
        "rows": len(data),
        "statistics": {"elapsed": 0.001, "rows_read": len(data), "bytes_read": 10},
    })


class TestSchemaTables:
    """Test cases for schema listing decoding."""

    def test_groups_and_sorts(self):
        body = json.dumps({"data": [
            {"database": "zeta", "name": "b", "total_rows": "10"},
            {"database": "alpha", "name": "orders", "total_rows": 42},
            {"database": "zeta", "name": "a", "total_rows": None},
            {"database": "alpha", "name": "customers", "total_rows": "9007199254740993"},
        ]})

        schemas = parse_schema_tables(body)

        assert [schema.schema_name for schema in schemas] == ["alpha", "zeta"]
        assert [(t.name, t.row_count) for t in schemas[0].tables] == [
            ("customers", 9007199254740993),
            ("orders", 42),
        ]
        assert [(t.name, t.row_count) for t in schemas[1].tables] == [("a", None), ("b", 10)]

    def test_missing_total_rows_is_null(self):
        schemas = parse_schema_tables(b'{"data": [{"database": "db", "name": "t"}]}')

        assert schemas[0].tables[0].row_count is None

    def test_empty_listing(self):
        assert parse_schema_tables('{"data": []}') == []

    def test_serializes_with_wire_names(self):
        schemas = parse_schema_tables('{"data": [{"database": "db", "name": "t", "total_rows": "3"}]}')

        assert schemas[0].model_dump(by_alias=True) == {
            "schema": "db",
            "tables": [{"name": "t", "rowCount": 3}],
        }

    @pytest.mark.parametrize("body", [
        "",
        "Ok.",
        '{"rows": 1}',
        '{"data": [{"name": "t"}]}',
        '{"data": [{"database": "d", "name": "t", "total_rows": -1}]}',
    ])
    def test_malformed_body_is_a_decoding_error(self, body):
        with pytest.raises(DecodingError) as exc_info:
            parse_schema_tables(body)

        assert exc_info.value.message.startswith("Could not parse ClickHouse response: ")


class TestTablePreview:
    """Test cases for strict preview decoding."""

    def test_columns_and_rows_pass_through(self):
        data = [{"id": 1, "val": "x"}, {"id": 2, "val": {"nested": [1, 2, None]}}]

        preview = parse_table_preview(clickhouse_json(["id", "val"], data))

        assert preview.columns == ["id", "val"]
        assert preview.rows == data

    def test_column_order_is_server_order(self):
        preview = parse_table_preview(clickhouse_json(["z", "a", "m"], []))

        assert preview.columns == ["z", "a", "m"]
        assert preview.rows == []

    @pytest.mark.parametrize("body", ["", "not json", '{"data": []}', '{"meta": [{"type": "String"}], "data": []}'])
    def test_malformed_body_is_a_decoding_error(self, body):
        with pytest.raises(DecodingError):
            parse_table_preview(body)


class TestQueryResult:
    """Test cases for best-effort decoding of arbitrary query replies."""

    def test_tabular_reply(self):
        data = [{"id": "1", "val": [1, 2]}]

        preview = parse_query_result(clickhouse_json(["id", "val"], data))

        assert preview.columns == ["id", "val"]
        assert preview.rows == data

    def test_text_reply(self):
        preview = parse_query_result("Ok.\n")

        assert preview.columns == ["result"]
        assert preview.rows == [{"result": "Ok."}]

    @pytest.mark.parametrize("body", ["", "  \n "])
    def test_blank_reply(self, body):
        preview = parse_query_result(body)

        assert preview.columns == ["result"]
        assert preview.rows == [{"result": EMPTY_RESULT_MESSAGE}]
        assert EMPTY_RESULT_MESSAGE == "Query executed successfully"

    def test_json_of_another_shape_is_reported_as_text(self):
        body = '{"exception": "something"}'

        preview = parse_query_result(body)

        assert preview.rows == [{"result": body}]


class TestConnectionStatus:
    """Test cases for status probe decoding."""

    def test_status(self):
        body = clickhouse_json(
            ["version", "current_database"],
            [{"version": "24.3.2.23", "current_database": "analytics"}],
        )

        status = parse_connection_status(body, latency_ms=12)

        assert status.connected is True
        assert status.latency_ms == 12
        assert status.version == "24.3.2.23"
        assert status.current_database == "analytics"
        assert status.model_dump(by_alias=True) == {
            "connected": True,
            "latencyMs": 12,
            "version": "24.3.2.23",
            "currentDatabase": "analytics",
        }

    def test_zero_rows_is_a_protocol_error(self):
        body = clickhouse_json(["version", "current_database"], [])

        with pytest.raises(ProtocolInvariantError) as exc_info:
            parse_connection_status(body, latency_ms=3)

        assert exc_info.value.message == "ClickHouse status query returned no rows"

    def test_malformed_body(self):
        with pytest.raises(DecodingError):
            parse_connection_status("Ok.", latency_ms=3)
