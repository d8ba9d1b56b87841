"""
Tests for the MCP tool functions: connection registry, query tools and
schema tools.
"""

import json

import pymysql
import pytest

from tabular_db.tools import connection_tools, query_tools, schema_tools


@pytest.fixture()
def config_dir(tmp_path, monkeypatch, mysql_config):
    (tmp_path / "reports.json").write_text(json.dumps(mysql_config))
    (tmp_path / "broken.json").write_text("{not json")
    monkeypatch.setattr(connection_tools, "CONFIG_DIR", tmp_path)
    return tmp_path


@pytest.fixture()
def connected(mysql_server, mysql_config):
    result = connection_tools.connect("reports", config=mysql_config)
    assert result["success"], result
    return mysql_server


class TestConnectionTools:

    def test_list_connections_skips_unreadable_files(self, config_dir):
        result = connection_tools.list_connections()

        assert result["success"]
        assert [c["name"] for c in result["connections"]] == ["reports"]
        assert result["connections"][0]["status"] == "inactive"

    def test_connect_from_config_file(self, config_dir, mysql_server):
        result = connection_tools.connect("reports")

        assert result["success"]
        assert result["database"] == "reports"
        assert result["mysql_version"] == "8.0.36"
        assert connection_tools.get_connection("reports") is not None
        assert connection_tools.list_connections()["connections"][0]["status"] == "active"

    def test_connect_missing_config(self, config_dir, mysql_server):
        result = connection_tools.connect("nope")

        assert not result["success"]
        assert "Config file not found" in result["error"]

    def test_connect_unsupported_type(self, config_dir, mysql_server, mysql_config):
        (config_dir / "pg.json").write_text(json.dumps({**mysql_config, "type": "postgresql"}))

        result = connection_tools.connect("pg")

        assert not result["success"]
        assert "Unsupported database type" in result["error"]

    def test_connect_twice(self, connected, mysql_config):
        result = connection_tools.connect("reports", config=mysql_config)

        assert not result["success"]
        assert "already active" in result["error"]

    def test_connect_failure_is_reported(self, mysql_server, mysql_config):
        mysql_server.refuse = pymysql.err.OperationalError(2003, "Can't connect to MySQL server")

        result = connection_tools.connect("reports", config=mysql_config)

        assert not result["success"]
        assert "Can't connect" in result["error"]
        assert connection_tools.get_connection("reports") is None

    def test_disconnect(self, connected):
        assert connection_tools.disconnect("reports")["success"]
        assert connection_tools.get_connection("reports") is None
        assert not connection_tools.disconnect("reports")["success"]

    def test_test_connection(self, connected):
        result = connection_tools.test_connection("reports")

        assert result["success"]
        assert result["db_type"] == "mysql"
        assert result["is_connected"]

    def test_create_database_twice(self, mysql_server, mysql_config):
        first = connection_tools.create_database("analytics", "ignored", config=mysql_config)
        second = connection_tools.create_database("analytics", "ignored", config=mysql_config)

        assert first["success"]
        assert second["success"]
        assert connection_tools.get_connection("analytics").is_connected
        assert "analytics" in mysql_server.databases

    def test_create_database_from_server_config(self, config_dir, mysql_server):
        result = connection_tools.create_database("analytics", "reports")

        assert result["success"]
        assert connection_tools.get_connection("analytics").config["database"] == "analytics"

    def test_drop_database_disconnects_first(self, mysql_server, mysql_config):
        connection_tools.create_database("analytics", "ignored", config=mysql_config)

        result = connection_tools.drop_database("analytics", "ignored", config=mysql_config)

        assert result["success"]
        assert connection_tools.get_connection("analytics") is None
        assert "analytics" not in mysql_server.databases

    def test_failed_create_keeps_existing_connection(self, mysql_server, mysql_config):
        connection_tools.create_database("analytics", "ignored", config=mysql_config)
        existing = connection_tools.get_connection("analytics")
        mysql_server.refuse = pymysql.err.OperationalError(2003, "Can't connect to MySQL server")

        result = connection_tools.create_database("analytics", "ignored", config=mysql_config)

        assert not result["success"]
        assert connection_tools.get_connection("analytics") is existing
        assert existing.is_connected

    def test_drop_database_disconnects_every_alias(self, mysql_server, mysql_config):
        connection_tools.create_database("analytics", "ignored", config=mysql_config)
        connection_tools.create_database("analytics", "ignored", connection_name="analytics_2", config=mysql_config)
        connection_tools.connect("reports", config=mysql_config)
        aliases = [connection_tools.get_connection(n) for n in ("analytics", "analytics_2")]

        result = connection_tools.drop_database("analytics", "ignored", config=mysql_config)

        assert result["success"]
        assert result["active_connections"] == ["reports"]
        assert not any(db.is_connected for db in aliases)

    def test_drop_missing_database(self, mysql_server, mysql_config):
        result = connection_tools.drop_database("scratch", "ignored", config=mysql_config)

        assert not result["success"]
        assert "doesn't exist" in result["error"]


class TestQueryTools:

    def test_unknown_connection(self):
        result = query_tools.fetch_table("nope", "SELECT 1")

        assert not result["success"]
        assert "No active connection" in result["error"]

    def test_fetch_table(self, connected):
        connected.on("UNION", ["a", "b"], [("a", "b"), ("c", "d")])

        result = query_tools.fetch_table("reports", "SELECT 'a','b' UNION SELECT 'c','d'")

        assert result["success"]
        assert result["rows"] == [["a", "b"], ["c", "d"]]
        assert result["columns"] == ["a", "b"]
        assert result["text"] == "a\tb\nc\td\n"
        assert result["row_count"] == 2

    def test_fetch_row_with_params(self, connected):
        connected.on("WHERE id = %s", ["id", "name"], [(1, "n1")])

        result = query_tools.fetch_row("reports", "SELECT id, name FROM t WHERE id = %s", [1])

        assert result["row"] == ["1", "n1"]
        assert result["text"] == "1\tn1"
        assert connected.executed[-1][1] == (1,)

    def test_fetch_row_shape_error(self, connected):
        connected.on("SELECT name FROM t", ["name"], [("n1",), ("n2",)])

        result = query_tools.fetch_row("reports", "SELECT name FROM t")

        assert not result["success"]
        assert result["actual"] == 2
        assert result["expected"] == "0 or 1"

    def test_fetch_column(self, connected):
        connected.on("SELECT name FROM t", ["name"], [("n1",), ("n2",), ("n3",)])

        result = query_tools.fetch_column("reports", "SELECT name FROM t")

        assert result["values"] == ["n1", "n2", "n3"]
        assert result["count"] == 3

    def test_fetch_value_on_empty_result(self, connected):
        connected.on("WHERE 1 = 0", ["name"], [])

        result = query_tools.fetch_value("reports", "SELECT name FROM t WHERE 1 = 0")

        assert not result["success"]
        assert result["actual"] == 0
        assert result["expected"] == "1"

    def test_fetch_value(self, connected):
        connected.on("count(*)", ["count(*)"], [(3,)])
        assert query_tools.fetch_value("reports", "SELECT count(*) FROM t")["value"] == "3"

    def test_query_error(self, connected):
        connected.on_error("FROM nowhere", pymysql.err.ProgrammingError(1146, "Table 'reports.nowhere' doesn't exist"))

        result = query_tools.fetch_table("reports", "SELECT * FROM nowhere")

        assert not result["success"]
        assert "doesn't exist" in result["error"]
        assert "expected" not in result

    def test_copy_from_csv(self, connected):
        connected.on("LOAD DATA", rowcount=12)

        result = query_tools.copy_from_csv("reports", "orders", "/var/lib/mysql-files/orders.csv")

        assert result["success"]
        assert result["rows_loaded"] == 12


class TestSchemaTools:

    def test_list_tables(self, connected):
        connected.on("ORDER BY TABLE_NAME", ["TABLE_NAME"], [("customers",), ("orders",)])

        result = schema_tools.list_tables("reports")

        assert result["tables"] == ["customers", "orders"]
        assert result["count"] == 2
        assert result["database"] == "reports"

    def test_list_table_indices(self, connected):
        connected.on("INFORMATION_SCHEMA.STATISTICS", ["INDEX_NAME"], [("idx_customer",)])

        result = schema_tools.list_table_indices("reports", "orders")

        assert result["indices"] == ["idx_customer"]

    def test_table_exists(self, connected):
        connected.on("AND TABLE_NAME = %s", ["COUNT(*)"], [(0,)])

        result = schema_tools.table_exists("reports", "orders")

        assert result["success"]
        assert result["exists"] is False

    def test_unknown_connection(self):
        assert not schema_tools.list_tables("nope")["success"]
        assert not schema_tools.table_exists("nope", "orders")["success"]
