from unittest.mock import MagicMock, patch

import psycopg2
import pytest

from retrieval.datasource import DataSourceError, DataSourceResolver, PostgresDataSource


def mock_connection(rows=None, error=None) -> MagicMock:
    cursor = MagicMock()
    cursor.__enter__.return_value = cursor
    cursor.fetchall.return_value = rows or []
    if error is not None:
        cursor.execute.side_effect = error

    conn = MagicMock()
    conn.cursor.return_value = cursor
    return conn


def test_list_tables_reads_information_schema():
    conn = mock_connection(rows=[{"table_name": "employees"}, {"table_name": "hospitals"}])

    with patch("psycopg2.connect", return_value=conn) as mock_connect:
        tables = PostgresDataSource("postgresql://localhost/mock_data_db").list_tables()

    assert tables == ["employees", "hospitals"]
    mock_connect.assert_called_once_with("postgresql://localhost/mock_data_db", connect_timeout=5)
    conn.close.assert_called_once()

    query, params = conn.cursor.return_value.execute.call_args.args
    assert "information_schema.tables" in query
    assert params == ("public",)


def test_fetch_rows_passes_limit_as_parameter():
    conn = mock_connection(rows=[{"id": 1, "name": "General"}])

    with patch("psycopg2.connect", return_value=conn):
        rows = PostgresDataSource("dsn").fetch_rows("hospitals", 10)

    assert rows == [{"id": 1, "name": "General"}]
    _, params = conn.cursor.return_value.execute.call_args.args
    assert params == (10,)


def test_connection_failure_becomes_data_source_error():
    with patch("psycopg2.connect", side_effect=psycopg2.OperationalError("connection refused")):
        with pytest.raises(DataSourceError, match="Failed to obtain database connection"):
            PostgresDataSource("dsn").list_tables()


def test_query_failure_becomes_data_source_error():
    conn = mock_connection(error=psycopg2.ProgrammingError('relation "x" does not exist'))

    with patch("psycopg2.connect", return_value=conn):
        with pytest.raises(DataSourceError, match="does not exist"):
            PostgresDataSource("dsn").get_columns("x")

    conn.close.assert_called_once()


def test_ping_never_raises():
    with patch("psycopg2.connect", side_effect=psycopg2.OperationalError("down")):
        assert PostgresDataSource("dsn").ping() is False

    with patch("psycopg2.connect", return_value=mock_connection(rows=[{"ok": 1}])):
        assert PostgresDataSource("dsn").ping() is True


def test_resolver_builds_sources_from_dsns():
    resolver = DataSourceResolver.from_dsns("postgresql://default", {"ds-1": "postgresql://hr"})

    assert resolver.resolve("ds-1").dsn == "postgresql://hr"
    assert resolver.resolve("unknown") is resolver.default
    assert resolver.default.dsn == "postgresql://default"
