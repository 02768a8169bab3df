from unittest.mock import MagicMock, patch

import psycopg2
import pytest

from wa_webhook.errors import QueueStoreError
from wa_webhook.queue.pg_store import PostgresListStore


@pytest.fixture
def conn():
    connection = MagicMock()
    connection.closed = False
    with patch("wa_webhook.queue.pg_store.psycopg2.connect", return_value=connection):
        yield connection


def _main_cursor(conn):
    # ``conn.cursor()`` without a with-block is the cursor the store queries through
    return conn.cursor.return_value


def test_push_inserts_row_and_commits(conn):
    store = PostgresListStore("postgresql://test")

    store.push("wa:webhook:queue", '{"retries": 0}')

    sql, params = _main_cursor(conn).execute.call_args.args
    assert sql.startswith("INSERT INTO webhook_queue_entries")
    assert params == ("wa:webhook:queue", '{"retries": 0}')
    conn.commit.assert_called()


def test_pop_returns_deleted_body(conn):
    _main_cursor(conn).fetchone.return_value = ("body",)
    store = PostgresListStore("postgresql://test")

    assert store.pop("q") == "body"
    sql = _main_cursor(conn).execute.call_args.args[0]
    assert "FOR UPDATE SKIP LOCKED" in sql
    assert "RETURNING body" in sql


def test_pop_empty_returns_none(conn):
    _main_cursor(conn).fetchone.return_value = None

    assert PostgresListStore("postgresql://test").pop("q") is None


def test_length_counts_rows(conn):
    _main_cursor(conn).fetchone.return_value = (7,)

    assert PostgresListStore("postgresql://test").length("q") == 7


def test_schema_is_created_once(conn):
    store = PostgresListStore("postgresql://test")
    _main_cursor(conn).fetchone.return_value = (0,)

    store.length("q")
    store.length("q")

    schema_cursor = conn.cursor.return_value.__enter__.return_value
    create_calls = [c for c in schema_cursor.execute.call_args_list
                    if "CREATE TABLE" in c.args[0]]
    assert len(create_calls) == 1


def test_query_failure_rolls_back_and_raises(conn):
    _main_cursor(conn).execute.side_effect = psycopg2.OperationalError("server closed")
    store = PostgresListStore("postgresql://test")

    with pytest.raises(QueueStoreError):
        store.pop("q")
    conn.rollback.assert_called_once()


def test_connect_failure_raises_queue_store_error():
    with patch("wa_webhook.queue.pg_store.psycopg2.connect",
               side_effect=psycopg2.OperationalError("refused")):
        with pytest.raises(QueueStoreError):
            PostgresListStore("postgresql://test").push("q", "v")
