"""Tests for the Postgres datastore that need no live database."""

from contextlib import contextmanager

import psycopg
import pytest

from storyline.db import PostgresDatastore
from storyline.db import postgres as postgres_module
from storyline.errors import DatastoreError


class FakeCursor:
    def __init__(self, rows=None, error=None):
        self.rows = rows or []
        self.error = error
        self.executed = []
        self.rowcount = len(self.rows)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def execute(self, query, params=()):
        if self.error:
            raise self.error
        self.executed.append((query, params))

    def fetchall(self):
        return self.rows

    def fetchone(self):
        return self.rows[0] if self.rows else None


class FakeConnection:
    def __init__(self, cursor):
        self._cursor = cursor
        self.committed = False

    def cursor(self):
        return self._cursor

    def commit(self):
        self.committed = True


@pytest.fixture
def fake_db(monkeypatch):
    state = {"cursor": FakeCursor()}

    @contextmanager
    def fake_get_connection(config):
        yield FakeConnection(state["cursor"])

    monkeypatch.setattr(postgres_module, "get_connection", fake_get_connection)
    return state


class TestPostgresDatastore:
    def test_driver_errors_become_datastore_errors(self, fake_db):
        fake_db["cursor"] = FakeCursor(error=psycopg.OperationalError("server closed the connection"))
        with pytest.raises(DatastoreError):
            PostgresDatastore({}).get_article("a1")

    def test_unsupported_ordering(self, fake_db):
        with pytest.raises(DatastoreError):
            PostgresDatastore({}).list_recent_clusters("title; DROP TABLE clusters", 10)

    def test_similar_articles(self, fake_db):
        fake_db["cursor"] = FakeCursor(rows=[{"article_id": "a1", "similarity": 0.8, "cluster_id": "c1"}])
        (match,) = PostgresDatastore({}).find_similar_articles("Alpha", None, 72, 0.55, 10)
        assert match.cluster_id == "c1"
        query, params = fake_db["cursor"].executed[0]
        assert "find_similar_articles" in query
        assert params == ("Alpha", None, 72, 0.55, 10)

    def test_markets_from_text_arrays(self, fake_db):
        fake_db["cursor"] = FakeCursor(
            rows=[
                {
                    "id": 1,
                    "market_code": "global",
                    "pivot_lang": "en",
                    "show_langs": "{en,tr}",
                    "pretranslate_langs": None,
                    "enabled": None,
                }
            ]
        )
        (market,) = PostgresDatastore({}).load_markets()
        assert market.id == "1"
        assert market.target_langs == ["en", "tr"]
        assert market.enabled is True

    def test_write_once_cluster_assignment(self, fake_db):
        fake_db["cursor"] = FakeCursor()
        assert PostgresDatastore({}).set_article_cluster("a1", "c1") is False
        query, params = fake_db["cursor"].executed[0]
        assert "cluster_id IS NULL" in query
        assert params == ("c1", "a1")
