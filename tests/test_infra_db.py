"""Tests for database layer."""

import os
from unittest.mock import MagicMock, patch

import pytest

from spotbook.infra.db import db_now, for_update, get_conn, txn


class TestGetConnPasswordFallback:
    """Tests for DB_PASSWORD fallback in get_conn() - no real DB needed."""

    def test_db_password_fallback_dsn_without_password(self):
        env = {"DATABASE_URL": "dbname=db user=u host=h port=5432", "DB_PASSWORD": "from-env"}
        with patch.dict(os.environ, env, clear=True), \
             patch("spotbook.infra.db.psycopg2.connect", return_value=MagicMock()) as mock_connect:
            get_conn()
            mock_connect.assert_called_once_with(
                "dbname=db user=u host=h port=5432",
                password="from-env",
            )

    def test_db_password_not_used_when_dsn_has_password(self):
        env = {"DATABASE_URL": "dbname=db user=u password=from-dsn host=h", "DB_PASSWORD": "from-env"}
        with patch.dict(os.environ, env, clear=True), \
             patch("spotbook.infra.db.psycopg2.connect", return_value=MagicMock()) as mock_connect:
            get_conn()
            mock_connect.assert_called_once_with("dbname=db user=u password=from-dsn host=h")

    def test_db_password_not_used_when_url_has_password(self):
        env = {"DATABASE_URL": "postgres://u:p@h/db", "DB_PASSWORD": "from-env"}
        with patch.dict(os.environ, env, clear=True), \
             patch("spotbook.infra.db.psycopg2.connect", return_value=MagicMock()) as mock_connect:
            get_conn()
            mock_connect.assert_called_once_with("postgres://u:p@h/db")

    def test_missing_database_url(self):
        with patch.dict(os.environ, {}, clear=True):
            with pytest.raises(RuntimeError, match="DATABASE_URL"):
                get_conn()


class TestTxn:
    def test_commits_and_closes_owned_connection(self):
        conn = MagicMock()
        with patch("spotbook.infra.db.get_conn", return_value=conn):
            with txn() as cur:
                cur.execute("SELECT 1")
        conn.commit.assert_called_once()
        conn.rollback.assert_not_called()
        conn.close.assert_called_once()

    def test_rolls_back_on_error(self):
        conn = MagicMock()
        with patch("spotbook.infra.db.get_conn", return_value=conn):
            with pytest.raises(RuntimeError):
                with txn():
                    raise RuntimeError("boom")
        conn.rollback.assert_called_once()
        conn.commit.assert_not_called()
        conn.close.assert_called_once()

    def test_borrowed_connection_left_open(self):
        conn = MagicMock()
        with txn(conn):
            pass
        conn.commit.assert_called_once()
        conn.close.assert_not_called()


class TestForUpdate:
    def test_appends_clause(self):
        cur = MagicMock()
        for_update(cur, "SELECT id FROM reservations WHERE id = %s;", ("r-1",))
        cur.execute.assert_called_once_with(
            "SELECT id FROM reservations WHERE id = %s FOR UPDATE", ("r-1",)
        )


def test_db_now_reads_database_clock():
    cur = MagicMock()
    cur.fetchone.return_value = ("2026-03-01T09:00:00+00:00",)
    assert db_now(cur) == "2026-03-01T09:00:00+00:00"
    cur.execute.assert_called_once_with("SELECT now()")
