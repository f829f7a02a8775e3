"""psycopg2 connection and transaction helpers.

Engine code never holds a module-level connection: each operation opens
txn() (usually through tenant_txn()) and passes the cursor down to the
repositories. Row locks come from for_update(); timestamps from db_now().
"""

import os
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Iterator, Sequence

import psycopg2
from psycopg2.extensions import connection as PgConnection, cursor as PgCursor
from psycopg2.extensions import parse_dsn


def get_conn() -> PgConnection:
    """Get a new database connection from DATABASE_URL.

    DATABASE_URL may be a URL or a libpq key=value DSN. When it carries no
    password and DB_PASSWORD is set, the password is passed separately
    (secret managers mount it apart from the DSN).

    Returns:
        psycopg2 connection object.

    Raises:
        RuntimeError: If DATABASE_URL is not set.
        psycopg2.Error: On connection failure.
    """
    dsn = os.environ.get("DATABASE_URL")
    if not dsn:
        raise RuntimeError("DATABASE_URL environment variable not set")

    db_password = os.environ.get("DB_PASSWORD")
    if db_password and not parse_dsn(dsn).get("password"):
        return psycopg2.connect(dsn, password=db_password)
    return psycopg2.connect(dsn)


@contextmanager
def txn(conn: PgConnection | None = None) -> Iterator[PgCursor]:
    """One transaction: commit on clean exit, rollback on any exception.

    A connection passed in is borrowed and left open; otherwise a fresh one
    is opened and closed here. Every engine operation is exactly one txn(),
    so a raised ReservationError undoes all of its counter moves.

    Example:
        with txn() as cur:
            cur.execute("SELECT count(*) FROM public.tenants")
    """
    owns_conn = conn is None
    if owns_conn:
        conn = get_conn()

    try:
        with conn.cursor() as cur:
            yield cur
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        if owns_conn:
            conn.close()


def fetchone(
    cur: PgCursor,
    query: str,
    params: Sequence[Any] | None = None,
) -> tuple[Any, ...] | None:
    """Execute query and fetch one row."""
    cur.execute(query, params)
    return cur.fetchone()


def fetchall(
    cur: PgCursor,
    query: str,
    params: Sequence[Any] | None = None,
) -> list[tuple[Any, ...]]:
    """Execute query and fetch all rows."""
    cur.execute(query, params)
    return cur.fetchall()


def for_update(
    cur: PgCursor,
    query: str,
    params: Sequence[Any] | None = None,
) -> tuple[Any, ...] | None:
    """Fetch one row and lock it until the transaction ends.

    Confirm, cancel and update lock the reservation (or order) row first, so
    two callers acting on the same row run one after the other.
    """
    cur.execute(query.rstrip().rstrip(";") + " FOR UPDATE", params)
    return cur.fetchone()


def db_now(cur: PgCursor) -> datetime:
    """Return the current transaction timestamp (timezone-aware).

    Expiry decisions use the database clock so that API servers and
    sweepers running on different hosts agree on what "now" is.
    """
    cur.execute("SELECT now()")
    return cur.fetchone()[0]
