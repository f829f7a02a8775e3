"""Database URL helpers for Alembic migrations.

Kept apart from env.py so they can be tested without triggering
alembic.context at import time.
"""

from __future__ import annotations

import os

from psycopg2.extensions import parse_dsn
from sqlalchemy.engine import URL, make_url

DRIVERNAME = "postgresql+psycopg2"

_CONNECTION_KEYS = ("user", "password", "host", "port", "dbname")


def dsn_to_url(dsn: str) -> URL:
    """Convert a libpq DSN (key=value or postgresql:// URI) to a SQLAlchemy URL.

    A host starting with "/" is a Unix socket directory (Cloud SQL) and is
    passed as the `host` query parameter. Other libpq options (sslmode, ...)
    are kept as query parameters.
    """
    params = parse_dsn(dsn)
    host = params.get("host")
    query = {k: v for k, v in params.items() if k not in _CONNECTION_KEYS}

    if host and host.startswith("/"):
        query["host"] = host
        host = None

    return URL.create(
        DRIVERNAME,
        username=params.get("user") or None,
        password=params.get("password") or None,
        host=host or (None if "host" in query else "localhost"),
        port=int(params["port"]) if params.get("port") else None,
        database=params.get("dbname") or None,
        query=query,
    )


def get_database_url() -> str:
    """Build the SQLAlchemy URL from DATABASE_URL (and DB_PASSWORD).

    Raises:
        RuntimeError: If DATABASE_URL is not set.
    """
    raw = os.environ.get("DATABASE_URL")
    if not raw:
        raise RuntimeError("DATABASE_URL is required to run migrations")

    if raw.startswith("postgresql+"):
        url = make_url(raw)
    else:
        url = dsn_to_url(raw)

    db_password = os.environ.get("DB_PASSWORD", "")
    if db_password and not url.password:
        url = url.set(password=db_password)
    return url.render_as_string(hide_password=False)
