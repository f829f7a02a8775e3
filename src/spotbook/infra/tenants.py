"""Tenant resolution - one PostgreSQL schema per organization.

Every engine operation runs inside tenant_txn(), which pins the transaction's
search_path to the tenant schema. Table names in engine SQL are therefore
unqualified, and a statement can only ever touch the tenant it was opened for.

The public.tenants registry (created by the Alembic migrations) maps tenant
ids to schema names and lets the expiration sweeper enumerate tenants.
"""

from __future__ import annotations

import re
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from psycopg2 import sql
from psycopg2.extensions import connection as PgConnection, cursor as PgCursor

from spotbook.domain.errors import TenantNotFoundError
from spotbook.infra.db import fetchall, fetchone, txn
from spotbook.observability.correlation import bind_tenant_id, unbind_tenant_id

_TENANT_ID_PATTERN = re.compile(r"^[a-z0-9][a-z0-9_-]{0,54}$")

SCHEMA_PREFIX = "org_"


def tenant_schema_name(tenant_id: str) -> str:
    """Derive the schema name for a tenant id.

    Raises:
        ValueError: If tenant_id is not a lowercase slug.
    """
    if not _TENANT_ID_PATTERN.match(tenant_id or ""):
        raise ValueError(f"invalid tenant id: {tenant_id!r}")
    return SCHEMA_PREFIX + tenant_id.replace("-", "_")


def _resolve_schema(cur: PgCursor, tenant_id: str) -> str:
    row = fetchone(
        cur,
        "SELECT schema_name FROM public.tenants WHERE id = %s AND is_active",
        (tenant_id,),
    )
    if row is None:
        raise TenantNotFoundError(tenant_id)
    return row[0]


def set_search_path(cur: PgCursor, schema_name: str) -> None:
    """Scope the rest of the current transaction to one schema."""
    cur.execute(
        sql.SQL("SET LOCAL search_path TO {}, public").format(sql.Identifier(schema_name))
    )


@contextmanager
def tenant_txn(tenant_id: str, conn: PgConnection | None = None) -> Iterator[PgCursor]:
    """Open a transaction scoped to one tenant's schema.

    Args:
        tenant_id: Registered tenant id.
        conn: Optional existing connection (see txn()).

    Yields:
        Cursor whose unqualified table names resolve to the tenant schema.

    Raises:
        TenantNotFoundError: If the tenant is not registered or inactive.
    """
    token = bind_tenant_id(tenant_id)
    try:
        with txn(conn) as cur:
            set_search_path(cur, _resolve_schema(cur, tenant_id))
            yield cur
    finally:
        unbind_tenant_id(token)


def list_active_tenants(conn: PgConnection | None = None) -> list[str]:
    """Return ids of all active tenants, in a stable order."""
    with txn(conn) as cur:
        rows = fetchall(cur, "SELECT id FROM public.tenants WHERE is_active ORDER BY id")
    return [row[0] for row in rows]


def _tenant_schema_ddl() -> str:
    sql_path = Path(__file__).resolve().parent / "sql" / "tenant_schema.sql"
    return sql_path.read_text(encoding="utf-8")


def provision_tenant(
    tenant_id: str,
    *,
    name: str | None = None,
    conn: PgConnection | None = None,
) -> str:
    """Create (or upgrade) a tenant schema and register the tenant.

    Idempotent: the DDL only uses IF NOT EXISTS / OR REPLACE statements.

    Returns:
        The tenant schema name.
    """
    schema_name = tenant_schema_name(tenant_id)
    with txn(conn) as cur:
        cur.execute(
            sql.SQL("CREATE SCHEMA IF NOT EXISTS {}").format(sql.Identifier(schema_name))
        )
        set_search_path(cur, schema_name)
        cur.execute(_tenant_schema_ddl())
        cur.execute(
            """
            INSERT INTO public.tenants (id, schema_name, name)
            VALUES (%s, %s, %s)
            ON CONFLICT (id) DO UPDATE
            SET is_active = true, name = COALESCE(EXCLUDED.name, public.tenants.name)
            """,
            (tenant_id, schema_name, name),
        )
    return schema_name
