"""Create (or upgrade) a tenant schema and register the tenant.

Usage:
    DATABASE_URL=... uv run python scripts/provision_tenant.py <tenant_id> [--name "Display Name"]

Run `alembic upgrade head` first so public.tenants exists. Safe to re-run:
the tenant DDL is idempotent, so this also upgrades existing tenant schemas.
"""

from __future__ import annotations

import argparse
import os
import sys


def main() -> None:
    parser = argparse.ArgumentParser(description="Provision a tenant schema.")
    parser.add_argument("tenant_id", help="lowercase slug, e.g. acme-media")
    parser.add_argument("--name", default=None, help="display name")
    args = parser.parse_args()

    if not os.environ.get("DATABASE_URL"):
        print("ERROR: DATABASE_URL not set")
        sys.exit(1)

    # Import after env validation so missing DB doesn't blow up on import
    from spotbook.infra.tenants import provision_tenant

    try:
        schema_name = provision_tenant(args.tenant_id, name=args.name)
    except ValueError as e:
        print(f"ERROR: {e}")
        sys.exit(2)

    print(f"Tenant {args.tenant_id} provisioned in schema {schema_name}")


if __name__ == "__main__":
    main()
