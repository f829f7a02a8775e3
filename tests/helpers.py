"""Shared test helper functions for Spotbook tests.

This module contains helper functions that can be imported by both conftest.py
and individual test files. These are NOT fixtures - they are regular functions.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from pathlib import Path

from psycopg2 import sql

from spotbook.domain.models import (
    CreateReservationRequest,
    ItemRequest,
    ItemStatus,
    Order,
    OrderItem,
    OrderItemStatus,
    OrderStatus,
    Priority,
    Reservation,
    ReservationItem,
    ReservationStatus,
)
from spotbook.infra.db import txn
from spotbook.infra.tenants import tenant_schema_name, tenant_txn

AIR_DATE = date(2026, 3, 2)

RESERVATION_ID = "a4f9d3c1-0b2e-4d4f-8a6b-000000000001"
ORDER_ID = "d7c2a6f4-3e5b-4a7c-9d9e-000000000002"
SLOT_ID = "e8d3b7a5-4f6c-4b8d-8eaf-000000000003"

_REGISTRY_SQL = Path(__file__).resolve().parents[1] / "migrations" / "sql" / "001_tenant_registry.sql"


def ensure_tenant_registry() -> None:
    """Create public.tenants if migrations were not run against the test DB."""
    with txn() as cur:
        cur.execute(_REGISTRY_SQL.read_text(encoding="utf-8"))


def drop_tenant(tenant_id: str) -> None:
    with txn() as cur:
        cur.execute(
            sql.SQL("DROP SCHEMA IF EXISTS {} CASCADE").format(
                sql.Identifier(tenant_schema_name(tenant_id))
            )
        )
        cur.execute("DELETE FROM public.tenants WHERE id = %s", (tenant_id,))


def seed_slot(
    tenant_id: str,
    *,
    show_id: str = "morning-show",
    air_date: date = AIR_DATE,
    placement_type: str = "pre-roll",
    total: int = 1,
    reserved: int = 0,
    booked: int = 0,
) -> str:
    """Insert an inventory slot; available is whatever total leaves over."""
    with tenant_txn(tenant_id) as cur:
        cur.execute(
            """
            INSERT INTO inventory_slots (
                organization_id, show_id, air_date, placement_type,
                total_spots, available_spots, reserved_spots, booked_spots
            )
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
            RETURNING id
            """,
            (
                tenant_id,
                show_id,
                air_date,
                placement_type,
                total,
                total - reserved - booked,
                reserved,
                booked,
            ),
        )
        return str(cur.fetchone()[0])


def slot_counters(tenant_id: str, slot_id: str) -> dict:
    with tenant_txn(tenant_id) as cur:
        cur.execute(
            """
            SELECT total_spots, available_spots, reserved_spots, booked_spots
            FROM inventory_slots WHERE id = %s
            """,
            (slot_id,),
        )
        total, available, reserved, booked = cur.fetchone()
    return {"total": total, "available": available, "reserved": reserved, "booked": booked}


def item(
    *,
    show_id: str = "morning-show",
    air_date: date = AIR_DATE,
    placement_type: str = "pre-roll",
    rate_cents: int = 15000,
    length_seconds: int = 30,
    **extra,
) -> ItemRequest:
    return ItemRequest(
        show_id=show_id,
        air_date=air_date,
        placement_type=placement_type,
        length_seconds=length_seconds,
        rate_cents=rate_cents,
        **extra,
    )


def hold_request(*items: ItemRequest, **kwargs) -> CreateReservationRequest:
    kwargs.setdefault("advertiser_id", "adv-1")
    return CreateReservationRequest(items=list(items), **kwargs)


def backdate_expiry(tenant_id: str, reservation_id: str) -> None:
    """Move a reservation's deadline into the past."""
    with tenant_txn(tenant_id) as cur:
        cur.execute(
            "UPDATE reservations SET expires_at = now() - interval '1 minute' WHERE id = %s",
            (reservation_id,),
        )


def count_rows(tenant_id: str, table: str) -> int:
    with tenant_txn(tenant_id) as cur:
        cur.execute(sql.SQL("SELECT count(*) FROM {}").format(sql.Identifier(table)))
        return cur.fetchone()[0]


def make_reservation(**overrides) -> Reservation:
    """An in-memory reservation for route tests (no DB)."""
    now = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)
    values = dict(
        id=RESERVATION_ID,
        organization_id="acme",
        advertiser_id="adv-1",
        agency_id=None,
        campaign_id="camp-1",
        status=ReservationStatus.HELD,
        hold_duration_hours=48,
        expires_at=now + timedelta(hours=48),
        total_cents=15000,
        priority=Priority.NORMAL,
        source="web",
        notes=None,
        created_by="user-1",
        created_at=now,
        updated_at=now,
        items=[
            ReservationItem(
                id="b5a0e4d2-1c3f-4e5a-9b7c-000000000011",
                reservation_id=RESERVATION_ID,
                slot_id=SLOT_ID,
                show_id="morning-show",
                episode_id=None,
                air_date=AIR_DATE,
                placement_type="pre-roll",
                spot_number=None,
                length_seconds=30,
                rate_cents=15000,
                status=ItemStatus.HELD,
            )
        ],
    )
    values.update(overrides)
    return Reservation(**values)


def make_order(**overrides) -> Order:
    now = datetime(2026, 3, 1, 10, 0, tzinfo=timezone.utc)
    values = dict(
        id=ORDER_ID,
        organization_id="acme",
        reservation_id=RESERVATION_ID,
        order_number="ORD-2026-000001",
        advertiser_id="adv-1",
        agency_id=None,
        campaign_id="camp-1",
        status=OrderStatus.DRAFT,
        total_cents=15000,
        discount_cents=0,
        net_cents=15000,
        notes=None,
        created_by="user-1",
        created_at=now,
        items=[
            OrderItem(
                id="c6b1f5e3-2d4a-4f6b-8c8d-000000000021",
                order_id=ORDER_ID,
                reservation_item_id="b5a0e4d2-1c3f-4e5a-9b7c-000000000011",
                slot_id=SLOT_ID,
                show_id="morning-show",
                episode_id=None,
                air_date=AIR_DATE,
                placement_type="pre-roll",
                length_seconds=30,
                rate_cents=15000,
                total_cents=15000,
                status=OrderItemStatus.BOOKED,
            )
        ],
    )
    values.update(overrides)
    return Order(**values)
