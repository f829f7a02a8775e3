"""Orders repository - persistence for orders, order items and order numbers.

Uses raw SQL with psycopg2 (no ORM).
"""

from datetime import date

from psycopg2.extensions import cursor as PgCursor

from spotbook.domain.models import Order, OrderItem, OrderItemStatus, OrderStatus
from spotbook.infra.db import for_update

ORDER_NUMBER_PREFIX = "ORD"

_ORDER_COLUMNS = """
    id, organization_id, reservation_id, order_number, advertiser_id,
    agency_id, campaign_id, status, total_cents, discount_cents, net_cents,
    notes, created_by, created_at, cancelled_at, cancelled_by
"""

_ORDER_ITEM_COLUMNS = """
    id, order_id, reservation_item_id, slot_id, show_id, episode_id, air_date,
    placement_type, length_seconds, rate_cents, total_cents, status, notes
"""


def _row_to_order(row: tuple) -> Order:
    return Order(
        id=str(row[0]),
        organization_id=row[1],
        reservation_id=str(row[2]),
        order_number=row[3],
        advertiser_id=row[4],
        agency_id=row[5],
        campaign_id=row[6],
        status=OrderStatus(row[7]),
        total_cents=row[8],
        discount_cents=row[9],
        net_cents=row[10],
        notes=row[11],
        created_by=row[12],
        created_at=row[13],
        cancelled_at=row[14],
        cancelled_by=row[15],
    )


def _row_to_order_item(row: tuple) -> OrderItem:
    return OrderItem(
        id=str(row[0]),
        order_id=str(row[1]),
        reservation_item_id=str(row[2]),
        slot_id=str(row[3]),
        show_id=row[4],
        episode_id=row[5],
        air_date=row[6],
        placement_type=row[7],
        length_seconds=row[8],
        rate_cents=row[9],
        total_cents=row[10],
        status=OrderItemStatus(row[11]),
        notes=row[12],
    )


def next_order_number(cur: PgCursor, *, year: int) -> str:
    """Allocate the next order number for a year: ORD-YYYY-NNNNNN.

    The upsert increments the per-year counter atomically; concurrent
    confirms serialize on the sequence row until their transactions end, so
    numbers are gap-free among committed orders.
    """
    cur.execute(
        """
        INSERT INTO order_number_sequences (year, last_number)
        VALUES (%s, 1)
        ON CONFLICT (year) DO UPDATE
        SET last_number = order_number_sequences.last_number + 1
        RETURNING last_number
        """,
        (year,),
    )
    number = cur.fetchone()[0]
    return f"{ORDER_NUMBER_PREFIX}-{year}-{number:06d}"


def insert_order(
    cur: PgCursor,
    *,
    organization_id: str,
    reservation_id: str,
    order_number: str,
    advertiser_id: str,
    agency_id: str | None,
    campaign_id: str | None,
    total_cents: int,
    discount_cents: int,
    net_cents: int,
    notes: str | None,
    created_by: str,
) -> Order:
    """Insert a draft order. UNIQUE(reservation_id) enforces one order per reservation."""
    cur.execute(
        f"""
        INSERT INTO orders (
            organization_id, reservation_id, order_number, advertiser_id,
            agency_id, campaign_id, status, total_cents, discount_cents,
            net_cents, notes, created_by
        )
        VALUES (%s, %s, %s, %s, %s, %s, 'draft', %s, %s, %s, %s, %s)
        RETURNING {_ORDER_COLUMNS}
        """,
        (
            organization_id,
            reservation_id,
            order_number,
            advertiser_id,
            agency_id,
            campaign_id,
            total_cents,
            discount_cents,
            net_cents,
            notes,
            created_by,
        ),
    )
    return _row_to_order(cur.fetchone())


def insert_order_item(
    cur: PgCursor,
    *,
    order_id: str,
    reservation_item_id: str,
    slot_id: str,
    show_id: str,
    episode_id: str | None,
    air_date: date,
    placement_type: str,
    length_seconds: int,
    rate_cents: int,
    notes: str | None,
) -> OrderItem:
    """Insert a booked order item; total_cents equals the flat spot rate."""
    cur.execute(
        f"""
        INSERT INTO order_items (
            order_id, reservation_item_id, slot_id, show_id, episode_id,
            air_date, placement_type, length_seconds, rate_cents, total_cents,
            status, notes
        )
        VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, 'booked', %s)
        RETURNING {_ORDER_ITEM_COLUMNS}
        """,
        (
            order_id,
            reservation_item_id,
            slot_id,
            show_id,
            episode_id,
            air_date,
            placement_type,
            length_seconds,
            rate_cents,
            rate_cents,
            notes,
        ),
    )
    return _row_to_order_item(cur.fetchone())


def get_order(cur: PgCursor, order_id: str) -> Order | None:
    cur.execute(f"SELECT {_ORDER_COLUMNS} FROM orders WHERE id = %s", (order_id,))
    row = cur.fetchone()
    return _row_to_order(row) if row else None


def lock_order(cur: PgCursor, order_id: str) -> Order | None:
    row = for_update(cur, f"SELECT {_ORDER_COLUMNS} FROM orders WHERE id = %s", (order_id,))
    return _row_to_order(row) if row else None


def get_order_by_reservation(cur: PgCursor, reservation_id: str) -> Order | None:
    cur.execute(
        f"SELECT {_ORDER_COLUMNS} FROM orders WHERE reservation_id = %s",
        (reservation_id,),
    )
    row = cur.fetchone()
    return _row_to_order(row) if row else None


def list_order_items(cur: PgCursor, order_id: str) -> list[OrderItem]:
    """Items of an order in slot-id order (the ledger lock order)."""
    cur.execute(
        f"""
        SELECT {_ORDER_ITEM_COLUMNS}
        FROM order_items
        WHERE order_id = %s
        ORDER BY slot_id, id
        """,
        (order_id,),
    )
    return [_row_to_order_item(row) for row in cur.fetchall()]


def mark_order_cancelled(cur: PgCursor, *, order_id: str, cancelled_by: str) -> bool:
    """draft -> cancelled. Returns False if the order was not a draft."""
    cur.execute(
        """
        UPDATE orders
        SET status = 'cancelled', cancelled_at = now(), cancelled_by = %s,
            updated_at = now()
        WHERE id = %s AND status = 'draft'
        RETURNING id
        """,
        (cancelled_by, order_id),
    )
    return cur.fetchone() is not None


def cancel_order_items(cur: PgCursor, *, order_id: str) -> int:
    """Mark every booked item of an order cancelled. Returns rows updated."""
    cur.execute(
        """
        UPDATE order_items
        SET status = 'cancelled', updated_at = now()
        WHERE order_id = %s AND status = 'booked'
        """,
        (order_id,),
    )
    return cur.rowcount
