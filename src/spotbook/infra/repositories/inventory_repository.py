"""Inventory repository - guarded counter updates on inventory_slots.

Uses raw SQL with psycopg2 (no ORM). Every counter mutation is one UPDATE
whose WHERE clause carries the availability guard, so concurrent callers
serialize on the slot row and a zero-row result means the guard failed.
Callers must already be inside a tenant-scoped transaction.
"""

from datetime import date

from psycopg2.extensions import cursor as PgCursor

from spotbook.domain.models import InventorySlot

_SLOT_COLUMNS = """
    id, organization_id, show_id, air_date, placement_type,
    total_spots, available_spots, reserved_spots, booked_spots
"""


def _row_to_slot(row: tuple) -> InventorySlot:
    return InventorySlot(
        id=str(row[0]),
        organization_id=row[1],
        show_id=row[2],
        air_date=row[3],
        placement_type=row[4],
        total_spots=row[5],
        available_spots=row[6],
        reserved_spots=row[7],
        booked_spots=row[8],
    )


def get_slot(cur: PgCursor, slot_id: str) -> InventorySlot | None:
    """Retrieve a slot by id."""
    cur.execute(f"SELECT {_SLOT_COLUMNS} FROM inventory_slots WHERE id = %s", (slot_id,))
    row = cur.fetchone()
    return _row_to_slot(row) if row else None


def find_slot(
    cur: PgCursor,
    *,
    organization_id: str,
    show_id: str,
    air_date: date,
    placement_type: str,
) -> InventorySlot | None:
    """Resolve the slot for (organization, show, date, placement type)."""
    cur.execute(
        f"""
        SELECT {_SLOT_COLUMNS}
        FROM inventory_slots
        WHERE organization_id = %s
          AND show_id = %s
          AND air_date = %s
          AND placement_type = %s
        """,
        (organization_id, show_id, air_date, placement_type),
    )
    row = cur.fetchone()
    return _row_to_slot(row) if row else None


def reserve_spots(cur: PgCursor, *, slot_id: str, count: int) -> bool:
    """available -= count, reserved += count, guarded by available >= count.

    Returns:
        True if updated, False if the slot lacks availability.
    """
    cur.execute(
        """
        UPDATE inventory_slots
        SET available_spots = available_spots - %s,
            reserved_spots = reserved_spots + %s,
            updated_at = now()
        WHERE id = %s
          AND available_spots >= %s
        RETURNING id
        """,
        (count, count, slot_id, count),
    )
    return cur.fetchone() is not None


def release_spots(cur: PgCursor, *, slot_id: str, count: int) -> bool:
    """reserved -= count, available += count, guarded by reserved >= count."""
    cur.execute(
        """
        UPDATE inventory_slots
        SET reserved_spots = reserved_spots - %s,
            available_spots = available_spots + %s,
            updated_at = now()
        WHERE id = %s
          AND reserved_spots >= %s
        RETURNING id
        """,
        (count, count, slot_id, count),
    )
    return cur.fetchone() is not None


def book_spots(cur: PgCursor, *, slot_id: str, count: int) -> bool:
    """reserved -= count, booked += count, guarded by reserved >= count."""
    cur.execute(
        """
        UPDATE inventory_slots
        SET reserved_spots = reserved_spots - %s,
            booked_spots = booked_spots + %s,
            updated_at = now()
        WHERE id = %s
          AND reserved_spots >= %s
        RETURNING id
        """,
        (count, count, slot_id, count),
    )
    return cur.fetchone() is not None


def unbook_spots(cur: PgCursor, *, slot_id: str, count: int) -> bool:
    """booked -= count, available += count, guarded by booked >= count."""
    cur.execute(
        """
        UPDATE inventory_slots
        SET booked_spots = booked_spots - %s,
            available_spots = available_spots + %s,
            updated_at = now()
        WHERE id = %s
          AND booked_spots >= %s
        RETURNING id
        """,
        (count, count, slot_id, count),
    )
    return cur.fetchone() is not None


def slot_usage_rows(cur: PgCursor) -> list[tuple]:
    """Slot counters next to the counts implied by reservation and order rows.

    Returns rows of:
        (id, show_id, air_date, placement_type, total, available, reserved,
         booked, held_items, booked_order_items)
    """
    cur.execute(
        """
        SELECT s.id, s.show_id, s.air_date, s.placement_type,
               s.total_spots, s.available_spots, s.reserved_spots, s.booked_spots,
               COALESCE(h.held_items, 0), COALESCE(b.booked_items, 0)
        FROM inventory_slots s
        LEFT JOIN (
            SELECT ri.slot_id, count(*) AS held_items
            FROM reservation_items ri
            JOIN reservations r ON r.id = ri.reservation_id
            WHERE ri.status = 'held' AND r.status = 'held'
            GROUP BY ri.slot_id
        ) h ON h.slot_id = s.id
        LEFT JOIN (
            SELECT slot_id, count(*) AS booked_items
            FROM order_items
            WHERE status = 'booked'
            GROUP BY slot_id
        ) b ON b.slot_id = s.id
        ORDER BY s.air_date, s.show_id, s.placement_type
        """
    )
    return cur.fetchall()
