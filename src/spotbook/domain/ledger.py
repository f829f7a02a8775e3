"""Inventory ledger - the only code that moves spots between counters.

    available --reserve--> reserved --book--> booked
    available <--release-- reserved
    available <--------unbook------------------ booked

Each move is a single guarded UPDATE (see inventory_repository). A failed
guard on reserve() means the slot is sold out; on any other move it means the
engine's own bookkeeping is wrong, which is fatal and never patched over.
"""

from __future__ import annotations

from psycopg2.extensions import cursor as PgCursor

from spotbook.domain.errors import InsufficientInventoryError, InventoryConsistencyError
from spotbook.infra.repositories import inventory_repository


def _check_count(count: int) -> None:
    if count < 1:
        raise ValueError(f"count must be >= 1, got {count}")


def reserve(cur: PgCursor, slot_id: str, count: int = 1) -> None:
    """Move `count` spots from available to reserved.

    Raises:
        InsufficientInventoryError: If fewer than `count` spots are available.
    """
    _check_count(count)
    if not inventory_repository.reserve_spots(cur, slot_id=slot_id, count=count):
        raise InsufficientInventoryError(slot_id, requested=count)


def release(cur: PgCursor, slot_id: str, count: int = 1) -> None:
    """Move `count` spots from reserved back to available.

    Raises:
        InventoryConsistencyError: If fewer than `count` spots are reserved.
    """
    _check_count(count)
    if not inventory_repository.release_spots(cur, slot_id=slot_id, count=count):
        raise InventoryConsistencyError(
            f"Failed to release {count} spot(s) in slot {slot_id}: reserved_spots insufficient",
            slot_id=slot_id,
            operation="release",
            count=count,
        )


def book(cur: PgCursor, slot_id: str, count: int = 1) -> None:
    """Move `count` spots from reserved to booked.

    Raises:
        InventoryConsistencyError: If fewer than `count` spots are reserved.
    """
    _check_count(count)
    if not inventory_repository.book_spots(cur, slot_id=slot_id, count=count):
        raise InventoryConsistencyError(
            f"Failed to book {count} spot(s) in slot {slot_id}: reserved_spots insufficient",
            slot_id=slot_id,
            operation="book",
            count=count,
        )


def unbook(cur: PgCursor, slot_id: str, count: int = 1) -> None:
    """Move `count` spots from booked back to available (order cancellation).

    Raises:
        InventoryConsistencyError: If fewer than `count` spots are booked.
    """
    _check_count(count)
    if not inventory_repository.unbook_spots(cur, slot_id=slot_id, count=count):
        raise InventoryConsistencyError(
            f"Failed to unbook {count} spot(s) in slot {slot_id}: booked_spots insufficient",
            slot_id=slot_id,
            operation="unbook",
            count=count,
        )
