"""Reservations repository - persistence for reservations, items and history.

Uses raw SQL with psycopg2 (no ORM). Status flips are guarded by
`status = 'held'` in the same UPDATE, so exactly one writer can move a
reservation out of held. Callers must already be inside a tenant-scoped
transaction.
"""

from datetime import date, datetime
from typing import Any

from psycopg2.extensions import cursor as PgCursor

from spotbook.domain.models import (
    ItemStatus,
    Priority,
    Reservation,
    ReservationFilters,
    ReservationItem,
    ReservationStatus,
    StatusHistoryEntry,
)
from spotbook.infra.db import for_update

_RESERVATION_COLUMNS = """
    id, organization_id, advertiser_id, agency_id, campaign_id, status,
    hold_duration_hours, expires_at, total_cents, priority, source, notes,
    created_by, created_at, updated_at, confirmed_at, confirmed_by,
    cancelled_at, cancelled_by
"""

_ITEM_COLUMNS = """
    id, reservation_id, slot_id, show_id, episode_id, air_date, placement_type,
    spot_number, length_seconds, rate_cents, status, notes
"""

# Columns a held reservation may have patched; hold_duration_hours is handled
# separately because it also moves expires_at.
_PATCHABLE_COLUMNS = ("campaign_id", "priority", "notes")


def _row_to_reservation(row: tuple) -> Reservation:
    return Reservation(
        id=str(row[0]),
        organization_id=row[1],
        advertiser_id=row[2],
        agency_id=row[3],
        campaign_id=row[4],
        status=ReservationStatus(row[5]),
        hold_duration_hours=row[6],
        expires_at=row[7],
        total_cents=row[8],
        priority=Priority(row[9]),
        source=row[10],
        notes=row[11],
        created_by=row[12],
        created_at=row[13],
        updated_at=row[14],
        confirmed_at=row[15],
        confirmed_by=row[16],
        cancelled_at=row[17],
        cancelled_by=row[18],
    )


def _row_to_item(row: tuple) -> ReservationItem:
    return ReservationItem(
        id=str(row[0]),
        reservation_id=str(row[1]),
        slot_id=str(row[2]),
        show_id=row[3],
        episode_id=row[4],
        air_date=row[5],
        placement_type=row[6],
        spot_number=row[7],
        length_seconds=row[8],
        rate_cents=row[9],
        status=ItemStatus(row[10]),
        notes=row[11],
    )


def insert_reservation(
    cur: PgCursor,
    *,
    organization_id: str,
    advertiser_id: str,
    agency_id: str | None,
    campaign_id: str | None,
    hold_duration_hours: int,
    total_cents: int,
    priority: str,
    source: str,
    notes: str | None,
    created_by: str,
) -> str:
    """Insert a held reservation; expires_at is derived from the DB clock.

    Returns:
        UUID string of the new reservation.
    """
    cur.execute(
        """
        INSERT INTO reservations (
            organization_id, advertiser_id, agency_id, campaign_id, status,
            hold_duration_hours, expires_at, total_cents, priority, source,
            notes, created_by
        )
        VALUES (
            %s, %s, %s, %s, 'held',
            %s, now() + make_interval(hours => %s), %s, %s, %s,
            %s, %s
        )
        RETURNING id
        """,
        (
            organization_id,
            advertiser_id,
            agency_id,
            campaign_id,
            hold_duration_hours,
            hold_duration_hours,
            total_cents,
            priority,
            source,
            notes,
            created_by,
        ),
    )
    return str(cur.fetchone()[0])


def insert_reservation_item(
    cur: PgCursor,
    *,
    reservation_id: str,
    slot_id: str,
    show_id: str,
    episode_id: str | None,
    air_date: date,
    placement_type: str,
    spot_number: int | None,
    length_seconds: int,
    rate_cents: int,
    notes: str | None = None,
) -> str:
    """Insert one held reservation item bound to its inventory slot."""
    cur.execute(
        """
        INSERT INTO reservation_items (
            reservation_id, slot_id, show_id, episode_id, air_date,
            placement_type, spot_number, length_seconds, rate_cents, status, notes
        )
        VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, 'held', %s)
        RETURNING id
        """,
        (
            reservation_id,
            slot_id,
            show_id,
            episode_id,
            air_date,
            placement_type,
            spot_number,
            length_seconds,
            rate_cents,
            notes,
        ),
    )
    return str(cur.fetchone()[0])


def insert_status_history(
    cur: PgCursor,
    *,
    reservation_id: str,
    from_status: str | None,
    to_status: str,
    reason: str | None,
    changed_by: str,
    notes: str | None = None,
) -> None:
    """Append a status history row (write-once)."""
    cur.execute(
        """
        INSERT INTO reservation_status_history (
            reservation_id, from_status, to_status, reason, notes, changed_by
        )
        VALUES (%s, %s, %s, %s, %s, %s)
        """,
        (reservation_id, from_status, to_status, reason, notes, changed_by),
    )


def get_reservation(cur: PgCursor, reservation_id: str) -> Reservation | None:
    """Retrieve a reservation row (without items/history)."""
    cur.execute(
        f"SELECT {_RESERVATION_COLUMNS} FROM reservations WHERE id = %s",
        (reservation_id,),
    )
    row = cur.fetchone()
    return _row_to_reservation(row) if row else None


def lock_reservation(cur: PgCursor, reservation_id: str) -> Reservation | None:
    """Retrieve a reservation row with FOR UPDATE."""
    row = for_update(
        cur,
        f"SELECT {_RESERVATION_COLUMNS} FROM reservations WHERE id = %s",
        (reservation_id,),
    )
    return _row_to_reservation(row) if row else None


def list_items(cur: PgCursor, reservation_id: str) -> list[ReservationItem]:
    """Items of one reservation in slot-id order (the ledger lock order)."""
    cur.execute(
        f"""
        SELECT {_ITEM_COLUMNS}
        FROM reservation_items
        WHERE reservation_id = %s
        ORDER BY slot_id, id
        """,
        (reservation_id,),
    )
    return [_row_to_item(row) for row in cur.fetchall()]


def list_items_for(
    cur: PgCursor, reservation_ids: list[str]
) -> dict[str, list[ReservationItem]]:
    """Items of several reservations, grouped by reservation, air date ascending."""
    grouped: dict[str, list[ReservationItem]] = {rid: [] for rid in reservation_ids}
    if not reservation_ids:
        return grouped
    cur.execute(
        f"""
        SELECT {_ITEM_COLUMNS}
        FROM reservation_items
        WHERE reservation_id = ANY(%s::uuid[])
        ORDER BY air_date ASC, show_id, placement_type, id
        """,
        (reservation_ids,),
    )
    for row in cur.fetchall():
        item = _row_to_item(row)
        grouped.setdefault(item.reservation_id, []).append(item)
    return grouped


def list_status_history(cur: PgCursor, reservation_id: str) -> list[StatusHistoryEntry]:
    """History entries of a reservation, newest first."""
    cur.execute(
        """
        SELECT id, reservation_id, from_status, to_status, reason, notes,
               changed_by, changed_at
        FROM reservation_status_history
        WHERE reservation_id = %s
        ORDER BY changed_at DESC, id DESC
        """,
        (reservation_id,),
    )
    return [
        StatusHistoryEntry(
            id=row[0],
            reservation_id=str(row[1]),
            from_status=ReservationStatus(row[2]) if row[2] else None,
            to_status=ReservationStatus(row[3]),
            reason=row[4],
            notes=row[5],
            changed_by=row[6],
            changed_at=row[7],
        )
        for row in cur.fetchall()
    ]


def set_items_status(cur: PgCursor, *, reservation_id: str, status: str) -> int:
    """Set the status of every item of a reservation. Returns rows updated."""
    cur.execute(
        """
        UPDATE reservation_items
        SET status = %s, updated_at = now()
        WHERE reservation_id = %s
        """,
        (status, reservation_id),
    )
    return cur.rowcount


def mark_confirmed(cur: PgCursor, *, reservation_id: str, confirmed_by: str) -> bool:
    """held -> confirmed. Returns False if the reservation was not held."""
    cur.execute(
        """
        UPDATE reservations
        SET status = 'confirmed', confirmed_at = now(), confirmed_by = %s,
            updated_at = now()
        WHERE id = %s AND status = 'held'
        RETURNING id
        """,
        (confirmed_by, reservation_id),
    )
    return cur.fetchone() is not None


def mark_cancelled(cur: PgCursor, *, reservation_id: str, cancelled_by: str) -> bool:
    """held -> cancelled. Returns False if the reservation was not held."""
    cur.execute(
        """
        UPDATE reservations
        SET status = 'cancelled', cancelled_at = now(), cancelled_by = %s,
            updated_at = now()
        WHERE id = %s AND status = 'held'
        RETURNING id
        """,
        (cancelled_by, reservation_id),
    )
    return cur.fetchone() is not None


def claim_expired(cur: PgCursor, *, reservation_id: str) -> bool:
    """held -> expired, only if the deadline has passed.

    The status and deadline guards live in the same UPDATE, so when several
    sweepers race on one reservation only the first sees a row back.
    """
    cur.execute(
        """
        UPDATE reservations
        SET status = 'expired', updated_at = now()
        WHERE id = %s
          AND status = 'held'
          AND expires_at < now()
        RETURNING id
        """,
        (reservation_id,),
    )
    return cur.fetchone() is not None


def select_expired_ids(cur: PgCursor, *, limit: int) -> list[str]:
    """Ids of held reservations past their deadline, oldest deadline first."""
    cur.execute(
        """
        SELECT id
        FROM reservations
        WHERE status = 'held' AND expires_at < now()
        ORDER BY expires_at ASC
        LIMIT %s
        """,
        (limit,),
    )
    return [str(row[0]) for row in cur.fetchall()]


def update_fields(
    cur: PgCursor,
    *,
    reservation_id: str,
    fields: dict[str, Any],
    hold_duration_hours: int | None = None,
) -> bool:
    """Patch a held reservation.

    A new hold_duration_hours recomputes expires_at from created_at, never
    from the current time, so repeated updates are deterministic.

    Returns:
        False if the reservation was not held.
    """
    assignments = ["updated_at = now()"]
    params: list[Any] = []
    for column in _PATCHABLE_COLUMNS:
        if column in fields:
            assignments.append(f"{column} = %s")
            params.append(fields[column])
    if hold_duration_hours is not None:
        assignments.append("hold_duration_hours = %s")
        assignments.append("expires_at = created_at + make_interval(hours => %s)")
        params.extend([hold_duration_hours, hold_duration_hours])

    params.append(reservation_id)
    cur.execute(
        f"""
        UPDATE reservations
        SET {", ".join(assignments)}
        WHERE id = %s AND status = 'held'
        RETURNING id
        """,
        params,
    )
    return cur.fetchone() is not None


def _filter_clause(filters: ReservationFilters) -> tuple[str, list[Any]]:
    conditions: list[str] = []
    params: list[Any] = []

    if filters.status:
        conditions.append("status = ANY(%s)")
        params.append([ReservationStatus(s).value for s in filters.status])
    if filters.advertiser_id:
        conditions.append("advertiser_id = %s")
        params.append(filters.advertiser_id)
    if filters.campaign_id:
        conditions.append("campaign_id = %s")
        params.append(filters.campaign_id)
    if filters.agency_id:
        conditions.append("agency_id = %s")
        params.append(filters.agency_id)
    if filters.created_by:
        conditions.append("created_by = %s")
        params.append(filters.created_by)
    if filters.priority:
        conditions.append("priority = ANY(%s)")
        params.append([Priority(p).value for p in filters.priority])
    if filters.expires_after:
        conditions.append("expires_at >= %s")
        params.append(filters.expires_after)
    if filters.expires_before:
        conditions.append("expires_at <= %s")
        params.append(filters.expires_before)
    if filters.created_after:
        conditions.append("created_at >= %s")
        params.append(filters.created_after)
    if filters.created_before:
        conditions.append("created_at <= %s")
        params.append(filters.created_before)

    where = " AND ".join(conditions) if conditions else "true"
    return where, params


def list_reservations(
    cur: PgCursor,
    filters: ReservationFilters,
    *,
    offset: int,
    limit: int,
) -> tuple[list[Reservation], int]:
    """Page of reservations (newest first) plus the total matching count."""
    where, params = _filter_clause(filters)

    cur.execute(f"SELECT count(*) FROM reservations WHERE {where}", params)
    total = cur.fetchone()[0]

    cur.execute(
        f"""
        SELECT {_RESERVATION_COLUMNS}
        FROM reservations
        WHERE {where}
        ORDER BY created_at DESC, id
        LIMIT %s OFFSET %s
        """,
        [*params, limit, offset],
    )
    return [_row_to_reservation(row) for row in cur.fetchall()], total


def stats_rows(
    cur: PgCursor,
    *,
    created_after: datetime | None,
    created_before: datetime | None,
) -> tuple[list[tuple], list[tuple]]:
    """Aggregates for the stats view.

    Returns:
        (rows of (status, count, sum_total_cents), rows of (priority, count))
    """
    where, params = _filter_clause(
        ReservationFilters(created_after=created_after, created_before=created_before)
    )
    cur.execute(
        f"""
        SELECT status, count(*), COALESCE(sum(total_cents), 0)::bigint
        FROM reservations
        WHERE {where}
        GROUP BY status
        ORDER BY status
        """,
        params,
    )
    by_status = cur.fetchall()
    cur.execute(
        f"""
        SELECT priority, count(*)
        FROM reservations
        WHERE {where}
        GROUP BY priority
        ORDER BY priority
        """,
        params,
    )
    return by_status, cur.fetchall()
