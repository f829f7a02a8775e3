"""Reservation domain logic - hold creation, updates and reads.

A hold reserves one spot per requested item inside a single transaction:
every item's slot is resolved first, then reserved in ascending slot-id
order. The first slot that cannot be reserved aborts the transaction, so no
earlier reserve survives a failed request.
"""

from __future__ import annotations

import math
from datetime import datetime
from typing import Any

from psycopg2.extensions import connection as PgConnection, cursor as PgCursor

from spotbook.domain import ledger
from spotbook.domain.errors import (
    InsufficientInventoryError,
    InvalidStateTransitionError,
    ReservationNotFoundError,
    SlotNotFoundError,
)
from spotbook.domain.models import (
    CreateReservationRequest,
    InventorySlot,
    ItemRequest,
    Pagination,
    Priority,
    PriorityBreakdown,
    Reservation,
    ReservationFilters,
    ReservationPage,
    ReservationStats,
    ReservationStatus,
    StatusBreakdown,
    TERMINAL_STATUSES,
    is_valid_id,
)
from spotbook.infra.repositories import inventory_repository, reservations_repository
from spotbook.infra.settings import get_settings
from spotbook.infra.tenants import tenant_txn
from spotbook.observability.logging import get_logger
from spotbook.observability.redaction import safe_log_context

logger = get_logger(__name__)

MAX_PAGE_SIZE = 100
DEFAULT_PAGE_SIZE = 20

CREATED_REASON = "Reservation created"

PATCHABLE_FIELDS = frozenset({"campaign_id", "priority", "notes", "hold_duration_hours"})


def _validate_item(position: int, item: ItemRequest) -> None:
    if not item.show_id:
        raise ValueError(f"item {position}: show_id is required")
    if not item.placement_type:
        raise ValueError(f"item {position}: placement_type is required")
    if item.length_seconds <= 0:
        raise ValueError(f"item {position}: length_seconds must be positive")
    if item.rate_cents < 0:
        raise ValueError(f"item {position}: rate_cents cannot be negative")


def _validate_hold_hours(hours: Any, max_hours: int | None = None) -> int:
    if hours is None:
        raise ValueError("hold_duration_hours cannot be null")
    if isinstance(hours, bool) or not isinstance(hours, int):
        raise ValueError("hold_duration_hours must be an integer")
    if hours <= 0:
        raise ValueError("hold_duration_hours must be positive")
    if max_hours is not None and hours > max_hours:
        raise ValueError(f"hold_duration_hours cannot exceed {max_hours}")
    return hours


def _resolve_slots(
    cur: PgCursor, organization_id: str, items: list[ItemRequest]
) -> list[tuple[int, ItemRequest, InventorySlot]]:
    resolved = []
    for position, item in enumerate(items, start=1):
        slot = inventory_repository.find_slot(
            cur,
            organization_id=organization_id,
            show_id=item.show_id,
            air_date=item.air_date,
            placement_type=item.placement_type,
        )
        if slot is None:
            raise SlotNotFoundError(
                show_id=item.show_id,
                air_date=item.air_date,
                placement_type=item.placement_type,
                item_position=position,
            )
        resolved.append((position, item, slot))
    return resolved


def load_reservation_details(cur: PgCursor, reservation_id: str) -> Reservation:
    """Read a reservation with its items (air date ascending) and history.

    Raises:
        ReservationNotFoundError: If the reservation does not exist.
    """
    reservation = reservations_repository.get_reservation(cur, reservation_id)
    if reservation is None:
        raise ReservationNotFoundError(reservation_id)
    reservation.items = reservations_repository.list_items_for(cur, [reservation_id])[
        reservation_id
    ]
    reservation.history = reservations_repository.list_status_history(cur, reservation_id)
    return reservation


def create_reservation(
    tenant_id: str,
    actor_id: str,
    request: CreateReservationRequest,
    *,
    conn: PgConnection | None = None,
) -> Reservation:
    """Place a hold on one spot per requested item.

    Args:
        tenant_id: Tenant whose inventory is held.
        actor_id: User placing the hold.
        request: Advertiser, items and hold options. A missing
            hold_duration_hours falls back to RESERVATION_DEFAULT_HOLD_HOURS.
        conn: Optional existing connection.

    Returns:
        The held reservation with its items and creation history.

    Raises:
        ValueError: If the request is malformed.
        SlotNotFoundError: If an item has no provisioned slot.
        InsufficientInventoryError: If an item's slot is sold out. details
            carry the item position, show, air date and placement.
    """
    if not request.advertiser_id:
        raise ValueError("advertiser_id is required")
    if not request.items:
        raise ValueError("a reservation needs at least one item")
    for position, item in enumerate(request.items, start=1):
        _validate_item(position, item)

    hold_hours = request.hold_duration_hours
    if hold_hours is None:
        hold_hours = get_settings().default_hold_hours
    hold_hours = _validate_hold_hours(hold_hours)
    priority = Priority(request.priority)

    with tenant_txn(tenant_id, conn) as cur:
        resolved = _resolve_slots(cur, tenant_id, request.items)

        # Lock order: ascending slot id, so overlapping holds never deadlock.
        for position, item, slot in sorted(resolved, key=lambda r: (r[2].id, r[0])):
            try:
                ledger.reserve(cur, slot.id)
            except InsufficientInventoryError:
                raise InsufficientInventoryError(
                    slot.id,
                    item_position=position,
                    show_id=item.show_id,
                    air_date=item.air_date,
                    placement_type=item.placement_type,
                ) from None

        reservation_id = reservations_repository.insert_reservation(
            cur,
            organization_id=tenant_id,
            advertiser_id=request.advertiser_id,
            agency_id=request.agency_id,
            campaign_id=request.campaign_id,
            hold_duration_hours=hold_hours,
            total_cents=sum(item.rate_cents for item in request.items),
            priority=priority.value,
            source=request.source or "web",
            notes=request.notes,
            created_by=actor_id,
        )
        for _, item, slot in resolved:
            reservations_repository.insert_reservation_item(
                cur,
                reservation_id=reservation_id,
                slot_id=slot.id,
                show_id=item.show_id,
                episode_id=item.episode_id,
                air_date=item.air_date,
                placement_type=item.placement_type,
                spot_number=item.spot_number,
                length_seconds=item.length_seconds,
                rate_cents=item.rate_cents,
                notes=item.notes,
            )
        reservations_repository.insert_status_history(
            cur,
            reservation_id=reservation_id,
            from_status=None,
            to_status=ReservationStatus.HELD.value,
            reason=CREATED_REASON,
            changed_by=actor_id,
        )
        reservation = load_reservation_details(cur, reservation_id)

    logger.info(
        "reservation held",
        extra={
            "extra_fields": safe_log_context(
                reservation_id=reservation.id,
                items=len(reservation.items),
                total_cents=reservation.total_cents,
                hold_duration_hours=hold_hours,
            )
        },
    )
    return reservation


def update_reservation(
    tenant_id: str,
    actor_id: str,
    reservation_id: str,
    patch: dict[str, Any],
    *,
    max_hold_duration_hours: int | None = None,
    conn: PgConnection | None = None,
) -> Reservation:
    """Patch a held reservation.

    Patchable keys: campaign_id, priority, notes, hold_duration_hours. A new
    hold_duration_hours moves expires_at to created_at + hours; it cannot be
    cleared with None.

    Raises:
        ValueError: On unknown keys, a bad priority or hold length.
        ReservationNotFoundError: If the reservation does not exist.
        InvalidStateTransitionError: If the reservation is no longer held.
    """
    unknown = set(patch) - PATCHABLE_FIELDS
    if unknown:
        raise ValueError(f"fields cannot be updated: {', '.join(sorted(unknown))}")

    fields: dict[str, Any] = {}
    if "campaign_id" in patch:
        fields["campaign_id"] = patch["campaign_id"]
    if "notes" in patch:
        fields["notes"] = patch["notes"]
    if "priority" in patch:
        fields["priority"] = Priority(patch["priority"]).value
    hold_hours = None
    if "hold_duration_hours" in patch:
        hold_hours = _validate_hold_hours(
            patch["hold_duration_hours"], max_hold_duration_hours
        )

    if not is_valid_id(reservation_id):
        raise ReservationNotFoundError(reservation_id)

    with tenant_txn(tenant_id, conn) as cur:
        current = reservations_repository.lock_reservation(cur, reservation_id)
        if current is None:
            raise ReservationNotFoundError(reservation_id)
        if current.status in TERMINAL_STATUSES:
            raise InvalidStateTransitionError(
                "reservation", reservation_id, current.status.value, "update"
            )
        if fields or hold_hours is not None:
            reservations_repository.update_fields(
                cur,
                reservation_id=reservation_id,
                fields=fields,
                hold_duration_hours=hold_hours,
            )
        reservation = load_reservation_details(cur, reservation_id)

    logger.info(
        "reservation updated",
        extra={
            "extra_fields": safe_log_context(
                reservation_id=reservation_id,
                actor_id=actor_id,
                fields=sorted(patch),
            )
        },
    )
    return reservation


def get_reservation(
    tenant_id: str, reservation_id: str, *, conn: PgConnection | None = None
) -> Reservation:
    """Read one reservation with items and status history.

    Raises:
        ReservationNotFoundError: If the reservation does not exist.
    """
    if not is_valid_id(reservation_id):
        raise ReservationNotFoundError(reservation_id)
    with tenant_txn(tenant_id, conn) as cur:
        return load_reservation_details(cur, reservation_id)


def list_reservations(
    tenant_id: str,
    filters: ReservationFilters | None = None,
    page: int = 1,
    limit: int = DEFAULT_PAGE_SIZE,
    *,
    conn: PgConnection | None = None,
) -> ReservationPage:
    """List reservations newest first, with their items attached.

    limit is capped at MAX_PAGE_SIZE.

    Raises:
        ValueError: If page or limit is below 1.
    """
    if page < 1:
        raise ValueError("page must be >= 1")
    if limit < 1:
        raise ValueError("limit must be >= 1")
    limit = min(limit, MAX_PAGE_SIZE)

    with tenant_txn(tenant_id, conn) as cur:
        reservations, total = reservations_repository.list_reservations(
            cur,
            filters or ReservationFilters(),
            offset=(page - 1) * limit,
            limit=limit,
        )
        items = reservations_repository.list_items_for(cur, [r.id for r in reservations])

    for reservation in reservations:
        reservation.items = items[reservation.id]

    return ReservationPage(
        items=reservations,
        pagination=Pagination(
            page=page, limit=limit, total=total, pages=math.ceil(total / limit)
        ),
    )


def get_reservation_stats(
    tenant_id: str,
    *,
    created_after: datetime | None = None,
    created_before: datetime | None = None,
    conn: PgConnection | None = None,
) -> ReservationStats:
    """Count reservations per status (with amounts) and per priority."""
    with tenant_txn(tenant_id, conn) as cur:
        by_status, by_priority = reservations_repository.stats_rows(
            cur, created_after=created_after, created_before=created_before
        )

    status_breakdown = [
        StatusBreakdown(status=ReservationStatus(status), count=count, total_cents=amount)
        for status, count, amount in by_status
    ]
    return ReservationStats(
        total_reservations=sum(entry.count for entry in status_breakdown),
        status_breakdown=status_breakdown,
        priority_breakdown=[
            PriorityBreakdown(priority=Priority(priority), count=count)
            for priority, count in by_priority
        ],
    )
