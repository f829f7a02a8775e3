"""Reservation engine error taxonomy.

Every engine failure is a ReservationError carrying a stable machine `code`
and a `details` dict that names the entity involved, so callers can tell the
user exactly which requested spot failed. Raising any of these inside a
transaction rolls the whole operation back.

Requested items are identified by `item_position`, their 1-based position in
the hold request.
"""

from __future__ import annotations

from datetime import date
from typing import Any


class ReservationError(Exception):
    """Base class for all engine errors."""

    code = "reservation_error"

    def __init__(self, message: str, **details: Any) -> None:
        self.message = message
        self.details = details
        super().__init__(message)


class NotFoundError(ReservationError):
    code = "not_found"


class TenantNotFoundError(NotFoundError):
    code = "tenant_not_found"

    def __init__(self, tenant_id: str) -> None:
        super().__init__(f"Tenant {tenant_id} not found", tenant_id=tenant_id)


class ReservationNotFoundError(NotFoundError):
    code = "reservation_not_found"

    def __init__(self, reservation_id: str) -> None:
        super().__init__(
            f"Reservation {reservation_id} not found", reservation_id=reservation_id
        )


class OrderNotFoundError(NotFoundError):
    code = "order_not_found"

    def __init__(self, order_id: str) -> None:
        super().__init__(f"Order {order_id} not found", order_id=order_id)


class SlotNotFoundError(NotFoundError):
    """No inventory slot is provisioned for a requested (show, date, placement)."""

    code = "slot_not_found"

    def __init__(
        self,
        *,
        show_id: str | None = None,
        air_date: date | None = None,
        placement_type: str | None = None,
        item_position: int | None = None,
        slot_id: str | None = None,
    ) -> None:
        if slot_id is not None and show_id is None:
            message = f"Inventory slot {slot_id} not found"
        else:
            message = (
                f"No inventory for show {show_id} on "
                f"{air_date.isoformat() if air_date else None} for {placement_type}"
            )
        super().__init__(
            message,
            item_position=item_position,
            slot_id=slot_id,
            show_id=show_id,
            air_date=air_date.isoformat() if air_date else None,
            placement_type=placement_type,
        )


class InsufficientInventoryError(ReservationError):
    """A slot had fewer available spots than requested.

    Raised by the ledger with only the slot id; the hold flow re-raises it
    with the position and identity of the requested item.
    """

    code = "insufficient_inventory"

    def __init__(
        self,
        slot_id: str,
        *,
        requested: int = 1,
        item_position: int | None = None,
        show_id: str | None = None,
        air_date: date | None = None,
        placement_type: str | None = None,
    ) -> None:
        self.slot_id = slot_id
        self.item_position = item_position
        if item_position is None:
            message = f"Insufficient inventory in slot {slot_id}"
        else:
            message = (
                f"Item {item_position} unavailable: no spots left for show {show_id} "
                f"on {air_date.isoformat() if air_date else None} for {placement_type}"
            )
        super().__init__(
            message,
            slot_id=slot_id,
            requested=requested,
            item_position=item_position,
            show_id=show_id,
            air_date=air_date.isoformat() if air_date else None,
            placement_type=placement_type,
        )


class InvalidStateTransitionError(ReservationError):
    """An operation was attempted in a status that does not allow it."""

    code = "invalid_state_transition"

    def __init__(self, entity: str, entity_id: str, current: str, action: str) -> None:
        self.current = current
        self.action = action
        super().__init__(
            f"Cannot {action} {entity} {entity_id} in status {current}",
            entity=entity,
            entity_id=entity_id,
            current_status=current,
            action=action,
        )


class ReservationExpiredError(ReservationError):
    code = "reservation_expired"

    def __init__(self, reservation_id: str) -> None:
        super().__init__(
            f"Reservation {reservation_id} has expired", reservation_id=reservation_id
        )


class InventoryConsistencyError(ReservationError):
    """A ledger guard failed where the engine's own bookkeeping says it cannot.

    Always fatal for the operation; never corrected automatically.
    """

    code = "inventory_inconsistency"
