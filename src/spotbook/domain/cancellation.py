"""Cancellation domain logic - reservations and orders.

Cancelling a held reservation releases its reserved spots; cancelling a
draft order unbooks its booked spots. Each runs in one tenant transaction:
lock → validate → move inventory → flip status → history.
"""

from psycopg2.extensions import connection as PgConnection

from spotbook.domain import ledger
from spotbook.domain.errors import (
    InventoryConsistencyError,
    InvalidStateTransitionError,
    OrderNotFoundError,
    ReservationNotFoundError,
)
from spotbook.domain.models import (
    ItemStatus,
    Order,
    OrderItemStatus,
    OrderStatus,
    Reservation,
    ReservationStatus,
    TERMINAL_STATUSES,
    is_valid_id,
)
from spotbook.domain.reservations import load_reservation_details
from spotbook.infra.repositories import orders_repository, reservations_repository
from spotbook.infra.tenants import tenant_txn
from spotbook.observability.logging import get_logger
from spotbook.observability.redaction import safe_log_context

logger = get_logger(__name__)

DEFAULT_CANCEL_REASON = "Reservation cancelled by user"


def cancel_reservation(
    tenant_id: str,
    actor_id: str,
    reservation_id: str,
    reason: str | None = None,
    *,
    conn: PgConnection | None = None,
) -> Reservation:
    """Cancel a held reservation and release its spots.

    Raises:
        ReservationNotFoundError: If the reservation does not exist.
        InvalidStateTransitionError: If the reservation is not held.
        InventoryConsistencyError: If a slot no longer holds the reserved spot.
    """
    if not is_valid_id(reservation_id):
        raise ReservationNotFoundError(reservation_id)
    reason = reason or DEFAULT_CANCEL_REASON

    with tenant_txn(tenant_id, conn) as cur:
        reservation = reservations_repository.lock_reservation(cur, reservation_id)
        if reservation is None:
            raise ReservationNotFoundError(reservation_id)
        if reservation.status in TERMINAL_STATUSES:
            raise InvalidStateTransitionError(
                "reservation", reservation_id, reservation.status.value, "cancel"
            )

        items = reservations_repository.list_items(cur, reservation_id)
        for item in items:
            ledger.release(cur, item.slot_id)

        if not reservations_repository.mark_cancelled(
            cur, reservation_id=reservation_id, cancelled_by=actor_id
        ):
            raise InventoryConsistencyError(
                f"Reservation {reservation_id} left held state while locked",
                reservation_id=reservation_id,
            )
        reservations_repository.set_items_status(
            cur, reservation_id=reservation_id, status=ItemStatus.RELEASED.value
        )
        reservations_repository.insert_status_history(
            cur,
            reservation_id=reservation_id,
            from_status=ReservationStatus.HELD.value,
            to_status=ReservationStatus.CANCELLED.value,
            reason=reason,
            changed_by=actor_id,
        )
        cancelled = load_reservation_details(cur, reservation_id)

    logger.info(
        "reservation cancelled",
        extra={
            "extra_fields": safe_log_context(
                reservation_id=reservation_id,
                items_released=len(items),
                reason=reason,
            )
        },
    )
    return cancelled


def cancel_order(
    tenant_id: str,
    actor_id: str,
    order_id: str,
    reason: str | None = None,
    *,
    conn: PgConnection | None = None,
) -> Order:
    """Cancel a draft order and return its booked spots to availability.

    The originating reservation stays confirmed.

    Raises:
        OrderNotFoundError: If the order does not exist.
        InvalidStateTransitionError: If the order is not a draft.
        InventoryConsistencyError: If a slot no longer holds the booked spot.
    """
    if not is_valid_id(order_id):
        raise OrderNotFoundError(order_id)

    with tenant_txn(tenant_id, conn) as cur:
        order = orders_repository.lock_order(cur, order_id)
        if order is None:
            raise OrderNotFoundError(order_id)
        if order.status != OrderStatus.DRAFT:
            raise InvalidStateTransitionError("order", order_id, order.status.value, "cancel")

        items = orders_repository.list_order_items(cur, order_id)
        booked = [item for item in items if item.status == OrderItemStatus.BOOKED]
        for item in booked:
            ledger.unbook(cur, item.slot_id)

        orders_repository.cancel_order_items(cur, order_id=order_id)
        if not orders_repository.mark_order_cancelled(
            cur, order_id=order_id, cancelled_by=actor_id
        ):
            raise InventoryConsistencyError(
                f"Order {order_id} left draft state while locked", order_id=order_id
            )
        cancelled = orders_repository.get_order(cur, order_id)
        cancelled.items = orders_repository.list_order_items(cur, order_id)

    logger.info(
        "order cancelled",
        extra={
            "extra_fields": safe_log_context(
                order_id=order_id,
                order_number=order.order_number,
                items_unbooked=len(booked),
                reason=reason,
            )
        },
    )
    return cancelled


def get_order(tenant_id: str, order_id: str, *, conn: PgConnection | None = None) -> Order:
    """Read an order with its items.

    Raises:
        OrderNotFoundError: If the order does not exist.
    """
    if not is_valid_id(order_id):
        raise OrderNotFoundError(order_id)
    with tenant_txn(tenant_id, conn) as cur:
        order = orders_repository.get_order(cur, order_id)
        if order is None:
            raise OrderNotFoundError(order_id)
        order.items = orders_repository.list_order_items(cur, order_id)
    return order


def get_order_for_reservation(
    tenant_id: str, reservation_id: str, *, conn: PgConnection | None = None
) -> Order:
    """Read the order created when a reservation was confirmed.

    Raises:
        OrderNotFoundError: If the reservation has no order.
    """
    if not is_valid_id(reservation_id):
        raise OrderNotFoundError(reservation_id)
    with tenant_txn(tenant_id, conn) as cur:
        order = orders_repository.get_order_by_reservation(cur, reservation_id)
        if order is None:
            raise OrderNotFoundError(reservation_id)
        order.items = orders_repository.list_order_items(cur, order.id)
    return order
