"""Confirm reservation domain logic - held spots become a booked order.

All work happens in one tenant transaction:
lock → validate → book every item → create order → flip status → history.
"""

from psycopg2.extensions import connection as PgConnection

from spotbook.domain import ledger
from spotbook.domain.convert_reservation import convert_reservation
from spotbook.domain.errors import (
    InventoryConsistencyError,
    InvalidStateTransitionError,
    ReservationExpiredError,
    ReservationNotFoundError,
)
from spotbook.domain.models import (
    ConfirmResult,
    ItemStatus,
    ReservationStatus,
    is_valid_id,
)
from spotbook.domain.reservations import load_reservation_details
from spotbook.infra.db import db_now
from spotbook.infra.repositories import orders_repository, reservations_repository
from spotbook.infra.tenants import tenant_txn
from spotbook.observability.logging import get_logger
from spotbook.observability.redaction import safe_log_context

logger = get_logger(__name__)

CONFIRMED_REASON = "Reservation confirmed"


def confirm_reservation(
    tenant_id: str,
    actor_id: str,
    reservation_id: str,
    *,
    conn: PgConnection | None = None,
) -> ConfirmResult:
    """Confirm a held reservation and create its order.

    Confirming a reservation that is already confirmed returns the existing
    reservation and order unchanged, so client retries are safe.

    Raises:
        ReservationNotFoundError: If the reservation does not exist.
        ReservationExpiredError: If it expired or its deadline has passed.
        InvalidStateTransitionError: If it was cancelled.
        InventoryConsistencyError: If a slot no longer holds the reserved spot.
    """
    if not is_valid_id(reservation_id):
        raise ReservationNotFoundError(reservation_id)

    with tenant_txn(tenant_id, conn) as cur:
        reservation = reservations_repository.lock_reservation(cur, reservation_id)
        if reservation is None:
            raise ReservationNotFoundError(reservation_id)

        if reservation.status == ReservationStatus.CONFIRMED:
            order = orders_repository.get_order_by_reservation(cur, reservation_id)
            if order is None:
                raise InventoryConsistencyError(
                    f"Confirmed reservation {reservation_id} has no order",
                    reservation_id=reservation_id,
                )
            order.items = orders_repository.list_order_items(cur, order.id)
            return ConfirmResult(
                reservation=load_reservation_details(cur, reservation_id), order=order
            )

        if reservation.status == ReservationStatus.EXPIRED:
            raise ReservationExpiredError(reservation_id)
        if reservation.status != ReservationStatus.HELD:
            raise InvalidStateTransitionError(
                "reservation", reservation_id, reservation.status.value, "confirm"
            )
        if reservation.expires_at < db_now(cur):
            # The sweeper has not reached it yet; it will release the spots.
            raise ReservationExpiredError(reservation_id)

        items = reservations_repository.list_items(cur, reservation_id)
        for item in items:
            ledger.book(cur, item.slot_id)

        order = convert_reservation(cur, reservation, items, actor_id)

        if not reservations_repository.mark_confirmed(
            cur, reservation_id=reservation_id, confirmed_by=actor_id
        ):
            raise InventoryConsistencyError(
                f"Reservation {reservation_id} left held state while locked",
                reservation_id=reservation_id,
            )
        reservations_repository.set_items_status(
            cur, reservation_id=reservation_id, status=ItemStatus.CONFIRMED.value
        )
        reservations_repository.insert_status_history(
            cur,
            reservation_id=reservation_id,
            from_status=ReservationStatus.HELD.value,
            to_status=ReservationStatus.CONFIRMED.value,
            reason=CONFIRMED_REASON,
            notes=f"Order created: {order.order_number}",
            changed_by=actor_id,
        )
        confirmed = load_reservation_details(cur, reservation_id)

    logger.info(
        "reservation confirmed",
        extra={
            "extra_fields": safe_log_context(
                reservation_id=reservation_id,
                order_id=order.id,
                order_number=order.order_number,
                items=len(order.items),
            )
        },
    )
    return ConfirmResult(reservation=confirmed, order=order)
