"""Order conversion - materializes a confirmed reservation into an order.

Runs inside the confirm transaction, after every item has been booked, so a
failure here also undoes the ledger moves.
"""

from psycopg2.extensions import cursor as PgCursor

from spotbook.domain.models import Order, Reservation, ReservationItem
from spotbook.infra.db import db_now
from spotbook.infra.repositories import orders_repository


def convert_reservation(
    cur: PgCursor,
    reservation: Reservation,
    items: list[ReservationItem],
    actor_id: str,
    *,
    notes: str | None = None,
) -> Order:
    """Create the draft order for a reservation.

    The order number comes from the tenant's per-year sequence, using the
    year of the database clock. Order items copy rate, length and placement
    from the reservation items verbatim.

    Args:
        cur: Cursor of the tenant-scoped confirm transaction.
        reservation: Reservation being confirmed.
        items: Its items, in slot-id order.
        actor_id: User confirming the reservation.
        notes: Optional order notes (defaults to the reservation notes).

    Returns:
        The inserted order with its items.
    """
    order_number = orders_repository.next_order_number(cur, year=db_now(cur).year)
    order = orders_repository.insert_order(
        cur,
        organization_id=reservation.organization_id,
        reservation_id=reservation.id,
        order_number=order_number,
        advertiser_id=reservation.advertiser_id,
        agency_id=reservation.agency_id,
        campaign_id=reservation.campaign_id,
        total_cents=reservation.total_cents,
        discount_cents=0,
        net_cents=reservation.total_cents,
        notes=notes if notes is not None else reservation.notes,
        created_by=actor_id,
    )
    order.items = [
        orders_repository.insert_order_item(
            cur,
            order_id=order.id,
            reservation_item_id=item.id,
            slot_id=item.slot_id,
            show_id=item.show_id,
            episode_id=item.episode_id,
            air_date=item.air_date,
            placement_type=item.placement_type,
            length_seconds=item.length_seconds,
            rate_cents=item.rate_cents,
            notes=item.notes,
        )
        for item in items
    ]
    return order
