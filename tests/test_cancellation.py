"""Tests for reservation and order cancellation (requires Postgres)."""

import pytest

from spotbook.domain.cancellation import (
    DEFAULT_CANCEL_REASON,
    cancel_order,
    cancel_reservation,
    get_order,
    get_order_for_reservation,
)
from spotbook.domain.confirm_reservation import confirm_reservation
from spotbook.domain.errors import (
    InvalidStateTransitionError,
    OrderNotFoundError,
    ReservationNotFoundError,
)
from spotbook.domain.models import (
    ItemStatus,
    OrderItemStatus,
    OrderStatus,
    ReservationStatus,
)
from spotbook.domain.reservations import create_reservation, get_reservation
from tests.helpers import hold_request, item, seed_slot, slot_counters


class TestCancelReservation:
    def test_cancel_releases_every_slot(self, tenant_id):
        slot_a = seed_slot(tenant_id, show_id="show-a")
        slot_b = seed_slot(tenant_id, show_id="show-b")
        reservation = create_reservation(
            tenant_id,
            "user-1",
            hold_request(item(show_id="show-a"), item(show_id="show-b")),
        )

        cancelled = cancel_reservation(tenant_id, "user-2", reservation.id, "client dropped")

        assert cancelled.status == ReservationStatus.CANCELLED
        assert cancelled.cancelled_by == "user-2"
        assert cancelled.cancelled_at is not None
        assert all(i.status == ItemStatus.RELEASED for i in cancelled.items)
        latest = cancelled.history[0]
        assert latest.from_status == ReservationStatus.HELD
        assert latest.to_status == ReservationStatus.CANCELLED
        assert latest.reason == "client dropped"
        for slot_id in (slot_a, slot_b):
            assert slot_counters(tenant_id, slot_id) == {
                "total": 1, "available": 1, "reserved": 0, "booked": 0,
            }

    def test_default_reason(self, tenant_id):
        seed_slot(tenant_id)
        reservation = create_reservation(tenant_id, "user-1", hold_request(item()))

        cancelled = cancel_reservation(tenant_id, "user-1", reservation.id)

        assert cancelled.history[0].reason == DEFAULT_CANCEL_REASON

    def test_second_cancel_rejected(self, tenant_id):
        slot_id = seed_slot(tenant_id)
        reservation = create_reservation(tenant_id, "user-1", hold_request(item()))
        cancel_reservation(tenant_id, "user-1", reservation.id)

        with pytest.raises(InvalidStateTransitionError):
            cancel_reservation(tenant_id, "user-1", reservation.id)

        assert slot_counters(tenant_id, slot_id)["available"] == 1

    def test_cancel_confirmed_rejected(self, tenant_id):
        seed_slot(tenant_id)
        reservation = create_reservation(tenant_id, "user-1", hold_request(item()))
        confirm_reservation(tenant_id, "user-1", reservation.id)

        with pytest.raises(InvalidStateTransitionError):
            cancel_reservation(tenant_id, "user-1", reservation.id)

    def test_cancel_unknown(self, tenant_id):
        with pytest.raises(ReservationNotFoundError):
            cancel_reservation(tenant_id, "user-1", "0e5c1a7b-0000-4000-8000-000000000000")


class TestCancelOrder:
    def test_cancel_order_unbooks_spots(self, tenant_id):
        slot_id = seed_slot(tenant_id, total=2)
        reservation = create_reservation(tenant_id, "user-1", hold_request(item()))
        order = confirm_reservation(tenant_id, "user-1", reservation.id).order

        cancelled = cancel_order(tenant_id, "user-3", order.id, "campaign pulled")

        assert cancelled.status == OrderStatus.CANCELLED
        assert cancelled.cancelled_by == "user-3"
        assert all(i.status == OrderItemStatus.CANCELLED for i in cancelled.items)
        assert slot_counters(tenant_id, slot_id) == {
            "total": 2, "available": 2, "reserved": 0, "booked": 0,
        }
        # terminal reservation state is untouched
        assert get_reservation(tenant_id, reservation.id).status == ReservationStatus.CONFIRMED

    def test_cancel_order_twice_rejected(self, tenant_id):
        slot_id = seed_slot(tenant_id)
        reservation = create_reservation(tenant_id, "user-1", hold_request(item()))
        order = confirm_reservation(tenant_id, "user-1", reservation.id).order
        cancel_order(tenant_id, "user-1", order.id)

        with pytest.raises(InvalidStateTransitionError):
            cancel_order(tenant_id, "user-1", order.id)

        assert slot_counters(tenant_id, slot_id)["available"] == 1

    def test_get_order(self, tenant_id):
        seed_slot(tenant_id)
        reservation = create_reservation(tenant_id, "user-1", hold_request(item()))
        order = confirm_reservation(tenant_id, "user-1", reservation.id).order

        assert get_order(tenant_id, order.id).order_number == order.order_number
        assert get_order_for_reservation(tenant_id, reservation.id).id == order.id

        with pytest.raises(OrderNotFoundError):
            get_order(tenant_id, "not-a-uuid")
