"""Tests for slot reads and the inventory audit."""

from datetime import date

import pytest

from spotbook.domain.cancellation import cancel_reservation
from spotbook.domain.confirm_reservation import confirm_reservation
from spotbook.domain.errors import SlotNotFoundError
from spotbook.domain.inventory_audit import (
    PROBLEM_BOOKED,
    PROBLEM_NEGATIVE,
    PROBLEM_RESERVED,
    PROBLEM_UNBALANCED,
    _check_slot,
    audit_inventory,
    get_slot,
)
from spotbook.domain.reservations import create_reservation
from spotbook.infra.tenants import tenant_txn
from tests.helpers import hold_request, item, seed_slot


def _row(total=2, available=1, reserved=1, booked=0, held_items=1, booked_items=0):
    return (
        "slot-1", "morning-show", date(2026, 3, 2), "pre-roll",
        total, available, reserved, booked, held_items, booked_items,
    )


class TestCheckSlot:
    """Row-level checks - no DB needed."""

    def test_consistent_row(self):
        assert _check_slot(_row()) == []

    def test_unbalanced(self):
        [found] = _check_slot(_row(available=2))
        assert found.problem == PROBLEM_UNBALANCED
        assert (found.expected, found.actual) == (2, 3)

    def test_negative_counter(self):
        problems = {d.problem for d in _check_slot(_row(available=-1, reserved=3, held_items=3))}
        assert problems == {PROBLEM_NEGATIVE}

    def test_reserved_and_booked_mismatch(self):
        found = _check_slot(_row(reserved=0, booked=1, held_items=1, booked_items=0))
        problems = {d.problem: (d.expected, d.actual) for d in found}
        assert problems == {PROBLEM_RESERVED: (1, 0), PROBLEM_BOOKED: (0, 1)}


class TestAuditInventory:
    def test_clean_after_normal_traffic(self, tenant_id):
        seed_slot(tenant_id, total=4)
        create_reservation(tenant_id, "user-1", hold_request(item()))
        confirmed = create_reservation(tenant_id, "user-1", hold_request(item()))
        dropped = create_reservation(tenant_id, "user-1", hold_request(item()))
        confirm_reservation(tenant_id, "user-1", confirmed.id)
        cancel_reservation(tenant_id, "user-1", dropped.id)

        report = audit_inventory(tenant_id)

        assert report.slots_checked == 1
        assert report.ok

    def test_reports_manual_edit(self, tenant_id):
        slot_id = seed_slot(tenant_id, total=2)
        create_reservation(tenant_id, "user-1", hold_request(item()))
        with tenant_txn(tenant_id) as cur:
            cur.execute(
                "UPDATE inventory_slots SET reserved_spots = 2, available_spots = 0 WHERE id = %s",
                (slot_id,),
            )

        report = audit_inventory(tenant_id)

        assert not report.ok
        [found] = report.discrepancies
        assert found.slot_id == slot_id
        assert found.problem == PROBLEM_RESERVED
        assert (found.expected, found.actual) == (1, 2)


class TestGetSlot:
    def test_counters(self, tenant_id):
        slot_id = seed_slot(tenant_id, total=3, reserved=1)
        slot = get_slot(tenant_id, slot_id)
        assert slot.available_spots == 2
        assert slot.is_balanced

    def test_unknown(self, tenant_id):
        with pytest.raises(SlotNotFoundError):
            get_slot(tenant_id, "3b1e2c4d-0000-4000-8000-000000000000")

    def test_malformed_id(self):
        with pytest.raises(SlotNotFoundError):
            get_slot("acme", "not-a-uuid")
