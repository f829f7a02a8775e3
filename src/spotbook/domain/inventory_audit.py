"""Inventory reads and the read-only counter audit.

The audit compares each slot's counters with what the reservation and order
rows imply. It reports, it never corrects: a discrepancy means a bug or a
manual edit, and fixing it needs a human.
"""

from psycopg2.extensions import connection as PgConnection

from spotbook.domain.errors import SlotNotFoundError
from spotbook.domain.models import (
    InventoryAuditReport,
    InventorySlot,
    SlotDiscrepancy,
    is_valid_id,
)
from spotbook.infra.repositories import inventory_repository
from spotbook.infra.tenants import tenant_txn
from spotbook.observability.logging import get_logger
from spotbook.observability.redaction import safe_log_context

logger = get_logger(__name__)

PROBLEM_UNBALANCED = "counters_unbalanced"
PROBLEM_NEGATIVE = "negative_counter"
PROBLEM_RESERVED = "reserved_mismatch"
PROBLEM_BOOKED = "booked_mismatch"


def get_slot(tenant_id: str, slot_id: str, *, conn: PgConnection | None = None) -> InventorySlot:
    """Read the current counters of one slot.

    Raises:
        SlotNotFoundError: If the slot does not exist.
    """
    if not is_valid_id(slot_id):
        raise SlotNotFoundError(slot_id=slot_id)
    with tenant_txn(tenant_id, conn) as cur:
        slot = inventory_repository.get_slot(cur, slot_id)
    if slot is None:
        raise SlotNotFoundError(slot_id=slot_id)
    return slot


def _check_slot(row: tuple) -> list[SlotDiscrepancy]:
    (
        slot_id,
        show_id,
        air_date,
        placement_type,
        total,
        available,
        reserved,
        booked,
        held_items,
        booked_items,
    ) = row

    def discrepancy(problem: str, expected: int, actual: int) -> SlotDiscrepancy:
        return SlotDiscrepancy(
            slot_id=str(slot_id),
            show_id=show_id,
            air_date=air_date,
            placement_type=placement_type,
            problem=problem,
            expected=expected,
            actual=actual,
        )

    found = []
    if min(available, reserved, booked) < 0:
        found.append(discrepancy(PROBLEM_NEGATIVE, 0, min(available, reserved, booked)))
    if available + reserved + booked != total:
        found.append(discrepancy(PROBLEM_UNBALANCED, total, available + reserved + booked))
    if reserved != held_items:
        found.append(discrepancy(PROBLEM_RESERVED, held_items, reserved))
    if booked != booked_items:
        found.append(discrepancy(PROBLEM_BOOKED, booked_items, booked))
    return found


def audit_inventory(
    tenant_id: str, *, conn: PgConnection | None = None
) -> InventoryAuditReport:
    """Check every slot of a tenant against its reservation and order rows.

    reserved_spots must equal the held items of held reservations,
    booked_spots the booked order items, and the four counters must balance.
    """
    with tenant_txn(tenant_id, conn) as cur:
        rows = inventory_repository.slot_usage_rows(cur)

    discrepancies = [d for row in rows for d in _check_slot(row)]
    if discrepancies:
        logger.warning(
            "inventory audit found discrepancies",
            extra={
                "extra_fields": safe_log_context(
                    slots_checked=len(rows),
                    discrepancies=len(discrepancies),
                    slot_ids=sorted({d.slot_id for d in discrepancies}),
                )
            },
        )
    return InventoryAuditReport(slots_checked=len(rows), discrepancies=discrepancies)
