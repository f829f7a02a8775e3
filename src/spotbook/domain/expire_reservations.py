"""Expiration sweeper - reclaims inventory from stale holds.

Every reservation is expired in its own transaction. The claim is a single
guarded UPDATE (status still held, deadline passed), so concurrent sweepers
never release the same reservation twice: the loser sees zero rows and moves
on. A failure on one reservation is logged and counted, and the sweep goes on.
"""

from __future__ import annotations

from psycopg2.extensions import connection as PgConnection, cursor as PgCursor

from spotbook.domain import ledger
from spotbook.domain.models import ItemStatus, ReservationStatus, SweepResult
from spotbook.infra.db import get_conn
from spotbook.infra.repositories import reservations_repository
from spotbook.infra.settings import get_settings
from spotbook.infra.tenants import list_active_tenants, tenant_txn
from spotbook.observability.logging import get_logger
from spotbook.observability.redaction import safe_log_context

logger = get_logger(__name__)

EXPIRED_REASON = "hold expired"
SYSTEM_ACTOR = "system"


def expire_reservation(cur: PgCursor, reservation_id: str) -> bool:
    """Expire one reservation and release its spots.

    Returns:
        True if this call expired it, False if it was no longer a held
        reservation past its deadline (another sweeper won, or it was
        confirmed or cancelled meanwhile).

    Raises:
        InventoryConsistencyError: If a slot no longer holds the reserved spot.
    """
    if not reservations_repository.claim_expired(cur, reservation_id=reservation_id):
        return False

    for item in reservations_repository.list_items(cur, reservation_id):
        ledger.release(cur, item.slot_id)

    reservations_repository.set_items_status(
        cur, reservation_id=reservation_id, status=ItemStatus.RELEASED.value
    )
    reservations_repository.insert_status_history(
        cur,
        reservation_id=reservation_id,
        from_status=ReservationStatus.HELD.value,
        to_status=ReservationStatus.EXPIRED.value,
        reason=EXPIRED_REASON,
        changed_by=SYSTEM_ACTOR,
    )
    return True


def run_expiration_sweep(
    tenant_id: str,
    *,
    batch_size: int | None = None,
    conn: PgConnection | None = None,
) -> SweepResult:
    """Expire every held reservation of a tenant whose deadline has passed.

    Idempotent and safe to run from several workers at once.

    Args:
        tenant_id: Tenant to sweep.
        batch_size: Max reservations considered (default SWEEP_BATCH_SIZE).
        conn: Optional existing connection, reused for every transaction.

    Returns:
        SweepResult with expired and failed counts.
    """
    if batch_size is None:
        batch_size = get_settings().sweep_batch_size

    owns_conn = conn is None
    if owns_conn:
        conn = get_conn()

    expired = 0
    failed = 0
    try:
        with tenant_txn(tenant_id, conn) as cur:
            candidates = reservations_repository.select_expired_ids(cur, limit=batch_size)

        for reservation_id in candidates:
            try:
                with tenant_txn(tenant_id, conn) as cur:
                    if expire_reservation(cur, reservation_id):
                        expired += 1
            except Exception:
                failed += 1
                logger.exception(
                    "reservation expiry failed",
                    extra={
                        "extra_fields": safe_log_context(reservation_id=reservation_id)
                    },
                )
    finally:
        if owns_conn:
            conn.close()

    if candidates:
        logger.info(
            "expiration sweep finished",
            extra={
                "extra_fields": safe_log_context(
                    candidates=len(candidates),
                    expired_count=expired,
                    failed_count=failed,
                )
            },
        )
    return SweepResult(expired_count=expired, failed_count=failed)


def run_expiration_sweep_all(*, batch_size: int | None = None) -> dict[str, SweepResult]:
    """Sweep every active tenant in the registry.

    A tenant whose sweep cannot even start (schema missing, connection lost)
    is logged and reported with failed_count=1; the other tenants still run.
    """
    results: dict[str, SweepResult] = {}
    conn = get_conn()
    try:
        tenant_ids = list_active_tenants(conn)
        for tenant_id in tenant_ids:
            try:
                results[tenant_id] = run_expiration_sweep(
                    tenant_id, batch_size=batch_size, conn=conn
                )
            except Exception:
                logger.exception(
                    "tenant expiration sweep failed",
                    extra={"extra_fields": safe_log_context(tenant_id=tenant_id)},
                )
                results[tenant_id] = SweepResult(failed_count=1)
    finally:
        conn.close()
    return results
