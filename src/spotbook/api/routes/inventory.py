"""Inventory read endpoints: slot counters and the counter audit."""

from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, Depends, Path

from spotbook.api.context import RequestContext, get_request_context
from spotbook.api.errors import http_error
from spotbook.domain import inventory_audit
from spotbook.domain.errors import ReservationError

router = APIRouter(prefix="/inventory", tags=["inventory"])


@router.get("/slots/{slot_id}")
def get_slot(
    slot_id: str = Path(..., description="Inventory slot UUID"),
    ctx: RequestContext = Depends(get_request_context),
) -> dict:
    try:
        slot = inventory_audit.get_slot(ctx.tenant_id, slot_id)
    except ReservationError as exc:
        raise http_error(exc) from exc
    return {**asdict(slot), "is_balanced": slot.is_balanced}


@router.get("/audit")
def audit(ctx: RequestContext = Depends(get_request_context)) -> dict:
    """Report slots whose counters disagree with reservations and orders.

    Read-only; nothing is corrected.
    """
    try:
        report = inventory_audit.audit_inventory(ctx.tenant_id)
    except ReservationError as exc:
        raise http_error(exc) from exc
    return {**asdict(report), "ok": report.ok}
