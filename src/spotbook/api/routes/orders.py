"""Order endpoints."""

from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, Depends, Path
from pydantic import BaseModel

from spotbook.api.context import RequestContext, get_request_context
from spotbook.api.errors import http_error
from spotbook.domain import cancellation
from spotbook.domain.errors import ReservationError


class CancelOrderBody(BaseModel):
    reason: str | None = None


router = APIRouter(prefix="/orders", tags=["orders"])


@router.get("/{order_id}")
def get_order(
    order_id: str = Path(..., description="Order UUID"),
    ctx: RequestContext = Depends(get_request_context),
) -> dict:
    try:
        order = cancellation.get_order(ctx.tenant_id, order_id)
    except ReservationError as exc:
        raise http_error(exc) from exc
    return asdict(order)


@router.post("/{order_id}/actions/cancel")
def cancel_order(
    body: CancelOrderBody | None = None,
    order_id: str = Path(..., description="Order UUID"),
    ctx: RequestContext = Depends(get_request_context),
) -> dict:
    """Cancel a draft order; its booked spots become available again."""
    try:
        order = cancellation.cancel_order(
            ctx.tenant_id, ctx.actor_id, order_id, body.reason if body else None
        )
    except ReservationError as exc:
        raise http_error(exc) from exc
    return asdict(order)
