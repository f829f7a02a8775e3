"""Reservation endpoints: hold, read, update, confirm and cancel."""

from __future__ import annotations

from dataclasses import asdict
from datetime import date, datetime

from fastapi import APIRouter, Depends, Path, Query
from pydantic import BaseModel, Field

from spotbook.api.context import RequestContext, get_request_context
from spotbook.api.errors import http_error
from spotbook.domain import cancellation, confirm_reservation, reservations
from spotbook.domain.errors import ReservationError
from spotbook.domain.models import (
    CreateReservationRequest,
    ItemRequest,
    Priority,
    ReservationFilters,
    ReservationStatus,
)
from spotbook.infra.settings import get_settings


class ReservationItemBody(BaseModel):
    show_id: str = Field(..., min_length=1)
    air_date: date
    placement_type: str = Field(..., min_length=1)
    length_seconds: int = Field(..., gt=0)
    rate_cents: int = Field(..., ge=0)
    episode_id: str | None = None
    spot_number: int | None = None
    notes: str | None = None


class CreateReservationBody(BaseModel):
    """Request body for placing a hold."""

    advertiser_id: str = Field(..., min_length=1)
    items: list[ReservationItemBody] = Field(..., min_length=1)
    agency_id: str | None = None
    campaign_id: str | None = None
    hold_duration_hours: int | None = Field(None, gt=0)
    priority: Priority = Priority.NORMAL
    notes: str | None = None
    source: str = "web"


class UpdateReservationBody(BaseModel):
    """Request body for patching a held reservation. Only sent fields change."""

    campaign_id: str | None = None
    priority: Priority | None = None
    notes: str | None = None
    hold_duration_hours: int | None = Field(None, gt=0)


class CancelReservationBody(BaseModel):
    reason: str | None = None


router = APIRouter(prefix="/reservations", tags=["reservations"])


@router.post("", status_code=201)
def create_reservation(
    body: CreateReservationBody,
    ctx: RequestContext = Depends(get_request_context),
) -> dict:
    """Hold one spot per item. 409 names the first item that could not be held."""
    max_hours = get_settings().max_hold_hours
    if body.hold_duration_hours is not None and body.hold_duration_hours > max_hours:
        raise http_error(ValueError(f"hold_duration_hours cannot exceed {max_hours}"))

    request = CreateReservationRequest(
        advertiser_id=body.advertiser_id,
        agency_id=body.agency_id,
        campaign_id=body.campaign_id,
        hold_duration_hours=body.hold_duration_hours,
        priority=body.priority,
        notes=body.notes,
        source=body.source,
        items=[ItemRequest(**item.model_dump()) for item in body.items],
    )
    try:
        reservation = reservations.create_reservation(ctx.tenant_id, ctx.actor_id, request)
    except (ReservationError, ValueError) as exc:
        raise http_error(exc) from exc
    return asdict(reservation)


@router.get("")
def list_reservations(
    ctx: RequestContext = Depends(get_request_context),
    status: list[ReservationStatus] | None = Query(None),
    priority: list[Priority] | None = Query(None),
    advertiser_id: str | None = Query(None),
    campaign_id: str | None = Query(None),
    agency_id: str | None = Query(None),
    created_by: str | None = Query(None),
    expires_after: datetime | None = Query(None),
    expires_before: datetime | None = Query(None),
    created_after: datetime | None = Query(None),
    created_before: datetime | None = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(reservations.DEFAULT_PAGE_SIZE, ge=1, le=reservations.MAX_PAGE_SIZE),
) -> dict:
    """List reservations newest first, with pagination metadata."""
    filters = ReservationFilters(
        status=status,
        priority=priority,
        advertiser_id=advertiser_id,
        campaign_id=campaign_id,
        agency_id=agency_id,
        created_by=created_by,
        expires_after=expires_after,
        expires_before=expires_before,
        created_after=created_after,
        created_before=created_before,
    )
    try:
        result = reservations.list_reservations(ctx.tenant_id, filters, page, limit)
    except (ReservationError, ValueError) as exc:
        raise http_error(exc) from exc
    return asdict(result)


@router.get("/stats")
def reservation_stats(
    ctx: RequestContext = Depends(get_request_context),
    created_after: datetime | None = Query(None),
    created_before: datetime | None = Query(None),
) -> dict:
    try:
        stats = reservations.get_reservation_stats(
            ctx.tenant_id, created_after=created_after, created_before=created_before
        )
    except ReservationError as exc:
        raise http_error(exc) from exc
    return asdict(stats)


@router.get("/{reservation_id}")
def get_reservation(
    reservation_id: str = Path(..., description="Reservation UUID"),
    ctx: RequestContext = Depends(get_request_context),
) -> dict:
    """Get a reservation with its items and status history."""
    try:
        reservation = reservations.get_reservation(ctx.tenant_id, reservation_id)
    except ReservationError as exc:
        raise http_error(exc) from exc
    return asdict(reservation)


@router.get("/{reservation_id}/order")
def get_reservation_order(
    reservation_id: str = Path(..., description="Reservation UUID"),
    ctx: RequestContext = Depends(get_request_context),
) -> dict:
    """Get the order created when the reservation was confirmed."""
    try:
        order = cancellation.get_order_for_reservation(ctx.tenant_id, reservation_id)
    except ReservationError as exc:
        raise http_error(exc) from exc
    return asdict(order)


@router.patch("/{reservation_id}")
def update_reservation(
    body: UpdateReservationBody,
    reservation_id: str = Path(..., description="Reservation UUID"),
    ctx: RequestContext = Depends(get_request_context),
) -> dict:
    """Patch a held reservation. 409 once it has left held."""
    try:
        reservation = reservations.update_reservation(
            ctx.tenant_id,
            ctx.actor_id,
            reservation_id,
            body.model_dump(exclude_unset=True),
            max_hold_duration_hours=get_settings().max_hold_hours,
        )
    except (ReservationError, ValueError) as exc:
        raise http_error(exc) from exc
    return asdict(reservation)


@router.post("/{reservation_id}/actions/confirm")
def confirm(
    reservation_id: str = Path(..., description="Reservation UUID"),
    ctx: RequestContext = Depends(get_request_context),
) -> dict:
    """Confirm a hold into a draft order. Retrying returns the same order."""
    try:
        result = confirm_reservation.confirm_reservation(
            ctx.tenant_id, ctx.actor_id, reservation_id
        )
    except ReservationError as exc:
        raise http_error(exc) from exc
    return asdict(result)


@router.post("/{reservation_id}/actions/cancel")
def cancel(
    body: CancelReservationBody | None = None,
    reservation_id: str = Path(..., description="Reservation UUID"),
    ctx: RequestContext = Depends(get_request_context),
) -> dict:
    """Cancel a hold and release its spots."""
    reason = body.reason if body else None
    try:
        reservation = cancellation.cancel_reservation(
            ctx.tenant_id, ctx.actor_id, reservation_id, reason
        )
    except ReservationError as exc:
        raise http_error(exc) from exc
    return asdict(reservation)
