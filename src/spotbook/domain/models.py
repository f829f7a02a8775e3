"""Reservation engine records - enums and typed rows.

The Reservation Store assembles these from plain SQL rows; related rows
(items, history, order items) are loaded with separate queries and attached
in code.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum


# ── Enums ─────────────────────────────────────────────────


class ReservationStatus(str, Enum):
    HELD = "held"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    EXPIRED = "expired"


class ItemStatus(str, Enum):
    HELD = "held"
    CONFIRMED = "confirmed"
    RELEASED = "released"


class Priority(str, Enum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"


class OrderStatus(str, Enum):
    DRAFT = "draft"
    CANCELLED = "cancelled"


class OrderItemStatus(str, Enum):
    BOOKED = "booked"
    CANCELLED = "cancelled"


TERMINAL_STATUSES = frozenset(
    {ReservationStatus.CONFIRMED, ReservationStatus.CANCELLED, ReservationStatus.EXPIRED}
)


# ── Inventory ─────────────────────────────────────────────


@dataclass(frozen=True)
class InventorySlot:
    id: str
    organization_id: str
    show_id: str
    air_date: date
    placement_type: str
    total_spots: int
    available_spots: int
    reserved_spots: int
    booked_spots: int

    @property
    def is_balanced(self) -> bool:
        """True when the counters add up and none is negative."""
        counters = (self.available_spots, self.reserved_spots, self.booked_spots)
        return min(counters) >= 0 and sum(counters) == self.total_spots


# ── Requests ──────────────────────────────────────────────


@dataclass(frozen=True)
class ItemRequest:
    """One requested spot. The rate is supplied by the caller, never looked up."""

    show_id: str
    air_date: date
    placement_type: str
    length_seconds: int
    rate_cents: int
    episode_id: str | None = None
    spot_number: int | None = None
    notes: str | None = None


@dataclass(frozen=True)
class CreateReservationRequest:
    advertiser_id: str
    items: list[ItemRequest]
    agency_id: str | None = None
    campaign_id: str | None = None
    hold_duration_hours: int | None = None
    priority: Priority = Priority.NORMAL
    notes: str | None = None
    source: str = "web"


@dataclass(frozen=True)
class ReservationFilters:
    status: list[ReservationStatus] | None = None
    advertiser_id: str | None = None
    campaign_id: str | None = None
    agency_id: str | None = None
    created_by: str | None = None
    priority: list[Priority] | None = None
    expires_after: datetime | None = None
    expires_before: datetime | None = None
    created_after: datetime | None = None
    created_before: datetime | None = None


# ── Reservations ──────────────────────────────────────────


@dataclass
class ReservationItem:
    id: str
    reservation_id: str
    slot_id: str
    show_id: str
    episode_id: str | None
    air_date: date
    placement_type: str
    spot_number: int | None
    length_seconds: int
    rate_cents: int
    status: ItemStatus
    notes: str | None = None


@dataclass
class StatusHistoryEntry:
    id: int
    reservation_id: str
    from_status: ReservationStatus | None
    to_status: ReservationStatus
    reason: str | None
    notes: str | None
    changed_by: str
    changed_at: datetime


@dataclass
class Reservation:
    id: str
    organization_id: str
    advertiser_id: str
    agency_id: str | None
    campaign_id: str | None
    status: ReservationStatus
    hold_duration_hours: int
    expires_at: datetime
    total_cents: int
    priority: Priority
    source: str
    notes: str | None
    created_by: str
    created_at: datetime
    updated_at: datetime
    confirmed_at: datetime | None = None
    confirmed_by: str | None = None
    cancelled_at: datetime | None = None
    cancelled_by: str | None = None
    items: list[ReservationItem] = field(default_factory=list)
    history: list[StatusHistoryEntry] = field(default_factory=list)


# ── Orders ────────────────────────────────────────────────


@dataclass
class OrderItem:
    id: str
    order_id: str
    reservation_item_id: str
    slot_id: str
    show_id: str
    episode_id: str | None
    air_date: date
    placement_type: str
    length_seconds: int
    rate_cents: int
    total_cents: int
    status: OrderItemStatus
    notes: str | None = None


@dataclass
class Order:
    id: str
    organization_id: str
    reservation_id: str
    order_number: str
    advertiser_id: str
    agency_id: str | None
    campaign_id: str | None
    status: OrderStatus
    total_cents: int
    discount_cents: int
    net_cents: int
    notes: str | None
    created_by: str
    created_at: datetime
    cancelled_at: datetime | None = None
    cancelled_by: str | None = None
    items: list[OrderItem] = field(default_factory=list)


# ── Results ───────────────────────────────────────────────


@dataclass
class ConfirmResult:
    reservation: Reservation
    order: Order


@dataclass(frozen=True)
class Pagination:
    page: int
    limit: int
    total: int
    pages: int


@dataclass
class ReservationPage:
    items: list[Reservation]
    pagination: Pagination


@dataclass(frozen=True)
class SweepResult:
    expired_count: int = 0
    failed_count: int = 0


@dataclass(frozen=True)
class StatusBreakdown:
    status: ReservationStatus
    count: int
    total_cents: int


@dataclass(frozen=True)
class PriorityBreakdown:
    priority: Priority
    count: int


@dataclass
class ReservationStats:
    total_reservations: int
    status_breakdown: list[StatusBreakdown]
    priority_breakdown: list[PriorityBreakdown]


@dataclass(frozen=True)
class SlotDiscrepancy:
    slot_id: str
    show_id: str
    air_date: date
    placement_type: str
    problem: str
    expected: int
    actual: int


@dataclass
class InventoryAuditReport:
    slots_checked: int
    discrepancies: list[SlotDiscrepancy]

    @property
    def ok(self) -> bool:
        return not self.discrepancies


def is_valid_id(value: str) -> bool:
    """True if value is a UUID string (row ids are uuid columns)."""
    try:
        uuid.UUID(str(value))
    except ValueError:
        return False
    return True
