"""Order domain types shared across the order lifecycle.

Frozen dataclasses for value objects. All monetary values use Decimal.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum


class Station(str, Enum):
    """Preparation station an order line is routed to."""

    KITCHEN = "kitchen"
    JUICEBAR = "juicebar"


class StationStatus(str, Enum):
    """Per-station progress. Absence is modelled as None, not a member."""

    PENDING = "pending"
    INPROGRESS = "inprogress"
    READY = "ready"


class OverallStatus(str, Enum):
    """Aggregate order status derived from the station statuses."""

    PENDING = "pending"
    INPROGRESS = "inprogress"
    READY = "ready"
    COMPLETED = "completed"


class PaymentMethod(str, Enum):
    CASH = "cash"
    CARD = "card"
    MOBILE = "mobile"


class Role(str, Enum):
    """Staff roles issued by the identity collaborator."""

    OWNER = "owner"
    WAITRESS = "waitress"
    KITCHEN = "kitchen"
    JUICEBAR = "juicebar"


@dataclass(frozen=True)
class Principal:
    """Authenticated caller."""

    id: str
    role: Role
    display_name: str


@dataclass(frozen=True)
class AddOnSnapshot:
    """Add-on as priced at order time."""

    add_on_id: str
    name_en: str
    name_am: str
    price: Decimal


@dataclass(frozen=True)
class OrderLine:
    """One ticket line. Price is a snapshot, never a live catalog reference."""

    menu_item_id: str
    name_en: str
    name_am: str
    quantity: int
    price: Decimal
    station: Station
    add_ons: tuple[AddOnSnapshot, ...] = ()
    special_notes: str | None = None


@dataclass(frozen=True)
class CustomerInfo:
    name: str | None = None
    phone: str | None = None


@dataclass(frozen=True)
class PaymentDetails:
    amount_received: Decimal | None = None
    change: Decimal | None = None
    mobile_provider: str | None = None


@dataclass(frozen=True)
class Derivation:
    """Result of recomputing the overall status."""

    overall: OverallStatus
    became_ready_now: bool


@dataclass(frozen=True)
class Order:
    """Snapshot of a persisted order at a given version."""

    id: str
    order_number: str
    items: tuple[OrderLine, ...]
    kitchen_status: StationStatus | None
    juicebar_status: StationStatus | None
    overall_status: OverallStatus
    total: Decimal
    waitress_id: str
    waitress_name: str
    created_at: datetime
    updated_at: datetime
    customer_name: str | None = None
    customer_phone: str | None = None
    ready_at: datetime | None = None
    completed_at: datetime | None = None
    payment_method: PaymentMethod | None = None
    payment_details: PaymentDetails | None = None
    version: int = 0
    stations: frozenset[Station] = field(init=False)

    def __post_init__(self) -> None:
        present = set()
        if self.kitchen_status is not None:
            present.add(Station.KITCHEN)
        if self.juicebar_status is not None:
            present.add(Station.JUICEBAR)
        object.__setattr__(self, "stations", frozenset(present))

    @property
    def is_completed(self) -> bool:
        return self.overall_status == OverallStatus.COMPLETED

    def station_status(self, station: Station) -> StationStatus | None:
        """Status of one station, None when no line is assigned to it."""
        if station == Station.KITCHEN:
            return self.kitchen_status
        return self.juicebar_status
