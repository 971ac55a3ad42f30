"""Order aggregate state machine -- pure status derivation and guards.

No I/O, no database, no clock. The overall status is a function of the
assigned station statuses; COMPLETED is owned by payment finalization and
is never produced here.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from orderflow.orders.errors import ConflictError
from orderflow.orders.types import (
    Derivation,
    Order,
    OverallStatus,
    Station,
    StationStatus,
)


def derive_overall(
    kitchen_status: StationStatus | None,
    juicebar_status: StationStatus | None,
    previous_overall: OverallStatus | None = None,
) -> Derivation:
    """Derive the overall status from the two station statuses.

    None means the station has no assigned line and is skipped. The result
    does not depend on argument order.
    """
    assigned = [s for s in (kitchen_status, juicebar_status) if s is not None]

    if not assigned:
        return Derivation(OverallStatus.PENDING, became_ready_now=False)

    if all(s == StationStatus.READY for s in assigned):
        return Derivation(
            OverallStatus.READY,
            became_ready_now=previous_overall != OverallStatus.READY,
        )

    if any(s == StationStatus.INPROGRESS for s in assigned):
        return Derivation(OverallStatus.INPROGRESS, became_ready_now=False)

    return Derivation(OverallStatus.PENDING, became_ready_now=False)


@dataclass(frozen=True)
class StationTransition:
    """Field values to commit for one station status change."""

    station: Station
    old_status: StationStatus
    new_status: StationStatus
    kitchen_status: StationStatus | None
    juicebar_status: StationStatus | None
    old_overall: OverallStatus
    overall: OverallStatus
    ready_at: datetime | None
    became_ready_now: bool


def plan_station_update(
    order: Order,
    station: Station,
    new_status: StationStatus,
    now: datetime,
) -> StationTransition:
    """Compute the next state of ``order`` after setting one station.

    ``ready_at`` keeps its existing value unless this is the transition on
    which the order first becomes ready.

    Raises:
        ConflictError: If the order is completed or the station is absent.
    """
    if order.is_completed:
        raise ConflictError(
            f"Order {order.order_number} is completed; station updates are closed"
        )

    old_status = order.station_status(station)
    if old_status is None:
        raise ConflictError(
            f"Order {order.order_number} has no {station.value} items"
        )

    kitchen = new_status if station == Station.KITCHEN else order.kitchen_status
    juicebar = new_status if station == Station.JUICEBAR else order.juicebar_status
    derivation = derive_overall(kitchen, juicebar, order.overall_status)

    ready_at = order.ready_at
    became_ready_now = derivation.became_ready_now and order.ready_at is None
    if became_ready_now:
        ready_at = now

    return StationTransition(
        station=station,
        old_status=old_status,
        new_status=new_status,
        kitchen_status=kitchen,
        juicebar_status=juicebar,
        old_overall=order.overall_status,
        overall=derivation.overall,
        ready_at=ready_at,
        became_ready_now=became_ready_now,
    )


def ensure_payable(order: Order) -> None:
    """Guard the one-way transition to COMPLETED.

    Any non-completed status is payable; payment may close an order
    before both stations report ready.

    Raises:
        ConflictError: If the order was already paid.
    """
    if order.is_completed:
        raise ConflictError(f"Order {order.order_number} is already paid")
