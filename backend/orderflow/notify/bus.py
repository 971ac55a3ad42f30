"""NotificationBus protocol, lifecycle event names and payload shapes.

Delivery is fire-and-forget, at most once, to currently connected station
displays. Each event fans out to the role channels listed in
EVENT_AUDIENCES.
"""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum
from typing import Any, Protocol, runtime_checkable

from orderflow.orders.types import Order, Role, Station, StationStatus


class EventName(str, Enum):
    NEW_ORDER = "new_order"
    ORDER_STATUS_UPDATED = "order_status_updated"
    ORDER_COMPLETED = "order_completed"


_ALL_FLOOR_ROLES = (Role.KITCHEN, Role.JUICEBAR, Role.WAITRESS, Role.OWNER)

EVENT_AUDIENCES: dict[EventName, tuple[Role, ...]] = {
    EventName.NEW_ORDER: _ALL_FLOOR_ROLES,
    EventName.ORDER_STATUS_UPDATED: _ALL_FLOOR_ROLES,
    EventName.ORDER_COMPLETED: _ALL_FLOOR_ROLES,
}


def role_channel(prefix: str, role: Role) -> str:
    return f"{prefix}:{role.value}_room"


def new_order_payload(order: Order) -> dict[str, Any]:
    """Station statuses are omitted for stations with no lines."""
    payload: dict[str, Any] = {
        "orderId": order.id,
        "orderNumber": order.order_number,
    }
    if order.kitchen_status is not None:
        payload["kitchenStatus"] = order.kitchen_status.value
    if order.juicebar_status is not None:
        payload["juicebarStatus"] = order.juicebar_status.value
    return payload


def status_updated_payload(
    order: Order,
    station: Station,
    new_status: StationStatus,
) -> dict[str, Any]:
    return {
        "orderId": order.id,
        "orderNumber": order.order_number,
        "station": station.value,
        "newStatus": new_status.value,
        "overallStatus": order.overall_status.value,
    }


def completed_payload(order: Order) -> dict[str, Any]:
    return {
        "orderId": order.id,
        "orderNumber": order.order_number,
    }


@runtime_checkable
class NotificationBus(Protocol):
    """Fan-out publisher for order lifecycle events."""

    async def publish(self, event: EventName, payload: Mapping[str, Any]) -> None:
        """Publish to every audience channel of ``event``."""
        ...


class NullNotificationBus:
    """Drops every event. Used when notifications are disabled."""

    async def publish(self, event: EventName, payload: Mapping[str, Any]) -> None:
        return None
