"""Order lifecycle service -- async orchestration of ticket state.

Owns creation, station status transitions and payment finalization.
Every transition is committed before its event is published; publishing
happens while the per-order lock is still held so displays see events for
one order in commit order. All lifecycle events logged via structlog.
"""

from __future__ import annotations

import asyncio
import random
from collections.abc import Awaitable, Callable, Mapping, Sequence
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, TypeVar
from uuid import uuid4

import structlog

from orderflow.config import ConcurrencyConfig
from orderflow.notify.bus import (
    EventName,
    NotificationBus,
    completed_payload,
    new_order_payload,
    status_updated_payload,
)
from orderflow.orders.access import AccessPolicy, Operation
from orderflow.orders.errors import (
    ConflictError,
    NotFoundError,
    StaleOrderError,
    ValidationError,
)
from orderflow.orders.pricing import compute_total, stations_for, validate_lines
from orderflow.orders.state_machine import (
    StationTransition,
    derive_overall,
    ensure_payable,
    plan_station_update,
)
from orderflow.orders.types import (
    CustomerInfo,
    Order,
    OrderLine,
    OverallStatus,
    PaymentDetails,
    PaymentMethod,
    Principal,
    Station,
    StationStatus,
)
from orderflow.store.repository import AuditEntry, OrderNumberAllocator, OrderRepository
from orderflow.utils.locks import KeyedLock
from orderflow.utils.time import utc_now

log = structlog.get_logger()

_T = TypeVar("_T")
_E = TypeVar("_E", bound=Enum)

_STATUS_FIELD = {
    Station.KITCHEN: "kitchen_status",
    Station.JUICEBAR: "juicebar_status",
}


def _parse_token(enum_type: type[_E], value: _E | str, label: str) -> _E:
    """Coerce a wire token to its enum, rejecting anything else."""
    if isinstance(value, enum_type):
        return value
    try:
        return enum_type(value)
    except ValueError:
        allowed = ", ".join(m.value for m in enum_type)
        raise ValidationError(
            f"Invalid {label} {value!r}. Must be one of: {allowed}"
        ) from None


def _validate_payment_details(details: PaymentDetails | None) -> None:
    if details is None:
        return
    for name in ("amount_received", "change"):
        amount = getattr(details, name)
        if amount is not None and amount < Decimal("0"):
            raise ValidationError(f"{name} must not be negative, got {amount}")


class OrderLifecycleService:
    """Creation, station progress and payment for restaurant orders.

    Collaborators are injected: an OrderRepository, an OrderNumberAllocator
    and a NotificationBus. Role checks run before any repository access.
    """

    def __init__(
        self,
        repository: OrderRepository,
        allocator: OrderNumberAllocator,
        bus: NotificationBus,
        *,
        policy: AccessPolicy | None = None,
        concurrency: ConcurrencyConfig | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._repository = repository
        self._allocator = allocator
        self._bus = bus
        self._policy = policy or AccessPolicy()
        self._concurrency = concurrency or ConcurrencyConfig()
        self._clock = clock
        self._locks = KeyedLock()

    async def create_order(
        self,
        lines: Sequence[OrderLine],
        principal: Principal,
        customer: CustomerInfo | None = None,
    ) -> Order:
        """Price, number and persist a new ticket, then announce it.

        Raises:
            PermissionDeniedError: Caller is not waitress/owner.
            ValidationError: Empty ticket or malformed line.
            TransientStoreError: Allocation or write failed; nothing persisted.
        """
        self._policy.authorize(principal, Operation.CREATE_ORDER)
        validate_lines(lines)

        total = compute_total(lines)
        stations = stations_for(lines)
        kitchen = StationStatus.PENDING if Station.KITCHEN in stations else None
        juicebar = StationStatus.PENDING if Station.JUICEBAR in stations else None
        customer = customer or CustomerInfo()

        order_number = await self._allocator.next()
        now = self._clock()
        order = Order(
            id=str(uuid4()),
            order_number=order_number,
            items=tuple(lines),
            kitchen_status=kitchen,
            juicebar_status=juicebar,
            overall_status=derive_overall(kitchen, juicebar).overall,
            total=total,
            waitress_id=principal.id,
            waitress_name=principal.display_name,
            customer_name=customer.name,
            customer_phone=customer.phone,
            created_at=now,
            updated_at=now,
        )

        async with self._locks.hold(order.id):
            persisted = await self._repository.insert(
                order,
                AuditEntry(
                    event_type="created",
                    new_overall=order.overall_status.value,
                    actor_id=principal.id,
                    detail=f"order_number={order_number}",
                ),
            )
            log.info(
                "order_created",
                order_id=persisted.id,
                order_number=persisted.order_number,
                total=str(persisted.total),
                lines=len(persisted.items),
                stations=sorted(s.value for s in persisted.stations),
                waitress_id=principal.id,
            )
            await self._publish(EventName.NEW_ORDER, new_order_payload(persisted))

        return persisted

    async def get_order(self, order_id: str, principal: Principal) -> Order:
        """Raises NotFoundError if no such order."""
        self._policy.authorize(principal, Operation.LIST_ACTIVE)
        order = await self._repository.get(order_id)
        if order is None:
            raise NotFoundError(order_id)
        return order

    async def get_order_by_number(
        self, order_number: str, principal: Principal
    ) -> Order:
        """Look up by the number printed on the ticket."""
        self._policy.authorize(principal, Operation.LIST_ACTIVE)
        order = await self._repository.get_by_number(order_number)
        if order is None:
            raise NotFoundError(order_number)
        return order

    async def list_active_orders(self, principal: Principal) -> list[Order]:
        """Orders not yet completed, newest first."""
        self._policy.authorize(principal, Operation.LIST_ACTIVE)
        return await self._repository.list_active()

    async def update_station_status(
        self,
        order_id: str,
        station: Station | str,
        new_status: StationStatus | str,
        principal: Principal,
    ) -> Order:
        """Set one station's status and recompute the overall status.

        The read-modify-write is retried on a version conflict, never
        overwritten blindly.

        Raises:
            ValidationError: Unknown station or status token.
            PermissionDeniedError: Role may not update stations.
            NotFoundError: No such order.
            ConflictError: Order completed, or station has no lines.
            StaleOrderError: Conflicts persisted past the retry budget.
        """
        station = _parse_token(Station, station, "station")
        new_status = _parse_token(StationStatus, new_status, "status")
        self._policy.authorize(principal, Operation.UPDATE_STATION_STATUS)

        async def attempt() -> tuple[Order, StationTransition]:
            current = await self._load(order_id)
            try:
                transition = plan_station_update(
                    current, station, new_status, self._clock()
                )
            except ConflictError as exc:
                log.warning(
                    "order_update_conflict",
                    order_id=order_id,
                    order_number=current.order_number,
                    station=station.value,
                    reason=str(exc),
                )
                raise

            changes: dict[str, Any] = {
                _STATUS_FIELD[station]: new_status,
                "overall_status": transition.overall,
            }
            if transition.became_ready_now:
                changes["ready_at"] = transition.ready_at

            updated = await self._repository.update(
                order_id,
                current.version,
                changes,
                AuditEntry(
                    event_type="station_status",
                    old_overall=transition.old_overall.value,
                    new_overall=transition.overall.value,
                    station=station.value,
                    station_status=new_status.value,
                    actor_id=principal.id,
                ),
            )
            return updated, transition

        async with self._locks.hold(order_id):
            updated, transition = await self._with_stale_retry(order_id, attempt)

            log.info(
                "station_status_updated",
                order_id=order_id,
                order_number=updated.order_number,
                station=station.value,
                old_status=transition.old_status.value,
                new_status=new_status.value,
                overall=updated.overall_status.value,
                actor_id=principal.id,
            )
            if transition.became_ready_now:
                log.info(
                    "order_ready",
                    order_id=order_id,
                    order_number=updated.order_number,
                )

            await self._publish(
                EventName.ORDER_STATUS_UPDATED,
                status_updated_payload(updated, station, new_status),
            )

        return updated

    async def process_payment(
        self,
        order_id: str,
        method: PaymentMethod | str,
        principal: Principal,
        details: PaymentDetails | None = None,
    ) -> Order:
        """Record payment and close the order. Terminal and one-way.

        Raises:
            ValidationError: Unknown method or negative amounts.
            PermissionDeniedError: Caller is not waitress/owner.
            NotFoundError: No such order.
            ConflictError: Order already paid.
        """
        method = _parse_token(PaymentMethod, method, "payment method")
        _validate_payment_details(details)
        self._policy.authorize(principal, Operation.PROCESS_PAYMENT)

        async def attempt() -> Order:
            current = await self._load(order_id)
            try:
                ensure_payable(current)
            except ConflictError:
                log.warning(
                    "duplicate_payment_rejected",
                    order_id=order_id,
                    order_number=current.order_number,
                    actor_id=principal.id,
                )
                raise

            return await self._repository.update(
                order_id,
                current.version,
                {
                    "payment_method": method,
                    "payment_details": details or PaymentDetails(),
                    "overall_status": OverallStatus.COMPLETED,
                    "completed_at": self._clock(),
                },
                AuditEntry(
                    event_type="payment",
                    old_overall=current.overall_status.value,
                    new_overall=OverallStatus.COMPLETED.value,
                    actor_id=principal.id,
                    detail=f"method={method.value}",
                ),
            )

        async with self._locks.hold(order_id):
            updated = await self._with_stale_retry(order_id, attempt)
            log.info(
                "payment_processed",
                order_id=order_id,
                order_number=updated.order_number,
                method=method.value,
                total=str(updated.total),
                actor_id=principal.id,
            )
            await self._publish(EventName.ORDER_COMPLETED, completed_payload(updated))

        return updated

    # --- Internal helpers ---

    async def _load(self, order_id: str) -> Order:
        order = await self._repository.get(order_id)
        if order is None:
            raise NotFoundError(order_id)
        return order

    async def _with_stale_retry(
        self,
        order_id: str,
        attempt: Callable[[], Awaitable[_T]],
    ) -> _T:
        """Re-run a read-modify-write on version conflict with backoff + jitter."""
        cfg = self._concurrency
        for n in range(1, cfg.max_retries + 1):
            try:
                return await attempt()
            except StaleOrderError:
                if n == cfg.max_retries:
                    log.error(
                        "order_update_conflict_unresolved",
                        order_id=order_id,
                        attempts=n,
                    )
                    raise
                delay = min(cfg.base_delay_ms * (2 ** (n - 1)), cfg.max_delay_ms)
                delay += random.uniform(0, cfg.jitter_ms)
                log.warning(
                    "order_update_retry",
                    order_id=order_id,
                    attempt=n,
                    delay_ms=round(delay, 1),
                )
                await asyncio.sleep(delay / 1000.0)
        raise AssertionError("unreachable")

    async def _publish(self, event: EventName, payload: Mapping[str, Any]) -> None:
        """Publish failures are logged, never raised: the commit already happened."""
        try:
            await self._bus.publish(event, payload)
        except Exception:
            log.exception(
                "notification_publish_failed",
                notify_event=event.value,
                order_id=payload.get("orderId"),
            )
