"""In-memory OrderRepository and OrderNumberAllocator for testing.

Same compare-and-swap contract as the SQL store. Reads yield to the
event loop once so concurrent callers interleave the way they would
against a real database.
"""

from __future__ import annotations

import asyncio
import dataclasses
from collections.abc import Mapping
from typing import Any

from orderflow.orders.errors import NotFoundError, StaleOrderError, TransientStoreError
from orderflow.orders.types import Order, OverallStatus
from orderflow.store.repository import AuditEntry, check_changes, format_order_number
from orderflow.utils.time import utc_now


class InMemoryOrderRepository:
    """Dict-backed repository. Inspect ``audit_log`` after test execution."""

    def __init__(self) -> None:
        self._orders: dict[str, Order] = {}
        self.audit_log: list[tuple[str, int, AuditEntry]] = []

    async def insert(self, order: Order, audit: AuditEntry) -> Order:
        if order.id in self._orders:
            raise TransientStoreError(f"Duplicate order id {order.id}")
        if any(o.order_number == order.order_number for o in self._orders.values()):
            raise TransientStoreError(f"Duplicate order number {order.order_number}")
        self._orders[order.id] = order
        self.audit_log.append((order.id, order.version, audit))
        return order

    async def get(self, order_id: str) -> Order | None:
        order = self._orders.get(order_id)
        await asyncio.sleep(0)
        return order

    async def get_by_number(self, order_number: str) -> Order | None:
        await asyncio.sleep(0)
        return next(
            (o for o in self._orders.values() if o.order_number == order_number),
            None,
        )

    async def list_active(self) -> list[Order]:
        await asyncio.sleep(0)
        active = [
            o
            for o in self._orders.values()
            if o.overall_status != OverallStatus.COMPLETED
        ]
        return sorted(
            active, key=lambda o: (o.created_at, int(o.order_number)), reverse=True
        )

    async def update(
        self,
        order_id: str,
        expected_version: int,
        changes: Mapping[str, Any],
        audit: AuditEntry,
    ) -> Order:
        check_changes(changes)
        current = self._orders.get(order_id)
        if current is None:
            raise NotFoundError(order_id)
        if current.version != expected_version:
            raise StaleOrderError(order_id, expected_version)
        updated = dataclasses.replace(
            current,
            **changes,
            version=expected_version + 1,
            updated_at=utc_now(),
        )
        self._orders[order_id] = updated
        self.audit_log.append((order_id, updated.version, audit))
        return updated

    def __len__(self) -> int:
        return len(self._orders)


class InMemoryOrderNumberAllocator:
    """Process-local counter; not durable, but never repeats a value."""

    def __init__(self, start: int = 0, min_digits: int = 3) -> None:
        self._value = start
        self._min_digits = min_digits
        self.issued: list[str] = []

    async def next(self) -> str:
        self._value += 1
        number = format_order_number(self._value, self._min_digits)
        self.issued.append(number)
        await asyncio.sleep(0)
        return number
