"""Persistence collaborator protocols consumed by the lifecycle service.

All implementations (SQL, in-memory fake) must satisfy these protocols
with the same atomicity: ``update`` is a compare-and-swap on the order
version and ``next`` never hands the same number to two callers.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

from orderflow.orders.types import Order

# Fields a committed transition may change. Everything else is fixed at creation.
MUTABLE_FIELDS = frozenset(
    {
        "kitchen_status",
        "juicebar_status",
        "overall_status",
        "ready_at",
        "completed_at",
        "payment_method",
        "payment_details",
    }
)


@dataclass(frozen=True)
class AuditEntry:
    """One row of the append-only order audit log."""

    event_type: str
    new_overall: str
    actor_id: str
    old_overall: str | None = None
    station: str | None = None
    station_status: str | None = None
    detail: str | None = None


def format_order_number(value: int, min_digits: int = 3) -> str:
    """Zero-pad to at least ``min_digits``; longer values are never truncated."""
    if value < 1:
        raise ValueError(f"Order number must be positive, got {value}")
    return str(value).zfill(min_digits)


def check_changes(changes: Mapping[str, Any]) -> None:
    unknown = set(changes) - MUTABLE_FIELDS
    if unknown:
        raise ValueError(f"Immutable or unknown order fields: {sorted(unknown)}")


@runtime_checkable
class OrderRepository(Protocol):
    """Atomic load/update of single orders by id."""

    async def insert(self, order: Order, audit: AuditEntry) -> Order:
        """Persist a new order at version 0 with its creation audit row."""
        ...

    async def get(self, order_id: str) -> Order | None:
        """Load the latest committed snapshot, or None."""
        ...

    async def get_by_number(self, order_number: str) -> Order | None:
        """Load by the human-readable order number, or None."""
        ...

    async def list_active(self) -> list[Order]:
        """All orders whose overall status is not completed, newest first."""
        ...

    async def update(
        self,
        order_id: str,
        expected_version: int,
        changes: Mapping[str, Any],
        audit: AuditEntry,
    ) -> Order:
        """Apply ``changes`` only if the stored version equals ``expected_version``.

        Bumps the version, refreshes ``updated_at`` and appends ``audit`` in
        the same transaction.

        Raises:
            NotFoundError: No such order.
            StaleOrderError: The version moved since it was read.
            TransientStoreError: Storage failure.
        """
        ...


@runtime_checkable
class OrderNumberAllocator(Protocol):
    """Durable, monotonically increasing order number source."""

    async def next(self) -> str:
        """Return a fresh zero-padded order number."""
        ...
