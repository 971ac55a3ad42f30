"""SQLAlchemy-backed order repository and order number allocator.

Each call runs in its own short transaction. Station/payment writes are a
single ``UPDATE ... WHERE id = :id AND version = :expected`` so a writer
that read a stale snapshot matches zero rows instead of overwriting the
other station's field.
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from typing import Any

import structlog
from sqlalchemy import Integer, cast, select, update
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from orderflow.models.order import (
    ORDER_NUMBER_COUNTER,
    OrderCounterModel,
    OrderEventModel,
    OrderModel,
)
from orderflow.orders.errors import NotFoundError, StaleOrderError, TransientStoreError
from orderflow.orders.types import Order, OverallStatus
from orderflow.store.mappers import changes_to_columns, order_from_model, order_to_model
from orderflow.store.repository import AuditEntry, check_changes, format_order_number
from orderflow.utils.time import format_timestamp, utc_now

log = structlog.get_logger()


def _audit_row(order_id: str, version: int, audit: AuditEntry) -> OrderEventModel:
    return OrderEventModel(
        order_id=order_id,
        event_type=audit.event_type,
        old_overall=audit.old_overall,
        new_overall=audit.new_overall,
        station=audit.station,
        station_status=audit.station_status,
        actor_id=audit.actor_id,
        version=version,
        detail=audit.detail,
        recorded_at=format_timestamp(utc_now()),
    )


class SqlOrderRepository:
    """OrderRepository over an async SQLAlchemy session factory."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def insert(self, order: Order, audit: AuditEntry) -> Order:
        try:
            async with self._session_factory() as session, session.begin():
                session.add(order_to_model(order))
                session.add(_audit_row(order.id, order.version, audit))
        except SQLAlchemyError as exc:
            log.exception("order_insert_failed", order_id=order.id)
            raise TransientStoreError("Failed to persist order") from exc
        return order

    async def get(self, order_id: str) -> Order | None:
        return await self._find_one(OrderModel.id == order_id)

    async def get_by_number(self, order_number: str) -> Order | None:
        return await self._find_one(OrderModel.order_number == order_number)

    async def list_active(self) -> list[Order]:
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(OrderModel)
                    .where(OrderModel.overall_status != OverallStatus.COMPLETED.value)
                    .order_by(
                        OrderModel.created_at.desc(),
                        cast(OrderModel.order_number, Integer).desc(),
                    )
                )
                return [order_from_model(row) for row in result.scalars().all()]
        except SQLAlchemyError as exc:
            raise TransientStoreError("Failed to list active orders") from exc

    async def update(
        self,
        order_id: str,
        expected_version: int,
        changes: Mapping[str, Any],
        audit: AuditEntry,
    ) -> Order:
        check_changes(changes)
        values = changes_to_columns(changes)
        values["version"] = expected_version + 1
        values["updated_at"] = format_timestamp(utc_now())

        try:
            async with self._session_factory() as session, session.begin():
                result = await session.execute(
                    update(OrderModel)
                    .where(
                        OrderModel.id == order_id,
                        OrderModel.version == expected_version,
                    )
                    .values(**values)
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount == 0:
                    exists = await session.scalar(
                        select(OrderModel.id).where(OrderModel.id == order_id)
                    )
                    if exists is None:
                        raise NotFoundError(order_id)
                    raise StaleOrderError(order_id, expected_version)

                session.add(_audit_row(order_id, expected_version + 1, audit))

                row = (
                    await session.execute(
                        select(OrderModel)
                        .where(OrderModel.id == order_id)
                        .execution_options(populate_existing=True)
                    )
                ).scalar_one()
                return order_from_model(row)
        except SQLAlchemyError as exc:
            log.exception("order_update_failed", order_id=order_id)
            raise TransientStoreError("Failed to update order") from exc

    async def _find_one(self, *criteria: Any) -> Order | None:
        try:
            async with self._session_factory() as session:
                result = await session.execute(select(OrderModel).where(*criteria))
                row = result.scalar_one_or_none()
                return order_from_model(row) if row is not None else None
        except SQLAlchemyError as exc:
            raise TransientStoreError("Failed to load order") from exc


class SqlOrderNumberAllocator:
    """Durable counter row incremented with a single atomic statement.

    The in-process lock keeps one event loop from queueing concurrent
    writers on the same SQLite row; the UPDATE itself is what guarantees
    uniqueness across processes.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        min_digits: int = 3,
        counter: str = ORDER_NUMBER_COUNTER,
    ) -> None:
        self._session_factory = session_factory
        self._min_digits = min_digits
        self._counter = counter
        self._lock = asyncio.Lock()
        self._seeded = False

    async def ensure_counter(self) -> None:
        """Create the counter row at 0 if it does not exist yet."""
        try:
            async with self._session_factory() as session, session.begin():
                await session.execute(
                    sqlite_insert(OrderCounterModel)
                    .values(name=self._counter, value=0)
                    .on_conflict_do_nothing(index_elements=["name"])
                )
        except SQLAlchemyError as exc:
            raise TransientStoreError("Failed to seed order counter") from exc
        self._seeded = True

    async def next(self) -> str:
        async with self._lock:
            if not self._seeded:
                await self.ensure_counter()
            try:
                async with self._session_factory() as session, session.begin():
                    result = await session.execute(
                        update(OrderCounterModel)
                        .where(OrderCounterModel.name == self._counter)
                        .values(value=OrderCounterModel.value + 1)
                        .returning(OrderCounterModel.value)
                        .execution_options(synchronize_session=False)
                    )
                    value = result.scalar_one()
            except SQLAlchemyError as exc:
                log.exception("order_number_allocation_failed", counter=self._counter)
                raise TransientStoreError("Order number allocation failed") from exc
        return format_order_number(value, self._min_digits)

    async def peek(self) -> int:
        """Last issued counter value (0 if none)."""
        async with self._session_factory() as session:
            value = await session.scalar(
                select(OrderCounterModel.value).where(
                    OrderCounterModel.name == self._counter
                )
            )
        return int(value or 0)
