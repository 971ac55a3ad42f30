"""Tests for the SQLAlchemy order repository and order number allocator.

Uses in-memory SQLite via the db_session_factory fixture.
"""

from __future__ import annotations

import dataclasses
from datetime import UTC, datetime
from decimal import Decimal

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from orderflow.models.order import OrderCounterModel, OrderEventModel
from orderflow.orders.errors import NotFoundError, StaleOrderError, TransientStoreError
from orderflow.orders.types import (
    Order,
    OverallStatus,
    PaymentDetails,
    PaymentMethod,
    StationStatus,
)
from orderflow.store.repository import (
    AuditEntry,
    OrderNumberAllocator,
    OrderRepository,
    format_order_number,
)
from orderflow.store.sql import SqlOrderNumberAllocator, SqlOrderRepository
from tests.factories import make_add_on, make_juice_line, make_line

_CREATED = datetime(2026, 10, 19, 9, 0, tzinfo=UTC)
_AUDIT = AuditEntry(event_type="created", new_overall="pending", actor_id="w1")


def _order(order_id: str = "o-1", number: str = "001", **overrides: object) -> Order:
    lines = (
        make_line(quantity=2, add_ons=(make_add_on(),), special_notes="well done"),
        make_juice_line(),
    )
    order = Order(
        id=order_id,
        order_number=number,
        items=lines,
        kitchen_status=StationStatus.PENDING,
        juicebar_status=StationStatus.PENDING,
        overall_status=OverallStatus.PENDING,
        total=Decimal("280"),
        waitress_id="w1",
        waitress_name="Hanna",
        created_at=_CREATED,
        updated_at=_CREATED,
    )
    return dataclasses.replace(order, **overrides)


def _update_audit(station_status: str = "ready") -> AuditEntry:
    return AuditEntry(
        event_type="station_status",
        old_overall="pending",
        new_overall="pending",
        actor_id="k1",
        station="kitchen",
        station_status=station_status,
    )


@pytest.fixture
def repo(
    db_session_factory: async_sessionmaker[AsyncSession],
) -> SqlOrderRepository:
    return SqlOrderRepository(db_session_factory)


class TestFormatOrderNumber:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [(1, "001"), (42, "042"), (999, "999"), (1000, "1000"), (12345, "12345")],
    )
    def test_zero_padded(self, value: int, expected: str) -> None:
        assert format_order_number(value) == expected

    def test_custom_width(self) -> None:
        assert format_order_number(7, min_digits=5) == "00007"

    def test_rejects_non_positive(self) -> None:
        with pytest.raises(ValueError):
            format_order_number(0)


class TestSqlOrderRepository:
    def test_satisfies_protocol(self, repo: SqlOrderRepository) -> None:
        assert isinstance(repo, OrderRepository)

    async def test_insert_and_get_round_trip(self, repo: SqlOrderRepository) -> None:
        original = _order(customer_name="Abebe")
        await repo.insert(original, _AUDIT)
        loaded = await repo.get("o-1")
        assert loaded == original

    async def test_get_missing_is_none(self, repo: SqlOrderRepository) -> None:
        assert await repo.get("nope") is None

    async def test_get_by_number(self, repo: SqlOrderRepository) -> None:
        await repo.insert(_order(), _AUDIT)
        loaded = await repo.get_by_number("001")
        assert loaded is not None
        assert loaded.id == "o-1"

    async def test_duplicate_number_is_transient_error(
        self, repo: SqlOrderRepository
    ) -> None:
        await repo.insert(_order(), _AUDIT)
        with pytest.raises(TransientStoreError):
            await repo.insert(_order(order_id="o-2"), _AUDIT)

    async def test_update_bumps_version_and_keeps_other_station(
        self, repo: SqlOrderRepository
    ) -> None:
        await repo.insert(_order(), _AUDIT)
        updated = await repo.update(
            "o-1",
            0,
            {"kitchen_status": StationStatus.READY},
            _update_audit(),
        )
        assert updated.version == 1
        assert updated.kitchen_status == StationStatus.READY
        assert updated.juicebar_status == StationStatus.PENDING
        assert updated.updated_at >= _CREATED

    async def test_stale_version_rejected(self, repo: SqlOrderRepository) -> None:
        await repo.insert(_order(), _AUDIT)
        await repo.update(
            "o-1", 0, {"juicebar_status": StationStatus.READY}, _update_audit()
        )
        with pytest.raises(StaleOrderError) as exc_info:
            await repo.update(
                "o-1", 0, {"kitchen_status": StationStatus.READY}, _update_audit()
            )
        assert exc_info.value.expected_version == 0

        current = await repo.get("o-1")
        assert current is not None
        assert current.kitchen_status == StationStatus.PENDING
        assert current.juicebar_status == StationStatus.READY

    async def test_update_missing_order_not_found(
        self, repo: SqlOrderRepository
    ) -> None:
        with pytest.raises(NotFoundError):
            await repo.update(
                "nope", 0, {"kitchen_status": StationStatus.READY}, _update_audit()
            )

    async def test_immutable_field_rejected(self, repo: SqlOrderRepository) -> None:
        await repo.insert(_order(), _AUDIT)
        with pytest.raises(ValueError, match="total"):
            await repo.update("o-1", 0, {"total": Decimal("1")}, _update_audit())

    async def test_payment_fields_persist(self, repo: SqlOrderRepository) -> None:
        await repo.insert(_order(), _AUDIT)
        completed_at = datetime(2026, 10, 19, 9, 45, tzinfo=UTC)
        details = PaymentDetails(mobile_provider="telebirr")
        await repo.update(
            "o-1",
            0,
            {
                "payment_method": PaymentMethod.MOBILE,
                "payment_details": details,
                "overall_status": OverallStatus.COMPLETED,
                "completed_at": completed_at,
            },
            AuditEntry(event_type="payment", new_overall="completed", actor_id="w1"),
        )
        loaded = await repo.get("o-1")
        assert loaded is not None
        assert loaded.payment_method == PaymentMethod.MOBILE
        assert loaded.payment_details == details
        assert loaded.completed_at == completed_at
        assert loaded.is_completed

    async def test_list_active_excludes_completed_newest_first(
        self, repo: SqlOrderRepository
    ) -> None:
        await repo.insert(_order("o-1", "001"), _AUDIT)
        await repo.insert(
            _order("o-2", "002", created_at=_CREATED.replace(minute=5)), _AUDIT
        )
        await repo.insert(
            _order("o-3", "003", overall_status=OverallStatus.COMPLETED), _AUDIT
        )
        active = await repo.list_active()
        assert [o.id for o in active] == ["o-2", "o-1"]

    async def test_list_active_same_instant_sorts_number_numerically(
        self, repo: SqlOrderRepository
    ) -> None:
        await repo.insert(_order("o-999", "999"), _AUDIT)
        await repo.insert(_order("o-1000", "1000"), _AUDIT)
        active = await repo.list_active()
        assert [o.order_number for o in active] == ["1000", "999"]

    async def test_audit_rows_written_with_versions(
        self,
        repo: SqlOrderRepository,
        db_session_factory: async_sessionmaker[AsyncSession],
    ) -> None:
        await repo.insert(_order(), _AUDIT)
        await repo.update(
            "o-1", 0, {"kitchen_status": StationStatus.INPROGRESS}, _update_audit()
        )
        async with db_session_factory() as session:
            rows = (
                await session.execute(
                    select(OrderEventModel).order_by(OrderEventModel.id)
                )
            ).scalars().all()
        assert [(r.event_type, r.version) for r in rows] == [
            ("created", 0),
            ("station_status", 1),
        ]
        assert rows[1].station_status == "inprogress"


class TestSqlOrderNumberAllocator:
    def test_satisfies_protocol(
        self, db_session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        assert isinstance(
            SqlOrderNumberAllocator(db_session_factory), OrderNumberAllocator
        )

    async def test_sequence_starts_at_001(
        self, db_session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        allocator = SqlOrderNumberAllocator(db_session_factory)
        assert [await allocator.next() for _ in range(3)] == ["001", "002", "003"]
        assert await allocator.peek() == 3

    async def test_survives_new_allocator_instance(
        self, db_session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        first = SqlOrderNumberAllocator(db_session_factory)
        await first.next()
        await first.next()
        second = SqlOrderNumberAllocator(db_session_factory)
        assert await second.next() == "003"

    async def test_grows_past_padding(
        self, db_session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        async with db_session_factory() as session, session.begin():
            session.add(OrderCounterModel(name="order_number", value=999))
        allocator = SqlOrderNumberAllocator(db_session_factory)
        assert await allocator.next() == "1000"

    async def test_peek_without_counter_is_zero(
        self, db_session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        assert await SqlOrderNumberAllocator(db_session_factory).peek() == 0
