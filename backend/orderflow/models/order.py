"""Order-related database models.

Tables: orders, order_event, order_counter
"""

from __future__ import annotations

from sqlalchemy import (
    CheckConstraint,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column

from orderflow.models.base import Base, DecimalText

ORDER_NUMBER_COUNTER = "order_number"


class OrderModel(Base):
    """Mutable order ticket. ``version`` is the optimistic lock token."""

    __tablename__ = "orders"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    order_number: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    items: Mapped[str] = mapped_column(Text, nullable=False)  # JSON array of lines
    kitchen_status: Mapped[str | None] = mapped_column(
        String,
        CheckConstraint(
            "kitchen_status IN ('pending', 'inprogress', 'ready')",
            name="ck_orders_kitchen_status",
        ),
        nullable=True,
    )
    juicebar_status: Mapped[str | None] = mapped_column(
        String,
        CheckConstraint(
            "juicebar_status IN ('pending', 'inprogress', 'ready')",
            name="ck_orders_juicebar_status",
        ),
        nullable=True,
    )
    overall_status: Mapped[str] = mapped_column(
        String,
        CheckConstraint(
            "overall_status IN ('pending', 'inprogress', 'ready', 'completed')",
            name="ck_orders_overall_status",
        ),
        nullable=False,
        server_default="pending",
    )
    total: Mapped[DecimalText] = mapped_column(DecimalText, nullable=False)
    payment_method: Mapped[str | None] = mapped_column(
        String,
        CheckConstraint(
            "payment_method IN ('cash', 'card', 'mobile')",
            name="ck_orders_payment_method",
        ),
        nullable=True,
    )
    payment_details: Mapped[str | None] = mapped_column(Text, nullable=True)  # JSON
    waitress_id: Mapped[str] = mapped_column(String, nullable=False)
    waitress_name: Mapped[str] = mapped_column(String, nullable=False)
    customer_name: Mapped[str | None] = mapped_column(String, nullable=True)
    customer_phone: Mapped[str | None] = mapped_column(String, nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    created_at: Mapped[str] = mapped_column(String, nullable=False)
    updated_at: Mapped[str] = mapped_column(String, nullable=False)
    ready_at: Mapped[str | None] = mapped_column(String, nullable=True)
    completed_at: Mapped[str | None] = mapped_column(String, nullable=True)

    __table_args__ = (
        Index("ix_orders_overall_status", "overall_status"),
        Index("ix_orders_created_at", "created_at"),
        Index("ix_orders_waitress_status", "waitress_id", "overall_status"),
    )


class OrderEventModel(Base):
    """Immutable append-only audit log of committed order transitions."""

    __tablename__ = "order_event"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    order_id: Mapped[str] = mapped_column(String, nullable=False)
    event_type: Mapped[str] = mapped_column(String, nullable=False)
    old_overall: Mapped[str | None] = mapped_column(String, nullable=True)
    new_overall: Mapped[str] = mapped_column(String, nullable=False)
    station: Mapped[str | None] = mapped_column(String, nullable=True)
    station_status: Mapped[str | None] = mapped_column(String, nullable=True)
    actor_id: Mapped[str] = mapped_column(String, nullable=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    detail: Mapped[str | None] = mapped_column(Text, nullable=True)
    recorded_at: Mapped[str] = mapped_column(String, nullable=False)

    __table_args__ = (
        Index("ix_order_event_order_id", "order_id"),
        Index("ix_order_event_recorded", "recorded_at"),
    )


class OrderCounterModel(Base):
    """Named durable counters. One row per sequence."""

    __tablename__ = "order_counter"

    name: Mapped[str] = mapped_column(String, primary_key=True)
    value: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
