"""Database models package."""

from orderflow.models.base import (
    Base,
    DecimalText,
    create_engine_for,
    make_session_factory,
)
from orderflow.models.order import (
    ORDER_NUMBER_COUNTER,
    OrderCounterModel,
    OrderEventModel,
    OrderModel,
)

__all__ = [
    "ORDER_NUMBER_COUNTER",
    "Base",
    "DecimalText",
    "OrderCounterModel",
    "OrderEventModel",
    "OrderModel",
    "create_engine_for",
    "make_session_factory",
]
