"""Persistence collaborators for order records and order numbers."""

from orderflow.store.repository import (
    MUTABLE_FIELDS,
    AuditEntry,
    OrderNumberAllocator,
    OrderRepository,
    format_order_number,
)
from orderflow.store.sql import SqlOrderNumberAllocator, SqlOrderRepository

__all__ = [
    "MUTABLE_FIELDS",
    "AuditEntry",
    "OrderNumberAllocator",
    "OrderRepository",
    "SqlOrderNumberAllocator",
    "SqlOrderRepository",
    "format_order_number",
]
