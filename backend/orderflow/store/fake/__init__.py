"""In-memory store implementations for tests and local runs."""

from orderflow.store.fake.repository import (
    InMemoryOrderNumberAllocator,
    InMemoryOrderRepository,
)

__all__ = [
    "InMemoryOrderNumberAllocator",
    "InMemoryOrderRepository",
]
