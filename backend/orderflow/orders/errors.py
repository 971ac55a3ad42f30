"""Order lifecycle error hierarchy.

All lifecycle exceptions inherit from OrderError and carry a stable
``category`` so outer layers can render a structured failure without
exposing storage driver messages.
"""

from __future__ import annotations


class OrderError(Exception):
    """Base exception for all order lifecycle errors."""

    category = "order_error"


class ValidationError(OrderError):
    """Malformed input: empty ticket, bad quantity/price, unknown token."""

    category = "validation"


class NotFoundError(OrderError):
    """No order with the requested id."""

    category = "not_found"

    def __init__(self, order_id: str) -> None:
        self.order_id = order_id
        super().__init__(f"Order not found: {order_id}")


class ConflictError(OrderError):
    """Request is well-formed but illegal in the order's current state."""

    category = "conflict"


class PermissionDeniedError(OrderError):
    """Caller's role lacks the capability for the operation."""

    category = "permission_denied"


class AuthenticationError(OrderError):
    """Bearer token missing, malformed, expired or badly signed."""

    category = "unauthenticated"


class TransientStoreError(OrderError):
    """Repository or allocator failure. Fatal to the request unless retried."""

    category = "transient_store"


class StaleOrderError(TransientStoreError):
    """Optimistic lock conflict: the order version moved since it was read."""

    def __init__(self, order_id: str, expected_version: int) -> None:
        self.order_id = order_id
        self.expected_version = expected_version
        super().__init__(
            f"Order {order_id} changed concurrently "
            f"(expected version {expected_version})"
        )
