"""Order lifecycle package.

The lifecycle service lives in ``orderflow.orders.lifecycle`` and is not
re-exported here so that store and notify modules can import the domain
types without a cycle.
"""

from orderflow.orders.errors import (
    AuthenticationError,
    ConflictError,
    NotFoundError,
    OrderError,
    PermissionDeniedError,
    StaleOrderError,
    TransientStoreError,
    ValidationError,
)
from orderflow.orders.state_machine import (
    StationTransition,
    derive_overall,
    ensure_payable,
    plan_station_update,
)
from orderflow.orders.types import (
    AddOnSnapshot,
    CustomerInfo,
    Derivation,
    Order,
    OrderLine,
    OverallStatus,
    PaymentDetails,
    PaymentMethod,
    Principal,
    Role,
    Station,
    StationStatus,
)

__all__ = [
    "AddOnSnapshot",
    "AuthenticationError",
    "ConflictError",
    "CustomerInfo",
    "Derivation",
    "NotFoundError",
    "Order",
    "OrderError",
    "OrderLine",
    "OverallStatus",
    "PaymentDetails",
    "PaymentMethod",
    "PermissionDeniedError",
    "Principal",
    "Role",
    "StaleOrderError",
    "Station",
    "StationStatus",
    "StationTransition",
    "TransientStoreError",
    "ValidationError",
    "derive_overall",
    "ensure_payable",
    "plan_station_update",
]
