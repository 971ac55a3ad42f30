"""Role capabilities for externally exposed order operations."""

from __future__ import annotations

from enum import Enum
from typing import ClassVar

from orderflow.orders.errors import PermissionDeniedError
from orderflow.orders.types import Principal, Role


class Operation(str, Enum):
    CREATE_ORDER = "create_order"
    LIST_ACTIVE = "list_active"
    UPDATE_STATION_STATUS = "update_station_status"
    PROCESS_PAYMENT = "process_payment"


class AccessPolicy:
    """Static role -> operation table.

    Station roles may set either station.
    """

    CAPABILITIES: ClassVar[dict[Operation, frozenset[Role]]] = {
        Operation.CREATE_ORDER: frozenset({Role.WAITRESS, Role.OWNER}),
        Operation.LIST_ACTIVE: frozenset(Role),
        Operation.UPDATE_STATION_STATUS: frozenset(
            {Role.KITCHEN, Role.JUICEBAR, Role.OWNER}
        ),
        Operation.PROCESS_PAYMENT: frozenset({Role.WAITRESS, Role.OWNER}),
    }

    def authorize(self, principal: Principal, operation: Operation) -> None:
        """Raise PermissionDeniedError unless ``principal`` may run ``operation``."""
        if principal.role not in self.CAPABILITIES[operation]:
            raise PermissionDeniedError(
                f"Role {principal.role.value} may not {operation.value}"
            )
