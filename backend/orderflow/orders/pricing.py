"""Ticket validation and total computation.

Add-ons carry no quantity of their own: each add-on is charged once per
unit of its parent line.
"""

from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal

from orderflow.orders.errors import ValidationError
from orderflow.orders.types import OrderLine, Station

_ZERO = Decimal("0")


def validate_lines(lines: Sequence[OrderLine]) -> None:
    """Reject an empty ticket or any malformed line.

    Raises:
        ValidationError: On the first offending line.
    """
    if not lines:
        raise ValidationError("Order must contain at least one item")

    for index, line in enumerate(lines):
        if not line.menu_item_id:
            raise ValidationError(f"Line {index}: menu_item_id is required")
        if isinstance(line.quantity, bool) or not isinstance(line.quantity, int):
            raise ValidationError(f"Line {index}: quantity must be an integer")
        if line.quantity < 1:
            raise ValidationError(
                f"Line {index}: quantity must be at least 1, got {line.quantity}"
            )
        if line.price < _ZERO:
            raise ValidationError(
                f"Line {index}: price must not be negative, got {line.price}"
            )
        if not isinstance(line.station, Station):
            raise ValidationError(f"Line {index}: unknown station {line.station!r}")
        for add_on in line.add_ons:
            if add_on.price < _ZERO:
                raise ValidationError(
                    f"Line {index}: add-on {add_on.add_on_id} has negative price"
                )


def line_subtotal(line: OrderLine) -> Decimal:
    """Price x quantity plus each add-on price x the line's quantity."""
    add_ons = sum((a.price for a in line.add_ons), _ZERO)
    return (line.price + add_ons) * line.quantity


def compute_total(lines: Sequence[OrderLine]) -> Decimal:
    return sum((line_subtotal(line) for line in lines), _ZERO)


def stations_for(lines: Sequence[OrderLine]) -> frozenset[Station]:
    """Stations that receive at least one line."""
    return frozenset(line.station for line in lines)
