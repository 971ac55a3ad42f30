"""Map between SQLAlchemy rows and order domain types.

Lines and payment details are stored as JSON text with camelCase keys,
matching the payloads station displays already consume. Decimals are
serialized as strings to keep exact precision.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from decimal import Decimal
from enum import Enum
from typing import Any

from orderflow.models.order import OrderModel
from orderflow.orders.types import (
    AddOnSnapshot,
    Order,
    OrderLine,
    OverallStatus,
    PaymentDetails,
    PaymentMethod,
    Station,
    StationStatus,
)
from orderflow.utils.time import (
    format_timestamp,
    parse_optional_timestamp,
    parse_timestamp,
)


def _dec(value: Decimal | None) -> str | None:
    return None if value is None else str(value)


def _undec(value: str | None) -> Decimal | None:
    return None if value is None else Decimal(value)


def line_to_dict(line: OrderLine) -> dict[str, Any]:
    return {
        "menuItemId": line.menu_item_id,
        "nameEn": line.name_en,
        "nameAm": line.name_am,
        "quantity": line.quantity,
        "price": str(line.price),
        "station": line.station.value,
        "addOns": [
            {
                "addOnId": a.add_on_id,
                "nameEn": a.name_en,
                "nameAm": a.name_am,
                "price": str(a.price),
            }
            for a in line.add_ons
        ],
        "specialNotes": line.special_notes,
    }


def line_from_dict(raw: Mapping[str, Any]) -> OrderLine:
    return OrderLine(
        menu_item_id=raw["menuItemId"],
        name_en=raw["nameEn"],
        name_am=raw["nameAm"],
        quantity=int(raw["quantity"]),
        price=Decimal(raw["price"]),
        station=Station(raw["station"]),
        add_ons=tuple(
            AddOnSnapshot(
                add_on_id=a["addOnId"],
                name_en=a["nameEn"],
                name_am=a["nameAm"],
                price=Decimal(a["price"]),
            )
            for a in raw.get("addOns", [])
        ),
        special_notes=raw.get("specialNotes"),
    )


def payment_details_to_json(details: PaymentDetails | None) -> str | None:
    if details is None:
        return None
    return json.dumps(
        {
            "amountReceived": _dec(details.amount_received),
            "change": _dec(details.change),
            "mobileProvider": details.mobile_provider,
        }
    )


def payment_details_from_json(raw: str | None) -> PaymentDetails | None:
    if raw is None:
        return None
    data = json.loads(raw)
    return PaymentDetails(
        amount_received=_undec(data.get("amountReceived")),
        change=_undec(data.get("change")),
        mobile_provider=data.get("mobileProvider"),
    )


def order_to_model(order: Order) -> OrderModel:
    return OrderModel(
        id=order.id,
        order_number=order.order_number,
        items=json.dumps([line_to_dict(line) for line in order.items]),
        kitchen_status=order.kitchen_status.value if order.kitchen_status else None,
        juicebar_status=order.juicebar_status.value if order.juicebar_status else None,
        overall_status=order.overall_status.value,
        total=order.total,
        payment_method=order.payment_method.value if order.payment_method else None,
        payment_details=payment_details_to_json(order.payment_details),
        waitress_id=order.waitress_id,
        waitress_name=order.waitress_name,
        customer_name=order.customer_name,
        customer_phone=order.customer_phone,
        version=order.version,
        created_at=format_timestamp(order.created_at),
        updated_at=format_timestamp(order.updated_at),
        ready_at=format_timestamp(order.ready_at) if order.ready_at else None,
        completed_at=(
            format_timestamp(order.completed_at) if order.completed_at else None
        ),
    )


def order_from_model(row: OrderModel) -> Order:
    return Order(
        id=row.id,
        order_number=row.order_number,
        items=tuple(line_from_dict(raw) for raw in json.loads(row.items)),
        kitchen_status=(
            StationStatus(row.kitchen_status) if row.kitchen_status else None
        ),
        juicebar_status=(
            StationStatus(row.juicebar_status) if row.juicebar_status else None
        ),
        overall_status=OverallStatus(row.overall_status),
        total=Decimal(str(row.total)),
        waitress_id=row.waitress_id,
        waitress_name=row.waitress_name,
        customer_name=row.customer_name,
        customer_phone=row.customer_phone,
        created_at=parse_timestamp(row.created_at),
        updated_at=parse_timestamp(row.updated_at),
        ready_at=parse_optional_timestamp(row.ready_at),
        completed_at=parse_optional_timestamp(row.completed_at),
        payment_method=(
            PaymentMethod(row.payment_method) if row.payment_method else None
        ),
        payment_details=payment_details_from_json(row.payment_details),
        version=row.version,
    )


def changes_to_columns(changes: Mapping[str, Any]) -> dict[str, Any]:
    """Convert domain-typed field changes to column values."""
    columns: dict[str, Any] = {}
    for key, value in changes.items():
        if key == "payment_details":
            columns[key] = payment_details_to_json(value)
        elif key in ("ready_at", "completed_at"):
            columns[key] = format_timestamp(value) if value is not None else None
        elif isinstance(value, Enum):
            columns[key] = value.value
        else:
            columns[key] = value
    return columns
