"""Catalog collaborator -- price and station lookup at order time.

Menu management lives elsewhere; the lifecycle only needs to snapshot
what an item and its add-ons cost, and which station prepares it, at the
moment the ticket is written.
"""

from __future__ import annotations

import json
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from orderflow.orders.errors import ValidationError
from orderflow.orders.types import AddOnSnapshot, OrderLine, Station


@dataclass(frozen=True)
class CatalogItem:
    id: str
    name_en: str
    name_am: str
    price: Decimal
    station: Station
    available: bool = True


@dataclass(frozen=True)
class CatalogAddOn:
    id: str
    name_en: str
    name_am: str
    price: Decimal
    available: bool = True


@dataclass(frozen=True)
class LineRequest:
    """What a waitress device sends for one line: ids and a quantity."""

    menu_item_id: str
    quantity: int
    add_on_ids: tuple[str, ...] = field(default_factory=tuple)
    special_notes: str | None = None


@runtime_checkable
class Catalog(Protocol):
    """Read-only menu lookup."""

    async def lookup_item(self, menu_item_id: str) -> CatalogItem | None:
        """Return the current catalog entry, or None if unknown."""
        ...

    async def lookup_add_on(self, add_on_id: str) -> CatalogAddOn | None:
        """Return the current add-on entry, or None if unknown."""
        ...


class StaticCatalog:
    """Dict-backed Catalog, loadable from a JSON menu export."""

    def __init__(
        self,
        items: Sequence[CatalogItem] = (),
        add_ons: Sequence[CatalogAddOn] = (),
    ) -> None:
        self._items = {item.id: item for item in items}
        self._add_ons = {add_on.id: add_on for add_on in add_ons}

    async def lookup_item(self, menu_item_id: str) -> CatalogItem | None:
        return self._items.get(menu_item_id)

    async def lookup_add_on(self, add_on_id: str) -> CatalogAddOn | None:
        return self._add_ons.get(add_on_id)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> StaticCatalog:
        """Build from ``{"items": [...], "addOns": [...]}``.

        Raises:
            ValidationError: If an entry has a bad price or station.
        """
        try:
            items = [
                CatalogItem(
                    id=str(raw["id"]),
                    name_en=raw["nameEn"],
                    name_am=raw.get("nameAm", raw["nameEn"]),
                    price=Decimal(str(raw["price"])),
                    station=Station(raw["station"]),
                    available=bool(raw.get("available", True)),
                )
                for raw in data.get("items", [])
            ]
            add_ons = [
                CatalogAddOn(
                    id=str(raw["id"]),
                    name_en=raw["nameEn"],
                    name_am=raw.get("nameAm", raw["nameEn"]),
                    price=Decimal(str(raw["price"])),
                    available=bool(raw.get("available", True)),
                )
                for raw in data.get("addOns", [])
            ]
        except (KeyError, ValueError, InvalidOperation) as exc:
            raise ValidationError(f"Invalid catalog entry: {exc}") from exc
        return cls(items, add_ons)

    @classmethod
    def from_json_file(cls, path: str | Path) -> StaticCatalog:
        with Path(path).open(encoding="utf-8") as fh:
            return cls.from_dict(json.load(fh))


async def build_lines(
    catalog: Catalog,
    requests: Sequence[LineRequest],
) -> list[OrderLine]:
    """Snapshot catalog prices, names and stations into order lines.

    Raises:
        ValidationError: Unknown or unavailable item/add-on ids.
    """
    lines: list[OrderLine] = []
    for req in requests:
        item = await catalog.lookup_item(req.menu_item_id)
        if item is None:
            raise ValidationError(f"Unknown menu item: {req.menu_item_id}")
        if not item.available:
            raise ValidationError(f"Menu item unavailable: {item.name_en}")

        add_ons: list[AddOnSnapshot] = []
        for add_on_id in req.add_on_ids:
            add_on = await catalog.lookup_add_on(add_on_id)
            if add_on is None:
                raise ValidationError(f"Unknown add-on: {add_on_id}")
            if not add_on.available:
                raise ValidationError(f"Add-on unavailable: {add_on.name_en}")
            add_ons.append(
                AddOnSnapshot(
                    add_on_id=add_on.id,
                    name_en=add_on.name_en,
                    name_am=add_on.name_am,
                    price=add_on.price,
                )
            )

        lines.append(
            OrderLine(
                menu_item_id=item.id,
                name_en=item.name_en,
                name_am=item.name_am,
                quantity=req.quantity,
                price=item.price,
                station=item.station,
                add_ons=tuple(add_ons),
                special_notes=req.special_notes,
            )
        )
    return lines
