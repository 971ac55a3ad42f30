"""RecordingNotificationBus -- in-memory bus for testing.

Inspect ``published`` after test execution, or set ``fail_with`` to make
every publish raise.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from orderflow.notify.bus import EventName


class RecordingNotificationBus:
    def __init__(self, fail_with: Exception | None = None) -> None:
        self.published: list[tuple[EventName, dict[str, Any]]] = []
        self.fail_with = fail_with

    async def publish(self, event: EventName, payload: Mapping[str, Any]) -> None:
        if self.fail_with is not None:
            raise self.fail_with
        self.published.append((event, dict(payload)))

    def events_for(self, order_id: str) -> list[EventName]:
        """Event names published for one order, in publish order."""
        return [e for e, p in self.published if p.get("orderId") == order_id]
