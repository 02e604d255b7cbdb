"""Bounded newest-first history of received alerts."""

from __future__ import annotations

from collections import deque
from typing import Deque

from ..models import AlertEvent


class RecentAlerts:
    """Keeps the last few alerts for dashboard and donation-page feeds."""

    def __init__(self, capacity: int = 5) -> None:
        if capacity <= 0:
            raise ValueError("Capacity must be positive")
        self._items: Deque[AlertEvent] = deque(maxlen=capacity)
        self._total_amount = 0
        self._count = 0

    def record(self, alert: AlertEvent) -> None:
        self._items.appendleft(alert)
        self._total_amount += alert.amount
        self._count += 1

    def snapshot(self) -> list[AlertEvent]:
        """Return the retained alerts, newest first."""

        return list(self._items)

    @property
    def total_amount(self) -> int:
        """Sum of every alert recorded this session, including evicted ones."""

        return self._total_amount

    @property
    def count(self) -> int:
        return self._count

    def __len__(self) -> int:
        return len(self._items)
