"""Alert stream package."""

__all__ = [
    "EventStreamClient",
    "RecentAlerts",
    "StreamError",
    "Subscription",
]

from .client import EventStreamClient, StreamError, Subscription
from .history import RecentAlerts
