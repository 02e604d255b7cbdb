"""Server-Sent Events framing and alert payload decoding."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterable, AsyncIterator
from dataclasses import dataclass
from typing import Optional

from pydantic import ValidationError

from ..models import AlertEvent

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class ServerEvent:
    """One dispatched SSE event."""

    event: str
    data: str
    id: Optional[str] = None


async def iter_events(lines: AsyncIterable[str]) -> AsyncIterator[ServerEvent]:
    """Group decoded stream lines into events.

    Comment lines (heartbeats) are skipped and an event is only dispatched on
    the blank line that terminates it; a trailing partial event is discarded.
    """

    event_name = ""
    data: list[str] = []
    last_id: Optional[str] = None

    async for raw in lines:
        line = raw.rstrip("\r")
        if not line:
            if data:
                yield ServerEvent(event=event_name or "message", data="\n".join(data), id=last_id)
            event_name = ""
            data = []
            continue
        if line.startswith(":"):
            continue

        field, _, value = line.partition(":")
        if value.startswith(" "):
            value = value[1:]

        if field == "event":
            event_name = value
        elif field == "data":
            data.append(value)
        elif field == "id":
            last_id = value


def decode_alert(data: str) -> Optional[AlertEvent]:
    """Validate an ``alert`` payload; malformed payloads yield ``None``."""

    try:
        return AlertEvent.model_validate_json(data)
    except ValidationError as exc:
        logger.debug("stream.alert_parse_error", extra={"error": str(exc), "raw": data[:100]})
        return None
