"""Entrypoint for the overlay process."""

from __future__ import annotations

import asyncio
import logging
import os
import signal
import sys

os.environ.setdefault("PYGAME_HIDE_SUPPORT_PROMPT", "1")

from .app import OverlayApp  # noqa: E402

logger = logging.getLogger(__name__)


async def main() -> None:
    """Run the overlay until SIGINT, SIGTERM or ``POST /control/shutdown``."""

    app = OverlayApp()
    stop_event = asyncio.Event()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except NotImplementedError:  # pragma: no cover - Windows compatibility
            signal.signal(sig, lambda *_: loop.call_soon_threadsafe(stop_event.set))
    app.register_shutdown_callback(stop_event.set)

    await app.start()
    logger.info("overlay.started")
    try:
        await stop_event.wait()
    finally:
        logger.info("overlay.stopping", extra={"queued": app.queue.size()})
        await app.stop()


def run() -> None:
    try:
        asyncio.run(main())
    except RuntimeError as exc:
        # startup failures such as an unset STREAM_KEY
        print(f"jajanin-overlay: {exc}", file=sys.stderr)
        sys.exit(2)


if __name__ == "__main__":
    run()
