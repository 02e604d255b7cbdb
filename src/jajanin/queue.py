"""Single-flight alert presenter with a strict FIFO backlog."""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from enum import Enum
from typing import Awaitable, Callable, Deque, Optional

from .effects import AudioUnlock, SoundPlayer, SpeechSynthesizer
from .formatting import speech_text
from .models import AlertEvent, AlertSettings

logger = logging.getLogger(__name__)


class PresentationState(str, Enum):
    """State of the single visible alert slot."""

    IDLE = "idle"
    SHOWING = "showing"
    HIDING = "hiding"


StateListener = Callable[[PresentationState, Optional[AlertEvent]], None]
Sleep = Callable[[float], Awaitable[None]]


class AlertQueue:
    """Presents alerts one at a time, in arrival order.

    Each alert runs the full cycle ``showing -> hiding -> idle`` before the
    next one starts, and the audio started for an alert is stopped when its
    cycle ends, so sound and speech of two alerts never overlap.
    """

    def __init__(
        self,
        settings: Optional[AlertSettings] = None,
        *,
        sound: Optional[SoundPlayer] = None,
        speech: Optional[SpeechSynthesizer] = None,
        audio_unlock: Optional[AudioUnlock] = None,
        tts_enabled: bool = False,
        hide_transition_sec: float = 0.5,
        sleep: Sleep = asyncio.sleep,
        on_state_change: Optional[StateListener] = None,
    ) -> None:
        self._settings = settings or AlertSettings()
        self._sound = sound
        self._speech = speech
        self._audio_unlock = audio_unlock or AudioUnlock()
        self._tts_enabled = tts_enabled
        self._hide_transition_sec = hide_transition_sec
        self._sleep = sleep
        self._listeners: list[StateListener] = [on_state_change] if on_state_change else []

        self._backlog: Deque[AlertEvent] = deque()
        self._state = PresentationState.IDLE
        self._current: Optional[AlertEvent] = None
        self._runner: Optional[asyncio.Task[None]] = None
        self._idle = asyncio.Event()
        self._idle.set()

    @property
    def state(self) -> PresentationState:
        return self._state

    @property
    def current(self) -> Optional[AlertEvent]:
        return self._current

    @property
    def settings(self) -> AlertSettings:
        return self._settings

    @property
    def audio_unlock(self) -> AudioUnlock:
        return self._audio_unlock

    @property
    def tts_ready(self) -> bool:
        return self._tts_enabled and self._speech is not None and self._audio_unlock.is_unlocked

    def update_settings(self, settings: AlertSettings) -> None:
        """Apply new settings; the alert on screen keeps its duration."""

        self._settings = settings

    def add_listener(self, listener: StateListener) -> None:
        self._listeners.append(listener)

    def enqueue(self, alert: AlertEvent) -> None:
        """Append ``alert``; presentation starts at once when idle."""

        self._backlog.append(alert)
        self._idle.clear()
        if self._runner is None or self._runner.done():
            self._runner = asyncio.create_task(self._run(), name="alert-presenter")

    def pending(self) -> list[AlertEvent]:
        """Alerts waiting behind the one on screen."""

        return list(self._backlog)

    def size(self) -> int:
        return len(self._backlog)

    def clear(self) -> int:
        """Drop waiting alerts; the alert on screen finishes its cycle."""

        dropped = len(self._backlog)
        self._backlog.clear()
        return dropped

    async def join(self) -> None:
        """Wait until every queued alert has been presented."""

        await self._idle.wait()

    async def close(self) -> None:
        self._backlog.clear()
        if self._runner and not self._runner.done():
            self._runner.cancel()
            try:
                await self._runner
            except asyncio.CancelledError:
                pass
        self._runner = None

    async def _run(self) -> None:
        try:
            while self._backlog:
                await self._present(self._backlog.popleft())
        finally:
            self._idle.set()

    async def _present(self, alert: AlertEvent) -> None:
        duration = self._settings.duration
        self._current = alert
        self._set_state(PresentationState.SHOWING)
        logger.info("alert.showing", extra={"supporter": alert.supporter_name, "amount": alert.amount})

        effects: list[asyncio.Task[None]] = []
        if self._settings.sound_enabled and self._sound is not None:
            effects.append(asyncio.create_task(self._play_sound(self._sound), name="alert-sound"))
        if self.tts_ready and self._speech is not None:
            effects.append(
                asyncio.create_task(self._speak(self._speech, speech_text(alert)), name="alert-speech")
            )

        try:
            await self._sleep(duration)
            self._set_state(PresentationState.HIDING)
            await self._sleep(self._hide_transition_sec)
        finally:
            await self._stop_effects(effects)
            self._current = None
            self._set_state(PresentationState.IDLE)

    async def _play_sound(self, sound: SoundPlayer) -> None:
        try:
            await sound.play(self._settings.sound_file, self._settings.sound_volume)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.warning("alert.sound_failed", extra={"error": str(exc)})

    async def _speak(self, speech: SpeechSynthesizer, text: str) -> None:
        try:
            await speech.speak(text)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.debug("alert.speech_failed", extra={"error": str(exc)})

    async def _stop_effects(self, effects: list[asyncio.Task[None]]) -> None:
        running = [task for task in effects if not task.done()]
        for task in running:
            task.cancel()
        if running:
            await asyncio.gather(*running, return_exceptions=True)
            for player in (self._sound, self._speech):
                if player is not None:
                    player.stop()

    def _set_state(self, state: PresentationState) -> None:
        self._state = state
        for listener in self._listeners:
            try:
                listener(state, self._current)
            except Exception:
                logger.exception("alert.listener_error")
