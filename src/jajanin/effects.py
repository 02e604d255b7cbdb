"""Audio side effects of alert presentation: sound cues and speech."""

from __future__ import annotations

import asyncio
import io
import logging
from pathlib import Path
from typing import Optional, Protocol

import httpx
import pygame

logger = logging.getLogger(__name__)

_POLL_INTERVAL_SEC = 0.05


class SoundPlayer(Protocol):
    async def play(self, sound_file: str, volume: int) -> None: ...

    def stop(self) -> None: ...


class SpeechSynthesizer(Protocol):
    async def speak(self, text: str) -> None: ...

    def stop(self) -> None: ...


class AudioUnlock:
    """Session-scoped record of the operator's one-time audio-unlock gesture.

    Unattended browser sources refuse to start audio until someone interacts
    with them once; the presenter only speaks after :meth:`unlock` was called.
    """

    def __init__(self, unlocked: bool = False) -> None:
        self._unlocked = unlocked

    def unlock(self) -> None:
        if not self._unlocked:
            logger.info("audio.unlocked")
        self._unlocked = True

    @property
    def is_unlocked(self) -> bool:
        return self._unlocked


def _ensure_mixer() -> None:
    if not pygame.mixer.get_init():
        pygame.mixer.init()


async def _wait_channel(channel: Optional[pygame.mixer.Channel]) -> None:
    if channel is None:
        return
    try:
        while channel.get_busy():
            await asyncio.sleep(_POLL_INTERVAL_SEC)
    except asyncio.CancelledError:
        channel.stop()
        raise


class PygameSoundPlayer:
    """Plays ``<sounds_dir>/<name>.mp3`` through the pygame mixer."""

    def __init__(self, sounds_dir: Path) -> None:
        self._sounds_dir = sounds_dir

    async def play(self, sound_file: str, volume: int) -> None:
        path = self._sounds_dir / f"{sound_file}.mp3"
        _ensure_mixer()
        sound = await asyncio.to_thread(pygame.mixer.Sound, str(path))
        sound.set_volume(max(0, min(volume, 100)) / 100)
        await _wait_channel(sound.play())

    def stop(self) -> None:
        if pygame.mixer.get_init():
            pygame.mixer.stop()


class HttpSpeechSynthesizer:
    """Fetches synthesized audio for a sentence from a TTS server and plays it."""

    def __init__(self, endpoint: str, client: Optional[httpx.AsyncClient] = None, timeout: float = 30.0) -> None:
        self._endpoint = endpoint
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._channel: Optional[pygame.mixer.Channel] = None

    async def aclose(self) -> None:
        await self._client.aclose()

    async def speak(self, text: str) -> None:
        response = await self._client.post(self._endpoint, json={"text": text, "lang": "id"})
        response.raise_for_status()
        if not response.content:
            return
        _ensure_mixer()
        sound = pygame.mixer.Sound(file=io.BytesIO(response.content))
        self._channel = sound.play()
        await _wait_channel(self._channel)

    def stop(self) -> None:
        if self._channel is not None:
            self._channel.stop()
            self._channel = None
