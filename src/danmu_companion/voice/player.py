"""Audio Player - plays synthesized audio bytes through pygame's mixer."""

from __future__ import annotations

import asyncio
import io
import logging

import pygame

from ..errors import PlaybackFailed

logger = logging.getLogger(__name__)


class AudioPlayer:
    """Plays one clip at a time. The mixer is initialized on first use."""

    def __init__(self, poll_interval: float = 0.1) -> None:
        self._poll_interval = poll_interval
        self._ready = False
        self._stopped = False

    def ensure_ready(self) -> bool:
        """Initialize the mixer; False when no audio device is usable."""
        if self._ready:
            return True
        try:
            pygame.mixer.init()
        except pygame.error as e:
            logger.warning("Audio mixer unavailable: %s", e)
            return False
        self._ready = True
        return True

    async def play(self, audio: bytes) -> None:
        """Play an encoded clip (mp3) and wait for it to finish.

        Raises:
            PlaybackFailed: the mixer could not start or decode the clip.
        """
        if not self.ensure_ready():
            raise PlaybackFailed("audio mixer unavailable")

        self._stopped = False
        try:
            pygame.mixer.music.load(io.BytesIO(audio))
            pygame.mixer.music.play()

            # Wait for playback to finish
            while pygame.mixer.music.get_busy() and not self._stopped:
                await asyncio.sleep(self._poll_interval)
        except pygame.error as e:
            raise PlaybackFailed(f"playback failed: {e}") from e
        finally:
            pygame.mixer.music.stop()
            pygame.mixer.music.unload()

    def stop(self) -> None:
        """Stop the current clip immediately."""
        self._stopped = True
        if self._ready:
            pygame.mixer.music.stop()

    def cleanup(self) -> None:
        """Release the mixer."""
        if self._ready:
            pygame.mixer.quit()
            self._ready = False
