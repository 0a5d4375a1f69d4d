"""Pronunciation playback - TTS via Edge TTS."""

import asyncio
import logging
import os
import uuid
from abc import ABC, abstractmethod
from typing import Callable, Optional, Set

import edge_tts

from ..config import Config
from ..utils.parsing import TextParser
from ..utils.paths import MediaPathGenerator

logger = logging.getLogger(__name__)


class Speaker(ABC):
    """Playback collaborator: fire-and-forget pronunciation."""

    @abstractmethod
    def speak(self, text: str) -> None:
        """Pronounce `text`. Returns immediately; nothing is reported back."""

    async def close(self) -> None:
        """Release resources."""


class NullSpeaker(Speaker):
    """Used when text-to-speech is disabled."""

    def speak(self, text: str) -> None:
        logger.debug("TTS disabled, not speaking %r", text)


class EdgeTTSSpeaker(Speaker):
    """
    Synthesize speech with Edge TTS into the media directory.

    Each speak() call schedules a background task; the resulting MP3 path
    is handed to `player` (if any). Synthesized files are reused for
    repeated text.
    """

    def __init__(
        self,
        voice: Optional[str] = None,
        media_dir: Optional[str] = None,
        player: Optional[Callable[[str], None]] = None,
        rate: str = "-10%",
    ):
        self.voice = voice or Config.VOICE
        self.media_dir = media_dir or Config.MEDIA_DIR
        self.player = player
        self.rate = rate
        self._tasks: Set[asyncio.Task] = set()

    def speak(self, text: str) -> None:
        clean_text = TextParser.clean_for_tts(text)
        if not clean_text:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("speak() called outside an event loop; skipping %r", clean_text)
            return
        task = loop.create_task(self._speak(clean_text))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _speak(self, text: str) -> None:
        path = await self.synthesize(text)
        if path and self.player:
            self.player(path)

    async def synthesize(self, text: str) -> Optional[str]:
        """
        Generate audio for text, reusing a previous file when present.

        Uses atomic write pattern: write to temp file, then rename.

        Returns:
            Path to the MP3, or None on failure
        """
        output_path = MediaPathGenerator.speech_path(text, self.voice, self.media_dir)
        if os.path.exists(output_path) and os.path.getsize(output_path) > 100:
            return output_path

        temp_path = None
        try:
            os.makedirs(os.path.dirname(output_path), exist_ok=True)
            temp_path = f"{output_path}.{uuid.uuid4().hex[:8]}.tmp"

            communicate = edge_tts.Communicate(text, self.voice, rate=self.rate)
            await communicate.save(temp_path)

            # Verify file was created and has content
            if os.path.exists(temp_path) and os.path.getsize(temp_path) > 100:
                os.replace(temp_path, output_path)
                temp_path = None
                return output_path
            return None

        except Exception as e:
            error_msg = str(e)
            if "429" in error_msg or "Too Many Requests" in error_msg:
                logger.warning("TTS rate limit hit (429): %s", error_msg[:50])
            else:
                logger.warning("Error generating audio: %s", error_msg[:50])
            return None

        finally:
            # Clean up temp file if it still exists (failed write)
            if temp_path and os.path.exists(temp_path):
                os.remove(temp_path)

    async def close(self) -> None:
        """Wait for pending syntheses to finish."""
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
