"""
Media path generation utilities - Single source of truth for file naming.

Downloaded illustrations and synthesized pronunciations are stored under
Config.MEDIA_DIR with content-derived names.
"""

import hashlib
from pathlib import Path
from typing import Optional

from ..config import Config


class MediaPathGenerator:
    """
    Centralized media file path generator.

    Ensures consistent naming conventions across the application.
    """

    # Version suffix for cache invalidation on format changes
    VERSION = "v1"

    # File extensions
    AUDIO_EXT = ".mp3"
    IMAGE_EXT = ".jpg"

    @classmethod
    def _get_media_dir(cls, media_dir: Optional[str] = None) -> Path:
        """Get media directory path."""
        return Path(media_dir or Config.MEDIA_DIR)

    @staticmethod
    def _short_hash(text: str) -> str:
        return hashlib.sha256(text.encode("utf-8")).hexdigest()[:16]

    @classmethod
    def image(cls, fingerprint: str, seed: int) -> str:
        """
        Generate filename for a downloaded illustration.

        Returns:
            Filename like "_img_abc123_42.jpg"
        """
        return f"_img_{fingerprint[:16]}_{seed}{cls.IMAGE_EXT}"

    @classmethod
    def speech(cls, text: str, voice: Optional[str] = None) -> str:
        """
        Generate filename for synthesized speech.

        Returns:
            Filename like "_say_abc123_en-US-JennyNeural_v1.mp3"
        """
        voice = voice or Config.VOICE
        return f"_say_{cls._short_hash(text)}_{voice}_{cls.VERSION}{cls.AUDIO_EXT}"

    @classmethod
    def image_path(cls, fingerprint: str, seed: int, media_dir: Optional[str] = None) -> str:
        """Full path for a downloaded illustration."""
        return str(cls._get_media_dir(media_dir) / cls.image(fingerprint, seed))

    @classmethod
    def speech_path(cls, text: str, voice: Optional[str] = None, media_dir: Optional[str] = None) -> str:
        """Full path for synthesized speech."""
        return str(cls._get_media_dir(media_dir) / cls.speech(text, voice))
