"""Global settings and configuration."""

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# Load from project root
_env_path = Path(__file__).parent.parent.parent / ".env"
load_dotenv(_env_path)

from .languages import LANG_CONFIG

# Active language pair
CURRENT_PAIR = os.environ.get("VOCABFORGE_LANG_PAIR", "PL-EN")


def _env_float(key: str, default: float) -> float:
    try:
        return float(os.environ.get(key, default))
    except ValueError:
        return default


@dataclass
class Config:
    """Application-wide configuration."""

    settings = LANG_CONFIG.get(CURRENT_PAIR, LANG_CONFIG["PL-EN"])

    # Language parameters
    CURRENT_PAIR: str = CURRENT_PAIR
    NATIVE_LANGUAGE: str = settings["native_language"]
    TARGET_LANGUAGE: str = settings["target_language"]
    VOICE: str = settings["voice"]
    RANDOM_TOPIC: str = settings["random_topic"]
    DEFAULT_CATEGORY: str = settings["default_category"]

    # Gemini is configured at deploy time, not through the settings form.
    # Store in environment variable or .env file: GEMINI_API_KEY
    GEMINI_API_KEY: str = os.environ.get("GEMINI_API_KEY", "")
    GEMINI_API_URL: str = "https://generativelanguage.googleapis.com/v1beta"

    # Pollinations API Configuration
    # Get your API key from https://enter.pollinations.ai/
    # NEVER hardcode secret keys in source code!
    POLLINATIONS_API_KEY: str = os.environ.get("POLLINATIONS_API_KEY", "")
    POLLINATIONS_IMAGE_URL: str = "https://image.pollinations.ai/prompt"
    POLLINATIONS_AUTH_URL: str = "https://gen.pollinations.ai/image"
    POLLINATIONS_IMAGE_MODEL: str = "flux"
    IMAGE_WIDTH: int = 800
    IMAGE_HEIGHT: int = 600

    # Async settings
    TIMEOUT: int = 60
    IMAGE_TIMEOUT: int = 90
    IMAGE_QUEUE_SPACING: float = _env_float("IMAGE_QUEUE_SPACING", 3.0)
    MATCH_FEEDBACK_DELAY: float = 1.0

    # Review session
    SESSION_SIZE: int = 10
    GENERATED_BATCH_SIZE: int = 5

    # Cross-platform paths using pathlib
    # BASE_DIR is the project root (parent of vocabforge/)
    BASE_DIR: Path = Path(__file__).parent.parent.parent.resolve()

    DATA_DIR: str = str(BASE_DIR / "data")
    MEDIA_DIR: str = str(BASE_DIR / "data" / "media")
    CACHE_DIR: str = str(BASE_DIR / "data" / "cache")
    WORDS_FILE: str = str(BASE_DIR / "data" / "vocab_words.csv")
    STATS_FILE: str = str(BASE_DIR / "data" / "vocab_stats.json")
    SETTINGS_FILE: str = str(BASE_DIR / "data" / "vocab_settings.json")
