"""
Persistence collaborator: vocabulary items, settings and stats.

All operations are synchronous and last-write-wins. Missing fields are
defaulted; no migration is performed.
"""

import json
import logging
import os
import uuid
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..config import Config, SettingsManager
from ..models import AppStats, LanguageLevel, ProviderConfiguration, VocabularyItem
from ..utils.helpers import now_ms
from .repository import BaseRepository, CSVRepository

logger = logging.getLogger(__name__)

# First-launch collection: (gloss, headword, category, level)
SEED_WORDS = [
    ("dom", "house", "dom", LanguageLevel.A1),
    ("kot", "cat", "zwierzęta", LanguageLevel.A1),
    ("samochód", "car", "transport", LanguageLevel.A1),
    ("praca", "job", "praca", LanguageLevel.A1),
    ("szczęście", "happiness", "emocje", LanguageLevel.B1),
]


def seed_items(now: Optional[int] = None) -> List[VocabularyItem]:
    now = now_ms() if now is None else now
    return [
        VocabularyItem(id=str(i), gloss=gloss, headword=headword, category=category,
                       level=level, next_review_at=now)
        for i, (gloss, headword, category, level) in enumerate(SEED_WORDS, start=1)
    ]


class StorageService:
    """
    Load and save the learner's data.

    Usage:
        storage = StorageService()
        items = storage.load()
        storage.save(items)
    """

    def __init__(
        self,
        repository: Optional[BaseRepository] = None,
        settings: Optional[SettingsManager] = None,
        stats_file: Optional[str] = None,
    ):
        self.repository = repository or CSVRepository()
        self.settings = settings or SettingsManager()
        self.stats_file = Path(stats_file or Config.STATS_FILE)

    # ------------------------------------------------------------------ items

    def load(self) -> List[VocabularyItem]:
        """Stored items; the starter words on first launch."""
        if not self.repository.exists():
            logger.info("No stored vocabulary; seeding %d starter words", len(SEED_WORDS))
            items = seed_items()
            self.save(items)
            return items
        return self.repository.load_items()

    def save(self, items: List[VocabularyItem]) -> None:
        if not self.repository.save_items(list(items)):
            logger.warning("Vocabulary was not saved")

    # --------------------------------------------------------------- settings

    def load_settings(self) -> Dict[str, Any]:
        return self.settings.get_all()

    def save_settings(self, values: Dict[str, Any]) -> None:
        self.settings.update(values)

    def provider_configuration(self) -> ProviderConfiguration:
        """Read-only provider snapshot from the current settings."""
        return ProviderConfiguration.from_settings(self.load_settings())

    # ------------------------------------------------------------------ stats

    def load_stats(self) -> AppStats:
        if not self.stats_file.exists():
            return AppStats()
        try:
            with open(self.stats_file, 'r', encoding='utf-8') as f:
                return AppStats.from_dict(json.load(f))
        except (OSError, ValueError, TypeError) as e:
            logger.warning("Could not load stats file: %s", e)
            return AppStats()

    def save_stats(self, stats: AppStats) -> None:
        """Write stats atomically (temp file + rename)."""
        self.stats_file.parent.mkdir(parents=True, exist_ok=True)
        temp_file = f"{self.stats_file}.{uuid.uuid4().hex[:8]}.tmp"
        try:
            with open(temp_file, 'w', encoding='utf-8') as f:
                json.dump(stats.to_dict(), f, indent=2)
            os.replace(temp_file, self.stats_file)
        except OSError as e:
            logger.warning("Could not save stats file: %s", e)
        finally:
            if os.path.exists(temp_file):
                os.remove(temp_file)
