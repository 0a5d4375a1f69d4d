"""
Vocabulary Service - the learner's collection and its statistics.

Separates collection logic from the entry points, enabling:
- Swappable storage backends (CSV, SQLite)
- Testable business logic
"""

import logging
from enum import Enum
from typing import Callable, List, Optional, Sequence

from ..config import Config
from ..exceptions import GenerationFailed
from ..generation import GenerationOrchestrator
from ..models import AppStats, LanguageLevel, SessionOutcome, StudySource, VocabularyItem, WordStatus
from ..utils.helpers import day_index, now_ms
from .repository import BaseRepository, CSVRepository, SQLiteRepository
from .scheduler import ReviewSelection, apply_outcomes, count_due, filter_by_source, select_due
from .storage import StorageService

logger = logging.getLogger(__name__)


class StorageBackend(Enum):
    """Available storage backends."""
    CSV = "csv"
    SQLITE = "sqlite"


def create_repository(backend: StorageBackend = StorageBackend.CSV, path: Optional[str] = None) -> BaseRepository:
    """Get the repository for a backend."""
    if StorageBackend(backend) == StorageBackend.SQLITE:
        return SQLiteRepository(path)
    return CSVRepository(path)


def next_streak(stats: AppStats, now: int) -> int:
    """Study-day streak after studying at `now`."""
    if not stats.last_study_date:
        return 1
    gap = day_index(now) - day_index(stats.last_study_date)
    if gap <= 0:
        return max(stats.streak_days, 1)
    if gap == 1:
        return stats.streak_days + 1
    return 1


class VocabularyService:
    """
    Service for managing the vocabulary collection.

    Every mutation is saved immediately and refreshes the statistics.

    Usage:
        service = VocabularyService(StorageService(), orchestrator)
        service.load()
        selection = service.select_for_review()
    """

    def __init__(self, storage: Optional[StorageService] = None,
                 orchestrator: Optional[GenerationOrchestrator] = None):
        self.storage = storage or StorageService()
        self.orchestrator = orchestrator
        self._items: List[VocabularyItem] = []
        self.stats = AppStats()
        self._change_callbacks: List[Callable[[], None]] = []

    @property
    def items(self) -> List[VocabularyItem]:
        return list(self._items)

    @property
    def count(self) -> int:
        return len(self._items)

    def on_change(self, callback: Callable[[], None]) -> None:
        """
        Register a callback for data changes.

        Args:
            callback: Function to call when data changes
        """
        self._change_callbacks.append(callback)

    def _notify_change(self) -> None:
        for callback in self._change_callbacks:
            callback()

    def load(self) -> List[VocabularyItem]:
        """Load the collection and stats from storage."""
        self._items = self.storage.load()
        self.stats = self.storage.load_stats()
        self._refresh_stats()
        return self.items

    def _commit(self, items: List[VocabularyItem]) -> None:
        self._items = items
        self.storage.save(self._items)
        self._refresh_stats()
        self._notify_change()

    def _refresh_stats(self) -> None:
        self.stats = AppStats(
            total_words=len(self._items),
            learned_words=sum(1 for item in self._items if item.status == WordStatus.LEARNED),
            streak_days=self.stats.streak_days,
            last_study_date=self.stats.last_study_date,
        )
        self.storage.save_stats(self.stats)

    def get(self, item_id: str) -> Optional[VocabularyItem]:
        for item in self._items:
            if item.id == item_id:
                return item
        return None

    def filter(self, source: StudySource = StudySource.ALL) -> List[VocabularyItem]:
        return filter_by_source(self._items, source)

    def count_new(self) -> int:
        return sum(1 for item in self._items if item.status == WordStatus.NEW)

    def count_due(self, now: Optional[int] = None) -> int:
        return count_due(self._items, now)

    # -------------------------------------------------------------- mutations

    def add_item(self, item: VocabularyItem) -> VocabularyItem:
        self._commit(self._items + [item])
        return item

    async def add_word(
        self,
        gloss: str = "",
        headword: str = "",
        category: Optional[str] = None,
        level: LanguageLevel = LanguageLevel.B1,
    ) -> VocabularyItem:
        """
        Add a learner-authored word.

        Only the native form given: translate it. Only the target form:
        translate it back. Both given: generate the example sentence.

        Raises:
            ValueError: neither form given
            GenerationFailed: translation or example generation failed
        """
        gloss = gloss.strip()
        headword = headword.strip()
        if not gloss and not headword:
            raise ValueError("Enter at least one word (native or target language).")

        example = None
        if self.orchestrator is None:
            if not (gloss and headword):
                raise GenerationFailed("No text provider available for translation")
        elif not headword:
            translation = await self.orchestrator.translate(gloss, Config.NATIVE_LANGUAGE)
            headword, example = translation.translation, translation.example_sentence
        elif not gloss:
            translation = await self.orchestrator.translate(headword, Config.TARGET_LANGUAGE)
            gloss, example = translation.translation, translation.example_sentence
        else:
            example = await self.orchestrator.generate_example(headword, gloss)

        item = VocabularyItem(
            gloss=gloss,
            headword=headword,
            category=category or Config.DEFAULT_CATEGORY,
            level=LanguageLevel(level),
            example_sentence=example or None,
        )
        return self.add_item(item)

    async def generate_words(
        self,
        topic: str = Config.RANDOM_TOPIC,
        level: LanguageLevel = LanguageLevel.B1,
        count: int = Config.GENERATED_BATCH_SIZE,
    ) -> List[VocabularyItem]:
        """Generate a batch on a topic, excluding headwords already in the collection."""
        if self.orchestrator is None:
            raise GenerationFailed("No text provider available for generation")
        exclude = [item.headword for item in self._items]
        new_items = await self.orchestrator.generate_words(topic, level, count, exclude)
        if new_items:
            self._commit(self._items + new_items)
        logger.info("Added %d generated words on '%s'", len(new_items), topic)
        return new_items

    def delete(self, item_id: str) -> bool:
        remaining = [item for item in self._items if item.id != item_id]
        if len(remaining) == len(self._items):
            return False
        self._commit(remaining)
        return True

    def update_item(self, updated: VocabularyItem) -> None:
        """Replace an item by id (used for cached image references)."""
        self._commit([updated if item.id == updated.id else item for item in self._items])

    def set_image_ref(self, item_id: str, image_ref: str) -> None:
        item = self.get(item_id)
        if item is not None:
            self.update_item(item.with_changes(image_ref=image_ref))

    # ---------------------------------------------------------------- review

    def select_for_review(self, source: Optional[StudySource] = None, limit: int = Config.SESSION_SIZE,
                          now: Optional[int] = None) -> ReviewSelection:
        """
        Due items for the preferred study source.

        Raises:
            NoEligibleItems: nothing to study under the filter
        """
        if source is None:
            source = StudySource(self.storage.load_settings().get("PREFERRED_STUDY_SOURCE", "all"))
        return select_due(self._items, source, limit, now)

    def apply_session_results(self, outcomes: Sequence[SessionOutcome], now: Optional[int] = None) -> None:
        """Reschedule reviewed items and advance the study-day streak."""
        now = now_ms() if now is None else now
        self.stats = AppStats(
            total_words=self.stats.total_words,
            learned_words=self.stats.learned_words,
            streak_days=next_streak(self.stats, now),
            last_study_date=now,
        )
        self._commit(apply_outcomes(self._items, outcomes, now))
