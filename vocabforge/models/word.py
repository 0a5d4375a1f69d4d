"""Vocabulary data model."""

import uuid
from dataclasses import asdict, dataclass, field, fields, replace
from enum import Enum
from typing import Any, Dict, Optional

from ..utils.helpers import now_ms


class LanguageLevel(str, Enum):
    """CEFR proficiency tiers, ordered from beginner to mastery."""
    A1 = "A1"
    A2 = "A2"
    B1 = "B1"
    B2 = "B2"
    C1 = "C1"
    C2 = "C2"


class WordStatus(str, Enum):
    """Lifecycle status of a vocabulary item."""
    NEW = "new"
    LEARNING = "learning"
    LEARNED = "learned"


class StudyMode(str, Enum):
    """Interaction modes of a study session."""
    FLASHCARDS = "flashcards"
    TYPING = "typing"
    MATCH = "match"
    LISTENING = "listening"


class StudySource(str, Enum):
    """Provenance filter for the review pool."""
    ALL = "all"
    MANUAL = "manual"
    AI_GENERATED = "ai"


def generate_id() -> str:
    """Opaque short identifier for a new item."""
    return uuid.uuid4().hex[:9]


@dataclass
class VocabularyItem:
    """The unit of learning: one headword with its gloss and review state."""

    gloss: str
    headword: str
    category: str = ""
    level: LanguageLevel = LanguageLevel.B1
    id: str = field(default_factory=generate_id)

    example_sentence: Optional[str] = None
    image_ref: Optional[str] = None

    status: WordStatus = WordStatus.NEW
    next_review_at: int = field(default_factory=now_ms)
    last_review_at: Optional[int] = None
    attempt_count: int = 0
    correct_streak: int = 0

    # Provenance only; never used by scheduling math
    generated: bool = False

    @property
    def is_new(self) -> bool:
        return self.status == WordStatus.NEW

    def with_changes(self, **changes: Any) -> "VocabularyItem":
        """Return a copy with the given fields replaced."""
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["level"] = self.level.value
        data["status"] = self.status.value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "VocabularyItem":
        """
        Build an item from stored data, defaulting missing fields.

        Unknown keys are ignored; no other migration is performed.
        """
        known = {f.name for f in fields(cls)}
        values = {
            k: v for k, v in data.items()
            if k in known and v is not None and v != ""
        }

        values.setdefault("gloss", "")
        values.setdefault("headword", "")
        if "id" in values:
            values["id"] = str(values["id"])
        if "level" in values:
            try:
                values["level"] = LanguageLevel(values["level"])
            except ValueError:
                values["level"] = LanguageLevel.B1
        if "status" in values:
            try:
                values["status"] = WordStatus(values["status"])
            except ValueError:
                values["status"] = WordStatus.NEW
        for key in ("next_review_at", "last_review_at", "attempt_count", "correct_streak"):
            if key in values:
                values[key] = int(values[key])
        values["generated"] = values.get("generated") in (True, "True", "true", 1, "1")
        return cls(**values)


@dataclass(frozen=True)
class SessionOutcome:
    """Result of one item in one session. Consumed once, never persisted."""
    item_id: str
    correct: bool


@dataclass
class AppStats:
    """Dashboard statistics."""
    total_words: int = 0
    learned_words: int = 0
    streak_days: int = 0
    last_study_date: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AppStats":
        known = {f.name for f in fields(cls)}
        return cls(**{k: int(v) for k, v in data.items() if k in known and v is not None})
