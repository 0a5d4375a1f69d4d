"""Services layer for business logic separation."""

from .repository import BaseRepository, CSVRepository, SQLiteRepository
from .scheduler import (
    ReviewSelection,
    apply_outcome,
    apply_outcomes,
    count_due,
    filter_by_source,
    select_due,
)
from .session import (
    AnswerFeedback,
    CardState,
    MatchCard,
    SelectionResult,
    SessionController,
    SessionState,
)
from .storage import StorageService
from .vocabulary_service import StorageBackend, VocabularyService, create_repository

__all__ = [
    "BaseRepository",
    "CSVRepository",
    "SQLiteRepository",
    "ReviewSelection",
    "apply_outcome",
    "apply_outcomes",
    "count_due",
    "filter_by_source",
    "select_due",
    "AnswerFeedback",
    "CardState",
    "MatchCard",
    "SelectionResult",
    "SessionController",
    "SessionState",
    "StorageService",
    "StorageBackend",
    "VocabularyService",
    "create_repository",
]
