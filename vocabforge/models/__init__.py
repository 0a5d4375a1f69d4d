"""Data models for VocabForge."""

from .word import (
    AppStats,
    LanguageLevel,
    SessionOutcome,
    StudyMode,
    StudySource,
    VocabularyItem,
    WordStatus,
    generate_id,
)
from .configuration import ProviderConfiguration

__all__ = [
    'AppStats',
    'LanguageLevel',
    'SessionOutcome',
    'StudyMode',
    'StudySource',
    'VocabularyItem',
    'WordStatus',
    'generate_id',
    'ProviderConfiguration',
]
