"""VocabForge - Spaced-repetition vocabulary trainer with AI-generated content"""

__version__ = "1.0.0"
__author__ = "VocabForge Team"

from .config import Config, LANG_CONFIG, SettingsManager
from .generation import GenerationOrchestrator, ImageCache, ImageRequest, RequestQueue
from .models import StudyMode, StudySource, VocabularyItem, WordStatus
from .services import SessionController, StorageService, VocabularyService, select_due, apply_outcome

__all__ = [
    'Config',
    'LANG_CONFIG',
    'SettingsManager',
    'GenerationOrchestrator',
    'ImageCache',
    'ImageRequest',
    'RequestQueue',
    'StudyMode',
    'StudySource',
    'VocabularyItem',
    'WordStatus',
    'SessionController',
    'StorageService',
    'VocabularyService',
    'select_due',
    'apply_outcome',
]
