"""Configuration module for VocabForge."""

from .settings import Config
from .languages import LANG_CONFIG
from .config_manager import SettingsManager

__all__ = [
    'Config',
    'LANG_CONFIG',
    'SettingsManager',
]
