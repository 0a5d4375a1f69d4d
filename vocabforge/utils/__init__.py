"""Utils module."""

from .helpers import (
    MS_PER_DAY,
    MS_PER_MINUTE,
    day_index,
    now_ms,
)
from .parsing import TextParser
from .logger import setup_logger

__all__ = [
    'MS_PER_DAY',
    'MS_PER_MINUTE',
    'day_index',
    'now_ms',
    'TextParser',
    'setup_logger',
]
