"""Generation module - queue, cache and provider orchestration."""

from ..utils.fingerprint import fingerprint_prompt, random_seed, seed_from_fingerprint
from .cache import GenerationCacheEntry, ImageCache
from .orchestrator import (
    STYLE_PROMPTS,
    GenerationOrchestrator,
    ImageRequest,
    ImageResult,
    build_prompt,
)
from .queue import RequestQueue

__all__ = [
    'fingerprint_prompt',
    'random_seed',
    'seed_from_fingerprint',
    'GenerationCacheEntry',
    'ImageCache',
    'STYLE_PROMPTS',
    'GenerationOrchestrator',
    'ImageRequest',
    'ImageResult',
    'build_prompt',
    'RequestQueue',
]
