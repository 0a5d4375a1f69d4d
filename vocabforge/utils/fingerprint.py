"""Deterministic prompt fingerprints for cache keys and reproducible seeds."""

import hashlib
import random

from .parsing import TextParser

# Seeds stay in the range image backends accept
SEED_SPACE = 10_000


def fingerprint_prompt(prompt: str) -> str:
    """SHA-256 of the normalized prompt (NFC, lower-case, collapsed whitespace)."""
    normalized = TextParser.normalize_prompt(prompt)
    return hashlib.sha256(normalized.encode("utf-8")).hexdigest()


def seed_from_fingerprint(fingerprint: str) -> int:
    """Reproducible seed: identical prompts give identical seeds."""
    return int(fingerprint[:12], 16) % SEED_SPACE


def random_seed() -> int:
    """Fresh non-deterministic seed for regeneration requests."""
    return random.randrange(SEED_SPACE)
