"""Image cache with thread-safe operations."""

import json
import logging
import os
import uuid
from dataclasses import dataclass
from pathlib import Path
from threading import Lock
from typing import Any, Dict, Optional

from ..config import Config
from ..providers.base import ImageTier
from ..utils.helpers import now_ms

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GenerationCacheEntry:
    """A generated illustration and the tier it was produced under."""
    reference: str
    tier: ImageTier
    created_at: int

    @property
    def is_authenticated(self) -> bool:
        return self.tier == ImageTier.AUTHENTICATED

    def to_dict(self) -> Dict[str, Any]:
        return {"reference": self.reference, "tier": self.tier.value, "created_at": self.created_at}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GenerationCacheEntry":
        try:
            tier = ImageTier(data.get("tier", ImageTier.ANONYMOUS.value))
        except ValueError:
            tier = ImageTier.ANONYMOUS
        return cls(
            reference=str(data["reference"]),
            tier=tier,
            created_at=int(data.get("created_at") or 0),
        )


class ImageCache:
    """
    Fingerprint-keyed cache of generated illustrations.

    Thread-safe implementation using a lock; every write is persisted
    immediately with an atomic temp-file rename.
    """

    def __init__(self, cache_file: Optional[str] = None):
        """
        Initialize image cache.

        Args:
            cache_file: Path to cache JSON file (defaults to data/cache/image_cache.json)
        """
        if cache_file is None:
            cache_file = os.path.join(Config.CACHE_DIR, "image_cache.json")

        self.cache_file = cache_file
        self._lock = Lock()
        self.cache: Dict[str, GenerationCacheEntry] = self._load_cache()

    def _load_cache(self) -> Dict[str, GenerationCacheEntry]:
        """Load cache from file. Unreadable entries are dropped."""
        if not os.path.exists(self.cache_file):
            return {}
        try:
            with open(self.cache_file, 'r', encoding='utf-8') as f:
                raw = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Could not read image cache %s: %s", self.cache_file, e)
            return {}

        if not isinstance(raw, dict):
            return {}

        entries = {}
        for key, value in raw.items():
            try:
                entries[key] = GenerationCacheEntry.from_dict(value)
            except (KeyError, TypeError, ValueError):
                logger.debug("Skipping malformed cache entry %s", key)
        return entries

    def save(self) -> None:
        """Save cache to file (thread-safe with atomic write)."""
        with self._lock:
            self._save_internal()

    def _save_internal(self) -> None:
        """Internal save without lock (caller must hold lock)."""
        Path(self.cache_file).parent.mkdir(parents=True, exist_ok=True)
        # Atomic write: temp file + rename
        temp_file = f"{self.cache_file}.{uuid.uuid4().hex[:8]}.tmp"
        try:
            with open(temp_file, 'w', encoding='utf-8') as f:
                json.dump({k: v.to_dict() for k, v in self.cache.items()}, f, indent=2)
            os.replace(temp_file, self.cache_file)
        except OSError as e:
            logger.warning("Could not write image cache %s: %s", self.cache_file, e)
        finally:
            if os.path.exists(temp_file):
                os.remove(temp_file)

    def get(self, fingerprint: str) -> Optional[GenerationCacheEntry]:
        """Raw entry for a fingerprint, regardless of tier."""
        with self._lock:
            return self.cache.get(fingerprint)

    def lookup(self, fingerprint: str, authenticated_configured: bool) -> Optional[GenerationCacheEntry]:
        """
        Entry to serve for a fingerprint, or None when absent or stale.

        With an authenticated credential configured, anonymous entries are
        stale; otherwise any entry is served.
        """
        entry = self.get(fingerprint)
        if entry is None:
            return None
        if authenticated_configured and not entry.is_authenticated:
            logger.info("Cached image %s is anonymous-tier; regenerating", fingerprint[:12])
            return None
        return entry

    def store(self, fingerprint: str, reference: str, tier: ImageTier,
              created_at: Optional[int] = None) -> GenerationCacheEntry:
        """Record a generated image and persist the cache."""
        entry = GenerationCacheEntry(
            reference=reference,
            tier=tier,
            created_at=created_at if created_at is not None else now_ms(),
        )
        with self._lock:
            self.cache[fingerprint] = entry
            self._save_internal()
        return entry

    def invalidate(self, fingerprint: str) -> None:
        with self._lock:
            if self.cache.pop(fingerprint, None) is not None:
                self._save_internal()

    def clear(self) -> None:
        """Clear all cache."""
        with self._lock:
            self.cache = {}
            self._save_internal()

    def __len__(self) -> int:
        with self._lock:
            return len(self.cache)

    def __contains__(self, fingerprint: str) -> bool:
        with self._lock:
            return fingerprint in self.cache

    def get_stats(self) -> Dict[str, Any]:
        """Get cache statistics."""
        with self._lock:
            authenticated = sum(1 for e in self.cache.values() if e.is_authenticated)
            return {
                'total_entries': len(self.cache),
                'authenticated_entries': authenticated,
                'cache_file': self.cache_file,
            }
