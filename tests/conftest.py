import os
import sys
from typing import List, Optional

import pytest

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from vocabforge.config import Config, SettingsManager
from vocabforge.generation import GenerationOrchestrator, ImageCache, RequestQueue
from vocabforge.models import LanguageLevel, ProviderConfiguration, VocabularyItem, WordStatus
from vocabforge.providers import (
    VERIFICATION_UNAVAILABLE,
    GeneratedWord,
    ImageProvider,
    ImageTier,
    TextProvider,
    Translation,
    VerificationResult,
)

NOW = 1_700_000_000_000


class FakeImageProvider(ImageProvider):
    """Records calls; fails with `error` when given."""

    def __init__(self, name: str = "fake_image", tier: ImageTier = ImageTier.AUTHENTICATED,
                 error: Optional[Exception] = None):
        super().__init__()
        self.name = name
        self.tier = tier
        self.error = error
        self.calls = []

    async def generate_image(self, prompt: str, seed: int) -> str:
        self.calls.append((prompt, seed))
        if self.error is not None:
            raise self.error
        return f"{self.name}://{seed}/{len(self.calls)}"


class FakeTextProvider(TextProvider):
    name = "fake_text"

    def __init__(self, verdict=VERIFICATION_UNAVAILABLE, words: Optional[List[GeneratedWord]] = None,
                 translation: Optional[Translation] = None, example: str = "The cat sleeps."):
        super().__init__()
        self.verdict = verdict
        self.words = words or []
        self.translation = translation or Translation("cat", "The cat sleeps.")
        self.example = example
        self.calls = []

    async def generate_batch(self, topic, level, count, exclude):
        self.calls.append(("generate_batch", topic, level, count, list(exclude)))
        return self.words[:count]

    async def translate(self, term, source_language):
        self.calls.append(("translate", term, source_language))
        return self.translation

    async def generate_example(self, headword, context=None):
        self.calls.append(("generate_example", headword, context))
        return self.example

    async def verify_answer(self, expected_gloss, learner_input):
        self.calls.append(("verify_answer", expected_gloss, learner_input))
        return self.verdict


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Point every data path at a temporary directory and drop deploy-time keys."""
    monkeypatch.setattr(Config, "DATA_DIR", str(tmp_path))
    monkeypatch.setattr(Config, "MEDIA_DIR", str(tmp_path / "media"))
    monkeypatch.setattr(Config, "CACHE_DIR", str(tmp_path / "cache"))
    monkeypatch.setattr(Config, "WORDS_FILE", str(tmp_path / "vocab_words.csv"))
    monkeypatch.setattr(Config, "STATS_FILE", str(tmp_path / "vocab_stats.json"))
    monkeypatch.setattr(Config, "SETTINGS_FILE", str(tmp_path / "vocab_settings.json"))
    monkeypatch.setattr(Config, "GEMINI_API_KEY", "")
    monkeypatch.setattr(Config, "POLLINATIONS_API_KEY", "")
    for key in SettingsManager.DEFAULTS:
        monkeypatch.delenv(key, raising=False)

    SettingsManager.reset_instance()
    yield tmp_path
    SettingsManager.reset_instance()


@pytest.fixture
def make_item():
    def _make(headword="house", gloss="dom", **changes):
        fields = dict(
            headword=headword,
            gloss=gloss,
            level=LanguageLevel.A1,
            status=WordStatus.NEW,
            next_review_at=NOW,
        )
        fields.update(changes)
        return VocabularyItem(**fields)
    return _make


@pytest.fixture
def image_cache(tmp_path):
    return ImageCache(str(tmp_path / "cache" / "image_cache.json"))


@pytest.fixture
def fast_queue():
    return RequestQueue(spacing=0.0)


@pytest.fixture
def text_provider():
    return FakeTextProvider()


@pytest.fixture
def orchestrator(fast_queue, image_cache, text_provider):
    return GenerationOrchestrator(
        ProviderConfiguration(),
        fast_queue,
        image_cache,
        terminal_provider=FakeImageProvider("terminal", tier=ImageTier.ANONYMOUS),
        image_providers=[],
        text_provider=text_provider,
    )


@pytest.fixture
def verdict_correct():
    return VerificationResult(correct=True, feedback="Good synonym")
