"""
Generation Orchestrator - adapter resolution, fallback chains, caching.

Image requests always produce a reference: they run through the spaced
request queue and an ordered candidate chain that ends with the keyless
Pollinations URL builder. Text requests go straight to the configured text
adapter and fail loudly.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

from ..exceptions import GenerationFailed, ProviderConfigurationError, VocabForgeError
from ..models import LanguageLevel, ProviderConfiguration, VocabularyItem
from ..providers import (
    VERIFICATION_UNAVAILABLE,
    ImageProvider,
    ImageTier,
    PollinationsImageProvider,
    ProviderFactory,
    ProviderResult,
    TextProvider,
    Translation,
    Verification,
)
from ..providers.base import classify_exception
from ..utils.fingerprint import fingerprint_prompt, random_seed, seed_from_fingerprint
from .cache import ImageCache
from .queue import RequestQueue

logger = logging.getLogger(__name__)

DEFAULT_STYLE = "minimalist"

STYLE_PROMPTS = {
    "minimalist": "minimalist vector illustration, flat design, white background, high quality",
    "realistic": "highly detailed, photorealistic, 4k, cinematic lighting, sharp focus",
    "cartoon": "vibrant cartoon style, disney pixar style, 3d render, smooth lighting",
    "pixel": "pixel art, 8-bit, retro game style, clean lines",
    "cyberpunk": "cyberpunk style, neon lights, futuristic, high contrast",
}

# Strategies that resolve to the Pollinations pair at the end of the chain
_IMPLICIT_STRATEGIES = ("", "auto", "pollinations", "pollinations_auth")


def build_prompt(headword: str, context: Optional[str] = None, style: str = DEFAULT_STYLE) -> str:
    """Image prompt: headword, optional context, style suffix."""
    style_prompt = STYLE_PROMPTS.get(style, STYLE_PROMPTS[DEFAULT_STYLE])
    if context:
        return f"{headword}, context: {context}, {style_prompt}"
    return f"{headword}, {style_prompt}"


@dataclass(frozen=True)
class ImageRequest:
    """An illustration request for one headword."""
    headword: str
    context: Optional[str] = None
    style: str = DEFAULT_STYLE

    @property
    def prompt(self) -> str:
        return build_prompt(self.headword, self.context, self.style)


@dataclass(frozen=True)
class ImageResult:
    reference: str
    tier: ImageTier
    provider: str
    fingerprint: str
    from_cache: bool = False


class GenerationOrchestrator:
    """
    Produce images and text artifacts using the configured providers.

    Usage:
        orchestrator = GenerationOrchestrator(config, RequestQueue(), ImageCache())
        result = await orchestrator.generate_image(ImageRequest("kot", "cat"))
        words = await orchestrator.generate_words("animals", LanguageLevel.A2, 5, ["cat"])
    """

    def __init__(
        self,
        config: ProviderConfiguration,
        queue: RequestQueue,
        cache: ImageCache,
        terminal_provider: Optional[ImageProvider] = None,
        image_providers: Optional[Sequence[ImageProvider]] = None,
        text_provider: Optional[TextProvider] = None,
    ):
        """
        Args:
            config: Active provider configuration
            queue: Shared image request queue
            cache: Fingerprint-keyed image cache
            terminal_provider: Always-succeeding last candidate (keyless Pollinations)
            image_providers: Explicit candidates ahead of the terminal; resolved
                from `config` when omitted
            text_provider: Explicit text adapter; resolved from `config` when omitted
        """
        self.config = config
        self.queue = queue
        self.cache = cache
        self._terminal = terminal_provider or PollinationsImageProvider()
        self._candidates: Optional[List[ImageProvider]] = (
            list(image_providers) if image_providers is not None else None
        )
        self._text_provider = text_provider

    # ------------------------------------------------------------------ images

    def _resolve_candidates(self) -> List[ImageProvider]:
        candidates: List[ImageProvider] = []
        strategy = self.config.image_provider

        if strategy not in _IMPLICIT_STRATEGIES:
            try:
                candidates.append(ProviderFactory.create_image(strategy, self.config))
            except ProviderConfigurationError as e:
                logger.warning("Image provider '%s' unavailable, skipping: %s", strategy, e)

        if self.config.pollinations_api_key:
            candidates.append(ProviderFactory.create_image("pollinations_auth", self.config))

        return candidates

    @property
    def image_chain(self) -> List[ImageProvider]:
        """Ordered candidates, terminal provider last."""
        if self._candidates is None:
            self._candidates = self._resolve_candidates()
        return self._candidates + [self._terminal]

    @property
    def authenticated_configured(self) -> bool:
        """True when any candidate produces authenticated-tier images."""
        return any(p.tier == ImageTier.AUTHENTICATED for p in self.image_chain)

    async def _try_provider(self, provider: ImageProvider, prompt: str, seed: int) -> ProviderResult[str]:
        try:
            reference = await provider.generate_image(prompt, seed)
        except Exception as e:  # any adapter failure falls through to the next candidate
            return ProviderResult.failure(provider.name, classify_exception(provider.name, e))
        if not reference:
            return ProviderResult.failure(
                provider.name, classify_exception(provider.name, ValueError("empty reference"))
            )
        return ProviderResult.success(provider.name, reference)

    async def _run_chain(self, prompt: str, seed: int) -> ImageResult:
        fingerprint = fingerprint_prompt(prompt)
        for provider in self.image_chain:
            result = await self._try_provider(provider, prompt, seed)
            if result.ok:
                return ImageResult(
                    reference=result.value,
                    tier=provider.tier,
                    provider=result.provider,
                    fingerprint=fingerprint,
                )
            logger.warning(
                "Image provider '%s' failed (%s): %s; falling back",
                result.provider, result.error.category.value, result.error,
            )
        raise GenerationFailed("Every image provider failed", provider=self._terminal.name)

    async def generate_image(self, request: ImageRequest, force: bool = False) -> ImageResult:
        """
        Resolve an illustration for the request.

        Args:
            request: Headword, context and style
            force: Skip the cache read and use a fresh random seed

        Returns:
            ImageResult; the reference is always usable
        """
        prompt = request.prompt
        fingerprint = fingerprint_prompt(prompt)

        if not force:
            entry = self.cache.lookup(fingerprint, self.authenticated_configured)
            if entry is not None:
                return ImageResult(
                    reference=entry.reference,
                    tier=entry.tier,
                    provider="cache",
                    fingerprint=fingerprint,
                    from_cache=True,
                )

        seed = random_seed() if force else seed_from_fingerprint(fingerprint)
        result = await self.queue.enqueue(lambda: self._run_chain(prompt, seed))
        self.cache.store(fingerprint, result.reference, result.tier)
        logger.debug("Image for '%s' from %s (%s)", request.headword, result.provider, result.tier.value)
        return result

    # -------------------------------------------------------------------- text

    @property
    def text_provider(self) -> TextProvider:
        """
        Configured text adapter.

        Raises:
            ProviderConfigurationError: unknown provider or missing credential
        """
        if self._text_provider is None:
            self._text_provider = ProviderFactory.create_text(self.config)
        return self._text_provider

    async def generate_words(
        self,
        topic: str,
        level: LanguageLevel,
        count: int,
        exclude: Sequence[str] = (),
    ) -> List[VocabularyItem]:
        """Generate new vocabulary items on a topic, categorised under it."""
        words = await self.text_provider.generate_batch(topic, level, count, list(exclude))
        return [
            VocabularyItem(
                gloss=w.gloss,
                headword=w.headword,
                example_sentence=w.example_sentence,
                category=topic,
                level=LanguageLevel(level),
                generated=True,
            )
            for w in words
        ]

    async def translate(self, term: str, source_language: str) -> Translation:
        return await self.text_provider.translate(term, source_language)

    async def generate_example(self, headword: str, context: Optional[str] = None) -> str:
        return await self.text_provider.generate_example(headword, context)

    async def verify_answer(self, expected_gloss: str, learner_input: str) -> Verification:
        """Never raises; backend or configuration failures give VERIFICATION_UNAVAILABLE."""
        try:
            return await self.text_provider.verify_answer(expected_gloss, learner_input)
        except VocabForgeError as e:
            logger.warning("Answer verification unavailable: %s", e)
            return VERIFICATION_UNAVAILABLE

    async def close(self) -> None:
        """Close every adapter session."""
        providers: List[ImageProvider] = list(self._candidates or []) + [self._terminal]
        for provider in providers:
            await provider.close()
        if self._text_provider is not None:
            await self._text_provider.close()
