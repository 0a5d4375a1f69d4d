import asyncio
import urllib.parse

import pytest

from vocabforge.exceptions import FailureCategory, GenerationFailed, ProviderConfigurationError, ProviderError
from vocabforge.generation import (
    GenerationOrchestrator,
    ImageRequest,
    build_prompt,
    fingerprint_prompt,
    seed_from_fingerprint,
)
from vocabforge.generation import orchestrator as orchestrator_module
from vocabforge.models import LanguageLevel, ProviderConfiguration
from vocabforge.providers import (
    VERIFICATION_UNAVAILABLE,
    DeepAIImageProvider,
    GeneratedWord,
    HFSpaceImageProvider,
    ImageTier,
    PollinationsAuthenticatedProvider,
    PollinationsImageProvider,
)

from conftest import FakeImageProvider, FakeTextProvider

REQUEST = ImageRequest("cat", "The cat sleeps on the sofa.", "cartoon")


def make_orchestrator(cache, queue, candidates=(), terminal=None, config=None, text_provider=None):
    return GenerationOrchestrator(
        config or ProviderConfiguration(),
        queue,
        cache,
        terminal_provider=terminal or FakeImageProvider("terminal", tier=ImageTier.ANONYMOUS),
        image_providers=list(candidates),
        text_provider=text_provider,
    )


class TestPrompt:
    def test_with_context(self):
        assert build_prompt("cat", "on the sofa", "pixel") == \
            "cat, context: on the sofa, pixel art, 8-bit, retro game style, clean lines"

    def test_without_context_and_unknown_style(self):
        assert build_prompt("cat", None, "watercolor") == \
            "cat, minimalist vector illustration, flat design, white background, high quality"

    def test_pollinations_url(self):
        url = PollinationsImageProvider().build_url("cat, pixel art", 42)
        parsed = urllib.parse.urlparse(url)
        query = urllib.parse.parse_qs(parsed.query)

        assert url.startswith("https://image.pollinations.ai/prompt/cat%2C%20pixel%20art?")
        assert query == {"width": ["800"], "height": ["600"], "nologo": ["true"], "seed": ["42"]}


class TestImageGeneration:
    def test_cache_round_trip(self, image_cache, fast_queue):
        terminal = FakeImageProvider("terminal", tier=ImageTier.ANONYMOUS)
        orchestrator = make_orchestrator(image_cache, fast_queue, terminal=terminal)

        async def run():
            return (await orchestrator.generate_image(REQUEST),
                    await orchestrator.generate_image(REQUEST))

        first, second = asyncio.run(run())

        assert first.reference == second.reference
        assert not first.from_cache
        assert second.from_cache
        assert len(terminal.calls) == 1

    def test_fresh_generation_uses_fingerprint_seed(self, image_cache, fast_queue):
        terminal = FakeImageProvider("terminal", tier=ImageTier.ANONYMOUS)
        orchestrator = make_orchestrator(image_cache, fast_queue, terminal=terminal)

        asyncio.run(orchestrator.generate_image(REQUEST))

        prompt, seed = terminal.calls[0]
        assert prompt == REQUEST.prompt
        assert seed == seed_from_fingerprint(fingerprint_prompt(REQUEST.prompt))

    def test_tier_upgrade_regenerates_exactly_once(self, image_cache, fast_queue):
        anonymous = make_orchestrator(image_cache, fast_queue)
        first = asyncio.run(anonymous.generate_image(REQUEST))
        assert first.tier == ImageTier.ANONYMOUS

        authenticated = FakeImageProvider("keyed", tier=ImageTier.AUTHENTICATED)
        upgraded = make_orchestrator(image_cache, fast_queue, candidates=[authenticated])
        assert upgraded.authenticated_configured

        async def run():
            return (await upgraded.generate_image(REQUEST),
                    await upgraded.generate_image(REQUEST))

        second, third = asyncio.run(run())

        assert len(authenticated.calls) == 1
        assert second.tier == ImageTier.AUTHENTICATED
        assert not second.from_cache
        assert third.from_cache
        assert third.reference == second.reference
        assert image_cache.get(first.fingerprint).tier == ImageTier.AUTHENTICATED

    @pytest.mark.parametrize("status, category", [
        (429, FailureCategory.RATE_LIMITED),
        (402, FailureCategory.RATE_LIMITED),
        (401, FailureCategory.UNAUTHORIZED),
        (500, FailureCategory.OTHER),
    ])
    def test_any_failure_falls_through_without_retry(self, image_cache, fast_queue, status, category):
        error = ProviderError.from_status("broken", status, "nope")
        assert error.category == category
        broken = FakeImageProvider("broken", error=error)
        terminal = FakeImageProvider("terminal", tier=ImageTier.ANONYMOUS)
        orchestrator = make_orchestrator(image_cache, fast_queue, candidates=[broken], terminal=terminal)

        result = asyncio.run(orchestrator.generate_image(REQUEST))

        assert len(broken.calls) == 1
        assert len(terminal.calls) == 1
        assert result.provider == "terminal"
        assert result.tier == ImageTier.ANONYMOUS
        assert image_cache.get(result.fingerprint).tier == ImageTier.ANONYMOUS

    def test_unexpected_exception_also_falls_through(self, image_cache, fast_queue):
        broken = FakeImageProvider("broken", error=KeyError("data"))
        orchestrator = make_orchestrator(image_cache, fast_queue, candidates=[broken])

        result = asyncio.run(orchestrator.generate_image(REQUEST))

        assert result.provider == "terminal"

    def test_chain_order(self, image_cache, fast_queue):
        first = FakeImageProvider("first", error=ProviderError("down"))
        second = FakeImageProvider("second")
        terminal = FakeImageProvider("terminal", tier=ImageTier.ANONYMOUS)
        orchestrator = make_orchestrator(image_cache, fast_queue, candidates=[first, second], terminal=terminal)

        result = asyncio.run(orchestrator.generate_image(REQUEST))

        assert result.provider == "second"
        assert terminal.calls == []

    def test_force_skips_cache_and_uses_random_seed(self, image_cache, fast_queue, monkeypatch):
        terminal = FakeImageProvider("terminal", tier=ImageTier.ANONYMOUS)
        orchestrator = make_orchestrator(image_cache, fast_queue, terminal=terminal)
        monkeypatch.setattr(orchestrator_module, "random_seed", lambda: 4242)

        async def run():
            return (await orchestrator.generate_image(REQUEST),
                    await orchestrator.generate_image(REQUEST, force=True))

        first, regenerated = asyncio.run(run())

        assert len(terminal.calls) == 2
        assert terminal.calls[1][1] == 4242
        assert regenerated.reference != first.reference
        assert image_cache.get(first.fingerprint).reference == regenerated.reference

    def test_real_terminal_never_fails(self, image_cache, fast_queue):
        orchestrator = GenerationOrchestrator(ProviderConfiguration(), fast_queue, image_cache,
                                              image_providers=[])

        result = asyncio.run(orchestrator.generate_image(REQUEST))

        assert result.reference.startswith("https://image.pollinations.ai/prompt/")
        assert result.provider == "pollinations"
        assert not orchestrator.authenticated_configured


class TestChainResolution:
    def chain_types(self, config, image_cache, fast_queue):
        orchestrator = GenerationOrchestrator(config, fast_queue, image_cache)
        return [type(p) for p in orchestrator.image_chain]

    def test_auto_without_keys(self, image_cache, fast_queue):
        assert self.chain_types(ProviderConfiguration(), image_cache, fast_queue) == [PollinationsImageProvider]

    def test_strategy_without_credential_is_skipped(self, image_cache, fast_queue):
        config = ProviderConfiguration(image_provider="deepai")
        assert self.chain_types(config, image_cache, fast_queue) == [PollinationsImageProvider]

    def test_unknown_strategy_is_skipped(self, image_cache, fast_queue):
        config = ProviderConfiguration(image_provider="midjourney")
        assert self.chain_types(config, image_cache, fast_queue) == [PollinationsImageProvider]

    def test_full_chain(self, image_cache, fast_queue):
        config = ProviderConfiguration(image_provider="deepai", deepai_api_key="k",
                                       pollinations_api_key="p")
        assert self.chain_types(config, image_cache, fast_queue) == [
            DeepAIImageProvider,
            PollinationsAuthenticatedProvider,
            PollinationsImageProvider,
        ]

    def test_hf_space_needs_no_credential(self, image_cache, fast_queue):
        config = ProviderConfiguration(image_provider="hf_space")
        assert self.chain_types(config, image_cache, fast_queue) == [HFSpaceImageProvider, PollinationsImageProvider]

    def test_failing_space_falls_through_to_terminal(self, image_cache, fast_queue):
        def sleeping_space(src, hf_token=None):
            raise ValueError("Space is sleeping")
        terminal = FakeImageProvider("terminal", tier=ImageTier.ANONYMOUS)
        orchestrator = make_orchestrator(image_cache, fast_queue, terminal=terminal,
                                         candidates=[HFSpaceImageProvider(client_factory=sleeping_space)])

        result = asyncio.run(orchestrator.generate_image(REQUEST))

        assert result.provider == "terminal"
        assert len(terminal.calls) == 1

    def test_pollinations_key_enables_authenticated_tier(self, image_cache, fast_queue):
        orchestrator = GenerationOrchestrator(
            ProviderConfiguration(pollinations_api_key="p"), fast_queue, image_cache
        )
        assert orchestrator.authenticated_configured


class TestTextGeneration:
    def test_generate_words_marks_provenance(self, image_cache, fast_queue):
        provider = FakeTextProvider(words=[
            GeneratedWord("apple", "jabłko", "I eat an apple."),
            GeneratedWord("pear", "gruszka", "A ripe pear."),
        ])
        orchestrator = make_orchestrator(image_cache, fast_queue, text_provider=provider)

        items = asyncio.run(orchestrator.generate_words("fruit", LanguageLevel.A2, 2, ["banana"]))

        assert [i.headword for i in items] == ["apple", "pear"]
        assert all(i.generated for i in items)
        assert all(i.category == "fruit" and i.level == LanguageLevel.A2 for i in items)
        assert items[0].example_sentence == "I eat an apple."
        assert provider.calls[0] == ("generate_batch", "fruit", LanguageLevel.A2, 2, ["banana"])

    def test_missing_credential_is_a_configuration_error(self, image_cache, fast_queue):
        orchestrator = make_orchestrator(image_cache, fast_queue,
                                         config=ProviderConfiguration(text_provider="gemini"))

        with pytest.raises(ProviderConfigurationError) as excinfo:
            asyncio.run(orchestrator.translate("kot", "Polish"))

        assert "GEMINI_API_KEY" in str(excinfo.value)
        assert isinstance(excinfo.value, GenerationFailed)

    def test_verification_never_raises(self, image_cache, fast_queue):
        orchestrator = make_orchestrator(image_cache, fast_queue,
                                         config=ProviderConfiguration(text_provider="perplexity"))

        assert asyncio.run(orchestrator.verify_answer("kot", "kitty")) is VERIFICATION_UNAVAILABLE
