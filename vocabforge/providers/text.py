"""
Text providers - LLM integration for vocabulary content.

Every adapter implements a single `complete()` call against its backend;
the four vocabulary operations (batch generation, translation, example
sentence, answer verification) are built on top of it in LLMTextProvider,
with strict validation of the JSON each backend returns.
"""

import logging
from abc import abstractmethod
from typing import Any, Dict, List, Optional

from ..config import Config
from ..exceptions import GenerationFailed, ProviderConfigurationError, ProviderError
from ..models import LanguageLevel, ProviderConfiguration
from ..utils.parsing import TextParser
from .base import (
    VERIFICATION_UNAVAILABLE,
    GeneratedWord,
    TextProvider,
    Translation,
    Verification,
    VerificationResult,
)
from .factory import TEXT, ProviderFactory

logger = logging.getLogger(__name__)


class LLMTextProvider(TextProvider):
    """Chat-completion backed text provider."""

    DEFAULT_MODEL = ""

    SYSTEM_PROMPT = "You are a specialized linguistic assistant that only outputs JSON."

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        base_url: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: int = 1000,
        timeout: int = Config.TIMEOUT,
    ):
        super().__init__(timeout=timeout)
        self.api_key = api_key
        self.model = model or self.DEFAULT_MODEL
        self.base_url = base_url
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.native_language = Config.NATIVE_LANGUAGE
        self.target_language = Config.TARGET_LANGUAGE

    @abstractmethod
    async def complete(self, prompt: str, system_prompt: Optional[str] = None) -> str:
        """Generate completion for the given prompt."""

    async def _complete_json(self, prompt: str) -> Any:
        try:
            content = await self.complete(prompt, self.SYSTEM_PROMPT)
        except ProviderError as e:
            logger.error("%s request failed: %s", self.name, e)
            raise GenerationFailed(str(e), provider=self.name) from e
        try:
            return TextParser.parse_json(content)
        except ValueError as e:
            logger.error("%s returned malformed content: %s", self.name, e)
            raise GenerationFailed(f"Malformed response: {e}", provider=self.name) from e

    def _require_text(self, data: Dict[str, Any], key: str) -> str:
        value = data.get(key) if isinstance(data, dict) else None
        if not isinstance(value, str) or not value.strip():
            raise GenerationFailed(f"Response is missing '{key}'", provider=self.name)
        return TextParser.normalize_unicode(value.strip())

    def _topic_prompt(self, topic: str) -> str:
        if not topic or topic == Config.RANDOM_TOPIC:
            return "random topics (general vocabulary)"
        return f'"{topic}"'

    async def generate_batch(
        self,
        topic: str,
        level: LanguageLevel,
        count: int,
        exclude: List[str],
    ) -> List[GeneratedWord]:
        prompt = f"""Generate exactly {count} {self.target_language} vocabulary words related to {self._topic_prompt(topic)} for CEFR level {LanguageLevel(level).value}.
Exclude: {", ".join(exclude)}.
Requirements:
1. Provide the {self.target_language} word and its {self.native_language} translation.
2. The example sentence MUST CLEARLY illustrate the specific meaning of the {self.native_language} translation provided.
Return ONLY a JSON array: [{{"headword": "...", "gloss": "...", "exampleSentence": "..."}}]"""

        data = await self._complete_json(prompt)
        if isinstance(data, dict):
            data = data.get("words")
        if not isinstance(data, list):
            raise GenerationFailed("Expected a JSON array of words", provider=self.name)

        excluded = {TextParser.normalize_answer(w) for w in exclude}
        words: List[GeneratedWord] = []
        for entry in data:
            word = GeneratedWord(
                headword=self._require_text(entry, "headword"),
                gloss=self._require_text(entry, "gloss"),
                example_sentence=self._require_text(entry, "exampleSentence"),
            )
            if TextParser.normalize_answer(word.headword) in excluded:
                continue
            words.append(word)
        return words[:count]

    async def translate(self, term: str, source_language: str) -> Translation:
        if source_language == self.native_language:
            destination = self.target_language
        else:
            destination = self.native_language
        prompt = f"""Translate "{term}" from {source_language} to {destination}.
Provide one simple example sentence using the {self.target_language} version of the word.
IMPORTANT: The 'exampleSentence' MUST be in {self.target_language.upper()}.
Return JSON: {{"translation": "...", "exampleSentence": "..."}}"""

        data = await self._complete_json(prompt)
        return Translation(
            translation=self._require_text(data, "translation"),
            example_sentence=self._require_text(data, "exampleSentence"),
        )

    async def generate_example(self, headword: str, context: Optional[str] = None) -> str:
        anchor = ""
        if context:
            anchor = (f"The sentence MUST reflect the specific meaning of this word as "
                      f'translated to {self.native_language}: "{context}".')
        prompt = f"""Generate one short, simple {self.target_language} example sentence using the word "{headword}".
{anchor}
Return JSON: {{"exampleSentence": "..."}}"""

        data = await self._complete_json(prompt)
        return self._require_text(data, "exampleSentence")

    async def verify_answer(self, expected_gloss: str, learner_input: str) -> Verification:
        prompt = (f'The user translates "{expected_gloss}" into {self.target_language} as '
                  f'"{learner_input}". Is it correct? '
                  f'Return JSON: {{"isCorrect": boolean, "feedback": "Short feedback in {self.native_language}"}}')
        try:
            data = await self._complete_json(prompt)
        except GenerationFailed:
            return VERIFICATION_UNAVAILABLE

        if not isinstance(data, dict) or not isinstance(data.get("isCorrect"), bool):
            logger.warning("%s verification response lacks a boolean verdict", self.name)
            return VERIFICATION_UNAVAILABLE
        feedback = data.get("feedback")
        return VerificationResult(
            correct=data["isCorrect"],
            feedback=feedback.strip() if isinstance(feedback, str) else "",
        )


class OpenAICompatibleProvider(LLMTextProvider):
    """OpenAI-style /chat/completions API."""

    DEFAULT_BASE_URL = "https://api.openai.com/v1"
    DEFAULT_MODEL = "gpt-4o-mini"
    JSON_MODE = True

    async def complete(self, prompt: str, system_prompt: Optional[str] = None) -> str:
        """Generate completion using an OpenAI-compatible API."""
        base_url = (self.base_url or self.DEFAULT_BASE_URL).rstrip("/")
        url = f"{base_url}/chat/completions"

        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

        payload: Dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }
        if self.JSON_MODE:
            payload["response_format"] = {"type": "json_object"}

        data = await self._request_json("POST", url, headers=headers, json=payload)
        if isinstance(data, dict) and data.get("error"):
            error = data["error"]
            message = error.get("message") if isinstance(error, dict) else str(error)
            raise ProviderError(f"{self.name} API error: {message}")
        try:
            return data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise ProviderError(f"{self.name} returned an unexpected payload") from e


@ProviderFactory.register("openai", TEXT)
class OpenAIProvider(OpenAICompatibleProvider):
    """OpenAI API provider."""

    @classmethod
    def from_config(cls, config: ProviderConfiguration) -> "OpenAIProvider":
        if not config.openai_api_key:
            raise ProviderConfigurationError("Missing OpenAI API key", "openai", "OPENAI_API_KEY")
        return cls(api_key=config.openai_api_key)


@ProviderFactory.register("custom", TEXT)
class CustomProvider(OpenAICompatibleProvider):
    """Any OpenAI-compatible endpoint configured by the learner."""

    @classmethod
    def from_config(cls, config: ProviderConfiguration) -> "CustomProvider":
        if not config.custom_api_key:
            raise ProviderConfigurationError("Missing custom API key", "custom", "CUSTOM_API_KEY")
        if not config.custom_api_base:
            raise ProviderConfigurationError("Missing custom API base URL", "custom", "CUSTOM_API_BASE")
        return cls(
            api_key=config.custom_api_key,
            base_url=config.custom_api_base,
            model=config.custom_model_name or None,
        )


@ProviderFactory.register("perplexity", TEXT)
class PerplexityProvider(OpenAICompatibleProvider):
    """Perplexity sonar models."""

    DEFAULT_BASE_URL = "https://api.perplexity.ai"
    DEFAULT_MODEL = "sonar"
    JSON_MODE = False

    @classmethod
    def from_config(cls, config: ProviderConfiguration) -> "PerplexityProvider":
        if not config.perplexity_api_key:
            raise ProviderConfigurationError("Missing Perplexity API key", "perplexity", "PERPLEXITY_API_KEY")
        return cls(api_key=config.perplexity_api_key)


@ProviderFactory.register("groq", TEXT)
class GroqProvider(OpenAICompatibleProvider):
    """Groq fast inference provider."""

    DEFAULT_BASE_URL = "https://api.groq.com/openai/v1"
    DEFAULT_MODEL = "llama-3.1-8b-instant"

    @classmethod
    def from_config(cls, config: ProviderConfiguration) -> "GroqProvider":
        if not config.groq_api_key:
            raise ProviderConfigurationError("Missing Groq API key", "groq", "GROQ_API_KEY")
        return cls(api_key=config.groq_api_key)


@ProviderFactory.register("anthropic", TEXT)
class AnthropicProvider(LLMTextProvider):
    """Anthropic Claude API provider."""

    BASE_URL = "https://api.anthropic.com/v1"
    DEFAULT_MODEL = "claude-3-haiku-20240307"

    @classmethod
    def from_config(cls, config: ProviderConfiguration) -> "AnthropicProvider":
        if not config.anthropic_api_key:
            raise ProviderConfigurationError("Missing Anthropic API key", "anthropic", "ANTHROPIC_API_KEY")
        return cls(api_key=config.anthropic_api_key)

    async def complete(self, prompt: str, system_prompt: Optional[str] = None) -> str:
        """Generate completion using Anthropic API."""
        url = f"{self.BASE_URL}/messages"

        headers = {
            "x-api-key": self.api_key or "",
            "anthropic-version": "2023-06-01",
            "Content-Type": "application/json",
        }

        payload: Dict[str, Any] = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "messages": [{"role": "user", "content": prompt}],
        }
        if system_prompt:
            payload["system"] = system_prompt

        data = await self._request_json("POST", url, headers=headers, json=payload)
        try:
            return data["content"][0]["text"]
        except (KeyError, IndexError, TypeError) as e:
            raise ProviderError(f"{self.name} returned an unexpected payload") from e


@ProviderFactory.register("ollama", TEXT)
class OllamaProvider(LLMTextProvider):
    """Ollama local model provider."""

    DEFAULT_BASE_URL = "http://localhost:11434"
    DEFAULT_MODEL = "llama3.2"

    @classmethod
    def from_config(cls, config: ProviderConfiguration) -> "OllamaProvider":
        # Ollama doesn't need an API key
        return cls(base_url=config.ollama_base_url or None)

    async def complete(self, prompt: str, system_prompt: Optional[str] = None) -> str:
        """Generate completion using local Ollama."""
        base_url = (self.base_url or self.DEFAULT_BASE_URL).rstrip("/")
        url = f"{base_url}/api/generate"

        full_prompt = f"{system_prompt}\n\n{prompt}" if system_prompt else prompt

        payload = {
            "model": self.model,
            "prompt": full_prompt,
            "stream": False,
            "format": "json",
            "options": {
                "temperature": self.temperature,
            },
        }

        data = await self._request_json("POST", url, json=payload)
        if not isinstance(data, dict) or "response" not in data:
            raise ProviderError(f"{self.name} returned an unexpected payload")
        return data["response"]


@ProviderFactory.register("gemini", TEXT)
class GeminiProvider(LLMTextProvider):
    """Google Gemini generateContent API."""

    MODELS = {
        "flash": "gemini-3-flash-preview",
        "pro": "gemini-3-pro-preview",
    }

    @classmethod
    def from_config(cls, config: ProviderConfiguration) -> "GeminiProvider":
        if not config.gemini_api_key:
            raise ProviderConfigurationError(
                "Missing Gemini API key; set it in the environment or .env",
                "gemini",
                "GEMINI_API_KEY",
            )
        model = cls.MODELS.get(config.model_type, cls.MODELS["flash"])
        return cls(api_key=config.gemini_api_key, model=model)

    async def complete(self, prompt: str, system_prompt: Optional[str] = None) -> str:
        """Generate completion using Gemini with JSON output."""
        base_url = (self.base_url or Config.GEMINI_API_URL).rstrip("/")
        url = f"{base_url}/models/{self.model}:generateContent"

        payload: Dict[str, Any] = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {
                "responseMimeType": "application/json",
                "temperature": self.temperature,
            },
        }
        if system_prompt:
            payload["systemInstruction"] = {"parts": [{"text": system_prompt}]}

        headers = {
            "x-goog-api-key": self.api_key or "",
            "Content-Type": "application/json",
        }

        data = await self._request_json("POST", url, headers=headers, json=payload)
        try:
            return data["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError) as e:
            raise ProviderError(f"{self.name} returned no text") from e
