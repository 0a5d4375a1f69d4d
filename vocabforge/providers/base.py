"""Base provider classes and the adapter result types."""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Generic, List, Optional, Tuple, TypeVar, Union

import aiohttp

from ..config import Config
from ..exceptions import FailureCategory, ProviderError
from ..models import LanguageLevel

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ImageTier(str, Enum):
    """Quality tier an image was produced under."""
    ANONYMOUS = "anonymous"
    AUTHENTICATED = "authenticated"


@dataclass(frozen=True)
class GeneratedWord:
    """One entry of a generated vocabulary batch."""
    headword: str
    gloss: str
    example_sentence: str


@dataclass(frozen=True)
class Translation:
    translation: str
    example_sentence: str


@dataclass(frozen=True)
class VerificationResult:
    """Semantic verdict on a learner's answer."""
    correct: bool
    feedback: str = ""


class _VerificationUnavailable:
    """Sentinel: the verification backend failed. Not the same as a wrong answer."""

    _instance: Optional["_VerificationUnavailable"] = None

    def __new__(cls) -> "_VerificationUnavailable":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "VERIFICATION_UNAVAILABLE"


VERIFICATION_UNAVAILABLE = _VerificationUnavailable()

Verification = Union[VerificationResult, _VerificationUnavailable]


@dataclass(frozen=True)
class ProviderResult(Generic[T]):
    """Success or failure of one candidate adapter call."""
    provider: str
    value: Optional[T] = None
    error: Optional[ProviderError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, provider: str, value: T) -> "ProviderResult[T]":
        return cls(provider=provider, value=value)

    @classmethod
    def failure(cls, provider: str, error: ProviderError) -> "ProviderResult[T]":
        return cls(provider=provider, error=error)


class BaseProvider(ABC):
    """
    Abstract base class for all provider adapters.

    Provides a lazily created, shared aiohttp session and async context
    manager support. Subclasses call _request_json / _request_bytes and get
    classified ProviderError failures for non-200 responses.
    """

    # Registered name, set by ProviderFactory.register
    name: str = "base"

    def __init__(self, timeout: int = Config.TIMEOUT):
        self.timeout = timeout
        self._session: Optional[aiohttp.ClientSession] = None
        self._session_lock = asyncio.Lock()

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create a shared aiohttp session (connection pooling)."""
        async with self._session_lock:
            if self._session is None or self._session.closed:
                timeout = aiohttp.ClientTimeout(total=self.timeout)
                self._session = aiohttp.ClientSession(timeout=timeout)
            return self._session

    async def close(self) -> None:
        """Close the aiohttp session."""
        async with self._session_lock:
            if self._session and not self._session.closed:
                await self._session.close()
            self._session = None

    async def __aenter__(self) -> "BaseProvider":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit - ensure session is closed."""
        await self.close()

    async def _request_json(
        self,
        method: str,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        **kwargs: Any,
    ) -> Any:
        """Perform a request and decode a JSON body, raising ProviderError on failure."""
        session = await self._get_session()
        try:
            async with session.request(method, url, headers=headers, **kwargs) as response:
                if response.status != 200:
                    body = await response.text()
                    raise ProviderError.from_status(self.name, response.status, body)
                return await response.json(content_type=None)
        except ValueError as e:
            # Gateway and proxy error pages arrive as 200 with an HTML body
            raise ProviderError(f"{self.name} returned non-JSON body") from e
        except asyncio.TimeoutError as e:
            raise ProviderError(f"{self.name} timeout") from e
        except aiohttp.ClientError as e:
            raise ProviderError(f"{self.name} connection error: {str(e)[:120]}") from e

    async def _request_bytes(
        self,
        method: str,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        **kwargs: Any,
    ) -> Tuple[bytes, str]:
        """Perform a request and return (body, content type)."""
        session = await self._get_session()
        try:
            async with session.request(method, url, headers=headers, **kwargs) as response:
                if response.status != 200:
                    body = await response.text()
                    raise ProviderError.from_status(self.name, response.status, body)
                content = await response.read()
                return content, response.headers.get("Content-Type", "image/jpeg")
        except asyncio.TimeoutError as e:
            raise ProviderError(f"{self.name} timeout") from e
        except aiohttp.ClientError as e:
            raise ProviderError(f"{self.name} connection error: {str(e)[:120]}") from e


class TextProvider(BaseProvider):
    """Capability interface: text artifacts for vocabulary learning."""

    @abstractmethod
    async def generate_batch(
        self,
        topic: str,
        level: LanguageLevel,
        count: int,
        exclude: List[str],
    ) -> List[GeneratedWord]:
        """Generate `count` new entries on a topic, skipping `exclude` headwords."""

    @abstractmethod
    async def translate(self, term: str, source_language: str) -> Translation:
        """Translate a single term and give an example sentence in the target language."""

    @abstractmethod
    async def generate_example(self, headword: str, context: Optional[str] = None) -> str:
        """Generate one example sentence, anchored to `context` when given."""

    @abstractmethod
    async def verify_answer(self, expected_gloss: str, learner_input: str) -> Verification:
        """
        Judge a learner's translation of `expected_gloss`.

        Returns VERIFICATION_UNAVAILABLE instead of raising when the backend fails.
        """


class ImageProvider(BaseProvider):
    """Capability interface: one illustration backend."""

    tier: ImageTier = ImageTier.AUTHENTICATED

    def __init__(self, timeout: int = Config.IMAGE_TIMEOUT):
        super().__init__(timeout=timeout)

    @abstractmethod
    async def generate_image(self, prompt: str, seed: int) -> str:
        """
        Generate an image for the prompt.

        Returns:
            Artifact reference (URL, data URI or local media path)

        Raises:
            ProviderError: classified as rate-limited, unauthorized or other
        """


def classify_exception(provider: str, exc: Exception) -> ProviderError:
    """Wrap any adapter exception into a classified ProviderError."""
    if isinstance(exc, ProviderError):
        return exc
    if isinstance(exc, asyncio.TimeoutError):
        return ProviderError(f"{provider} timeout")
    return ProviderError(f"{provider} failed: {str(exc)[:120]}", category=FailureCategory.OTHER)
