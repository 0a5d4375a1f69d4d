"""Error taxonomy. Nothing here is fatal to the process."""

from enum import Enum
from typing import Optional


class VocabForgeError(Exception):
    """Base class for all recoverable application errors."""


class NoEligibleItems(VocabForgeError):
    """No due items and no fallback pool; a session cannot start."""

    def __init__(self, message: str = "The word list is empty or the selected source filter returns nothing."):
        super().__init__(message)


class GenerationFailed(VocabForgeError):
    """A text generation request (batch, translate, example) failed."""

    def __init__(self, message: str, provider: Optional[str] = None):
        self.provider = provider
        prefix = f"[{provider}] " if provider else ""
        super().__init__(f"{prefix}{message}")


class ProviderConfigurationError(GenerationFailed):
    """Adapter cannot be selected because a setting is missing or unknown."""

    def __init__(self, message: str, provider: Optional[str] = None, setting: Optional[str] = None):
        self.setting = setting
        if setting:
            message = f"{message} (check setting {setting})"
        super().__init__(message, provider=provider)


class FailureCategory(str, Enum):
    """Classification of an adapter failure."""
    RATE_LIMITED = "rate_limited"
    UNAUTHORIZED = "unauthorized"
    OTHER = "other"

    @classmethod
    def from_status(cls, status: int) -> "FailureCategory":
        """Map an HTTP status code to a failure category."""
        if status in (402, 429):
            return cls.RATE_LIMITED
        if status in (401, 403):
            return cls.UNAUTHORIZED
        return cls.OTHER


class ProviderError(VocabForgeError):
    """Raised by an adapter when its backend call fails."""

    def __init__(self, message: str, category: FailureCategory = FailureCategory.OTHER,
                 status: Optional[int] = None):
        self.category = category
        self.status = status
        super().__init__(message)

    @classmethod
    def from_status(cls, provider: str, status: int, body: str = "") -> "ProviderError":
        return cls(
            f"{provider} error {status}: {body[:200]}",
            category=FailureCategory.from_status(status),
            status=status,
        )


class SessionStateError(VocabForgeError):
    """An action does not fit the session's mode or state."""


class ConfirmationRequired(SessionStateError):
    """A free-practice selection was not confirmed by the learner."""

    def __init__(self, message: str = "Nothing is due; confirm free practice to start a session."):
        super().__init__(message)
