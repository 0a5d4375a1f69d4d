"""Providers module - generation backends with Strategy pattern."""

from .base import (
    VERIFICATION_UNAVAILABLE,
    BaseProvider,
    GeneratedWord,
    ImageProvider,
    ImageTier,
    ProviderResult,
    TextProvider,
    Translation,
    Verification,
    VerificationResult,
)
from .factory import IMAGE, TEXT, ProviderFactory
from .text import (
    AnthropicProvider,
    CustomProvider,
    GeminiProvider,
    GroqProvider,
    LLMTextProvider,
    OllamaProvider,
    OpenAIProvider,
    PerplexityProvider,
)
from .images import (
    CustomImageProvider,
    DeepAIImageProvider,
    GeminiImageProvider,
    HFSpaceImageProvider,
    HuggingFaceImageProvider,
    PollinationsAuthenticatedProvider,
    PollinationsImageProvider,
)
from .audio import EdgeTTSSpeaker, NullSpeaker, Speaker

__all__ = [
    'VERIFICATION_UNAVAILABLE',
    'BaseProvider',
    'GeneratedWord',
    'ImageProvider',
    'ImageTier',
    'ProviderResult',
    'TextProvider',
    'Translation',
    'Verification',
    'VerificationResult',
    'IMAGE',
    'TEXT',
    'ProviderFactory',
    'AnthropicProvider',
    'CustomProvider',
    'GeminiProvider',
    'GroqProvider',
    'LLMTextProvider',
    'OllamaProvider',
    'OpenAIProvider',
    'PerplexityProvider',
    'CustomImageProvider',
    'DeepAIImageProvider',
    'GeminiImageProvider',
    'HFSpaceImageProvider',
    'HuggingFaceImageProvider',
    'PollinationsAuthenticatedProvider',
    'PollinationsImageProvider',
    'EdgeTTSSpeaker',
    'NullSpeaker',
    'Speaker',
]
