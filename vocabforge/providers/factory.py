"""
Provider Factory - Strategy Pattern Implementation for generation backends.

Provides a centralized factory for creating adapters based on configuration,
enabling easy switching between providers (Gemini, Perplexity, Pollinations,
Hugging Face, etc.) without string switches at call sites.
"""

from typing import Callable, Dict, List, Type

from ..exceptions import ProviderConfigurationError
from ..models import ProviderConfiguration
from .base import BaseProvider, ImageProvider, TextProvider

TEXT = "text"
IMAGE = "image"


class ProviderFactory:
    """
    Factory for creating adapters based on configuration.

    Each registered class must expose a `from_config(config)` classmethod that
    raises ProviderConfigurationError when its credentials are missing.

    Usage:
        # Register an adapter
        @ProviderFactory.register("pollinations", "image")
        class PollinationsImageProvider(ImageProvider):
            ...

        # Create an adapter
        provider = ProviderFactory.create("image", "pollinations", config)
    """

    # Registry: {kind: {provider_name: provider_class}}
    _registry: Dict[str, Dict[str, Type[BaseProvider]]] = {
        TEXT: {},
        IMAGE: {},
    }

    @classmethod
    def register(cls, provider: str, kind: str = IMAGE) -> Callable[[Type[BaseProvider]], Type[BaseProvider]]:
        """
        Decorator to register an adapter class.

        Args:
            provider: Provider name (e.g., "gemini", "huggingface")
            kind: "text" or "image"
        """
        def decorator(provider_cls: Type[BaseProvider]) -> Type[BaseProvider]:
            cls.register_class(provider_cls, provider, kind)
            return provider_cls
        return decorator

    @classmethod
    def register_class(cls, provider_cls: Type[BaseProvider], provider: str, kind: str) -> None:
        """Register an adapter class programmatically (non-decorator)."""
        if kind not in cls._registry:
            cls._registry[kind] = {}
        provider_cls.name = provider
        cls._registry[kind][provider] = provider_cls

    @classmethod
    def create(cls, kind: str, provider: str, config: ProviderConfiguration) -> BaseProvider:
        """
        Create an adapter instance.

        Raises:
            ProviderConfigurationError: If provider is unknown or not configured
        """
        if kind not in cls._registry:
            raise ProviderConfigurationError(f"Unknown provider kind: {kind}")

        if provider not in cls._registry[kind]:
            available = list(cls._registry[kind].keys())
            raise ProviderConfigurationError(
                f"Unknown {kind} provider: {provider}. Available: {available}",
                provider=provider,
            )

        provider_cls = cls._registry[kind][provider]
        return provider_cls.from_config(config)  # type: ignore[attr-defined]

    @classmethod
    def create_text(cls, config: ProviderConfiguration) -> TextProvider:
        """Create the text adapter selected in the configuration."""
        return cls.create(TEXT, config.text_provider, config)  # type: ignore[return-value]

    @classmethod
    def create_image(cls, provider: str, config: ProviderConfiguration) -> ImageProvider:
        return cls.create(IMAGE, provider, config)  # type: ignore[return-value]

    @classmethod
    def get_available_providers(cls, kind: str) -> List[str]:
        """Get list of available providers for a kind."""
        return list(cls._registry.get(kind, {}).keys())
