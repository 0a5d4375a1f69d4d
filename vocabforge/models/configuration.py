"""Provider configuration snapshot, read-only to the core."""

from dataclasses import dataclass
from typing import Any, Dict, Optional

from ..config import Config


@dataclass(frozen=True)
class ProviderConfiguration:
    """Which adapters are active for text and images, plus their credentials."""

    text_provider: str = "gemini"
    image_provider: str = "auto"
    model_type: str = "flash"
    visual_style: str = "minimalist"

    gemini_api_key: str = ""
    perplexity_api_key: str = ""
    openai_api_key: str = ""
    anthropic_api_key: str = ""
    groq_api_key: str = ""
    ollama_base_url: str = ""
    custom_api_key: str = ""
    custom_api_base: str = ""
    custom_model_name: str = ""

    huggingface_api_key: str = ""
    deepai_api_key: str = ""
    pollinations_api_key: str = ""

    @classmethod
    def from_settings(cls, settings: Dict[str, Any]) -> "ProviderConfiguration":
        """Build from a SettingsManager snapshot; deploy-time keys come from Config."""
        def text(key: str) -> str:
            return str(settings.get(key) or "").strip()

        return cls(
            text_provider=text("AI_PROVIDER").lower() or "gemini",
            image_provider=text("IMAGE_PROVIDER").lower() or "auto",
            model_type=text("AI_MODEL_TYPE").lower() or "flash",
            visual_style=text("VISUAL_STYLE").lower() or "minimalist",
            gemini_api_key=Config.GEMINI_API_KEY,
            perplexity_api_key=text("PERPLEXITY_API_KEY"),
            openai_api_key=text("OPENAI_API_KEY"),
            anthropic_api_key=text("ANTHROPIC_API_KEY"),
            groq_api_key=text("GROQ_API_KEY"),
            ollama_base_url=text("OLLAMA_BASE_URL"),
            custom_api_key=text("CUSTOM_API_KEY"),
            custom_api_base=text("CUSTOM_API_BASE"),
            custom_model_name=text("CUSTOM_MODEL_NAME"),
            huggingface_api_key=_strip_bearer(text("HUGGINGFACE_API_KEY")),
            deepai_api_key=text("DEEPAI_API_KEY"),
            pollinations_api_key=text("POLLINATIONS_API_KEY") or Config.POLLINATIONS_API_KEY,
        )


def _strip_bearer(key: Optional[str]) -> str:
    """Remove a pasted 'Bearer ' prefix from a token."""
    if not key:
        return ""
    if key.startswith("Bearer "):
        return key[len("Bearer "):].strip()
    return key
