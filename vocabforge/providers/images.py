"""Image providers - illustration backends for vocabulary items."""

import asyncio
import base64
import os
import urllib.parse
import uuid
from typing import Any, Callable, Dict, Optional

import aiofiles
from gradio_client import Client

from ..config import Config
from ..exceptions import FailureCategory, ProviderConfigurationError, ProviderError
from ..models import ProviderConfiguration
from ..utils.fingerprint import fingerprint_prompt
from ..utils.paths import MediaPathGenerator
from .base import ImageProvider, ImageTier
from .factory import IMAGE, ProviderFactory


# Image format magic bytes for validation
IMAGE_MAGIC_BYTES = {
    b'\xff\xd8\xff': 'jpeg',      # JPEG
    b'\x89PNG': 'png',            # PNG
    b'GIF8': 'gif',               # GIF
}


def detect_image_format(content: bytes) -> Optional[str]:
    """Detect image format from magic bytes."""
    if not content or len(content) < 4:
        return None
    for magic, fmt in IMAGE_MAGIC_BYTES.items():
        if content.startswith(magic):
            return fmt
    # Check WebP specifically (RIFF....WEBP)
    if content[:4] == b'RIFF' and len(content) > 12 and content[8:12] == b'WEBP':
        return 'webp'
    return None


async def write_atomic(content: bytes, output_path: str) -> None:
    """Write to a temp file, then rename over the target."""
    temp_path = f"{output_path}.{uuid.uuid4().hex[:8]}.tmp"
    try:
        os.makedirs(os.path.dirname(output_path), exist_ok=True)
        async with aiofiles.open(temp_path, 'wb') as f:
            await f.write(content)
        os.replace(temp_path, output_path)
    finally:
        if os.path.exists(temp_path):
            os.remove(temp_path)


def to_data_uri(content: bytes, mime_type: str = "image/jpeg") -> str:
    """Inline an image payload as a data URI."""
    encoded = base64.b64encode(content).decode("ascii")
    return f"data:{mime_type};base64,{encoded}"


@ProviderFactory.register("pollinations", IMAGE)
class PollinationsImageProvider(ImageProvider):
    """
    Keyless Pollinations URL builder.

    The terminal fallback: it only formats a URL, so it cannot fail. The
    image itself is rendered by Pollinations when the URL is first loaded,
    and identical seeds reproduce identical images.
    """

    tier = ImageTier.ANONYMOUS

    def __init__(self, base_url: str = Config.POLLINATIONS_IMAGE_URL,
                 width: int = Config.IMAGE_WIDTH, height: int = Config.IMAGE_HEIGHT):
        super().__init__()
        self.base_url = base_url.rstrip("/")
        self.width = width
        self.height = height

    @classmethod
    def from_config(cls, config: ProviderConfiguration) -> "PollinationsImageProvider":
        return cls()

    def build_url(self, prompt: str, seed: int) -> str:
        query = urllib.parse.urlencode({
            "width": self.width,
            "height": self.height,
            "nologo": "true",
            "seed": seed,
        })
        return f"{self.base_url}/{urllib.parse.quote(prompt)}?{query}"

    async def generate_image(self, prompt: str, seed: int) -> str:
        return self.build_url(prompt, seed)


@ProviderFactory.register("pollinations_auth", IMAGE)
class PollinationsAuthenticatedProvider(ImageProvider):
    """Keyed Pollinations generation, downloaded into the media directory."""

    def __init__(self, api_key: str, media_dir: Optional[str] = None,
                 model: str = Config.POLLINATIONS_IMAGE_MODEL):
        super().__init__()
        self.api_key = api_key
        self.media_dir = media_dir or Config.MEDIA_DIR
        self.model = model

    @classmethod
    def from_config(cls, config: ProviderConfiguration) -> "PollinationsAuthenticatedProvider":
        if not config.pollinations_api_key:
            raise ProviderConfigurationError(
                "No Pollinations API key configured", "pollinations_auth", "POLLINATIONS_API_KEY"
            )
        return cls(api_key=config.pollinations_api_key)

    async def generate_image(self, prompt: str, seed: int) -> str:
        url = f"{Config.POLLINATIONS_AUTH_URL}/{urllib.parse.quote(prompt)}"
        params = {
            "model": self.model,
            "width": str(Config.IMAGE_WIDTH),
            "height": str(Config.IMAGE_HEIGHT),
            "nologo": "true",
            "seed": str(seed),
        }
        headers = {"Authorization": f"Bearer {self.api_key}"}

        content, _ = await self._request_bytes("GET", url, headers=headers, params=params)

        img_format = detect_image_format(content)
        if not img_format or len(content) <= 2000:
            raise ProviderError(f"Invalid image: {len(content)} bytes, magic: {content[:4]!r}")

        output_path = MediaPathGenerator.image_path(fingerprint_prompt(prompt), seed, self.media_dir)
        await write_atomic(content, output_path)
        return output_path


@ProviderFactory.register("huggingface", IMAGE)
class HuggingFaceImageProvider(ImageProvider):
    """Hugging Face inference router (Stable Diffusion XL)."""

    MODEL = "stabilityai/stable-diffusion-xl-base-1.0"
    BASE_URL = "https://router.huggingface.co/hf-inference/models"

    def __init__(self, api_key: str):
        super().__init__()
        self.api_key = api_key

    @classmethod
    def from_config(cls, config: ProviderConfiguration) -> "HuggingFaceImageProvider":
        if not config.huggingface_api_key:
            raise ProviderConfigurationError(
                "Missing Hugging Face token", "huggingface", "HUGGINGFACE_API_KEY"
            )
        return cls(api_key=config.huggingface_api_key)

    async def generate_image(self, prompt: str, seed: int) -> str:
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "x-use-cache": "false",
        }
        payload = {"inputs": prompt, "parameters": {"seed": seed}}
        content, mime_type = await self._request_bytes(
            "POST", f"{self.BASE_URL}/{self.MODEL}", headers=headers, json=payload
        )
        if not detect_image_format(content):
            raise ProviderError(f"{self.name} returned a non-image payload")
        return to_data_uri(content, mime_type.split(";")[0] or "image/jpeg")


@ProviderFactory.register("hf_space", IMAGE)
class HFSpaceImageProvider(ImageProvider):
    """
    SDXL-Lightning on a public Hugging Face Space, through the Gradio client.

    Works without a token; a Hugging Face token raises the Space's quota.
    The Gradio client is blocking, so it runs in a worker thread. The
    image it downloads is copied into the media directory.
    """

    SPACE = "ByteDance/SDXL-Lightning"
    API_NAME = "/generate_image"
    STEPS = "4-Step"

    tier = ImageTier.ANONYMOUS

    def __init__(self, hf_token: Optional[str] = None, media_dir: Optional[str] = None,
                 client_factory: Callable[..., Any] = Client):
        super().__init__()
        self.hf_token = hf_token or None
        self.media_dir = media_dir or Config.MEDIA_DIR
        self._client_factory = client_factory
        self._client: Any = None

    @classmethod
    def from_config(cls, config: ProviderConfiguration) -> "HFSpaceImageProvider":
        return cls(hf_token=config.huggingface_api_key)

    async def _get_client(self) -> Any:
        async with self._session_lock:
            if self._client is None:
                self._client = await asyncio.to_thread(
                    self._client_factory, self.SPACE, hf_token=self.hf_token
                )
            return self._client

    @staticmethod
    def _output_path(result: Any) -> Optional[str]:
        # Image outputs come back as a local file path, or a dict holding one
        if isinstance(result, (list, tuple)) and result:
            result = result[0]
        if isinstance(result, dict):
            result = result.get("path") or result.get("url")
        return result if isinstance(result, str) and result else None

    async def generate_image(self, prompt: str, seed: int) -> str:
        try:
            client = await self._get_client()
            result = await asyncio.to_thread(client.predict, prompt, self.STEPS, api_name=self.API_NAME)
        except Exception as e:  # gradio_client raises its own errors and plain ValueError
            raise ProviderError(f"{self.name} prediction failed: {str(e)[:120]}") from e

        source = self._output_path(result)
        if source is None:
            raise ProviderError(f"{self.name} returned no image")
        if source.startswith(("http://", "https://")):
            return source

        try:
            async with aiofiles.open(source, 'rb') as f:
                content = await f.read()
        except OSError as e:
            raise ProviderError(f"{self.name} image file unreadable: {e}") from e
        if not detect_image_format(content):
            raise ProviderError(f"{self.name} returned a non-image file")

        output_path = MediaPathGenerator.image_path(fingerprint_prompt(prompt), seed, self.media_dir)
        await write_atomic(content, output_path)
        return output_path


@ProviderFactory.register("deepai", IMAGE)
class DeepAIImageProvider(ImageProvider):
    """DeepAI text2img."""

    URL = "https://api.deepai.org/api/text2img"

    def __init__(self, api_key: str):
        super().__init__()
        self.api_key = api_key

    @classmethod
    def from_config(cls, config: ProviderConfiguration) -> "DeepAIImageProvider":
        if not config.deepai_api_key:
            raise ProviderConfigurationError("Missing DeepAI API key", "deepai", "DEEPAI_API_KEY")
        return cls(api_key=config.deepai_api_key)

    async def generate_image(self, prompt: str, seed: int) -> str:
        data = await self._request_json(
            "POST", self.URL, headers={"api-key": self.api_key}, data={"text": prompt}
        )
        output_url = data.get("output_url") if isinstance(data, dict) else None
        if not output_url:
            raise ProviderError(f"{self.name} response has no output_url")
        return output_url


@ProviderFactory.register("gemini", IMAGE)
class GeminiImageProvider(ImageProvider):
    """Gemini native image generation (inline data)."""

    MODELS = {
        "flash": "gemini-2.5-flash-image",
        "pro": "gemini-3-pro-image-preview",
    }

    def __init__(self, api_key: str, model: str):
        super().__init__()
        self.api_key = api_key
        self.model = model

    @classmethod
    def from_config(cls, config: ProviderConfiguration) -> "GeminiImageProvider":
        if not config.gemini_api_key:
            raise ProviderConfigurationError("No Gemini API key", "gemini", "GEMINI_API_KEY")
        return cls(api_key=config.gemini_api_key,
                   model=cls.MODELS.get(config.model_type, cls.MODELS["flash"]))

    async def generate_image(self, prompt: str, seed: int) -> str:
        url = f"{Config.GEMINI_API_URL}/models/{self.model}:generateContent"
        payload = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {"seed": seed},
        }
        headers = {"x-goog-api-key": self.api_key, "Content-Type": "application/json"}
        data = await self._request_json("POST", url, headers=headers, json=payload)

        parts = []
        try:
            parts = data["candidates"][0]["content"]["parts"]
        except (KeyError, IndexError, TypeError):
            pass
        for part in parts:
            inline = part.get("inlineData") if isinstance(part, dict) else None
            if inline and inline.get("data"):
                return f"data:{inline.get('mimeType', 'image/png')};base64,{inline['data']}"
        raise ProviderError("No image data in Gemini response")


@ProviderFactory.register("custom", IMAGE)
class CustomImageProvider(ImageProvider):
    """OpenAI-compatible /images/generations endpoint (DALL-E style)."""

    DEFAULT_MODEL = "dall-e-3"

    def __init__(self, api_key: str, base_url: str, model: Optional[str] = None):
        super().__init__()
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.model = model or self.DEFAULT_MODEL

    @classmethod
    def from_config(cls, config: ProviderConfiguration) -> "CustomImageProvider":
        if not config.custom_api_key:
            raise ProviderConfigurationError("Missing custom API key", "custom", "CUSTOM_API_KEY")
        if not config.custom_api_base:
            raise ProviderConfigurationError("Missing custom API base URL", "custom", "CUSTOM_API_BASE")
        model_name = config.custom_model_name
        model = model_name if model_name and "dall-e" in model_name.lower() else None
        return cls(api_key=config.custom_api_key, base_url=config.custom_api_base, model=model)

    async def generate_image(self, prompt: str, seed: int) -> str:
        headers = {"Authorization": f"Bearer {self.api_key}", "Content-Type": "application/json"}
        payload: Dict[str, Any] = {"prompt": prompt, "model": self.model, "n": 1, "size": "1024x1024"}
        data = await self._request_json(
            "POST", f"{self.base_url}/images/generations", headers=headers, json=payload
        )
        try:
            first = data["data"][0]
        except (KeyError, IndexError, TypeError) as e:
            raise ProviderError("Custom Image API Error", category=FailureCategory.OTHER) from e
        if first.get("url"):
            return first["url"]
        if first.get("b64_json"):
            return f"data:image/png;base64,{first['b64_json']}"
        raise ProviderError("Custom Image API Error")
