import asyncio

import pytest

from vocabforge.config import Config
from vocabforge.exceptions import ProviderError
from vocabforge.models import ProviderConfiguration
from vocabforge.providers import HFSpaceImageProvider, ImageTier

PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


class FakeSpaceClient:
    """Stands in for gradio_client.Client, recording connections and predictions."""

    def __init__(self, result=None, error=None):
        self.result = result
        self.error = error
        self.connections = []
        self.predictions = []

    def __call__(self, src, hf_token=None):
        self.connections.append((src, hf_token))
        return self

    def predict(self, *args, api_name=None):
        self.predictions.append((args, api_name))
        if self.error:
            raise self.error
        return self.result


@pytest.fixture
def space_image(tmp_path):
    path = tmp_path / "gradio" / "image.png"
    path.parent.mkdir()
    path.write_bytes(PNG)
    return str(path)


class TestHFSpaceImageProvider:
    def test_copies_image_into_media_dir(self, space_image):
        client = FakeSpaceClient(result=space_image)
        provider = HFSpaceImageProvider(hf_token="hf", client_factory=client)

        async def run():
            return (await provider.generate_image("a cat", 7),
                    await provider.generate_image("a dog", 8))

        first, second = asyncio.run(run())

        assert first.startswith(Config.MEDIA_DIR)
        assert first != second
        with open(first, "rb") as f:
            assert f.read() == PNG
        assert client.connections == [("ByteDance/SDXL-Lightning", "hf")]
        assert client.predictions[0] == (("a cat", "4-Step"), "/generate_image")
        assert provider.tier == ImageTier.ANONYMOUS

    @pytest.mark.parametrize("result", [
        ["https://space.hf.space/file=cat.webp"],
        {"url": "https://space.hf.space/file=cat.webp", "path": None},
    ])
    def test_remote_result_is_returned_as_is(self, result):
        provider = HFSpaceImageProvider(client_factory=FakeSpaceClient(result=result))

        assert asyncio.run(provider.generate_image("a cat", 1)) == "https://space.hf.space/file=cat.webp"

    def test_dict_result_with_path(self, space_image):
        provider = HFSpaceImageProvider(client_factory=FakeSpaceClient(result={"path": space_image}))

        assert asyncio.run(provider.generate_image("a cat", 1)).startswith(Config.MEDIA_DIR)

    @pytest.mark.parametrize("client", [
        FakeSpaceClient(error=ValueError("Space is sleeping")),
        FakeSpaceClient(result=None),
        FakeSpaceClient(result="/nonexistent/image.png"),
    ])
    def test_failures_are_provider_errors(self, client):
        provider = HFSpaceImageProvider(client_factory=client)

        with pytest.raises(ProviderError):
            asyncio.run(provider.generate_image("a cat", 1))

    def test_non_image_file_is_rejected(self, tmp_path):
        path = tmp_path / "error.html"
        path.write_text("<html>queue full</html>")
        provider = HFSpaceImageProvider(client_factory=FakeSpaceClient(result=str(path)))

        with pytest.raises(ProviderError):
            asyncio.run(provider.generate_image("a cat", 1))

    def test_connection_failure_is_provider_error(self):
        def unreachable(src, hf_token=None):
            raise ConnectionError("no route to host")

        with pytest.raises(ProviderError) as excinfo:
            asyncio.run(HFSpaceImageProvider(client_factory=unreachable).generate_image("a cat", 1))

        assert "hf_space" in str(excinfo.value)

    def test_from_config_uses_huggingface_token(self):
        provider = HFSpaceImageProvider.from_config(ProviderConfiguration(huggingface_api_key="hf"))
        assert provider.hf_token == "hf"
