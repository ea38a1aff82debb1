"""Shared pytest fixtures for imagerelay tests."""

from __future__ import annotations

import base64

import pytest
from fastapi.testclient import TestClient

from imagerelay.api.main import create_app
from imagerelay.core.config import RelayConfig
from imagerelay.core.errors import NoImageReturnedError
from imagerelay.core.generation_client import GeneratedImage

# Smallest valid PNG (1x1 transparent pixel).
PNG_BYTES = base64.b64decode(
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChwGA60e6kgAAAABJRU5ErkJggg=="
)


class StubGenerationClient:
    """Stand-in for :class:`GenerationClient` that never touches the network.

    Attributes:
        images: Images to return; an empty list simulates an upstream that
            yields no image.
        error: Exception to raise instead of returning an image.
        calls: ``(prompt, source_image)`` for every call received.
    """

    def __init__(
        self,
        images: list[GeneratedImage] | None = None,
        error: Exception | None = None,
    ) -> None:
        self.images = [GeneratedImage(PNG_BYTES, "image/png")] if images is None else images
        self.error = error
        self.calls: list[tuple[str, bytes | None]] = []

    async def generate_single_image(
        self, prompt: str, source_image: bytes | None = None
    ) -> GeneratedImage:
        self.calls.append((prompt, source_image))
        if self.error is not None:
            raise self.error
        if not self.images:
            raise NoImageReturnedError()
        return self.images[0]

    async def aclose(self) -> None:
        pass


@pytest.fixture
def test_config() -> RelayConfig:
    """Create a test configuration that ignores any local ``.env`` file.

    Returns:
        RelayConfig instance for testing
    """
    return RelayConfig(
        _env_file=None,
        google_api_key="test-key",
        api_base_url="https://upstream.test/v1beta",
        model_name="test-image-model",
        max_body_size_mb=1,
        forward_source_image=False,
    )


@pytest.fixture
def stub_client() -> StubGenerationClient:
    """Upstream stub returning one PNG image."""
    return StubGenerationClient()


@pytest.fixture
def test_client(test_config: RelayConfig, stub_client: StubGenerationClient) -> TestClient:
    """FastAPI TestClient wired to the stub upstream.

    Args:
        test_config: Configuration from fixture
        stub_client: Upstream stub from fixture

    Returns:
        TestClient for the relay application
    """
    return TestClient(create_app(test_config, generation_client=stub_client))


@pytest.fixture
def png_base64() -> str:
    """Base64 text of a valid 1x1 PNG."""
    return base64.b64encode(PNG_BYTES).decode("ascii")


@pytest.fixture
def make_test_client(test_config: RelayConfig):
    """Factory building a TestClient around a freshly configured upstream stub.

    Keyword arguments are passed to :class:`StubGenerationClient`; a
    ``config`` keyword replaces the test configuration.

    Returns:
        Callable returning ``(TestClient, StubGenerationClient)``
    """

    def _make(config: RelayConfig | None = None, **stub_kwargs):
        stub = StubGenerationClient(**stub_kwargs)
        app = create_app(config or test_config, generation_client=stub)
        return TestClient(app), stub

    return _make
