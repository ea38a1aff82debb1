"""Tests for imagerelay.core.config - configuration management.

Tests cover:
- Default values for all configuration fields.
- Environment variable overrides using the unprefixed names.
- The required API credential.
- Pydantic validation constraints (port range, body size, image size).
"""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from imagerelay.core.config import RelayConfig

_ENV_VARS = [
    "GOOGLE_API_KEY",
    "PORT",
    "HOST",
    "MAX_BODY_SIZE_MB",
    "MODEL_NAME",
    "IMAGE_SIZE",
    "API_BASE_URL",
    "REQUEST_TIMEOUT_SECONDS",
    "FORWARD_SOURCE_IMAGE",
    "LOG_LEVEL",
]


@pytest.fixture
def clean_env(monkeypatch):
    """Remove every relay variable from the environment."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestConfigDefaults:
    """Verify that RelayConfig provides the documented defaults."""

    def test_default_port(self, clean_env):
        """Default port should be 8080."""
        cfg = RelayConfig(_env_file=None, google_api_key="k")
        assert cfg.port == 8080

    def test_default_body_limit(self, clean_env):
        """Default body ceiling should be 100 MB."""
        cfg = RelayConfig(_env_file=None, google_api_key="k")
        assert cfg.max_body_size_mb == 100
        assert cfg.max_body_bytes == 100 * 1024 * 1024

    def test_default_model_settings(self, clean_env):
        """The default model asks for 1K images from the preview image model."""
        cfg = RelayConfig(_env_file=None, google_api_key="k")
        assert cfg.model_name == "gemini-3-pro-image-preview"
        assert cfg.image_size == "1K"
        assert cfg.api_base_url == "https://generativelanguage.googleapis.com/v1beta"

    def test_default_timeout_is_generous(self, clean_env):
        """The upstream timeout should default to thirty minutes."""
        cfg = RelayConfig(_env_file=None, google_api_key="k")
        assert cfg.request_timeout_seconds == 1800

    def test_image_forwarding_off_by_default(self, clean_env):
        """Only the prompt is sent upstream unless explicitly enabled."""
        cfg = RelayConfig(_env_file=None, google_api_key="k")
        assert cfg.forward_source_image is False


class TestConfigEnvironment:
    """Verify environment variable loading."""

    def test_api_key_from_env(self, clean_env):
        """GOOGLE_API_KEY should populate google_api_key."""
        clean_env.setenv("GOOGLE_API_KEY", "env-key")
        cfg = RelayConfig(_env_file=None)
        assert cfg.google_api_key == "env-key"

    def test_port_and_body_size_from_env(self, clean_env):
        """PORT and MAX_BODY_SIZE_MB should override the defaults."""
        clean_env.setenv("GOOGLE_API_KEY", "env-key")
        clean_env.setenv("PORT", "9090")
        clean_env.setenv("MAX_BODY_SIZE_MB", "5")
        cfg = RelayConfig(_env_file=None)
        assert cfg.port == 9090
        assert cfg.max_body_bytes == 5 * 1024 * 1024

    def test_env_file_is_read(self, clean_env, tmp_path):
        """A .env file should be used when the variable is not exported."""
        env_file = tmp_path / ".env"
        env_file.write_text("GOOGLE_API_KEY=file-key\nPORT=7000\n")
        cfg = RelayConfig(_env_file=str(env_file))
        assert cfg.google_api_key == "file-key"
        assert cfg.port == 7000


class TestConfigValidation:
    """Verify Pydantic validation constraints on config fields."""

    def test_missing_api_key_raises(self, clean_env):
        """Construction without a credential must fail."""
        with pytest.raises(ValidationError):
            RelayConfig(_env_file=None)

    def test_empty_api_key_raises(self, clean_env):
        """An empty credential is as good as none."""
        with pytest.raises(ValidationError):
            RelayConfig(_env_file=None, google_api_key="")

    def test_invalid_port_raises(self, clean_env):
        """Ports outside 1-65535 should be rejected."""
        with pytest.raises(ValidationError):
            RelayConfig(_env_file=None, google_api_key="k", port=70000)

    def test_zero_body_size_raises(self, clean_env):
        """The body ceiling must be at least 1 MB."""
        with pytest.raises(ValidationError):
            RelayConfig(_env_file=None, google_api_key="k", max_body_size_mb=0)

    def test_unknown_image_size_raises(self, clean_env):
        """Only 1K, 2K and 4K are accepted image sizes."""
        with pytest.raises(ValidationError):
            RelayConfig(_env_file=None, google_api_key="k", image_size="8K")
