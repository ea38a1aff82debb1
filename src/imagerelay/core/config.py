"""Configuration management for the image relay.

This module provides explicit configuration using Pydantic Settings.  Values
are loaded from environment variables (no prefix, case-insensitive) with a
``.env`` file in the working directory as fallback, so the variable names
used by existing deployments (``GOOGLE_API_KEY``, ``PORT``,
``MAX_BODY_SIZE_MB``) keep working.

Environment Variable Loading
-----------------------------
Configuration values are loaded in the following priority order:
1. Keyword arguments passed to :class:`RelayConfig`
2. Environment variables
3. ``.env`` file in the working directory
4. Default values defined in :class:`RelayConfig`

Example .env file:
    GOOGLE_API_KEY=your-key
    PORT=8080
    MAX_BODY_SIZE_MB=100

Startup Behaviour
-----------------
``google_api_key`` has no default.  Constructing a :class:`RelayConfig`
without it raises :class:`pydantic.ValidationError`, which
:func:`imagerelay.api.main.main` turns into a fatal startup error.

Unlike a module-level singleton, the configuration is built once at startup
and passed explicitly to the generation client and the application factory::

    from imagerelay.core.config import RelayConfig
    from imagerelay.api.main import create_app

    config = RelayConfig()
    app = create_app(config)
"""

from __future__ import annotations

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

_BYTES_PER_MB = 1024 * 1024


class RelayConfig(BaseSettings):
    """Main configuration for the image relay.

    Attributes
    ----------
    Upstream Settings:
        google_api_key : str
            Credential for the generative-image API (required)
        api_base_url : str
            Base URL of the generative language REST API
        model_name : str
            Image-capable model to invoke
        image_size : Literal["1K", "2K", "4K"]
            Requested output resolution class
        request_timeout_seconds : float
            Read/write timeout for the upstream call
        forward_source_image : bool
            Attach the decoded request image to the upstream call

    Server Settings:
        host : str
            Bind address for uvicorn
        port : int
            Listen port (1-65535)
        max_body_size_mb : int
            Ceiling on inbound request bodies, in megabytes
        log_level : str
            Root logging level used by the CLI entry point
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="",
        case_sensitive=False,
        extra="ignore",
    )

    # Upstream settings
    google_api_key: str = Field(
        ...,
        min_length=1,
        description="API key for the generative-image service",
    )
    api_base_url: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta",
        description="Base URL of the generative language REST API",
    )
    model_name: str = Field(
        default="gemini-3-pro-image-preview",
        description="Image-capable model used for every request",
    )
    image_size: Literal["1K", "2K", "4K"] = Field(
        default="1K",
        description="Output resolution class requested from the model",
    )
    request_timeout_seconds: float = Field(
        default=1800.0,
        gt=0,
        description="Upstream read/write timeout (large images take minutes)",
    )
    forward_source_image: bool = Field(
        default=False,
        description="Send the decoded request image alongside the prompt",
    )

    # Server settings
    host: str = Field(
        default="0.0.0.0",
        description="Server bind address",
    )
    port: int = Field(
        default=8080,
        description="Server port",
        ge=1,
        le=65535,
    )
    max_body_size_mb: int = Field(
        default=100,
        description="Maximum accepted request body size in megabytes",
        ge=1,
    )
    log_level: str = Field(
        default="INFO",
        description="Logging level for the CLI entry point",
    )

    @property
    def max_body_bytes(self) -> int:
        """Request body ceiling in bytes."""
        return self.max_body_size_mb * _BYTES_PER_MB
