"""Pydantic request models for the image relay API.

These models define the JSON schema for every endpoint.  FastAPI uses them
for body parsing and OpenAPI documentation; type mismatches (for example
``"scale": "2"``) are rejected as malformed bodies.

Emptiness is deliberately *not* enforced here.  Every field defaults to an
empty value so that an absent field and an empty one reach
:mod:`imagerelay.api.validation` in the same shape and produce the same
user-facing message.

Models
------
TextToImageRequest
    Payload for ``POST /text-to-image``.
ResizeRequest
    Payload for ``POST /resize``.
SketchToImageRequest
    Payload for ``POST /sketch-to-image``.
MagicEraserRequest
    Payload for ``POST /magic-eraser``.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class _RelayRequest(BaseModel):
    """Common model configuration: strict types, unknown fields ignored."""

    model_config = ConfigDict(strict=True, extra="ignore")


class TextToImageRequest(_RelayRequest):
    """Request body for ``POST /text-to-image``.

    Attributes:
        prompt: Free-text description of the image to generate.
    """

    prompt: str | None = Field(
        default=None,
        description="Description of the image to generate.",
    )


class ResizeRequest(_RelayRequest):
    """Request body for ``POST /resize``.

    Attributes:
        image_base64: Source image, standard base64 with padding.
        scale: Upscale factor, 2 or 4.
    """

    image_base64: str | None = Field(
        default=None,
        description="Source image encoded as standard base64.",
    )
    scale: int | None = Field(
        default=None,
        description="Upscale factor (2 or 4).",
    )


class SketchToImageRequest(_RelayRequest):
    """Request body for ``POST /sketch-to-image``.

    Attributes:
        image_base64: Sketch image, standard base64 with padding.
        description: What the sketch is meant to depict.
    """

    image_base64: str | None = Field(
        default=None,
        description="Sketch image encoded as standard base64.",
    )
    description: str | None = Field(
        default=None,
        description="What the sketch should be interpreted as.",
    )


class MagicEraserRequest(_RelayRequest):
    """Request body for ``POST /magic-eraser``.

    Attributes:
        image_base64: Image with the area to erase painted pink.
    """

    image_base64: str | None = Field(
        default=None,
        description="Image with a pink mask over the area to remove, as base64.",
    )
