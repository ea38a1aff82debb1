"""Syntactic validation for relay requests.

Validation never looks at pixel content.  It only checks that required
fields are present, that enum fields hold an allowed value, and that base64
fields decode.  Each ``validate_*`` function checks its request in a fixed
order and returns the values the route needs next.
"""

import base64
import binascii
import logging

from .models import MagicEraserRequest, ResizeRequest, SketchToImageRequest, TextToImageRequest

logger = logging.getLogger(__name__)

ALLOWED_SCALES = (2, 4)


class ValidationError(Exception):
    """User-friendly validation error.

    This exception is raised when a request body fails validation.
    The message is returned directly to the client with status 400.
    """

    pass


def decode_base64_image(value: str) -> bytes:
    """Decode a standard base64 string, rejecting anything outside the alphabet.

    Line breaks (``\\r`` and ``\\n``) are dropped first, so text wrapped at 76
    columns by the ``base64`` CLI decodes.  Any other whitespace is invalid.

    Args:
        value: Base64 text (standard alphabet, padded).

    Returns:
        The decoded bytes.

    Raises:
        ValidationError: If the text contains invalid characters or padding.
    """
    unwrapped = value.replace("\r", "").replace("\n", "")
    try:
        return base64.b64decode(unwrapped, validate=True)
    except (binascii.Error, ValueError) as e:
        logger.debug(f"Rejected base64 payload: {e}")
        raise ValidationError("invalid base64") from e


def validate_text_to_image(req: TextToImageRequest) -> str:
    """Return the prompt of a text-to-image request.

    Raises:
        ValidationError: If the prompt is missing or empty.
    """
    if not req.prompt:
        raise ValidationError("missing prompt")
    return req.prompt


def validate_resize(req: ResizeRequest) -> tuple[bytes, int]:
    """Validate a resize request.

    Checks run in order: image present, scale allowed, image decodes.  A bad
    scale is therefore reported even when the image is also invalid.

    Returns:
        Tuple of ``(image_bytes, scale)``.

    Raises:
        ValidationError: With ``missing image``, ``scale must be 2 or 4``, or
            ``invalid base64``.
    """
    if not req.image_base64:
        raise ValidationError("missing image")
    if req.scale not in ALLOWED_SCALES:
        raise ValidationError("scale must be 2 or 4")
    return decode_base64_image(req.image_base64), req.scale


def validate_sketch_to_image(req: SketchToImageRequest) -> tuple[bytes, str]:
    """Validate a sketch-to-image request.

    Returns:
        Tuple of ``(image_bytes, description)``.

    Raises:
        ValidationError: With ``missing fields`` or ``invalid base64``.
    """
    if not req.image_base64 or not req.description:
        raise ValidationError("missing fields")
    return decode_base64_image(req.image_base64), req.description


def validate_magic_eraser(req: MagicEraserRequest) -> bytes:
    """Validate a magic-eraser request and return the decoded image."""
    if not req.image_base64:
        raise ValidationError("missing image")
    return decode_base64_image(req.image_base64)
