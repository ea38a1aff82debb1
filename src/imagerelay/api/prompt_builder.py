"""Prompt synthesis for the relay endpoints.

Each endpoint turns its validated input into exactly one natural-language
instruction for the upstream model.  The functions here are pure: no I/O,
no branching beyond the substitution itself.

========================  ===================================================
Endpoint                  Prompt
========================  ===================================================
``/text-to-image``        The user's prompt, unchanged
``/resize``               ``Resize this image by x{scale} preserving details.``
``/sketch-to-image``      ``Interpret this sketch as '{description}'.``
``/magic-eraser``         Fixed pink-mask removal instruction
========================  ===================================================

The eraser relies on the client having painted the area to remove pink;
interpreting the mask is left entirely to the model.
"""

from __future__ import annotations

MAGIC_ERASER_PROMPT = "Remove the pink masked area and reconstruct the background."


def build_text_to_image_prompt(prompt: str) -> str:
    """Return the user's prompt as the model instruction."""
    return prompt


def build_resize_prompt(scale: int) -> str:
    """Build the upscale instruction for a validated ``scale`` (2 or 4)."""
    return f"Resize this image by x{scale} preserving details."


def build_sketch_prompt(description: str) -> str:
    """Build the sketch interpretation instruction.

    Args:
        description: What the sketch depicts.  Inserted verbatim, quotes
            included.

    Returns:
        The compiled instruction string.
    """
    return f"Interpret this sketch as '{description}'."


def build_magic_eraser_prompt() -> str:
    """Return the fixed magic-eraser instruction."""
    return MAGIC_ERASER_PROMPT
