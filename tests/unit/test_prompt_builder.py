"""Unit tests for imagerelay.api.prompt_builder."""

from imagerelay.api.prompt_builder import (
    MAGIC_ERASER_PROMPT,
    build_magic_eraser_prompt,
    build_resize_prompt,
    build_sketch_prompt,
    build_text_to_image_prompt,
)


class TestPromptBuilder:
    """Tests for the per-endpoint prompt functions."""

    def test_text_to_image_passes_prompt_through(self):
        """The user's prompt is used unchanged, whitespace included."""
        assert build_text_to_image_prompt("  A goblin workshop. ") == "  A goblin workshop. "

    def test_resize_prompt(self):
        assert build_resize_prompt(2) == "Resize this image by x2 preserving details."
        assert build_resize_prompt(4) == "Resize this image by x4 preserving details."

    def test_sketch_prompt_quotes_description(self):
        assert build_sketch_prompt("a red bicycle") == "Interpret this sketch as 'a red bicycle'."

    def test_sketch_prompt_inserts_description_verbatim(self):
        """Quotes inside the description are not escaped."""
        assert build_sketch_prompt("Bob's car") == "Interpret this sketch as 'Bob's car'."

    def test_magic_eraser_prompt_is_fixed(self):
        assert build_magic_eraser_prompt() == MAGIC_ERASER_PROMPT
        assert "pink masked area" in MAGIC_ERASER_PROMPT
