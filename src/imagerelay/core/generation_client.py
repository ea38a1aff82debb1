"""Client for the upstream generative-image API.

This module provides :class:`GenerationClient`, the single point of contact
with the remote image model.  One instance is created at startup and shared
by every request handler; it holds only credentials and transport
configuration, so concurrent use needs no locking.

Key Responsibilities
--------------------
- **Request construction** - wraps the prompt (and, optionally, the source
  image) in a ``streamGenerateContent`` body asking for image output.
- **Lazy streaming** - :meth:`GenerationClient.stream_candidates` yields
  server-sent-event chunks one at a time as they arrive.
- **First-image extraction** - :meth:`GenerationClient.generate_single_image`
  stops at the first inline image and closes the stream, abandoning the
  rest of the upstream response.
- **Error normalisation** - transport failures, non-2xx responses and
  malformed payloads are raised as :class:`~imagerelay.core.errors.UpstreamError`.

There are no retries: each request results in exactly one upstream call.

Usage
-----
::

    from imagerelay.core.config import RelayConfig
    from imagerelay.core.generation_client import GenerationClient

    client = GenerationClient(RelayConfig())
    image = await client.generate_single_image("a goblin workshop")
    print(image.mime_type, len(image.data))
    await client.aclose()
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
from collections.abc import AsyncIterator
from contextlib import aclosing
from dataclasses import dataclass

import httpx

from imagerelay.core.config import RelayConfig
from imagerelay.core.errors import NoImageReturnedError, UpstreamError

logger = logging.getLogger(__name__)

DEFAULT_MIME_TYPE = "image/png"

# The model is asked for both modalities; text parts are skipped.
_RESPONSE_MODALITIES = ["IMAGE", "TEXT"]

# Upstream error bodies are truncated before they reach the logs.
_MAX_ERROR_BODY = 500


@dataclass(frozen=True)
class GeneratedImage:
    """A single image returned by the upstream model.

    Attributes:
        data: Raw image bytes.
        mime_type: Declared MIME type (``image/png`` when the upstream
            omits it).
    """

    data: bytes
    mime_type: str = DEFAULT_MIME_TYPE


class GenerationClient:
    """Async client for the ``streamGenerateContent`` image endpoint.

    Attributes:
        _config (RelayConfig):
            Application configuration - credential, model, image size and
            timeout.
        _http (httpx.AsyncClient):
            Shared HTTP client.  Closed by :meth:`aclose`.
    """

    def __init__(
        self,
        config: RelayConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialise the client.

        Args:
            config: Application configuration instance.
            transport: Optional httpx transport, used by tests to substitute
                :class:`httpx.MockTransport` for the network.
        """
        self._config = config
        self._http = httpx.AsyncClient(
            base_url=config.api_base_url.rstrip("/") + "/",
            headers={"x-goog-api-key": config.google_api_key},
            timeout=httpx.Timeout(config.request_timeout_seconds),
            transport=transport,
        )

    @property
    def model_name(self) -> str:
        """Name of the upstream model every request is sent to."""
        return self._config.model_name

    # -- Public interface ---------------------------------------------------

    def build_payload(
        self,
        prompt: str,
        source_image: bytes | None = None,
        source_mime_type: str = DEFAULT_MIME_TYPE,
    ) -> dict:
        """Build the JSON body for a single-image generation call.

        Args:
            prompt: Natural-language instruction for the model.
            source_image: Optional image bytes sent as an inline-data part
                after the prompt.
            source_mime_type: MIME type declared for ``source_image``.

        Returns:
            Dictionary ready to be sent as the request JSON.
        """
        parts: list[dict] = [{"text": prompt}]
        if source_image is not None:
            parts.append(
                {
                    "inlineData": {
                        "mimeType": source_mime_type,
                        "data": base64.b64encode(source_image).decode("ascii"),
                    }
                }
            )

        return {
            "contents": [{"role": "user", "parts": parts}],
            "generationConfig": {
                "responseModalities": list(_RESPONSE_MODALITIES),
                "imageConfig": {"imageSize": self._config.image_size},
            },
        }

    async def stream_candidates(
        self,
        prompt: str,
        source_image: bytes | None = None,
    ) -> AsyncIterator[dict]:
        """Yield response chunks from the upstream stream as they arrive.

        Each chunk is one decoded server-sent event.  The HTTP stream stays
        open only while the caller keeps iterating; closing the generator
        closes the connection.

        Args:
            prompt: Natural-language instruction for the model.
            source_image: Optional image bytes to forward with the prompt.

        Yields:
            Parsed JSON chunks (``{"candidates": [...], ...}``).

        Raises:
            UpstreamError: On transport failure, non-2xx status, or a chunk
                that is not valid JSON.
        """
        url = f"models/{self._config.model_name}:streamGenerateContent"
        payload = self.build_payload(prompt, source_image)

        try:
            async with self._http.stream(
                "POST", url, params={"alt": "sse"}, json=payload
            ) as response:
                if response.status_code >= 400:
                    body = (await response.aread()).decode("utf-8", errors="replace")
                    raise UpstreamError(
                        f"upstream returned HTTP {response.status_code}: "
                        f"{body[:_MAX_ERROR_BODY]}"
                    )

                async for event in _iter_sse_data(response.aiter_lines()):
                    try:
                        yield json.loads(event)
                    except json.JSONDecodeError as e:
                        raise UpstreamError(f"malformed stream chunk: {e}") from e
        except httpx.HTTPError as e:
            raise UpstreamError(f"upstream request failed: {e!r}") from e

    async def generate_single_image(
        self,
        prompt: str,
        source_image: bytes | None = None,
    ) -> GeneratedImage:
        """Request one image and return the first inline image payload.

        Chunks without candidates, content or parts are skipped, as are
        text-only parts.  As soon as an inline image is found the stream is
        closed and the remaining chunks are never read.

        Args:
            prompt: Natural-language instruction for the model.
            source_image: Optional image bytes to forward with the prompt.

        Returns:
            The first :class:`GeneratedImage` in the stream.

        Raises:
            NoImageReturnedError: If the stream ends without an image.
            UpstreamError: On any other upstream failure.
        """
        logger.debug(f"Requesting image from {self.model_name} ({len(prompt)} chars of prompt)")

        async with aclosing(self.stream_candidates(prompt, source_image)) as chunks:
            async for chunk in chunks:
                image = extract_inline_image(chunk)
                if image is not None:
                    logger.info(
                        f"Received image from {self.model_name}: "
                        f"{len(image.data)} bytes, {image.mime_type}"
                    )
                    return image

        raise NoImageReturnedError()

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._http.aclose()


def extract_inline_image(chunk: object) -> GeneratedImage | None:
    """Return the first inline image in a chunk's first candidate, if any.

    Args:
        chunk: One parsed stream chunk.

    Returns:
        A :class:`GeneratedImage`, or ``None`` when the first candidate has
        no content, no parts, or only non-image parts.

    Raises:
        UpstreamError: If the chunk is not shaped like a response object, or
            the inline data is not a valid base64 string.
    """
    if not isinstance(chunk, dict):
        raise UpstreamError(f"unexpected stream chunk: {type(chunk).__name__}")

    candidates = chunk.get("candidates") or []
    if not isinstance(candidates, list):
        raise UpstreamError("unexpected stream chunk: candidates is not a list")
    if not candidates:
        return None

    candidate = candidates[0]
    content = (candidate.get("content") if isinstance(candidate, dict) else None) or {}
    parts = (content.get("parts") if isinstance(content, dict) else None) or []
    if not isinstance(parts, list):
        raise UpstreamError("unexpected stream chunk: parts is not a list")

    for part in parts:
        if not isinstance(part, dict):
            continue
        inline = part.get("inlineData") or part.get("inline_data")
        if not isinstance(inline, dict) or not inline:
            continue

        try:
            data = base64.b64decode(inline.get("data", ""), validate=True)
        except (binascii.Error, TypeError, ValueError) as e:
            raise UpstreamError(f"inline image is not valid base64: {e}") from e

        mime_type = inline.get("mimeType") or inline.get("mime_type")
        if not isinstance(mime_type, str) or not mime_type:
            mime_type = DEFAULT_MIME_TYPE
        return GeneratedImage(data=data, mime_type=mime_type)

    return None


async def _iter_sse_data(lines: AsyncIterator[str]) -> AsyncIterator[str]:
    """Group server-sent-event lines into ``data`` payloads.

    Multiple ``data:`` lines belonging to one event are joined with
    newlines; comment lines and other fields are ignored.
    """
    buffer: list[str] = []
    async for line in lines:
        if not line:
            if buffer:
                yield "\n".join(buffer)
                buffer = []
            continue
        if line.startswith("data:"):
            buffer.append(line[5:].lstrip())

    if buffer:
        yield "\n".join(buffer)
