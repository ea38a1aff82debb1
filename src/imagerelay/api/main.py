"""Image Relay - FastAPI Application.

This module defines the application factory, the REST routes, the JSON error
handlers, and the ``main()`` CLI function that launches the uvicorn server.

Architecture
------------
The application follows a stateless relay pattern:

- **Configuration** is an explicit :class:`~imagerelay.core.config.RelayConfig`
  built once at startup and passed to :func:`create_app`.
- **Image generation** is delegated to a single shared
  :class:`~imagerelay.core.generation_client.GenerationClient` stored on
  ``app.state``.  Handlers never mutate it.
- **Every request** runs the same pipeline: parse JSON → validate →
  synthesise a prompt → one upstream call → return the image bytes.
- **Errors** are always JSON ``{"error": "<message>"}`` bodies.  Image bytes
  are written only once the full upstream result is known.

Endpoints
---------
========  ======================  ==========================================
Method    Path                    Purpose
========  ======================  ==========================================
POST      ``/text-to-image``      Generate an image from a text prompt
POST      ``/resize``             Upscale an image by x2 or x4
POST      ``/sketch-to-image``    Turn a sketch into a finished image
POST      ``/magic-eraser``       Remove a pink-masked area from an image
========  ======================  ==========================================

Any other method on these paths is answered with 405.

Usage
-----
CLI (installed entry point)::

    imagerelay

Direct invocation::

    python -m imagerelay.api.main
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Awaitable
from contextlib import asynccontextmanager
from typing import TypeVar

import pydantic
from fastapi import APIRouter, FastAPI, Request
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from imagerelay import __version__
from imagerelay.api.middleware import BodySizeLimitMiddleware
from imagerelay.api.models import (
    MagicEraserRequest,
    ResizeRequest,
    SketchToImageRequest,
    TextToImageRequest,
)
from imagerelay.api.prompt_builder import (
    build_magic_eraser_prompt,
    build_resize_prompt,
    build_sketch_prompt,
    build_text_to_image_prompt,
)
from imagerelay.api.validation import (
    ValidationError,
    validate_magic_eraser,
    validate_resize,
    validate_sketch_to_image,
    validate_text_to_image,
)
from imagerelay.core.config import RelayConfig
from imagerelay.core.errors import UpstreamError
from imagerelay.core.generation_client import GenerationClient

logger = logging.getLogger(__name__)

T = TypeVar("T")
M = TypeVar("M", bound=pydantic.BaseModel)

# How often a pending upstream call checks whether the client is still there.
_DISCONNECT_POLL_SECONDS = 1.0

# Status used when the client hangs up before the image is ready.  Nobody
# reads the body; it exists so the access log shows the abandonment.
_CLIENT_CLOSED_REQUEST = 499

# Matches the 1 MB header ceiling of the original deployment.
_MAX_HEADER_BYTES = 1 << 20

router = APIRouter()


class ClientDisconnected(Exception):
    """The client went away while the upstream call was still running."""


# ---------------------------------------------------------------------------
# Response helpers.
# ---------------------------------------------------------------------------


def _error_response(message: str, status_code: int, headers: dict | None = None) -> JSONResponse:
    """Build the JSON error body used by every failure path."""
    return JSONResponse({"error": message}, status_code=status_code, headers=headers)


async def _run_until_disconnected(request: Request, call: Awaitable[T]) -> T:
    """Await ``call``, cancelling it if the client disconnects first.

    The upstream call runs as its own task.  While it is pending the request
    is polled for disconnection; on disconnect the task is cancelled, which
    closes the upstream stream instead of letting it finish unread.

    Raises:
        ClientDisconnected: If the client disconnected before completion.
    """
    task = asyncio.ensure_future(call)
    try:
        while True:
            done, _ = await asyncio.wait({task}, timeout=_DISCONNECT_POLL_SECONDS)
            if done:
                return task.result()
            if await request.is_disconnected():
                raise ClientDisconnected()
    finally:
        if not task.done():
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)


def _json_body(model: type[pydantic.BaseModel]) -> dict:
    """OpenAPI request-body entry for a route that parses ``model`` itself."""
    return {
        "requestBody": {
            "required": True,
            "content": {"application/json": {"schema": model.model_json_schema()}},
        }
    }


async def _parse_body(request: Request, model: type[M]) -> M:
    """Decode the request body as a JSON ``model``, whatever its Content-Type.

    Clients such as ``curl -d`` label JSON as form data; the body is read as
    JSON regardless.  Reading goes through the body-size middleware, so an
    oversized body still raises its 413.

    Raises:
        ValidationError: ``invalid body`` if the body is not JSON of the
            expected shape and types.
    """
    body = await request.body()
    try:
        return model.model_validate_json(body)
    except pydantic.ValidationError as e:
        logger.debug(f"Body rejected on {request.url.path}: {e.errors()}")
        raise ValidationError("invalid body") from e


async def _relay(
    request: Request,
    prompt: str,
    source_image: bytes | None,
    failure_message: str,
) -> Response:
    """Send ``prompt`` upstream and return the resulting image.

    Args:
        request: The inbound request (used for disconnect detection and to
            reach the shared client on ``app.state``).
        prompt: The synthesised instruction.
        source_image: Decoded request image.  Only forwarded when
            ``forward_source_image`` is enabled; by default the model sees
            the prompt alone.
        failure_message: Short client-facing message for upstream failures.

    Returns:
        200 with the image bytes, or a JSON error response.
    """
    client: GenerationClient = request.app.state.generation_client
    config: RelayConfig = request.app.state.config
    forwarded = source_image if config.forward_source_image else None

    try:
        image = await _run_until_disconnected(
            request,
            client.generate_single_image(prompt, source_image=forwarded),
        )
    except ClientDisconnected:
        logger.info(f"Client disconnected from {request.url.path}; upstream call abandoned")
        return _error_response("client disconnected", _CLIENT_CLOSED_REQUEST)
    except UpstreamError as e:
        logger.error(f"Upstream failure on {request.url.path}: {e}", exc_info=True)
        return _error_response(failure_message, 500)

    return Response(content=image.data, media_type=image.mime_type)


# ---------------------------------------------------------------------------
# Routes.
# ---------------------------------------------------------------------------


@router.post("/text-to-image", openapi_extra=_json_body(TextToImageRequest))
async def text_to_image(request: Request) -> Response:
    """Generate an image from a free-text prompt.

    Raises:
        ValidationError: ``invalid body`` or ``missing prompt``.
    """
    req = await _parse_body(request, TextToImageRequest)
    prompt = build_text_to_image_prompt(validate_text_to_image(req))
    return await _relay(request, prompt, None, "generation error")


@router.post("/resize", openapi_extra=_json_body(ResizeRequest))
async def resize(request: Request) -> Response:
    """Upscale an image by a factor of 2 or 4.

    Raises:
        ValidationError: ``invalid body``, ``missing image``,
            ``scale must be 2 or 4``, or ``invalid base64``.
    """
    image_bytes, scale = validate_resize(await _parse_body(request, ResizeRequest))
    return await _relay(request, build_resize_prompt(scale), image_bytes, "resize error")


@router.post("/sketch-to-image", openapi_extra=_json_body(SketchToImageRequest))
async def sketch_to_image(request: Request) -> Response:
    """Render a sketch as the described subject.

    Raises:
        ValidationError: ``invalid body``, ``missing fields`` or ``invalid base64``.
    """
    req = await _parse_body(request, SketchToImageRequest)
    image_bytes, description = validate_sketch_to_image(req)
    return await _relay(request, build_sketch_prompt(description), image_bytes, "sketch error")


@router.post("/magic-eraser", openapi_extra=_json_body(MagicEraserRequest))
async def magic_eraser(request: Request) -> Response:
    """Remove the pink-masked region of an image and rebuild the background.

    Raises:
        ValidationError: ``invalid body``, ``missing image`` or ``invalid base64``.
    """
    image_bytes = validate_magic_eraser(await _parse_body(request, MagicEraserRequest))
    return await _relay(request, build_magic_eraser_prompt(), image_bytes, "eraser error")


# ---------------------------------------------------------------------------
# Exception handlers.
# ---------------------------------------------------------------------------


async def _handle_validation_error(request: Request, exc: ValidationError) -> JSONResponse:
    logger.warning(f"Validation error on {request.url.path}: {exc}")
    return _error_response(str(exc), 400)


async def _handle_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    message = "POST only" if exc.status_code == 405 else str(exc.detail)
    return _error_response(message, exc.status_code, headers=getattr(exc, "headers", None))


async def _handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Unhandled error on {request.url.path}: {exc}", exc_info=exc)
    return _error_response("internal server error", 500)


# ---------------------------------------------------------------------------
# Application factory.
# ---------------------------------------------------------------------------


def create_app(
    config: RelayConfig | None = None,
    generation_client: GenerationClient | None = None,
) -> FastAPI:
    """Build the FastAPI application.

    Args:
        config: Application configuration.  Loaded from the environment when
            omitted, which fails if ``GOOGLE_API_KEY`` is not set.
        generation_client: Client to share across requests.  When omitted a
            :class:`GenerationClient` is created from ``config`` and closed
            on shutdown; an injected client is left for the caller to close.

    Returns:
        The configured application.
    """
    if config is None:
        config = RelayConfig()

    owns_client = generation_client is None
    client = generation_client if generation_client is not None else GenerationClient(config)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info(f"Relaying to upstream model {config.model_name}")

        yield  # Application runs here.

        if owns_client:
            await client.aclose()
            logger.info("Generation client closed on shutdown.")

    app = FastAPI(
        title="Image Relay",
        description="Relay from simple image endpoints to a generative-image model.",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.generation_client = client

    app.add_middleware(BodySizeLimitMiddleware, max_body_bytes=config.max_body_bytes)

    app.add_exception_handler(ValidationError, _handle_validation_error)
    app.add_exception_handler(StarletteHTTPException, _handle_http_exception)
    app.add_exception_handler(Exception, _handle_unexpected)

    app.include_router(router)
    return app


# ---------------------------------------------------------------------------
# CLI entry point.
# ---------------------------------------------------------------------------


def main() -> None:
    """Launch the uvicorn ASGI server.

    Builds :class:`RelayConfig` from the environment (and ``.env``).  A
    missing ``GOOGLE_API_KEY`` is fatal: the error is logged and the process
    exits with status 1 before anything listens.

    This function is registered as the ``imagerelay`` console script in
    ``pyproject.toml``.
    """
    import uvicorn

    try:
        config = RelayConfig()
    except pydantic.ValidationError as e:
        logging.basicConfig(level=logging.INFO)
        logger.error(f"Invalid configuration (is GOOGLE_API_KEY set?): {e}")
        raise SystemExit(1) from e

    logging.basicConfig(
        level=config.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info(f"API listening on :{config.port} (Max body size: {config.max_body_size_mb} MB)")

    uvicorn.run(
        create_app(config),
        host=config.host,
        port=config.port,
        h11_max_incomplete_event_size=_MAX_HEADER_BYTES,
    )


if __name__ == "__main__":
    main()
