"""Request body size ceiling.

Base64-encoded images inflate payloads by a third, so inbound bodies are
bounded before FastAPI buffers them.  :class:`BodySizeLimitMiddleware` is a
plain ASGI middleware:

- A declared ``Content-Length`` above the limit is answered with 413 without
  reading the body.
- Otherwise the ``receive`` channel is wrapped and counts bytes as they
  stream in; crossing the limit raises ``HTTPException(413)`` from inside
  body parsing, which the app's exception handlers turn into a JSON error.
"""

from __future__ import annotations

import logging

from fastapi import HTTPException
from fastapi.responses import JSONResponse
from starlette.datastructures import Headers
from starlette.types import ASGIApp, Message, Receive, Scope, Send

logger = logging.getLogger(__name__)

BODY_TOO_LARGE = "request body too large"


class BodySizeLimitMiddleware:
    """Reject HTTP requests whose body exceeds ``max_body_bytes``."""

    def __init__(self, app: ASGIApp, max_body_bytes: int) -> None:
        self.app = app
        self.max_body_bytes = max_body_bytes

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        declared = Headers(scope=scope).get("content-length")
        if declared is not None and declared.isdigit() and int(declared) > self.max_body_bytes:
            logger.warning(
                f"Rejected {scope.get('path')}: declared body of {declared} bytes "
                f"exceeds {self.max_body_bytes}"
            )
            response = JSONResponse({"error": BODY_TOO_LARGE}, status_code=413)
            await response(scope, receive, send)
            return

        received = 0

        async def limited_receive() -> Message:
            nonlocal received
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > self.max_body_bytes:
                    logger.warning(
                        f"Rejected {scope.get('path')}: streamed body exceeds "
                        f"{self.max_body_bytes} bytes"
                    )
                    raise HTTPException(status_code=413, detail=BODY_TOO_LARGE)
            return message

        await self.app(scope, limited_receive, send)
