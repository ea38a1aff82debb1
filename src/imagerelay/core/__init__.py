"""Core components of the image relay.

- **RelayConfig**: Configuration management using Pydantic Settings
- **GenerationClient**: Client for the upstream image-generation API
- **UpstreamError** / **NoImageReturnedError**: Upstream failure taxonomy

The core package knows nothing about HTTP routing.  The API layer
(:mod:`imagerelay.api`) builds a :class:`RelayConfig` once, hands it to a
:class:`GenerationClient`, and injects that client into the FastAPI app.
"""

from imagerelay.core.config import RelayConfig
from imagerelay.core.errors import NoImageReturnedError, UpstreamError
from imagerelay.core.generation_client import GeneratedImage, GenerationClient

__all__ = [
    "RelayConfig",
    "GenerationClient",
    "GeneratedImage",
    "UpstreamError",
    "NoImageReturnedError",
]
