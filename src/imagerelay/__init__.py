"""imagerelay - HTTP relay in front of a remote generative-image model."""

__version__ = "0.1.0"

from imagerelay.core.config import RelayConfig

__all__ = ["RelayConfig", "__version__"]
