"""Exceptions raised by the upstream generation client."""


class UpstreamError(Exception):
    """The upstream generation call failed.

    Covers transport failures, timeouts, non-2xx responses and malformed
    stream payloads.  The message carries full detail for server-side
    logging and must not be returned to API clients verbatim.
    """


class NoImageReturnedError(UpstreamError):
    """The upstream stream ended without yielding an inline image."""

    def __init__(self, message: str = "no image returned") -> None:
        super().__init__(message)
