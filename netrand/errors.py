from __future__ import annotations


class NetrandError(Exception):
    """Base class for failures raised by the benchmarking harness."""


class InvalidConfigurationError(NetrandError, ValueError):
    """Raised when a run is configured with values that cannot be timed."""


class RequestFailedError(NetrandError):
    """Raised when a GET request fails at the transport level."""

    def __init__(self, url: str, message: str | None = None) -> None:
        self.url = url
        super().__init__(message or f"GET {url} failed")


class RecorderError(NetrandError):
    """Raised when a completed run cannot be persisted."""


__all__ = [
    "NetrandError",
    "InvalidConfigurationError",
    "RequestFailedError",
    "RecorderError",
]
