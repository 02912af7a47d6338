from __future__ import annotations

import logging
from typing import Protocol

import requests

from .errors import RequestFailedError

LOGGER = logging.getLogger("netrand.transport")


class Transport(Protocol):
    def get(self, url: str) -> int:
        """Perform one GET and return its status code once the body is read."""


class HttpTransport:
    """Issue GET requests with ``requests``; only transport failures raise."""

    def __init__(self, timeout: float | None = None) -> None:
        if timeout is not None and timeout <= 0:
            raise ValueError("timeout must be > 0 when set")
        self._timeout = timeout

    @property
    def timeout(self) -> float | None:
        return self._timeout

    def get(self, url: str) -> int:
        try:
            response = requests.get(url, timeout=self._timeout)
        except requests.RequestException as exc:
            raise RequestFailedError(url, f"GET {url} failed: {exc}") from exc

        # Non-success statuses still count as a completed measurement.
        if not response.ok:
            LOGGER.debug("GET %s returned status %d", url, response.status_code)
        return response.status_code


__all__ = ["Transport", "HttpTransport"]
