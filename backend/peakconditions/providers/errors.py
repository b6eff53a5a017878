"""Typed failures raised by source clients."""

from __future__ import annotations

from peakconditions.schemas.status import FailureCategory


class FetchError(Exception):
    category: FailureCategory = "unavailable"

    def __init__(self, message: str, url: str | None = None) -> None:
        super().__init__(message)
        self.url = url


class NotFoundError(FetchError):
    """The locator answered with a not-found page or status."""

    category: FailureCategory = "not_found"


class FetchTimeoutError(FetchError):
    category: FailureCategory = "timeout"


class UnavailableError(FetchError):
    """Transport, DNS, configuration or upstream failure."""

    category: FailureCategory = "unavailable"
