"""Exception types for caniusenow."""

from __future__ import annotations


class CaniusenowError(Exception):
    """Base exception for expected application errors."""


class NetworkError(CaniusenowError):
    """Raised when a network operation fails."""

    def __init__(self, url: str, *, cause: str | None = None) -> None:
        detail = f"Unable to connect to {url}"
        if cause:
            detail = f"{detail} ({cause})"
        super().__init__(detail)


class RequestTimeoutError(CaniusenowError):
    """Raised when a request times out."""

    def __init__(self, url: str) -> None:
        super().__init__(f"Request timed out for {url}")


class HttpStatusError(CaniusenowError):
    """Raised when a non-success HTTP response is returned."""

    def __init__(self, status_code: int, url: str) -> None:
        self.status_code = status_code
        self.url = url
        super().__init__(f"Request failed with HTTP {status_code} for {url}")


class ContentError(CaniusenowError):
    """Raised when a response body is invalid or unexpectedly empty."""

    def __init__(self, url: str) -> None:
        super().__init__(f"Received empty or invalid content from {url}")


class SourceError(CaniusenowError):
    """Raised when a source or artifact file is missing or malformed."""

    def __init__(self, path: str, *, cause: str | None = None) -> None:
        self.path = path
        detail = f"Unable to read {path}"
        if cause:
            detail = f"{detail} ({cause})"
        super().__init__(detail)


class ConfigError(CaniusenowError):
    """Raised when required configuration is missing."""

    def __init__(self, missing: list[str]) -> None:
        self.missing = missing
        super().__init__(f"Missing required configuration: {', '.join(missing)}")


class StoreError(CaniusenowError):
    """Raised when the tracking store cannot be queried or updated."""


class DeliveryError(CaniusenowError):
    """Raised when the notification service rejects a message."""
