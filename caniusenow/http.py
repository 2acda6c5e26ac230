"""HTTP client layer for caniusenow."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from contextvars import ContextVar
import json
from typing import Any

import httpx

from ._version import __version__
from .constants import DEFAULT_TIMEOUT_SECONDS
from .exceptions import ContentError, HttpStatusError, NetworkError, RequestTimeoutError

_SHARED_CLIENT: ContextVar[httpx.Client | None] = ContextVar(
    "caniusenow_shared_client", default=None
)


def _build_headers() -> dict[str, str]:
    return {
        "User-Agent": f"caniusenow/{__version__}",
        "Accept": "application/json",
    }


@contextmanager
def use_shared_client(
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
) -> Iterator[httpx.Client]:
    """Provide a reusable HTTP client for all requests within a CLI run."""
    with httpx.Client(timeout=timeout, follow_redirects=True, headers=_build_headers()) as client:
        token = _SHARED_CLIENT.set(client)
        try:
            yield client
        finally:
            _SHARED_CLIENT.reset(token)


def _send(
    method: str,
    url: str,
    *,
    headers: Mapping[str, str] | None = None,
    params: Mapping[str, str] | None = None,
    json_body: Any = None,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
) -> httpx.Response:
    shared_client = _SHARED_CLIENT.get()
    request_kwargs: dict[str, Any] = {
        "headers": dict(headers or {}),
        "params": dict(params or {}),
    }
    if json_body is not None:
        request_kwargs["json"] = json_body

    try:
        if shared_client is None or timeout != DEFAULT_TIMEOUT_SECONDS:
            with httpx.Client(
                timeout=timeout, follow_redirects=True, headers=_build_headers()
            ) as client:
                return client.request(method, url, **request_kwargs)
        return shared_client.request(method, url, **request_kwargs)
    except httpx.TimeoutException as exc:
        raise RequestTimeoutError(url) from exc
    except httpx.RequestError as exc:
        raise NetworkError(url, cause=exc.__class__.__name__) from exc


def fetch_text(url: str, timeout: float = DEFAULT_TIMEOUT_SECONDS) -> str:
    """GET a document, requiring HTTP 200 and a non-empty body."""
    response = _send("GET", url, timeout=timeout)
    if response.status_code != 200:
        raise HttpStatusError(response.status_code, str(response.url))

    body = response.text
    if not body.strip():
        raise ContentError(str(response.url))
    return body


def _parse_json_payload(raw: str, url: str) -> Any:
    try:
        return json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ContentError(url) from exc


def request_json(
    method: str,
    url: str,
    *,
    headers: Mapping[str, str] | None = None,
    params: Mapping[str, str] | None = None,
    json_body: Any = None,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
) -> Any:
    """Send a JSON API request; any 2xx is success and an empty body is None."""
    response = _send(
        method,
        url,
        headers=headers,
        params=params,
        json_body=json_body,
        timeout=timeout,
    )
    if not 200 <= response.status_code < 300:
        raise HttpStatusError(response.status_code, str(response.url))

    body = response.text
    if not body.strip():
        return None
    return _parse_json_payload(body, str(response.url))
