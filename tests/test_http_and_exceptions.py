from __future__ import annotations

import json
from pathlib import Path
from typing import Any, ClassVar

import httpx
import pytest

from caniusenow import http, sources
from caniusenow.config import Settings
from caniusenow.constants import DEFAULT_APP_URL, SOURCE_URLS
from caniusenow.exceptions import (
    ConfigError,
    ContentError,
    HttpStatusError,
    NetworkError,
    RequestTimeoutError,
    SourceError,
)


class _FakeClient:
    plans: ClassVar[list[object]] = []
    seen: ClassVar[list[tuple[str, str, dict[str, Any]]]] = []

    def __init__(self, **_: object) -> None:
        pass

    def __enter__(self) -> _FakeClient:
        return self

    def __exit__(
        self,
        _exc_type: type[BaseException] | None,
        _exc: BaseException | None,
        _tb: object | None,
    ) -> None:
        return None

    def request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        _FakeClient.seen.append((method, url, kwargs))
        plan = _FakeClient.plans.pop(0)
        if isinstance(plan, Exception):
            raise plan
        if isinstance(plan, tuple):
            status_code, text = plan
            return httpx.Response(
                status_code,
                text=text,
                request=httpx.Request(method, url),
            )
        raise AssertionError


def _reset_plans(*plans: object) -> None:
    _FakeClient.plans = list(plans)
    _FakeClient.seen = []


def test_exception_messages() -> None:
    assert "Unable to connect" in str(NetworkError("https://unpkg.com/x"))
    assert "Boom" in str(NetworkError("https://unpkg.com/x", cause="Boom"))
    assert "timed out" in str(RequestTimeoutError("https://unpkg.com/x"))
    assert "HTTP 503" in str(HttpStatusError(503, "https://unpkg.com/x"))
    assert "empty or invalid" in str(ContentError("https://unpkg.com/x"))
    assert "invalid JSON" in str(SourceError("data/sources/caniuse.json", cause="invalid JSON"))
    assert str(ConfigError(["A", "B"])) == "Missing required configuration: A, B"


def test_fetch_text_success(monkeypatch: pytest.MonkeyPatch) -> None:
    _reset_plans((200, '{"ok": true}'))
    monkeypatch.setattr(http.httpx, "Client", _FakeClient)

    assert http.fetch_text("https://unpkg.com/web-features/data.json") == '{"ok": true}'
    assert _FakeClient.seen[-1][0] == "GET"


def test_fetch_text_timeout(monkeypatch: pytest.MonkeyPatch) -> None:
    _reset_plans(httpx.TimeoutException("slow"))
    monkeypatch.setattr(http.httpx, "Client", _FakeClient)

    with pytest.raises(RequestTimeoutError):
        http.fetch_text("https://unpkg.com/web-features/data.json")


def test_fetch_text_connect_error_is_not_retried(monkeypatch: pytest.MonkeyPatch) -> None:
    connect_exc = httpx.ConnectError("conn", request=httpx.Request("GET", "https://unpkg.com"))
    _reset_plans(connect_exc, (200, "never"))
    monkeypatch.setattr(http.httpx, "Client", _FakeClient)

    with pytest.raises(NetworkError):
        http.fetch_text("https://unpkg.com/web-features/data.json")
    assert len(_FakeClient.seen) == 1


def test_fetch_text_non_200_and_empty(monkeypatch: pytest.MonkeyPatch) -> None:
    _reset_plans((404, "missing"), (200, "   "))
    monkeypatch.setattr(http.httpx, "Client", _FakeClient)

    with pytest.raises(HttpStatusError):
        http.fetch_text("https://unpkg.com/x")
    with pytest.raises(ContentError):
        http.fetch_text("https://unpkg.com/x")


def test_request_json_accepts_any_2xx(monkeypatch: pytest.MonkeyPatch) -> None:
    _reset_plans((201, '[{"id": 1}]'), (204, ""), (200, "not json"))
    monkeypatch.setattr(http.httpx, "Client", _FakeClient)

    assert http.request_json("POST", "https://api.example/x", json_body={"a": 1}) == [{"id": 1}]
    assert http.request_json("PATCH", "https://api.example/x") is None
    with pytest.raises(ContentError):
        http.request_json("GET", "https://api.example/x")

    method, _url, kwargs = _FakeClient.seen[0]
    assert method == "POST"
    assert kwargs["json"] == {"a": 1}
    assert "json" not in _FakeClient.seen[1][2]


def test_shared_client_is_reused(monkeypatch: pytest.MonkeyPatch) -> None:
    created: list[_FakeClient] = []

    class _CountingClient(_FakeClient):
        def __init__(self, **kwargs: object) -> None:
            super().__init__(**kwargs)
            created.append(self)

    _reset_plans((200, "a"), (200, "b"))
    monkeypatch.setattr(http.httpx, "Client", _CountingClient)

    with http.use_shared_client():
        assert http.fetch_text("https://unpkg.com/a") == "a"
        assert http.fetch_text("https://unpkg.com/b") == "b"

    assert len(created) == 1


def _write_sources(directory: Path) -> None:
    directory.mkdir(parents=True, exist_ok=True)
    (directory / "caniuse.json").write_text('{"data": {}}', encoding="utf-8")
    (directory / "alt-ww.json").write_text('{"data": {}}', encoding="utf-8")
    (directory / "webfeatures.json").write_text('{"features": {}}', encoding="utf-8")
    (directory / "mdnbcd.json").write_text("{}", encoding="utf-8")


def test_load_sources(tmp_path: Path) -> None:
    _write_sources(tmp_path)

    loaded = sources.load_sources(tmp_path)

    assert loaded.caniuse == {"data": {}}
    assert loaded.web_features == {"features": {}}


def test_load_sources_missing_or_malformed(tmp_path: Path) -> None:
    with pytest.raises(SourceError, match="caniuse.json"):
        sources.load_sources(tmp_path)

    _write_sources(tmp_path)
    (tmp_path / "mdnbcd.json").write_text("[1, 2", encoding="utf-8")
    with pytest.raises(SourceError, match="invalid JSON"):
        sources.load_sources(tmp_path)


def test_fetch_sources_writes_every_document(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    requested: list[str] = []

    def _fake_fetch_text(url: str) -> str:
        requested.append(url)
        return json.dumps({"url": url})

    monkeypatch.setattr(sources, "fetch_text", _fake_fetch_text)

    written = sources.fetch_sources(tmp_path / "sources")

    assert requested == list(SOURCE_URLS.values())
    assert sorted(path.name for path in written) == sorted(SOURCE_URLS)


def test_fetch_sources_rejects_non_json(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(sources, "fetch_text", lambda url: "<html>rate limited</html>")

    with pytest.raises(ContentError):
        sources.fetch_sources(tmp_path)
    assert list(tmp_path.iterdir()) == []


def test_settings_from_env() -> None:
    settings = Settings.from_env(
        {
            "CANIUSENOW_STORE_URL": "https://db.example/",
            "CANIUSENOW_STORE_KEY": "k",
            "NOTIFICATIONAPI_CLIENT_ID": "id",
            "NOTIFICATIONAPI_CLIENT_SECRET": "secret",
        }
    )

    assert settings.store_url == "https://db.example"
    assert settings.app_url == DEFAULT_APP_URL


def test_settings_lists_every_missing_variable() -> None:
    with pytest.raises(ConfigError) as excinfo:
        Settings.from_env({"CANIUSENOW_STORE_URL": "https://db.example"})

    assert excinfo.value.missing == [
        "CANIUSENOW_STORE_KEY",
        "NOTIFICATIONAPI_CLIENT_ID",
        "NOTIFICATIONAPI_CLIENT_SECRET",
    ]
