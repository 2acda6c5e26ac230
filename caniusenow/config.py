"""Environment configuration."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
import os

from .constants import DEFAULT_APP_URL
from .exceptions import ConfigError

STORE_URL_ENV = "CANIUSENOW_STORE_URL"
STORE_KEY_ENV = "CANIUSENOW_STORE_KEY"
NOTIFY_CLIENT_ID_ENV = "NOTIFICATIONAPI_CLIENT_ID"
NOTIFY_CLIENT_SECRET_ENV = "NOTIFICATIONAPI_CLIENT_SECRET"
APP_URL_ENV = "CANIUSENOW_APP_URL"


@dataclass(frozen=True)
class Settings:
    store_url: str
    store_key: str
    notify_client_id: str
    notify_client_secret: str
    app_url: str = DEFAULT_APP_URL

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        """Read notification settings, listing every missing variable at once."""
        env = os.environ if environ is None else environ
        required = (STORE_URL_ENV, STORE_KEY_ENV, NOTIFY_CLIENT_ID_ENV, NOTIFY_CLIENT_SECRET_ENV)
        values = {name: env.get(name, "").strip() for name in required}
        missing = [name for name in required if not values[name]]
        if missing:
            raise ConfigError(missing)

        return cls(
            store_url=values[STORE_URL_ENV].rstrip("/"),
            store_key=values[STORE_KEY_ENV],
            notify_client_id=values[NOTIFY_CLIENT_ID_ENV],
            notify_client_secret=values[NOTIFY_CLIENT_SECRET_ENV],
            app_url=env.get(APP_URL_ENV, "").strip() or DEFAULT_APP_URL,
        )
