"""Typed configuration for ``bank_sync``.

Configuration is a single JSON document, read from the ``BANK_SYNC_CONFIG``
environment variable or from the file named by ``BANK_SYNC_CONFIG_PATH``. Keys
may be camelCase (as written by hand in JSON) or snake_case. Unknown keys are
rejected so typos in backend sections surface at startup instead of silently
disabling a backend.

A backend is active when its section is present (and, for the local JSON
backend, ``enabled`` is true). See :mod:`bank_sync.registry`.
"""

from __future__ import annotations

import json
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Literal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from .errors import ConfigError
from .hashing import DEFAULT_TIMEZONE

CONFIG_ENV = "BANK_SYNC_CONFIG"
CONFIG_PATH_ENV = "BANK_SYNC_CONFIG_PATH"


class _Section(BaseModel):
    model_config = ConfigDict(
        extra="forbid",
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
    )


# ---------------------------------------------------------------------------
# options
# ---------------------------------------------------------------------------


class ScrapingOptions(_Section):
    # Which dedup key backends treat as authoritative. "legacy" keeps deduping
    # on ``hash`` and triggers a one-time deprecation notice.
    transaction_hash_type: Literal["unique_id", "legacy"] = "unique_id"
    timezone: str = DEFAULT_TIMEZONE

    @field_validator("timezone")
    @classmethod
    def _known_timezone(cls, v: str) -> str:
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"unknown timezone {v!r}") from exc
        return v


class OptionsConfig(_Section):
    scraping: ScrapingOptions = Field(default_factory=ScrapingOptions)


# ---------------------------------------------------------------------------
# storage
# ---------------------------------------------------------------------------


class LocalJsonConfig(_Section):
    enabled: bool = True
    directory: Path = Path("output")


class SqlConfig(_Section):
    # Falls back to DATABASE_URL when omitted.
    database_url: str | None = None
    create_schema: bool = False


class WebPostConfig(_Section):
    url: str
    authorization_token: str | None = None
    timeout_seconds: float = 30.0

    @field_validator("url")
    @classmethod
    def _http_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError("url must start with http:// or https://")
        return v


class StorageConfig(_Section):
    local_json: LocalJsonConfig | None = None
    sql: SqlConfig | None = None
    web_post: WebPostConfig | None = None


# ---------------------------------------------------------------------------
# notifications
# ---------------------------------------------------------------------------


class TelegramConfig(_Section):
    api_key: str
    chat_id: str


class NotificationsConfig(_Section):
    telegram: TelegramConfig | None = None


class BankSyncConfig(_Section):
    options: OptionsConfig = Field(default_factory=OptionsConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    notifications: NotificationsConfig = Field(default_factory=NotificationsConfig)


def parse_config(text: str, *, source: str = CONFIG_ENV) -> BankSyncConfig:
    """Parse and validate a JSON configuration document."""

    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ConfigError(f"{source}: invalid JSON: {exc}") from exc
    try:
        return BankSyncConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"{source}: invalid configuration:\n{exc}") from exc


def load_config(env: Mapping[str, str] | None = None) -> BankSyncConfig:
    """Load configuration from the environment.

    Resolution order: ``BANK_SYNC_CONFIG`` (inline JSON), then
    ``BANK_SYNC_CONFIG_PATH`` (file path), then an all-defaults config with
    no backends.
    """

    env = os.environ if env is None else env

    inline = env.get(CONFIG_ENV)
    if inline and inline.strip():
        return parse_config(inline, source=CONFIG_ENV)

    path_str = env.get(CONFIG_PATH_ENV)
    if path_str and path_str.strip():
        path = Path(path_str).expanduser()
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as exc:
            raise ConfigError(f"{CONFIG_PATH_ENV}: cannot read {path}: {exc}") from exc
        return parse_config(text, source=str(path))

    return BankSyncConfig()


__all__ = [
    "CONFIG_ENV",
    "CONFIG_PATH_ENV",
    "ScrapingOptions",
    "OptionsConfig",
    "LocalJsonConfig",
    "SqlConfig",
    "WebPostConfig",
    "StorageConfig",
    "TelegramConfig",
    "NotificationsConfig",
    "BankSyncConfig",
    "parse_config",
    "load_config",
]
