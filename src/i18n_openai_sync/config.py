"""Settings loaded from the environment and .env files."""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Mapping

from dotenv import find_dotenv, load_dotenv

from .cache import DEFAULT_CACHE_TTL
from .locks import DEFAULT_GRACE_DELAY
from .translator import DEFAULT_TRANSLATION_MODEL
from .workspace import DEFAULT_EXCLUDE_DIRS

DEFAULT_LOCALES_GLOB = "**/locales/*/*.json"
DEFAULT_CACHE_FILE = ".i18n-openai-sync/cache.sqlite3"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass
class SyncSettings:
    workspace: Path = field(default_factory=Path.cwd)
    locales_globs: list[str] = field(default_factory=lambda: [DEFAULT_LOCALES_GLOB])
    code_globs: list[str] = field(default_factory=list)
    exclude_dirs: list[str] = field(default_factory=lambda: list(DEFAULT_EXCLUDE_DIRS))
    # None means "use the indentation already found in each file"
    indentation: int | None = None
    grace_delay: float = DEFAULT_GRACE_DELAY
    cache_ttl: float = DEFAULT_CACHE_TTL
    cache_file: Path | None = None
    enabled: bool = True
    log_level: str = "INFO"
    log_file: Path | None = None
    openai_api_key: str | None = None
    translation_model: str = DEFAULT_TRANSLATION_MODEL
    max_concurrent_requests: int = 10
    initial_retry_delay: float = 1.0
    max_backoff_resets: int = 5

    @property
    def resolved_cache_file(self) -> Path:
        if self.cache_file is None:
            return self.workspace / DEFAULT_CACHE_FILE
        if self.cache_file.is_absolute():
            return self.cache_file
        return self.workspace / self.cache_file


def _split_list(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


def _parse_bool(name: str, value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ValueError(f"Invalid boolean for {name}: {value!r}")


def _parse_number(name: str, value: str, kind: type):
    try:
        number = kind(value)
    except ValueError:
        raise ValueError(f"Invalid value for {name}: {value!r}") from None
    if number < 0:
        raise ValueError(f"{name} must not be negative, got {value!r}")
    return number


def load_settings(env: Mapping[str, str] | None = None, **overrides) -> SyncSettings:
    """
    Build settings from environment variables, then apply explicit overrides.

    When ``env`` is omitted, a ``.env`` file found from the current working
    directory is loaded into ``os.environ`` first.

    Args:
        env: Mapping to read variables from (defaults to os.environ)
        **overrides: SyncSettings field values taking precedence; None values
            are ignored

    Returns:
        The resolved SyncSettings

    Raises:
        ValueError: If a variable holds an invalid value
    """
    if env is None:
        # Load environment variables from .env file in current working directory
        load_dotenv(find_dotenv(usecwd=True))
        env = os.environ

    values: dict = {}

    if env.get("I18N_SYNC_WORKSPACE"):
        values["workspace"] = Path(env["I18N_SYNC_WORKSPACE"])
    if env.get("I18N_SYNC_LOCALES_GLOB"):
        values["locales_globs"] = _split_list(env["I18N_SYNC_LOCALES_GLOB"])
    if env.get("I18N_SYNC_CODE_GLOBS"):
        values["code_globs"] = _split_list(env["I18N_SYNC_CODE_GLOBS"])
    if env.get("I18N_SYNC_EXCLUDE_DIRS"):
        values["exclude_dirs"] = _split_list(env["I18N_SYNC_EXCLUDE_DIRS"])
    if env.get("I18N_SYNC_INDENT"):
        values["indentation"] = _parse_number("I18N_SYNC_INDENT", env["I18N_SYNC_INDENT"], int)
    if env.get("I18N_SYNC_GRACE_DELAY"):
        values["grace_delay"] = _parse_number("I18N_SYNC_GRACE_DELAY", env["I18N_SYNC_GRACE_DELAY"], float)
    if env.get("I18N_SYNC_CACHE_TTL"):
        values["cache_ttl"] = _parse_number("I18N_SYNC_CACHE_TTL", env["I18N_SYNC_CACHE_TTL"], float)
    if env.get("I18N_SYNC_CACHE_FILE"):
        values["cache_file"] = Path(env["I18N_SYNC_CACHE_FILE"])
    if env.get("I18N_SYNC_ENABLED"):
        values["enabled"] = _parse_bool("I18N_SYNC_ENABLED", env["I18N_SYNC_ENABLED"])
    if env.get("I18N_SYNC_LOG_LEVEL"):
        values["log_level"] = env["I18N_SYNC_LOG_LEVEL"].upper()
    if env.get("I18N_SYNC_LOG_FILE"):
        values["log_file"] = Path(env["I18N_SYNC_LOG_FILE"])
    if env.get("OPENAI_API_KEY"):
        values["openai_api_key"] = env["OPENAI_API_KEY"]
    if env.get("OPENAI_TRANSLATION_MODEL"):
        values["translation_model"] = env["OPENAI_TRANSLATION_MODEL"]
    if env.get("MAX_CONCURRENT_REQUESTS"):
        values["max_concurrent_requests"] = _parse_number(
            "MAX_CONCURRENT_REQUESTS", env["MAX_CONCURRENT_REQUESTS"], int
        )
    if env.get("INITIAL_RETRY_DELAY"):
        values["initial_retry_delay"] = _parse_number("INITIAL_RETRY_DELAY", env["INITIAL_RETRY_DELAY"], float)
    if env.get("MAX_BACKOFF_RESETS"):
        values["max_backoff_resets"] = _parse_number("MAX_BACKOFF_RESETS", env["MAX_BACKOFF_RESETS"], int)

    known = {f.name for f in fields(SyncSettings)}
    for name, value in overrides.items():
        if name not in known:
            raise ValueError(f"Unknown setting: {name}")
        if value is not None:
            values[name] = value

    if values.get("max_concurrent_requests") == 0:
        raise ValueError("MAX_CONCURRENT_REQUESTS must be at least 1")

    return SyncSettings(**values)
