"""Settings file parsing and validation."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Mapping

from remediate.config import (
    DEFAULT_BATCH_SIZE,
    DEFAULT_CHECK_AGAIN_AFTER,
    DEFAULT_SELECTION_QUERY,
    DEFAULT_TIMEOUT_SECONDS,
    DEFAULT_UPDATE_QUERY_TEMPLATE,
    ENV_PREFIX,
)
from remediate.execute import NoRowsPolicy
from remediate.generate.strategies import StrategyName


class SettingsError(ValueError):
    """Raised when settings are invalid or incomplete."""


LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR"}
LOG_FORMATS = {"console", "json"}


@dataclass(frozen=True)
class AppSettings:
    dsn: str = ""
    db_username: str = ""
    db_password: str = ""
    selection_query: str = DEFAULT_SELECTION_QUERY
    update_query_template: str = DEFAULT_UPDATE_QUERY_TEMPLATE
    batch_size: int = DEFAULT_BATCH_SIZE
    timeout_seconds: int = DEFAULT_TIMEOUT_SECONDS
    check_again_after: int = DEFAULT_CHECK_AGAIN_AFTER
    key_field_name: str = "key_field"
    zip_field_name: str = "zip_code"
    county_field_name: str = "county"
    strategy: StrategyName = StrategyName.TEMPLATE
    no_rows_policy: NoRowsPolicy = NoRowsPolicy.COMPLETED
    results_dir: str = ""
    log_level: str = "INFO"
    log_format: str = "console"

    def require_dsn(self) -> str:
        if not self.dsn:
            raise SettingsError(
                f"No dsn found in settings file or {ENV_PREFIX}DSN environment variable"
            )
        return self.dsn


_INT_FIELDS = {"batch_size", "timeout_seconds", "check_again_after"}
_FIELD_NAMES = {item.name for item in fields(AppSettings)}


def _load_json(path: Path) -> dict[str, Any]:
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise SettingsError(f"Unable to read settings file {path}: {exc}") from exc
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise SettingsError(f"Invalid JSON settings file: {path}") from exc
    if not isinstance(payload, dict):
        raise SettingsError(f"Settings root must be an object: {path}")
    return payload


def _parse_int(key: str, value: Any) -> int:
    if isinstance(value, bool):
        raise SettingsError(f"Setting '{key}' must be an integer")
    if isinstance(value, int):
        parsed = value
    elif isinstance(value, str) and value.strip().lstrip("-").isdigit():
        parsed = int(value.strip())
    else:
        raise SettingsError(f"Setting '{key}' must be an integer")
    if parsed <= 0:
        raise SettingsError(f"Setting '{key}' must be greater than zero")
    return parsed


def _parse_string(key: str, value: Any) -> str:
    if not isinstance(value, str):
        raise SettingsError(f"Setting '{key}' must be a string")
    return value.strip()


def _coerce(raw: Mapping[str, Any]) -> dict[str, Any]:
    values: dict[str, Any] = {}
    for key, value in raw.items():
        if key not in _FIELD_NAMES:
            raise SettingsError(f"Unknown setting '{key}'")
        if key in _INT_FIELDS:
            values[key] = _parse_int(key, value)
        elif key == "strategy":
            try:
                values[key] = StrategyName(_parse_string(key, value))
            except ValueError as exc:
                raise SettingsError(f"Invalid strategy '{value}'") from exc
        elif key == "no_rows_policy":
            try:
                values[key] = NoRowsPolicy(_parse_string(key, value).lower())
            except ValueError as exc:
                raise SettingsError(f"Invalid no_rows_policy '{value}'") from exc
        elif key == "log_level":
            level = _parse_string(key, value).upper()
            if level not in LOG_LEVELS:
                raise SettingsError(f"Invalid log_level '{value}'")
            values[key] = level
        elif key == "log_format":
            log_format = _parse_string(key, value).lower()
            if log_format not in LOG_FORMATS:
                raise SettingsError(f"Invalid log_format '{value}'")
            values[key] = log_format
        else:
            values[key] = _parse_string(key, value)
    return values


def _env_overrides(environ: Mapping[str, str]) -> dict[str, str]:
    overrides: dict[str, str] = {}
    for name in _FIELD_NAMES:
        env_name = f"{ENV_PREFIX}{name.upper()}"
        if env_name in environ:
            overrides[name] = environ[env_name]
    return overrides


def load_settings(
    path: Path | None = None,
    *,
    environ: Mapping[str, str] | None = None,
) -> AppSettings:
    """Load settings from an optional JSON file, then environment overrides.

    A missing file is not an error; an unreadable or malformed one is.
    """

    raw: dict[str, Any] = {}
    if path is not None and path.exists():
        raw.update(_load_json(path))
    raw.update(_env_overrides(os.environ if environ is None else environ))

    settings = AppSettings(**_coerce(raw))
    for key in ("selection_query", "key_field_name", "zip_field_name", "county_field_name"):
        if not getattr(settings, key):
            raise SettingsError(f"Setting '{key}' must be a non-empty string")
    return settings


def with_overrides(settings: AppSettings, **overrides: Any) -> AppSettings:
    """Apply CLI overrides, ignoring values that were not given."""

    given = {key: value for key, value in overrides.items() if value is not None}
    return replace(settings, **_coerce(given))
