"""Settings for chunkscribe, read from ``CHUNKSCRIBE_*`` variables and a ``.env`` file.

The ``config`` CLI commands edit the ``.env`` file through :mod:`dotenv`. Each
change is checked by building a fresh :class:`Settings` before anything is
written to disk.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterator, Optional, get_args

from dotenv import dotenv_values, set_key, unset_key
from pydantic import Field, SecretStr, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

MEBIBYTE = 1024 * 1024
LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


class Settings(BaseSettings):
    """Application wide settings loaded from environment variables."""

    api_key: Optional[SecretStr] = None
    api_base_url: str = "https://api.groq.com/openai/v1"
    transcription_model: str = "whisper-large-v3"
    request_timeout_seconds: float = Field(default=600.0, gt=0)
    max_single_payload_mb: float = Field(default=25.0, gt=0)
    default_chunk_size_mb: float = Field(default=20.0, gt=0)
    max_in_flight: int = Field(default=1, ge=1)
    segment_attempts: int = Field(default=1, ge=1)
    continue_on_failure: bool = True
    database_path: Path = Field(default_factory=lambda: Path("chunkscribe.db"))
    output_dir: Path = Field(default_factory=lambda: Path("parts"))
    ffprobe_binary: str = "ffprobe"
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_prefix="CHUNKSCRIBE_",
        env_file=".env",
        case_sensitive=False,
    )

    @field_validator("log_level")
    @classmethod
    def _known_log_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(LOG_LEVELS)}")
        return level

    @property
    def max_single_payload_bytes(self) -> int:
        return int(self.max_single_payload_mb * MEBIBYTE)


_settings: Optional[Settings] = None
_ENV_PATH = Path(Settings.model_config.get("env_file") or ".env")


@dataclass(frozen=True)
class EnvironmentSetting:
    """One configurable field and the variable that overrides it."""

    field: str
    env_name: str
    value: Any
    default: Any
    secret: bool = False

    @property
    def display_value(self) -> str:
        if self.value is None:
            return ""
        if self.secret:
            return "***"
        return str(self.value)


class EnvironmentSettingError(RuntimeError):
    """Raised when a setting cannot be changed."""


def env_name_for(field: str) -> str:
    if field not in Settings.model_fields:
        raise EnvironmentSettingError(f"Unknown setting: {field}")
    return f"{Settings.model_config.get('env_prefix', '')}{field}".upper()


def _is_secret(field: str) -> bool:
    annotation = Settings.model_fields[field].annotation
    return SecretStr in (annotation, *get_args(annotation))


def list_environment_settings(settings: Optional[Settings] = None) -> Iterator[EnvironmentSetting]:
    """Yield every setting with its current value and default."""

    settings = settings or get_settings()
    for name, info in Settings.model_fields.items():
        yield EnvironmentSetting(
            field=name,
            env_name=env_name_for(name),
            value=getattr(settings, name),
            default=info.get_default(call_default_factory=True),
            secret=_is_secret(name),
        )


def _write_env_file(env_name: str, raw_value: Optional[str]) -> None:
    if raw_value is not None:
        _ENV_PATH.touch(exist_ok=True)
        set_key(str(_ENV_PATH), env_name, raw_value, quote_mode="auto")
        return

    if not _ENV_PATH.exists():
        return
    if env_name in dotenv_values(_ENV_PATH):
        unset_key(str(_ENV_PATH), env_name)
    if not dotenv_values(_ENV_PATH):
        _ENV_PATH.unlink()


def update_environment_setting(field: str, raw_value: str) -> Settings:
    """Validate ``raw_value`` for ``field``, persist it to ``.env`` and reload."""

    global _settings
    env_name = env_name_for(field)
    previous = os.environ.get(env_name)
    os.environ[env_name] = raw_value
    try:
        reloaded = Settings(_env_file=_ENV_PATH)
    except ValidationError as exc:
        if previous is None:
            del os.environ[env_name]
        else:
            os.environ[env_name] = previous
        raise EnvironmentSettingError(str(exc)) from exc

    _write_env_file(env_name, raw_value)
    _settings = reloaded
    return _settings


def clear_environment_setting(field: str) -> Settings:
    """Drop the override for ``field`` from the environment and ``.env``."""

    global _settings
    env_name = env_name_for(field)
    os.environ.pop(env_name, None)
    _write_env_file(env_name, None)
    _settings = Settings(_env_file=_ENV_PATH)
    return _settings


def get_settings() -> Settings:
    """Return the process-wide settings, loading them on first use."""

    global _settings
    if _settings is None:
        _settings = Settings(_env_file=_ENV_PATH)
    return _settings


__all__ = [
    "LOG_LEVELS",
    "MEBIBYTE",
    "EnvironmentSetting",
    "EnvironmentSettingError",
    "Settings",
    "clear_environment_setting",
    "env_name_for",
    "get_settings",
    "list_environment_settings",
    "update_environment_setting",
]
