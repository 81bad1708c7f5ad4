"""Tests for environment-backed configuration helpers."""

from __future__ import annotations

import os
from pathlib import Path

import pytest
from dotenv import dotenv_values

from chunkscribe import config


@pytest.fixture(autouse=True)
def reset_settings(monkeypatch, tmp_path):
    """Ensure each test starts with a clean configuration environment."""

    env_path = tmp_path / ".env"
    monkeypatch.setattr(config, "_ENV_PATH", env_path)
    monkeypatch.setattr(config, "_settings", None)

    for key in list(os.environ):
        if key.startswith("CHUNKSCRIBE_"):
            monkeypatch.delenv(key, raising=False)

    yield

    for key in list(os.environ):
        if key.startswith("CHUNKSCRIBE_"):
            os.environ.pop(key, None)
    config._settings = None


def test_defaults_describe_upload_limits():
    settings = config.Settings(_env_file=None)

    assert settings.max_single_payload_bytes == 25 * 1024 * 1024
    assert settings.default_chunk_size_mb == 20
    assert settings.max_in_flight == 1
    assert settings.segment_attempts == 1
    assert settings.continue_on_failure is True


def test_list_environment_settings_reflects_fields():
    env_names = {entry.env_name for entry in config.list_environment_settings()}

    assert "CHUNKSCRIBE_API_KEY" in env_names
    assert "CHUNKSCRIBE_MAX_SINGLE_PAYLOAD_MB" in env_names
    assert "CHUNKSCRIBE_TRANSCRIPTION_MODEL" in env_names


def test_update_environment_setting_persists_and_reloads():
    updated = config.update_environment_setting("max_in_flight", "3")

    assert updated.max_in_flight == 3
    assert config.get_settings().max_in_flight == 3
    assert os.environ["CHUNKSCRIBE_MAX_IN_FLIGHT"] == "3"

    env_contents = config._ENV_PATH.read_text().strip().splitlines()  # type: ignore[attr-defined]
    assert "CHUNKSCRIBE_MAX_IN_FLIGHT=3" in env_contents


def test_invalid_value_is_rejected_and_rolled_back():
    with pytest.raises(config.EnvironmentSettingError):
        config.update_environment_setting("max_in_flight", "0")

    assert "CHUNKSCRIBE_MAX_IN_FLIGHT" not in os.environ
    assert not config._ENV_PATH.exists()  # type: ignore[attr-defined]


def test_unknown_field_is_rejected():
    with pytest.raises(config.EnvironmentSettingError):
        config.update_environment_setting("not_a_setting", "1")


def test_clear_environment_setting_removes_override():
    config.update_environment_setting("segment_attempts", "4")
    cleared = config.clear_environment_setting("segment_attempts")

    assert cleared.segment_attempts == 1
    assert "CHUNKSCRIBE_SEGMENT_ATTEMPTS" not in os.environ
    assert not config._ENV_PATH.exists()  # type: ignore[attr-defined]


def test_log_level_is_normalised_and_validated():
    assert config.Settings(_env_file=None, log_level=" debug ").log_level == "DEBUG"

    with pytest.raises(config.EnvironmentSettingError):
        config.update_environment_setting("log_level", "chatty")


def test_api_key_is_masked_when_listed():
    config.update_environment_setting("api_key", "gsk-secret")

    entries = {entry.field: entry for entry in config.list_environment_settings()}

    assert entries["api_key"].secret
    assert entries["api_key"].display_value == "***"
    assert entries["api_key"].value.get_secret_value() == "gsk-secret"
    assert entries["max_in_flight"].display_value == "1"
    assert entries["output_dir"].default == Path("parts")


def test_values_needing_quotes_survive_the_env_file(monkeypatch):
    config.update_environment_setting("ffprobe_binary", "/opt/media tools/ffprobe")
    monkeypatch.delenv("CHUNKSCRIBE_FFPROBE_BINARY")
    config._settings = None

    assert config.get_settings().ffprobe_binary == "/opt/media tools/ffprobe"


def test_clearing_one_setting_keeps_the_others():
    config.update_environment_setting("segment_attempts", "4")
    config.update_environment_setting("max_in_flight", "2")

    config.clear_environment_setting("segment_attempts")

    values = dotenv_values(config._ENV_PATH)
    assert values == {"CHUNKSCRIBE_MAX_IN_FLIGHT": "2"}
    assert config.get_settings().max_in_flight == 2
