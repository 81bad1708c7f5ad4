"""Tests for the Typer CLI."""

from __future__ import annotations

import wave
from pathlib import Path

import pytest
import typer
from typer.testing import CliRunner

from chunkscribe import cli
from chunkscribe.config import Settings, list_environment_settings
from chunkscribe.data.models import ByCount, ByDuration, Manual, PipelineResult, TranscriptionFailure
from chunkscribe.data.storage import TranscriptionStore
from chunkscribe.services.transcription.base import TranscriptionClient

runner = CliRunner()


@pytest.fixture
def log_levels(monkeypatch) -> list:
    applied: list = []
    monkeypatch.setattr(cli, "configure_logging", applied.append)
    return applied


@pytest.fixture
def settings(monkeypatch, tmp_path, log_levels) -> Settings:
    custom = Settings(
        _env_file=None,
        api_key="gsk-secret",
        database_path=tmp_path / "history.db",
        output_dir=tmp_path / "parts",
        log_level="warning",
    )
    monkeypatch.setattr(cli, "get_settings", lambda: custom)
    monkeypatch.setattr(cli, "list_environment_settings", lambda: list_environment_settings(custom))
    return custom


def _stored_record(settings: Settings) -> str:
    store = TranscriptionStore(settings.database_path)
    store.initialize()
    result = PipelineResult(
        merged_text="raw words",
        attempted=1,
        failed=0,
        source_file_name="memo.wav",
        source_size_bytes=100,
        chunked=False,
        segment_count=1,
        elapsed_seconds=0.5,
    )
    return store.save_result(result).id


def _write_wav(path: Path, seconds: int = 4, rate: int = 8000) -> Path:
    with wave.open(str(path), "wb") as wf:
        wf.setnchannels(1)
        wf.setsampwidth(2)
        wf.setframerate(rate)
        wf.writeframes(b"\x01\x00" * rate * seconds)
    return path


class _AlwaysFailing(TranscriptionClient):
    def transcribe(self, payload, options, filename="audio.webm", media_type="audio/webm"):
        return TranscriptionFailure.remote_error("quota exceeded", status=429)


def test_build_policy_variants():
    assert cli._build_policy(3, None, None) == ByCount(3)
    assert cli._build_policy(None, 12.5, None) == ByDuration(12.5)
    assert cli._build_policy(None, None, ["0:10", "20:30"]) == Manual([(0, 10), (20, 30)])


def test_build_policy_requires_exactly_one_choice():
    with pytest.raises(typer.BadParameter):
        cli._build_policy(None, None, None)
    with pytest.raises(typer.BadParameter):
        cli._build_policy(2, 10.0, None)
    with pytest.raises(typer.BadParameter):
        cli._build_policy(None, None, ["nonsense"])


def test_transcribe_with_dummy_backend_saves_history(settings, tmp_path):
    audio = _write_wav(tmp_path / "memo.wav")
    output = tmp_path / "memo.txt"

    result = runner.invoke(
        cli.app,
        ["transcribe", str(audio), "--backend", "dummy", "--chunking", "--chunk-size-mb", "0.01", "--output", str(output)],
    )

    assert result.exit_code == 0, result.output
    assert "segments transcribed" in result.output
    assert "Dummy transcript of memo.chunk000.wav" in output.read_text()

    history = runner.invoke(cli.app, ["history"])
    assert history.exit_code == 0
    assert "memo.wav" in history.output


def test_transcribe_reports_total_failure(settings, tmp_path, monkeypatch):
    audio = _write_wav(tmp_path / "memo.wav")
    monkeypatch.setattr(cli, "resolve_transcription_backend", lambda name, settings=None: _AlwaysFailing())

    result = runner.invoke(
        cli.app,
        ["transcribe", str(audio), "--chunking", "--chunk-size-mb", "0.01", "--no-save"],
    )

    assert result.exit_code == 1
    assert "none of the" in result.output


def test_transcribe_rejects_long_prompt(settings, tmp_path):
    audio = _write_wav(tmp_path / "memo.wav")

    result = runner.invoke(
        cli.app,
        ["transcribe", str(audio), "--backend", "dummy", "--prompt", "x" * 300, "--no-save"],
    )

    assert result.exit_code != 0


def test_split_writes_parts(settings, tmp_path):
    audio = _write_wav(tmp_path / "memo.wav", seconds=4)

    result = runner.invoke(cli.app, ["split", str(audio), "--segments", "2"])

    assert result.exit_code == 0, result.output
    parts = sorted(path.name for path in settings.output_dir.iterdir())
    assert parts == ["memo_part1.wav", "memo_part2.wav"]
    assert "0:02" in result.output


def test_show_missing_record_fails(settings):
    result = runner.invoke(cli.app, ["show", "does-not-exist"])

    assert result.exit_code == 1


def test_transcribe_empty_file_fails_without_calling_the_backend(settings, tmp_path, monkeypatch):
    empty = tmp_path / "blank.mp3"
    empty.write_bytes(b"")
    monkeypatch.setattr(cli, "resolve_transcription_backend", lambda name, settings=None: _AlwaysFailing())

    result = runner.invoke(cli.app, ["transcribe", str(empty), "--chunking", "--no-save"])

    assert result.exit_code == 1
    assert "blank.mp3 is empty" in result.output


def test_edit_replaces_text_shown_for_a_record(settings):
    record_id = _stored_record(settings)

    edited = runner.invoke(cli.app, ["edit", record_id, "--text", "clean words"])
    shown = runner.invoke(cli.app, ["show", record_id])

    assert edited.exit_code == 0, edited.output
    assert shown.output.strip() == "clean words"
    assert TranscriptionStore(settings.database_path).fetch(record_id).original_text == "raw words"


def test_edit_reads_replacement_from_file(settings, tmp_path):
    record_id = _stored_record(settings)
    source = tmp_path / "fixed.txt"
    source.write_text("from a file", encoding="utf-8")

    result = runner.invoke(cli.app, ["edit", record_id, "--from-file", str(source)])

    assert result.exit_code == 0, result.output
    assert TranscriptionStore(settings.database_path).fetch(record_id).display_text == "from a file"


def test_edit_requires_exactly_one_source_and_a_known_record(settings):
    record_id = _stored_record(settings)

    assert runner.invoke(cli.app, ["edit", record_id]).exit_code != 0
    assert runner.invoke(cli.app, ["edit", "missing", "--text", "x"]).exit_code == 1


def test_log_level_comes_from_settings_unless_verbose(settings, log_levels):
    runner.invoke(cli.app, ["history"])
    runner.invoke(cli.app, ["--verbose", "history"])

    assert log_levels == ["WARNING", "DEBUG"]


def test_config_list_masks_the_api_key(settings):
    result = runner.invoke(cli.app, ["config", "list"])

    assert result.exit_code == 0, result.output
    assert "CHUNKSCRIBE_API_KEY=***" in result.output
    assert "gsk-secret" not in result.output
    assert "CHUNKSCRIBE_LOG_LEVEL=WARNING" in result.output
