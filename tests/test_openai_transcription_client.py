from __future__ import annotations

from types import SimpleNamespace

import httpx
import pytest
from openai import APIConnectionError, APIStatusError

from chunkscribe.config import Settings
from chunkscribe.data.models import (
    FailureKind,
    ResponseFormat,
    TimestampGranularity,
    TranscriptionOptions,
    TranscriptionSuccess,
)
from chunkscribe.services.transcription.openai_client import OpenAITranscriptionClient

_URL = "https://api.test/openai/v1/audio/transcriptions"


def _make_client(create):
    calls: list[dict] = []

    class DummyTranscriptions:
        def create(self, **kwargs):
            calls.append(kwargs)
            return create(**kwargs)

    sdk = SimpleNamespace(audio=SimpleNamespace(transcriptions=DummyTranscriptions()))
    client = OpenAITranscriptionClient(settings=Settings(api_key="test"), client=sdk)
    return client, calls


def test_request_omits_language_for_auto_detect_and_sends_prompt():
    client, calls = _make_client(lambda **_: {"text": "shalom"})
    options = TranscriptionOptions(language="auto", prompt="Meeting about budgets")

    outcome = client.transcribe(b"abc", options, filename="clip.webm", media_type="audio/webm")

    assert isinstance(outcome, TranscriptionSuccess)
    assert outcome.text == "shalom"
    request = calls[0]
    assert "language" not in request
    assert request["prompt"] == "Meeting about budgets"
    assert request["file"] == ("clip.webm", b"abc", "audio/webm")
    assert request["model"] == "whisper-large-v3"
    assert request["response_format"] == "json"
    assert request["temperature"] == 0.0
    assert "timestamp_granularities" not in request


def test_request_includes_language_and_granularities_for_verbose_json():
    client, calls = _make_client(lambda **_: {"text": "hello"})
    options = TranscriptionOptions(
        language="he",
        response_format=ResponseFormat.VERBOSE_JSON,
        timestamp_granularities=[TimestampGranularity.SEGMENT, TimestampGranularity.WORD],
    )

    client.transcribe(b"abc", options)

    assert calls[0]["language"] == "he"
    assert calls[0]["timestamp_granularities"] == ["segment", "word"]
    assert "prompt" not in calls[0]


def test_verbose_response_passes_timing_through():
    payload = {
        "text": "hello there",
        "language": "english",
        "duration": 3.5,
        "segments": [{"start": 0.0, "end": 1.5, "text": " hello "}],
        "words": [{"start": 0.0, "end": 0.4, "word": "hello"}],
    }
    client, _ = _make_client(lambda **_: payload)

    outcome = client.transcribe(b"abc", TranscriptionOptions(response_format=ResponseFormat.VERBOSE_JSON))

    assert outcome.ok
    assert outcome.language == "english"
    assert outcome.duration == 3.5
    assert outcome.segments[0].text == "hello"
    assert outcome.segments[0].end == 1.5
    assert outcome.words[0].word == "hello"


def test_text_format_returns_plain_string():
    client, _ = _make_client(lambda **_: "plain transcript")

    outcome = client.transcribe(b"abc", TranscriptionOptions(response_format=ResponseFormat.TEXT))

    assert outcome.ok
    assert outcome.text == "plain transcript"


def test_object_responses_are_model_dumped():
    class FakeTranscription:
        def model_dump(self):
            return {"text": "from object"}

    client, _ = _make_client(lambda **_: FakeTranscription())

    outcome = client.transcribe(b"abc", TranscriptionOptions())

    assert outcome.text == "from object"


def test_missing_text_is_empty_result():
    client, _ = _make_client(lambda **_: {"segments": []})

    outcome = client.transcribe(b"abc", TranscriptionOptions())

    assert not outcome.ok
    assert outcome.kind is FailureKind.EMPTY_RESULT


def test_blank_text_is_empty_result():
    client, _ = _make_client(lambda **_: "   ")

    outcome = client.transcribe(b"abc", TranscriptionOptions(response_format=ResponseFormat.TEXT))

    assert outcome.kind is FailureKind.EMPTY_RESULT


def test_status_error_becomes_remote_error():
    def fail(**_):
        response = httpx.Response(413, request=httpx.Request("POST", _URL))
        raise APIStatusError("Request Entity Too Large", response=response, body=None)

    client, _ = _make_client(fail)

    outcome = client.transcribe(b"abc", TranscriptionOptions())

    assert not outcome.ok
    assert outcome.kind is FailureKind.REMOTE_ERROR
    assert outcome.status == 413
    assert "Too Large" in outcome.message


def test_connection_error_becomes_remote_error_without_status():
    def fail(**_):
        raise APIConnectionError(request=httpx.Request("POST", _URL))

    client, calls = _make_client(fail)

    outcome = client.transcribe(b"abc", TranscriptionOptions())

    assert outcome.kind is FailureKind.REMOTE_ERROR
    assert outcome.status is None
    assert len(calls) == 1


def test_real_sdk_client_is_built_from_settings():
    settings = Settings(api_key="sk-test", api_base_url="https://example.test/v1", request_timeout_seconds=12)

    client = OpenAITranscriptionClient(settings=settings)

    assert str(client.client.base_url).startswith("https://example.test/v1")
    assert client.client.max_retries == 0
    assert client.client.timeout == 12


def test_missing_api_key_ignores_openai_environment_key(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-openai-secret")
    monkeypatch.delenv("CHUNKSCRIBE_API_KEY", raising=False)

    with pytest.raises(RuntimeError, match="API key not configured"):
        OpenAITranscriptionClient(settings=Settings(_env_file=None))


def test_configured_key_wins_over_openai_environment_key(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-openai-secret")

    client = OpenAITranscriptionClient(settings=Settings(_env_file=None, api_key="gsk-groq"))

    assert client.client.api_key == "gsk-groq"
