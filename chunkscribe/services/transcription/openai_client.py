"""Transcription client for OpenAI-compatible speech-to-text endpoints."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from openai import APIError, APIStatusError, OpenAI, OpenAIError

from ...config import Settings, get_settings
from ...data.models import (
    ResponseFormat,
    TimedText,
    TimedWord,
    TranscriptionFailure,
    TranscriptionOptions,
    TranscriptionOutcome,
    TranscriptionSuccess,
)
from ...logging import get_logger
from .base import DEFAULT_UPLOAD_NAME, DEFAULT_UPLOAD_TYPE, TranscriptionClient

LOGGER = get_logger(__name__)


class OpenAITranscriptionClient(TranscriptionClient):
    """Calls ``/audio/transcriptions`` on the configured base URL (Groq by default).

    The SDK's own retry loop is disabled so every :meth:`transcribe` maps to a
    single HTTP request.
    """

    def __init__(self, settings: Optional[Settings] = None, client: Any = None) -> None:
        settings = settings or get_settings()
        self.base_url = settings.api_base_url
        if client is not None:
            self.client = client
            return

        # Never let the SDK fall back to OPENAI_API_KEY for another provider.
        if not settings.api_key:
            raise RuntimeError(
                "Transcription API key not configured. Set CHUNKSCRIBE_API_KEY "
                "or run `chunkscribe config set api_key <key>`."
            )

        try:
            self.client = OpenAI(
                api_key=settings.api_key.get_secret_value(),
                base_url=settings.api_base_url,
                timeout=settings.request_timeout_seconds,
                max_retries=0,
            )
        except OpenAIError as exc:
            raise RuntimeError(f"Failed to initialise transcription client: {exc}") from exc

    def transcribe(
        self,
        payload: bytes,
        options: TranscriptionOptions,
        filename: str = DEFAULT_UPLOAD_NAME,
        media_type: str = DEFAULT_UPLOAD_TYPE,
    ) -> TranscriptionOutcome:
        request = self.build_request(payload, options, filename, media_type)
        LOGGER.info(
            "Requesting transcription of %s (%d bytes) with model %s",
            filename,
            len(payload),
            options.model,
        )
        try:
            response = self.client.audio.transcriptions.create(**request)
        except APIStatusError as exc:
            LOGGER.warning("Transcription endpoint returned %s: %s", exc.status_code, exc.message)
            return TranscriptionFailure.remote_error(exc.message, status=exc.status_code)
        except APIError as exc:
            LOGGER.warning("Transcription request failed: %s", exc)
            return TranscriptionFailure.remote_error(str(exc))

        return self.parse_response(response)

    @staticmethod
    def build_request(
        payload: bytes,
        options: TranscriptionOptions,
        filename: str = DEFAULT_UPLOAD_NAME,
        media_type: str = DEFAULT_UPLOAD_TYPE,
    ) -> Dict[str, Any]:
        request: Dict[str, Any] = {
            "file": (filename, payload, media_type),
            "model": options.model,
            "response_format": options.response_format.value,
            "temperature": options.temperature,
        }
        if options.language:
            request["language"] = options.language
        if options.prompt:
            request["prompt"] = options.prompt
        if options.response_format is ResponseFormat.VERBOSE_JSON and options.timestamp_granularities:
            request["timestamp_granularities"] = [
                granularity.value for granularity in options.timestamp_granularities
            ]
        return request

    @staticmethod
    def parse_response(response: Any) -> TranscriptionOutcome:
        if isinstance(response, str):
            if not response.strip():
                return TranscriptionFailure.empty_result()
            return TranscriptionSuccess(text=response, raw_response={"text": response})

        data: Optional[Dict[str, Any]] = None
        if isinstance(response, dict):
            data = response
        elif hasattr(response, "model_dump"):
            data = response.model_dump()
        elif hasattr(response, "text"):
            data = {"text": getattr(response, "text", None)}

        text = (data or {}).get("text")
        if not isinstance(text, str) or not text.strip():
            return TranscriptionFailure.empty_result()

        return TranscriptionSuccess(
            text=text,
            segments=_timed_entries(data.get("segments"), TimedText, "text"),
            words=_timed_entries(data.get("words"), TimedWord, "word"),
            language=data.get("language"),
            duration=data.get("duration"),
            raw_response=data,
        )


def _timed_entries(source: Any, model: type, text_key: str) -> List[Any]:
    if not isinstance(source, list):
        return []
    entries = []
    for item in source:
        if not isinstance(item, dict):
            item = {
                "start": getattr(item, "start", None),
                "end": getattr(item, "end", None),
                text_key: getattr(item, text_key, ""),
            }
        entries.append(
            model(
                start=item.get("start"),
                end=item.get("end"),
                **{text_key: str(item.get(text_key) or "").strip()},
            )
        )
    return entries


__all__ = ["OpenAITranscriptionClient"]
