"""Dummy transcription client for testing or offline usage."""

from __future__ import annotations

from ...data.models import TranscriptionOptions, TranscriptionOutcome, TranscriptionSuccess
from .base import DEFAULT_UPLOAD_NAME, DEFAULT_UPLOAD_TYPE, TranscriptionClient


class DummyTranscriptionClient(TranscriptionClient):
    def __init__(self) -> None:
        self.calls = 0

    def transcribe(
        self,
        payload: bytes,
        options: TranscriptionOptions,
        filename: str = DEFAULT_UPLOAD_NAME,
        media_type: str = DEFAULT_UPLOAD_TYPE,
    ) -> TranscriptionOutcome:
        self.calls += 1
        text = (
            f"Dummy transcript of {filename} ({len(payload)} bytes). "
            "Replace with a real transcription backend."
        )
        return TranscriptionSuccess(text=text, language=options.language)


__all__ = ["DummyTranscriptionClient"]
