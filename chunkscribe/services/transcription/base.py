"""Transcription client abstractions."""

from __future__ import annotations

import abc

from ...data.models import TranscriptionOptions, TranscriptionOutcome

DEFAULT_UPLOAD_NAME = "audio.webm"
DEFAULT_UPLOAD_TYPE = "audio/webm"


class TranscriptionClient(abc.ABC):
    """Send one binary payload to a speech-to-text backend.

    Implementations make exactly one remote call per :meth:`transcribe` and
    report failures as :class:`TranscriptionFailure` values instead of raising.
    Retrying is the caller's decision.
    """

    @abc.abstractmethod
    def transcribe(
        self,
        payload: bytes,
        options: TranscriptionOptions,
        filename: str = DEFAULT_UPLOAD_NAME,
        media_type: str = DEFAULT_UPLOAD_TYPE,
    ) -> TranscriptionOutcome:
        raise NotImplementedError


__all__ = ["DEFAULT_UPLOAD_NAME", "DEFAULT_UPLOAD_TYPE", "TranscriptionClient"]
