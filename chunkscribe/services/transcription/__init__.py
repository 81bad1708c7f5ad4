"""Transcription clients."""

from .base import TranscriptionClient
from .dummy import DummyTranscriptionClient

__all__ = ["TranscriptionClient", "DummyTranscriptionClient"]
