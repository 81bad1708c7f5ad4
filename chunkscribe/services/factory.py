"""Factories for runtime service selection."""

from __future__ import annotations

from typing import Optional

from ..config import Settings
from .transcription.base import TranscriptionClient
from .transcription.dummy import DummyTranscriptionClient
from .transcription.openai_client import OpenAITranscriptionClient


class ServiceConfigurationError(ValueError):
    """Raised when an unknown backend is requested."""


def _normalise(name: Optional[str]) -> str:
    if not name:
        return "none"
    return name.strip().lower()


def resolve_transcription_backend(
    name: Optional[str], settings: Optional[Settings] = None
) -> TranscriptionClient:
    backend = _normalise(name)
    if backend == "dummy":
        return DummyTranscriptionClient()
    if backend in {"openai", "groq"}:
        return OpenAITranscriptionClient(settings=settings)
    raise ServiceConfigurationError(f"Unknown transcription backend: {name}")


__all__ = [
    "ServiceConfigurationError",
    "resolve_transcription_backend",
]
