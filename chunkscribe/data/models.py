"""Data models used by chunkscribe."""

from __future__ import annotations

import mimetypes
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..config import MEBIBYTE

MAX_PROMPT_CHARS = 224
DEFAULT_MEDIA_TYPE = "application/octet-stream"


@dataclass(frozen=True)
class MediaFile:
    """A selected audio/video file, read by byte range.

    Path-backed files are read lazily with ``seek`` so a chunked run only holds
    the slice it is currently sending.
    """

    name: str
    media_type: str
    size_bytes: int
    duration_seconds: Optional[float] = None
    path: Optional[Path] = None
    data: Optional[bytes] = field(default=None, repr=False)

    @classmethod
    def from_path(
        cls,
        path: Path,
        media_type: Optional[str] = None,
        duration_seconds: Optional[float] = None,
    ) -> "MediaFile":
        path = Path(path)
        guessed, _ = mimetypes.guess_type(path.name)
        return cls(
            name=path.name,
            media_type=media_type or guessed or DEFAULT_MEDIA_TYPE,
            size_bytes=path.stat().st_size,
            duration_seconds=duration_seconds,
            path=path,
        )

    @classmethod
    def from_bytes(
        cls,
        name: str,
        data: bytes,
        media_type: str = DEFAULT_MEDIA_TYPE,
        duration_seconds: Optional[float] = None,
    ) -> "MediaFile":
        return cls(
            name=name,
            media_type=media_type,
            size_bytes=len(data),
            duration_seconds=duration_seconds,
            data=bytes(data),
        )

    @property
    def stem(self) -> str:
        return self.name.split(".")[0]

    @property
    def suffix(self) -> str:
        return Path(self.name).suffix.lstrip(".").lower()

    def read_range(self, start: int, end: int) -> bytes:
        start = max(int(start), 0)
        end = min(int(end), self.size_bytes)
        if end <= start:
            return b""
        if self.data is not None:
            return self.data[start:end]
        if self.path is None:
            raise ValueError(f"Media file {self.name!r} has neither a path nor in-memory data")
        with open(self.path, "rb") as handle:
            handle.seek(start)
            return handle.read(end - start)

    def read_all(self) -> bytes:
        return self.read_range(0, self.size_bytes)


@dataclass(frozen=True)
class ByCount:
    """Split into ``count`` equal-width segments."""

    count: int


@dataclass(frozen=True)
class ByDuration:
    """Split into consecutive segments of ``seconds`` each."""

    seconds: float


@dataclass(frozen=True)
class Manual:
    """Explicit caller-supplied ``(start, end)`` ranges, kept in the given order."""

    ranges: Tuple[Tuple[float, float], ...]

    def __init__(self, ranges: Sequence[Tuple[float, float]]) -> None:
        object.__setattr__(self, "ranges", tuple((start, end) for start, end in ranges))


@dataclass(frozen=True)
class BySize:
    """Split a byte extent into ranges of at most ``chunk_size_bytes``."""

    chunk_size_bytes: int


SplitPolicy = Union[ByCount, ByDuration, Manual, BySize]


@dataclass(frozen=True, slots=True)
class Segment:
    index: int
    start: float
    end: float

    @property
    def length(self) -> float:
        return self.end - self.start


class ResponseFormat(str, Enum):
    TEXT = "text"
    JSON = "json"
    VERBOSE_JSON = "verbose_json"


class TimestampGranularity(str, Enum):
    SEGMENT = "segment"
    WORD = "word"


class TranscriptionOptions(BaseModel):
    """Immutable configuration passed to every per-segment transcription call."""

    model_config = ConfigDict(frozen=True)

    model: str = "whisper-large-v3"
    language: Optional[str] = None
    prompt: Optional[str] = Field(default=None, max_length=MAX_PROMPT_CHARS)
    response_format: ResponseFormat = ResponseFormat.JSON
    temperature: float = Field(default=0.0, ge=0.0, le=1.0)
    timestamp_granularities: List[TimestampGranularity] = Field(
        default_factory=lambda: [TimestampGranularity.SEGMENT]
    )
    enable_chunking: bool = False
    chunk_size_mb: float = Field(default=20.0, gt=0)
    # Informational only: chunk boundaries are never shifted by this amount.
    chunk_overlap_seconds: float = Field(default=1.0, ge=0)

    @field_validator("language")
    @classmethod
    def _normalise_language(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        value = value.strip()
        if not value or value.lower() == "auto":
            return None
        return value

    @field_validator("prompt")
    @classmethod
    def _blank_prompt_is_none(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not value.strip():
            return None
        return value

    @property
    def chunk_size_bytes(self) -> int:
        return max(int(round(self.chunk_size_mb * MEBIBYTE)), 1)


class TimedText(BaseModel):
    start: Optional[float] = None
    end: Optional[float] = None
    text: str = ""


class TimedWord(BaseModel):
    start: Optional[float] = None
    end: Optional[float] = None
    word: str = ""


class TranscriptionSuccess(BaseModel):
    text: str
    segments: List[TimedText] = Field(default_factory=list)
    words: List[TimedWord] = Field(default_factory=list)
    language: Optional[str] = None
    duration: Optional[float] = None
    raw_response: Optional[Dict[str, Any]] = None

    @property
    def ok(self) -> bool:
        return True


class FailureKind(str, Enum):
    REMOTE_ERROR = "remote_error"
    EMPTY_RESULT = "empty_result"


class TranscriptionFailure(BaseModel):
    kind: FailureKind
    message: str = ""
    status: Optional[int] = None

    @property
    def ok(self) -> bool:
        return False

    @classmethod
    def remote_error(cls, message: str, status: Optional[int] = None) -> "TranscriptionFailure":
        return cls(kind=FailureKind.REMOTE_ERROR, message=message, status=status)

    @classmethod
    def empty_result(cls) -> "TranscriptionFailure":
        return cls(kind=FailureKind.EMPTY_RESULT, message="Response contained no transcribed text")

    def describe(self) -> str:
        if self.kind is FailureKind.REMOTE_ERROR and self.status is not None:
            return f"remote error {self.status}: {self.message}"
        return f"{self.kind.value.replace('_', ' ')}: {self.message}"


TranscriptionOutcome = Union[TranscriptionSuccess, TranscriptionFailure]


class SegmentResult(BaseModel):
    index: int
    outcome: TranscriptionOutcome
    attempts: int = 1

    @property
    def ok(self) -> bool:
        return self.outcome.ok

    @property
    def text(self) -> Optional[str]:
        if isinstance(self.outcome, TranscriptionSuccess):
            return self.outcome.text
        return None


class PipelineResult(BaseModel):
    merged_text: str
    attempted: int
    failed: int
    source_file_name: str
    source_size_bytes: int
    chunked: bool = False
    segment_count: int = 1
    elapsed_seconds: float = 0.0
    results: List[SegmentResult] = Field(default_factory=list)

    @property
    def succeeded(self) -> int:
        return self.attempted - self.failed

    @property
    def is_partial(self) -> bool:
        return self.failed > 0

    def summary(self) -> str:
        return f"{self.succeeded} of {self.attempted} segments transcribed"


class ExportedSegment(BaseModel):
    index: int
    data: bytes = Field(repr=False)
    filename: str
    duration_label: str
    size_label: str
    start: float
    end: float


class TranscriptionRecord(BaseModel):
    id: str
    created_at: float
    source_file_name: str
    source_size_bytes: int
    original_text: str
    processed_text: Optional[str] = None
    chunked: bool = False
    segment_count: int = 1
    failed_segments: int = 0
    elapsed_seconds: float = 0.0
    options: Dict[str, Any] = Field(default_factory=dict)
    updated_at: Optional[float] = None

    @property
    def display_text(self) -> str:
        return self.processed_text or self.original_text


__all__ = [
    "ByCount",
    "ByDuration",
    "BySize",
    "ExportedSegment",
    "FailureKind",
    "MAX_PROMPT_CHARS",
    "Manual",
    "MediaFile",
    "PipelineResult",
    "ResponseFormat",
    "Segment",
    "SegmentResult",
    "SplitPolicy",
    "TimedText",
    "TimedWord",
    "TimestampGranularity",
    "TranscriptionFailure",
    "TranscriptionOptions",
    "TranscriptionOutcome",
    "TranscriptionRecord",
    "TranscriptionSuccess",
]
