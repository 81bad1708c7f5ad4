"""Exception hierarchy shared by the planning, transcription and export pipelines."""

from __future__ import annotations

from typing import TYPE_CHECKING, List, Sequence

if TYPE_CHECKING:  # pragma: no cover - imports for annotations only
    from .data.models import SegmentResult, TranscriptionFailure


class ChunkscribeError(Exception):
    """Base class for all chunkscribe errors."""


class InvalidPolicyError(ChunkscribeError, ValueError):
    """Raised when a split policy violates its structural invariants."""


class EmptySelectionError(ChunkscribeError):
    """Raised when a split policy yields no segments to export."""


class PipelineError(ChunkscribeError):
    """Run-level failure of a transcription pipeline."""


class EmptyMediaError(PipelineError):
    """The source file holds no bytes, so there is nothing to transcribe."""


class TranscriptionFailedError(PipelineError):
    """A transcription call failed and the run could not continue."""

    def __init__(self, failure: "TranscriptionFailure", index: int = 0) -> None:
        self.failure = failure
        self.index = index
        super().__init__(f"Transcription of segment {index + 1} failed: {failure.describe()}")


class AllSegmentsFailedError(PipelineError):
    """Every segment of a chunked run failed; no text was recovered."""

    def __init__(self, results: Sequence["SegmentResult"]) -> None:
        self.results: List["SegmentResult"] = list(results)
        super().__init__(f"All {len(self.results)} segments failed to transcribe")


class RunCancelledError(PipelineError):
    """The run was cancelled before every segment was attempted."""

    def __init__(self, results: Sequence["SegmentResult"], total: int) -> None:
        self.results: List["SegmentResult"] = sorted(results, key=lambda result: result.index)
        self.total = total
        super().__init__(f"Run cancelled after {len(self.results)} of {total} segments")


__all__ = [
    "AllSegmentsFailedError",
    "ChunkscribeError",
    "EmptyMediaError",
    "EmptySelectionError",
    "InvalidPolicyError",
    "PipelineError",
    "RunCancelledError",
    "TranscriptionFailedError",
]
