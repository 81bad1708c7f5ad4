"""Chunked transcription orchestrator: plan, dispatch, tolerate failures, merge."""

from __future__ import annotations

import time
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from threading import Event
from typing import Callable, Dict, List, Optional

from ...config import Settings, get_settings
from ...data.models import (
    BySize,
    MediaFile,
    PipelineResult,
    Segment,
    SegmentResult,
    TranscriptionOptions,
)
from ...errors import (
    AllSegmentsFailedError,
    EmptyMediaError,
    RunCancelledError,
    TranscriptionFailedError,
)
from ...logging import get_logger
from ...services.transcription.base import TranscriptionClient
from ..planning.planner import plan

LOGGER = get_logger(__name__)

ProgressCallback = Callable[[int, int], None]


class RunControl:
    """Cancellation flag shared between a running pipeline and its caller.

    The flag is checked before each segment is dispatched. Calls already in
    flight are left to finish; their results are discarded.
    """

    def __init__(self) -> None:
        self._cancel = Event()

    def request_cancel(self) -> None:
        self._cancel.set()

    @property
    def cancelled(self) -> bool:
        return self._cancel.is_set()


class ChunkedTranscriptionOrchestrator:
    """Transcribe a media file whole or in byte-range chunks.

    Files larger than ``max_single_payload_bytes`` (or any file when the options
    request chunking) are cut into ``options.chunk_size_bytes`` slices. Slices
    are sent one at a time unless ``max_in_flight`` allows more; either way the
    merged text follows segment index order. Byte slices do not respect frame
    boundaries, so words at chunk edges may be lost or garbled.
    """

    def __init__(
        self,
        client: TranscriptionClient,
        settings: Optional[Settings] = None,
        *,
        max_single_payload_bytes: Optional[int] = None,
        max_in_flight: Optional[int] = None,
        segment_attempts: Optional[int] = None,
        continue_on_failure: Optional[bool] = None,
    ) -> None:
        settings = settings or get_settings()
        self.client = client
        self.max_single_payload_bytes = (
            max_single_payload_bytes
            if max_single_payload_bytes is not None
            else settings.max_single_payload_bytes
        )
        self.max_in_flight = max(max_in_flight or settings.max_in_flight, 1)
        self.segment_attempts = max(segment_attempts or settings.segment_attempts, 1)
        self.continue_on_failure = (
            settings.continue_on_failure if continue_on_failure is None else continue_on_failure
        )

    def needs_chunking(self, media: MediaFile, options: TranscriptionOptions) -> bool:
        return media.size_bytes > self.max_single_payload_bytes or options.enable_chunking

    def run(
        self,
        media: MediaFile,
        options: TranscriptionOptions,
        progress: Optional[ProgressCallback] = None,
        control: Optional[RunControl] = None,
    ) -> PipelineResult:
        started = time.monotonic()
        if media.size_bytes <= 0:
            raise EmptyMediaError(f"{media.name} is empty; nothing to transcribe")
        chunked = self.needs_chunking(media, options)
        LOGGER.info(
            "Transcribing %s (%d bytes), chunking: %s",
            media.name,
            media.size_bytes,
            chunked,
        )

        if not chunked:
            return self._run_single(media, options, progress, control, started)

        segments = plan(media.size_bytes, BySize(options.chunk_size_bytes))
        LOGGER.info("Split %s into %d chunks of up to %d bytes", media.name, len(segments), options.chunk_size_bytes)

        if self.max_in_flight > 1 and len(segments) > 1:
            results = self._dispatch_bounded(media, segments, options, progress, control)
        else:
            results = self._dispatch_sequential(media, segments, options, progress, control)
        return self._merge(media, results, started)

    def _run_single(
        self,
        media: MediaFile,
        options: TranscriptionOptions,
        progress: Optional[ProgressCallback],
        control: Optional[RunControl],
        started: float,
    ) -> PipelineResult:
        if control is not None and control.cancelled:
            raise RunCancelledError([], 1)

        segment = Segment(index=0, start=0, end=media.size_bytes)
        result = self._attempt(media, segment, options, total=1, filename=media.name)
        self._notify(progress, 1, 1)
        if not result.ok:
            raise TranscriptionFailedError(result.outcome, index=0)

        return PipelineResult(
            merged_text=result.text or "",
            attempted=1,
            failed=0,
            source_file_name=media.name,
            source_size_bytes=media.size_bytes,
            chunked=False,
            segment_count=1,
            elapsed_seconds=time.monotonic() - started,
            results=[result],
        )

    def _dispatch_sequential(
        self,
        media: MediaFile,
        segments: List[Segment],
        options: TranscriptionOptions,
        progress: Optional[ProgressCallback],
        control: Optional[RunControl],
    ) -> List[SegmentResult]:
        total = len(segments)
        results: List[SegmentResult] = []
        for segment in segments:
            if control is not None and control.cancelled:
                LOGGER.info("Run cancelled before chunk %d/%d", segment.index + 1, total)
                raise RunCancelledError(results, total)
            result = self._attempt(media, segment, options, total)
            results.append(result)
            self._notify(progress, len(results), total)
            self._check_fail_fast(result)
        return results

    def _dispatch_bounded(
        self,
        media: MediaFile,
        segments: List[Segment],
        options: TranscriptionOptions,
        progress: Optional[ProgressCallback],
        control: Optional[RunControl],
    ) -> List[SegmentResult]:
        total = len(segments)
        pending = iter(segments)
        in_flight: Dict[Future, Segment] = {}
        completed: Dict[int, SegmentResult] = {}
        exhausted = False

        executor = ThreadPoolExecutor(max_workers=self.max_in_flight, thread_name_prefix="chunkscribe")
        try:
            while True:
                if control is not None and control.cancelled:
                    LOGGER.info("Run cancelled with %d chunks still in flight", len(in_flight))
                    raise RunCancelledError(list(completed.values()), total)

                while not exhausted and len(in_flight) < self.max_in_flight:
                    segment = next(pending, None)
                    if segment is None:
                        exhausted = True
                        break
                    future = executor.submit(self._attempt, media, segment, options, total)
                    in_flight[future] = segment

                if not in_flight:
                    break

                done, _ = wait(list(in_flight), return_when=FIRST_COMPLETED)
                for future in sorted(done, key=lambda item: in_flight[item].index):
                    in_flight.pop(future)
                    result = future.result()
                    completed[result.index] = result
                    self._notify(progress, len(completed), total)
                    self._check_fail_fast(result)
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        return [completed[index] for index in sorted(completed)]

    def _attempt(
        self,
        media: MediaFile,
        segment: Segment,
        options: TranscriptionOptions,
        total: int,
        filename: Optional[str] = None,
    ) -> SegmentResult:
        payload = media.read_range(segment.start, segment.end)
        filename = filename or _chunk_filename(media, segment)
        label = f"{segment.index + 1}/{total}"

        attempt = 0
        while True:
            attempt += 1
            outcome = self.client.transcribe(
                payload, options, filename=filename, media_type=media.media_type
            )
            if outcome.ok or attempt >= self.segment_attempts:
                break
            LOGGER.warning(
                "Chunk %s failed (attempt %d/%d), retrying: %s",
                label,
                attempt,
                self.segment_attempts,
                outcome.describe(),
            )

        if outcome.ok:
            LOGGER.info("Chunk %s transcribed", label)
        else:
            LOGGER.warning("Chunk %s failed; continuing: %s", label, outcome.describe())
        return SegmentResult(index=segment.index, outcome=outcome, attempts=attempt)

    def _check_fail_fast(self, result: SegmentResult) -> None:
        if not result.ok and not self.continue_on_failure:
            raise TranscriptionFailedError(result.outcome, index=result.index)

    def _merge(self, media: MediaFile, results: List[SegmentResult], started: float) -> PipelineResult:
        ordered = sorted(results, key=lambda result: result.index)
        failed = sum(1 for result in ordered if not result.ok)
        if ordered and failed == len(ordered):
            raise AllSegmentsFailedError(ordered)

        merged_text = " ".join(result.text or "" for result in ordered if result.ok)
        pipeline_result = PipelineResult(
            merged_text=merged_text,
            attempted=len(ordered),
            failed=failed,
            source_file_name=media.name,
            source_size_bytes=media.size_bytes,
            chunked=True,
            segment_count=len(ordered),
            elapsed_seconds=time.monotonic() - started,
            results=ordered,
        )
        LOGGER.info("Finished %s: %s", media.name, pipeline_result.summary())
        return pipeline_result

    @staticmethod
    def _notify(progress: Optional[ProgressCallback], completed: int, total: int) -> None:
        if progress is None:
            return
        try:
            progress(completed, total)
        except Exception:  # pragma: no cover - callbacks should not break pipeline
            LOGGER.exception("Progress callback raised an exception")


def _chunk_filename(media: MediaFile, segment: Segment) -> str:
    extension = media.suffix or "webm"
    return f"{media.stem}.chunk{segment.index:03d}.{extension}"


__all__ = [
    "ChunkedTranscriptionOrchestrator",
    "ProgressCallback",
    "RunControl",
]
