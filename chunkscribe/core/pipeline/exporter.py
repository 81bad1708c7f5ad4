"""Split a media file into downloadable parts without transcribing it."""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Iterable, List, Optional, Tuple

from ...data.models import ByCount, ExportedSegment, MediaFile, Segment, SplitPolicy
from ...errors import EmptySelectionError, InvalidPolicyError
from ...logging import get_logger
from ...utils.media import (
    format_duration,
    format_file_size,
    output_extension,
    part_filename,
)
from ..planning.planner import plan

LOGGER = get_logger(__name__)

UNKNOWN_DURATION_LABEL = "--:--"


class MediaSplitExporter:
    """Cut a file into parts by count, duration or manual time ranges.

    Parts are raw byte slices of the source container, mapped proportionally
    from time offsets. They are not re-encoded, so only formats that tolerate
    truncation (e.g. MP3, raw WAV data) play back cleanly.
    """

    def export(
        self,
        media: MediaFile,
        policy: SplitPolicy,
        output_format: str = "same",
        progress: Optional[Callable[[int, int], None]] = None,
    ) -> List[ExportedSegment]:
        segments, time_based = self._plan(media, policy)
        ranges = []
        for segment in segments:
            byte_start, byte_end = self._byte_range(media, segment, time_based)
            # Slivers shorter than one byte of the source have nothing to write.
            if byte_end > byte_start:
                ranges.append((segment, byte_start, byte_end))
            else:
                LOGGER.debug("Skipping empty part %d of %s", segment.index + 1, media.name)
        if not ranges:
            raise EmptySelectionError(f"No segments selected for {media.name}")

        extension = output_extension(output_format, media.name, media.media_type)
        LOGGER.info("Exporting %d parts of %s as .%s", len(ranges), media.name, extension)

        exported: List[ExportedSegment] = []
        for position, (segment, byte_start, byte_end) in enumerate(ranges):
            data = media.read_range(byte_start, byte_end)
            duration_label = (
                format_duration(segment.length) if time_based else UNKNOWN_DURATION_LABEL
            )
            exported.append(
                ExportedSegment(
                    index=position,
                    data=data,
                    filename=part_filename(media.name, position + 1, extension),
                    duration_label=duration_label,
                    size_label=format_file_size(len(data)),
                    start=segment.start,
                    end=segment.end,
                )
            )
            if progress is not None:
                try:
                    progress(len(exported), len(ranges))
                except Exception:  # pragma: no cover - callbacks should not break export
                    LOGGER.exception("Progress callback raised an exception")
        return exported

    def write(self, exported: Iterable[ExportedSegment], directory: Path) -> List[Path]:
        directory = Path(directory)
        directory.mkdir(parents=True, exist_ok=True)
        paths = []
        for part in exported:
            path = directory / part.filename
            path.write_bytes(part.data)
            paths.append(path)
        return paths

    def _plan(self, media: MediaFile, policy: SplitPolicy) -> Tuple[List[Segment], bool]:
        if media.duration_seconds:
            return plan(media.duration_seconds, policy), True
        if isinstance(policy, ByCount):
            return plan(media.size_bytes, policy), False
        raise InvalidPolicyError(
            f"{type(policy).__name__} splitting needs the media duration, which is unknown for {media.name}"
        )

    @staticmethod
    def _byte_range(media: MediaFile, segment: Segment, time_based: bool) -> Tuple[int, int]:
        if not time_based:
            start, end = int(segment.start), int(segment.end)
        else:
            duration = media.duration_seconds or 1.0
            start = int(round(segment.start * media.size_bytes / duration))
            end = int(round(segment.end * media.size_bytes / duration))
            if segment.end >= duration:
                end = media.size_bytes
        return start, min(end, media.size_bytes)


__all__ = ["MediaSplitExporter", "UNKNOWN_DURATION_LABEL"]
