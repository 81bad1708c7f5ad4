"""Media helpers: labels, output filenames and duration probing."""

from __future__ import annotations

import shutil
import subprocess
import wave
from pathlib import Path
from typing import Optional

from ..logging import get_logger

LOGGER = get_logger(__name__)

_SIZE_UNITS = ["Bytes", "KB", "MB", "GB", "TB"]


def format_duration(seconds: float) -> str:
    """Render ``seconds`` as ``m:ss`` (minutes unpadded, both parts floored)."""

    seconds = max(float(seconds), 0.0)
    minutes = int(seconds // 60)
    secs = int(seconds % 60)
    return f"{minutes}:{secs:02d}"


def format_file_size(size_bytes: int) -> str:
    """Scale a byte count by 1024 and round to two decimals, e.g. ``1.5 MB``."""

    if size_bytes <= 0:
        return "0 Bytes"
    exponent = 0
    while exponent < len(_SIZE_UNITS) - 1 and size_bytes >= 1024 ** (exponent + 1):
        exponent += 1
    value = round(size_bytes / 1024**exponent, 2)
    return f"{value:g} {_SIZE_UNITS[exponent]}"


def output_extension(output_format: str, source_name: str, media_type: Optional[str] = None) -> str:
    if output_format and output_format.lower() != "same":
        return output_format.lower().lstrip(".")
    suffix = Path(source_name).suffix.lstrip(".")
    if suffix:
        return suffix.lower()
    if media_type and "/" in media_type:
        subtype = media_type.split("/", 1)[1]
        if subtype:
            return subtype
    return "mp4"


def part_filename(source_name: str, part_number: int, extension: str) -> str:
    base = source_name.split(".")[0] or "media"
    return f"{base}_part{part_number}.{extension}"


def probe_duration(path: Path, ffprobe_binary: str = "ffprobe") -> Optional[float]:
    """Return the media duration in seconds, or ``None`` when it cannot be measured.

    WAV files are measured from their header; everything else goes through
    ``ffprobe`` when it is installed.
    """

    path = Path(path)
    if path.suffix.lower() == ".wav":
        try:
            with wave.open(str(path), "rb") as wf:
                rate = wf.getframerate()
                return wf.getnframes() / rate if rate else None
        except (wave.Error, EOFError):
            LOGGER.debug("Could not read WAV header of %s", path, exc_info=True)

    executable = _resolve_binary(ffprobe_binary)
    if executable is None:
        LOGGER.debug("ffprobe binary '%s' not found; duration unknown", ffprobe_binary)
        return None

    command = [
        executable,
        "-v",
        "error",
        "-show_entries",
        "format=duration",
        "-of",
        "default=noprint_wrappers=1:nokey=1",
        str(path),
    ]
    try:
        completed = subprocess.run(  # noqa: S603 - required to spawn ffprobe
            command,
            stdin=subprocess.DEVNULL,
            capture_output=True,
            text=True,
            check=True,
            timeout=30,
        )
    except (OSError, subprocess.SubprocessError) as exc:
        LOGGER.warning("ffprobe failed for %s: %s", path, exc)
        return None

    try:
        duration = float(completed.stdout.strip())
    except ValueError:
        return None
    return duration if duration > 0 else None


def _resolve_binary(binary: str) -> Optional[str]:
    """Return the absolute path to the requested binary if available."""

    if not binary:
        binary = "ffprobe"

    found = shutil.which(binary)
    if found:
        return found

    candidate = Path(binary)
    if candidate.exists():
        return str(candidate)

    return None


__all__ = [
    "format_duration",
    "format_file_size",
    "output_extension",
    "part_filename",
    "probe_duration",
]
