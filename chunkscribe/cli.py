"""Typer CLI entry point for chunkscribe."""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional, Tuple

import typer

from .config import (
    EnvironmentSettingError,
    clear_environment_setting,
    get_settings,
    list_environment_settings,
    update_environment_setting,
)
from .core.pipeline.exporter import MediaSplitExporter
from .core.pipeline.orchestrator import ChunkedTranscriptionOrchestrator
from .data.models import (
    ByCount,
    ByDuration,
    Manual,
    MediaFile,
    ResponseFormat,
    SplitPolicy,
    TimestampGranularity,
    TranscriptionOptions,
)
from .data.storage import TranscriptionStore
from .errors import (
    AllSegmentsFailedError,
    EmptySelectionError,
    InvalidPolicyError,
    PipelineError,
)
from .logging import configure_logging, get_logger
from .services.factory import ServiceConfigurationError, resolve_transcription_backend
from .utils.media import format_file_size, probe_duration

app = typer.Typer(help="chunkscribe large-media transcription")
config_app = typer.Typer(help="Inspect and update CHUNKSCRIBE_* settings")
app.add_typer(config_app, name="config")
LOGGER = get_logger(__name__)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log at DEBUG, including HTTP traffic"),
) -> None:
    """chunkscribe large-media transcription."""

    configure_logging("DEBUG" if verbose else get_settings().log_level)


def _open_store() -> TranscriptionStore:
    store = TranscriptionStore(get_settings().database_path)
    store.initialize()
    return store


def _parse_range(raw: str) -> Tuple[float, float]:
    try:
        start, end = raw.split(":", 1)
        return float(start), float(end)
    except ValueError as exc:
        raise typer.BadParameter(f"Range must look like START:END in seconds, got {raw!r}") from exc


def _build_policy(
    segments: Optional[int], duration: Optional[float], ranges: Optional[List[str]]
) -> SplitPolicy:
    chosen = [value is not None and value != [] for value in (segments, duration, ranges)]
    if sum(chosen) != 1:
        raise typer.BadParameter("Choose exactly one of --segments, --duration or --range")
    if segments is not None:
        return ByCount(segments)
    if duration is not None:
        return ByDuration(duration)
    return Manual([_parse_range(raw) for raw in ranges or []])


@app.command()
def transcribe(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="Audio or video file"),
    language: Optional[str] = typer.Option(None, help="Language code; omit or 'auto' to detect"),
    model: Optional[str] = typer.Option(None, help="Transcription model id"),
    prompt: Optional[str] = typer.Option(None, help="Context prompt (max 224 characters)"),
    response_format: ResponseFormat = typer.Option(ResponseFormat.JSON, help="Response format"),
    temperature: float = typer.Option(0.0, min=0.0, max=1.0, help="Sampling temperature"),
    granularity: List[TimestampGranularity] = typer.Option(
        [TimestampGranularity.SEGMENT], help="Timestamp granularity for verbose_json"
    ),
    chunking: bool = typer.Option(False, "--chunking/--auto-chunking", help="Force chunked upload"),
    chunk_size_mb: Optional[float] = typer.Option(None, help="Chunk size in MiB"),
    chunk_overlap: float = typer.Option(1.0, help="Chunk overlap in seconds (informational)"),
    backend: str = typer.Option("openai", help="Transcription backend: openai/groq/dummy"),
    max_in_flight: Optional[int] = typer.Option(None, min=1, help="Concurrent chunk uploads"),
    attempts: Optional[int] = typer.Option(None, min=1, help="Attempts per chunk"),
    fail_fast: bool = typer.Option(False, "--fail-fast", help="Abort on the first failed chunk"),
    save: bool = typer.Option(True, "--save/--no-save", help="Store the transcript in history"),
    output: Optional[Path] = typer.Option(None, help="Write the transcript to this file"),
) -> None:
    """Transcribe a file, chunking it when it exceeds the upload limit."""

    settings = get_settings()
    try:
        options = TranscriptionOptions(
            model=model or settings.transcription_model,
            language=language,
            prompt=prompt,
            response_format=response_format,
            temperature=temperature,
            timestamp_granularities=granularity,
            enable_chunking=chunking,
            chunk_size_mb=chunk_size_mb or settings.default_chunk_size_mb,
            chunk_overlap_seconds=chunk_overlap,
        )
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc

    try:
        client = resolve_transcription_backend(backend, settings=settings)
    except (ServiceConfigurationError, RuntimeError) as exc:
        raise typer.BadParameter(str(exc)) from exc

    orchestrator = ChunkedTranscriptionOrchestrator(
        client,
        settings,
        max_in_flight=max_in_flight,
        segment_attempts=attempts,
        continue_on_failure=False if fail_fast else None,
    )
    media = MediaFile.from_path(path)
    typer.echo(f"Transcribing {media.name} ({format_file_size(media.size_bytes)})")

    def on_progress(completed: int, total: int) -> None:
        typer.echo(f"  [{completed}/{total}] chunks processed")

    try:
        result = orchestrator.run(media, options, progress=on_progress)
    except AllSegmentsFailedError as exc:
        typer.echo(f"Transcription failed: none of the {len(exc.results)} chunks produced text", err=True)
        raise typer.Exit(code=1) from exc
    except (PipelineError, InvalidPolicyError) as exc:
        typer.echo(f"Transcription failed: {exc}", err=True)
        raise typer.Exit(code=1) from exc

    if result.is_partial:
        typer.echo(f"Partial transcript: {result.summary()}", err=True)
    else:
        typer.echo(result.summary())

    if output is not None:
        output.write_text(result.merged_text, encoding="utf-8")
        typer.echo(f"Transcript written to {output}")
    else:
        typer.echo(result.merged_text)

    if save:
        record = _open_store().save_result(result, options)
        typer.echo(f"Saved transcription {record.id}")


@app.command()
def split(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="Audio or video file"),
    segments: Optional[int] = typer.Option(None, help="Split into this many equal parts"),
    duration: Optional[float] = typer.Option(None, help="Split into parts of this many seconds"),
    ranges: Optional[List[str]] = typer.Option(None, "--range", help="Manual START:END range in seconds"),
    output_format: str = typer.Option("same", help="Output extension, or 'same' to keep the source"),
    output_dir: Optional[Path] = typer.Option(None, help="Directory for the parts"),
    media_duration: Optional[float] = typer.Option(None, help="Override the measured duration"),
) -> None:
    """Split a file into standalone parts for download."""

    settings = get_settings()
    policy = _build_policy(segments, duration, ranges)
    measured = media_duration or probe_duration(path, settings.ffprobe_binary)
    if measured is None:
        LOGGER.info("Duration of %s unknown; only --segments splitting is available", path.name)
    media = MediaFile.from_path(path, duration_seconds=measured)

    exporter = MediaSplitExporter()
    try:
        parts = exporter.export(media, policy, output_format=output_format)
    except (InvalidPolicyError, EmptySelectionError) as exc:
        raise typer.BadParameter(str(exc)) from exc

    written = exporter.write(parts, output_dir or settings.output_dir)
    for part, written_path in zip(parts, written):
        typer.echo(f"{written_path}  {part.duration_label}  {part.size_label}")
    typer.echo(f"{len(written)} parts created")


@app.command()
def history(limit: int = typer.Option(20, min=1, help="Number of records to list")) -> None:
    """List stored transcriptions, newest first."""

    records = _open_store().list_records(limit=limit)
    if not records:
        typer.echo("No transcriptions stored")
        return
    for record in records:
        preview = record.display_text[:60].replace("\n", " ")
        flag = f" ({record.failed_segments} failed)" if record.failed_segments else ""
        typer.echo(f"{record.id}  {record.source_file_name}  {record.segment_count} chunks{flag}  {preview}")


@app.command()
def show(record_id: str = typer.Argument(..., help="Transcription id")) -> None:
    """Print a stored transcription."""

    record = _open_store().fetch(record_id)
    if record is None:
        typer.echo(f"No transcription with id {record_id}", err=True)
        raise typer.Exit(code=1)
    typer.echo(record.display_text)


@app.command()
def edit(
    record_id: str = typer.Argument(..., help="Transcription id"),
    text: Optional[str] = typer.Option(None, help="Replacement transcript text"),
    from_file: Optional[Path] = typer.Option(
        None, exists=True, dir_okay=False, help="Read the replacement text from this file"
    ),
) -> None:
    """Replace the edited text of a stored transcription.

    The original merged transcript is kept; `show` prints the edited text.
    """

    if (text is None) == (from_file is None):
        raise typer.BadParameter("Pass exactly one of --text or --from-file")
    new_text = text if text is not None else from_file.read_text(encoding="utf-8")
    if not _open_store().update_processed_text(record_id, new_text):
        typer.echo(f"No transcription with id {record_id}", err=True)
        raise typer.Exit(code=1)
    typer.echo(f"Updated {record_id}")


@app.command()
def delete(record_id: str = typer.Argument(..., help="Transcription id")) -> None:
    """Delete a stored transcription."""

    if not _open_store().delete(record_id):
        typer.echo(f"No transcription with id {record_id}", err=True)
        raise typer.Exit(code=1)
    typer.echo(f"Deleted {record_id}")


@config_app.command("list")
def config_list() -> None:
    """Show every setting with its environment variable."""

    for entry in list_environment_settings():
        typer.echo(f"{entry.env_name}={entry.display_value}")


@config_app.command("set")
def config_set(field: str, value: str) -> None:
    """Persist a setting to .env."""

    try:
        update_environment_setting(field, value)
    except EnvironmentSettingError as exc:
        raise typer.BadParameter(str(exc)) from exc
    typer.echo(f"Updated {field}")


@config_app.command("clear")
def config_clear(field: str) -> None:
    """Remove a setting override from .env."""

    try:
        clear_environment_setting(field)
    except EnvironmentSettingError as exc:
        raise typer.BadParameter(str(exc)) from exc
    typer.echo(f"Cleared {field}")


if __name__ == "__main__":  # pragma: no cover
    app()
