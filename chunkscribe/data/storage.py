"""SQLite storage for finished transcriptions."""

from __future__ import annotations

import json
import sqlite3
import time
import uuid
from pathlib import Path
from typing import List, Optional

from .models import PipelineResult, TranscriptionOptions, TranscriptionRecord

_COLUMNS = (
    "id, created_at, source_file_name, source_size_bytes, original_text, processed_text, "
    "chunked, segment_count, failed_segments, elapsed_seconds, options, updated_at"
)


class TranscriptionStore:
    """Persistent transcription history built on SQLite."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(self.path)

    def initialize(self) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS transcriptions (
                    id TEXT PRIMARY KEY,
                    created_at REAL NOT NULL,
                    source_file_name TEXT NOT NULL,
                    source_size_bytes INTEGER NOT NULL,
                    original_text TEXT NOT NULL,
                    processed_text TEXT,
                    chunked INTEGER NOT NULL DEFAULT 0,
                    segment_count INTEGER NOT NULL DEFAULT 1,
                    failed_segments INTEGER NOT NULL DEFAULT 0,
                    elapsed_seconds REAL NOT NULL DEFAULT 0,
                    options TEXT,
                    updated_at REAL
                )
                """
            )
            conn.commit()

    def save_result(
        self, result: PipelineResult, options: Optional[TranscriptionOptions] = None
    ) -> TranscriptionRecord:
        record = TranscriptionRecord(
            id=uuid.uuid4().hex,
            created_at=time.time(),
            source_file_name=result.source_file_name,
            source_size_bytes=result.source_size_bytes,
            original_text=result.merged_text,
            chunked=result.chunked,
            segment_count=result.segment_count,
            failed_segments=result.failed,
            elapsed_seconds=result.elapsed_seconds,
            options=options.model_dump(mode="json") if options is not None else {},
        )
        with self._connect() as conn:
            conn.execute(
                f"INSERT INTO transcriptions ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    record.id,
                    record.created_at,
                    record.source_file_name,
                    record.source_size_bytes,
                    record.original_text,
                    record.processed_text,
                    int(record.chunked),
                    record.segment_count,
                    record.failed_segments,
                    record.elapsed_seconds,
                    json.dumps(record.options),
                    record.updated_at,
                ),
            )
            conn.commit()
        return record

    def update_processed_text(self, record_id: str, text: str) -> bool:
        with self._connect() as conn:
            cursor = conn.execute(
                "UPDATE transcriptions SET processed_text = ?, updated_at = ? WHERE id = ?",
                (text, time.time(), record_id),
            )
            conn.commit()
        return cursor.rowcount > 0

    def delete(self, record_id: str) -> bool:
        with self._connect() as conn:
            cursor = conn.execute("DELETE FROM transcriptions WHERE id = ?", (record_id,))
            conn.commit()
        return cursor.rowcount > 0

    def fetch(self, record_id: str) -> Optional[TranscriptionRecord]:
        with self._connect() as conn:
            row = conn.execute(
                f"SELECT {_COLUMNS} FROM transcriptions WHERE id = ?",
                (record_id,),
            ).fetchone()
        if not row:
            return None
        return _row_to_record(row)

    def list_records(self, limit: Optional[int] = None) -> List[TranscriptionRecord]:
        query = f"SELECT {_COLUMNS} FROM transcriptions ORDER BY created_at DESC"
        params: tuple = ()
        if limit is not None:
            query += " LIMIT ?"
            params = (limit,)
        with self._connect() as conn:
            rows = conn.execute(query, params).fetchall()
        return [_row_to_record(row) for row in rows]


def _row_to_record(row: tuple) -> TranscriptionRecord:
    return TranscriptionRecord(
        id=row[0],
        created_at=row[1],
        source_file_name=row[2],
        source_size_bytes=row[3],
        original_text=row[4],
        processed_text=row[5],
        chunked=bool(row[6]),
        segment_count=row[7],
        failed_segments=row[8],
        elapsed_seconds=row[9],
        options=json.loads(row[10]) if row[10] else {},
        updated_at=row[11],
    )


__all__ = ["TranscriptionStore"]
