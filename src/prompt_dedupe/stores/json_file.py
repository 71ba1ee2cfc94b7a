from __future__ import annotations

import json
import os
import tempfile
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from loguru import logger

from prompt_dedupe.datasets.profiles import EXPORT_SCHEMA
from prompt_dedupe.errors import RecordSchemaError, StoreReadFailure, StoreWriteFailure
from prompt_dedupe.models import PromptRecord
from prompt_dedupe.schema import RecordSchema


class JsonFileRecordStore:
    """Store backed by a JSON array export of the prompt table."""

    def __init__(self, path: Path | str, schema: RecordSchema = EXPORT_SCHEMA) -> None:
        self._path = Path(path)
        self._schema = schema

    @property
    def path(self) -> Path:
        return self._path

    def fetch_all(self) -> list[PromptRecord]:
        rows = self._read_rows()
        records: list[PromptRecord] = []
        for position, row in enumerate(rows):
            if not isinstance(row, dict):
                raise RecordSchemaError(f"{self._path}: entry {position} is not an object")
            records.append(self._schema.to_record(row))
        logger.info("Loaded {} records from {}", len(records), self._path)
        return records

    def delete_ids(self, record_ids: Sequence[str]) -> int:
        targets = set(record_ids)
        id_column = self._schema.id_column()
        try:
            rows = self._read_rows()
        except StoreReadFailure as exc:
            raise StoreWriteFailure(str(exc)) from exc

        kept = [
            row for row in rows if not (isinstance(row, dict) and str(row.get(id_column)) in targets)
        ]
        removed = len(rows) - len(kept)
        try:
            _atomic_write_json(self._path, kept)
        except OSError as exc:
            raise StoreWriteFailure(f"cannot rewrite {self._path}: {exc}") from exc
        return removed

    def write_records(self, records: Sequence[PromptRecord]) -> None:
        _atomic_write_json(self._path, [self._schema.to_row(record) for record in records])

    def _read_rows(self) -> list[dict[str, Any]]:
        try:
            with self._path.open("r", encoding="utf-8") as handle:
                payload = json.load(handle)
        except (OSError, json.JSONDecodeError) as exc:
            raise StoreReadFailure(f"cannot read {self._path}: {exc}") from exc
        if not isinstance(payload, list):
            raise StoreReadFailure(f"{self._path} must contain a JSON array of records")
        return payload


def _atomic_write_json(path: Path, payload: object) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            json.dump(payload, handle, indent=2, ensure_ascii=False)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
