from __future__ import annotations

from collections.abc import Iterable, Sequence

from prompt_dedupe.models import PromptRecord


class InMemoryRecordStore:
    """List-backed store; keeps every delete batch it receives in `delete_calls`."""

    def __init__(self, records: Iterable[PromptRecord] = ()) -> None:
        self._records: dict[str, PromptRecord] = {record.record_id: record for record in records}
        self.delete_calls: list[list[str]] = []

    def fetch_all(self) -> list[PromptRecord]:
        return list(self._records.values())

    def delete_ids(self, record_ids: Sequence[str]) -> int:
        batch = list(record_ids)
        self.delete_calls.append(batch)
        removed = 0
        for record_id in set(batch):
            if self._records.pop(record_id, None) is not None:
                removed += 1
        return removed

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, record_id: object) -> bool:
        return record_id in self._records
