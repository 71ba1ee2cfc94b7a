from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, Sequence, runtime_checkable

from prompt_dedupe.models import PromptRecord

if TYPE_CHECKING:
    from pathlib import Path

    from prompt_dedupe.runners.local import RunResult


class RecordComparator(Protocol):
    """Scores how alike two records are, in [0, 1]."""

    def score(self, left: PromptRecord, right: PromptRecord) -> float:
        ...


class RecordStore(Protocol):
    """The keyed table the engine reads from and deletes from."""

    def fetch_all(self) -> list[PromptRecord]:
        ...

    def delete_ids(self, record_ids: Sequence[str]) -> int:
        """Delete every id in one batch; return the number of rows removed."""
        ...


@runtime_checkable
class DedupePipeline(Protocol):
    """Run-level entry points for a reconciliation pipeline."""

    def run(self, mode: str = "dry_run") -> "RunResult":
        ...

    def replay_apply(self, report_path: "Path", dry_run: bool = False) -> "RunResult":
        ...
