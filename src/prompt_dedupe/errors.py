from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path


class DedupeError(Exception):
    """Base class for every error raised by the reconciliation engine."""


class InputError(DedupeError):
    """Invalid run input, rejected before any comparison work starts."""


class ComparisonFailure(DedupeError):
    """A single pair could not be scored."""

    def __init__(self, left_id: str, right_id: str, reason: str) -> None:
        super().__init__(f"comparison failed for {left_id!r} / {right_id!r}: {reason}")
        self.left_id = left_id
        self.right_id = right_id
        self.reason = reason


class StoreReadFailure(DedupeError):
    """Fetching records from the store failed."""


class RecordSchemaError(StoreReadFailure):
    """A store row does not carry the fields the engine needs."""


class StoreWriteFailure(DedupeError):
    """The batched delete against the store failed."""


class PartialCompletionError(StoreWriteFailure):
    """The audit report was written but the delete it describes did not happen."""

    def __init__(self, report_path: Path, deleted_ids: Sequence[str], reason: str) -> None:
        super().__init__(
            f"report {report_path} was written but deleting {len(deleted_ids)} records failed: {reason}"
        )
        self.report_path = report_path
        self.deleted_ids = list(deleted_ids)


class ReportParseError(DedupeError):
    """An audit report is missing, malformed or of an unsupported version."""
