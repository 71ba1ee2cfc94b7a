from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone

from prompt_dedupe.errors import InputError


@dataclass(frozen=True, slots=True)
class PromptRecord:
    """Read-only snapshot of a stored prompt."""

    record_id: str
    title: str
    body: str
    updated_at: datetime
    created_at: datetime

    def __post_init__(self) -> None:
        # naive timestamps are read as UTC
        for name in ("updated_at", "created_at"):
            value = getattr(self, name)
            if not isinstance(value, datetime):
                raise InputError(f"record {self.record_id!r}: {name} must be a datetime, got {type(value).__name__}")
            if value.tzinfo is None:
                object.__setattr__(self, name, value.replace(tzinfo=timezone.utc))
            else:
                object.__setattr__(self, name, value.astimezone(timezone.utc))


@dataclass(frozen=True, slots=True)
class SimilarityEdge:
    """Undirected pair whose composite score cleared the threshold."""

    left_id: str
    right_id: str
    score: float

    @property
    def key(self) -> frozenset[str]:
        return frozenset((self.left_id, self.right_id))


@dataclass(frozen=True, slots=True)
class PairFailure:
    left_id: str
    right_id: str
    error: str


@dataclass(slots=True)
class Cluster:
    """A maximal set of record ids connected through similarity edges."""

    cluster_id: str
    record_ids: list[str]
    confidence: float


@dataclass(frozen=True, slots=True)
class DeletionCandidate:
    record_id: str
    similarity_to_keeper: float


@dataclass(frozen=True, slots=True)
class ClusterDecision:
    """Survivor and deletions chosen for one multi-member cluster."""

    cluster_id: str
    keeper_id: str
    member_ids: tuple[str, ...]
    deletions: tuple[DeletionCandidate, ...]
    confidence: float = 1.0

    @property
    def deleted_ids(self) -> list[str]:
        return [candidate.record_id for candidate in self.deletions]

    def similarity_for(self, record_id: str) -> float:
        if record_id == self.keeper_id:
            return 1.0
        for candidate in self.deletions:
            if candidate.record_id == record_id:
                return candidate.similarity_to_keeper
        raise KeyError(record_id)


@dataclass(frozen=True, slots=True)
class DeduplicationPlan:
    threshold: float
    decisions: tuple[ClusterDecision, ...] = field(default_factory=tuple)

    @property
    def deleted_ids(self) -> list[str]:
        return [record_id for decision in self.decisions for record_id in decision.deleted_ids]

    @property
    def total_kept(self) -> int:
        return len(self.decisions)

    @property
    def total_deleted(self) -> int:
        return sum(len(decision.deletions) for decision in self.decisions)
