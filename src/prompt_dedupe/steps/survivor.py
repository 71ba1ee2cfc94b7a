from __future__ import annotations

from collections.abc import Mapping, Sequence

from loguru import logger

from prompt_dedupe.interfaces import RecordComparator
from prompt_dedupe.models import (
    Cluster,
    ClusterDecision,
    DeduplicationPlan,
    DeletionCandidate,
    PromptRecord,
)


def rank_members(records: Sequence[PromptRecord]) -> list[PromptRecord]:
    """Newest first: updated_at desc, then created_at desc, then id asc."""
    by_id = sorted(records, key=lambda record: record.record_id)
    # reverse=True keeps the sort stable, so equal timestamps stay in id order
    return sorted(by_id, key=lambda record: (record.updated_at, record.created_at), reverse=True)


def select_keeper(records: Sequence[PromptRecord]) -> PromptRecord:
    if not records:
        raise ValueError("cannot pick a keeper from an empty cluster")
    return rank_members(records)[0]


class SurvivorSelector:
    """Turns clusters into keep/delete decisions."""

    def __init__(self, similarity: RecordComparator) -> None:
        self._similarity = similarity

    def build_plan(
        self,
        clusters: Sequence[Cluster],
        records_by_id: Mapping[str, PromptRecord],
        threshold: float,
        score_lookup: Mapping[frozenset[str], float] | None = None,
    ) -> DeduplicationPlan:
        score_lookup = score_lookup or {}
        decisions: list[ClusterDecision] = []

        for cluster in clusters:
            if len(cluster.record_ids) < 2:
                continue

            ranked = rank_members([records_by_id[record_id] for record_id in cluster.record_ids])
            keeper, others = ranked[0], ranked[1:]
            deletions = tuple(
                DeletionCandidate(
                    record_id=member.record_id,
                    similarity_to_keeper=self._similarity_to_keeper(keeper, member, score_lookup),
                )
                for member in others
            )
            decisions.append(
                ClusterDecision(
                    cluster_id=cluster.cluster_id,
                    keeper_id=keeper.record_id,
                    member_ids=tuple(record.record_id for record in ranked),
                    deletions=deletions,
                    confidence=cluster.confidence,
                )
            )

        return DeduplicationPlan(threshold=threshold, decisions=tuple(decisions))

    def _similarity_to_keeper(
        self,
        keeper: PromptRecord,
        member: PromptRecord,
        score_lookup: Mapping[frozenset[str], float],
    ) -> float:
        cached = score_lookup.get(frozenset((keeper.record_id, member.record_id)))
        if cached is not None:
            return cached
        try:
            return float(self._similarity.score(keeper, member))
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "Could not score {} against keeper {} ({}: {}); recording 0.0",
                member.record_id,
                keeper.record_id,
                type(exc).__name__,
                exc,
            )
            return 0.0
