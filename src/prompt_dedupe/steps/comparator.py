from __future__ import annotations

import math
from collections.abc import Sequence
from concurrent.futures import ProcessPoolExecutor
from dataclasses import dataclass, field

from loguru import logger

from prompt_dedupe.errors import ComparisonFailure, InputError
from prompt_dedupe.interfaces import RecordComparator
from prompt_dedupe.models import PairFailure, PromptRecord, SimilarityEdge


def validate_threshold(threshold: object) -> float:
    if isinstance(threshold, bool) or not isinstance(threshold, (int, float)):
        raise InputError(f"threshold must be a number, got {threshold!r}")
    value = float(threshold)
    if math.isnan(value) or not 0.0 < value <= 1.0:
        raise InputError(f"threshold must be in (0, 1], got {threshold}")
    return value


@dataclass(slots=True)
class ComparisonResult:
    edges: list[SimilarityEdge] = field(default_factory=list)
    failures: list[PairFailure] = field(default_factory=list)
    pair_count: int = 0

    def score_lookup(self) -> dict[frozenset[str], float]:
        return {edge.key: edge.score for edge in self.edges}


class PairwiseComparator:
    """Scores every unordered record pair once and keeps the ones above threshold."""

    def __init__(
        self,
        similarity: RecordComparator,
        threshold: float = 0.8,
        workers: int = 1,
        progress_step: int = 10,
    ) -> None:
        self._similarity = similarity
        self._threshold = validate_threshold(threshold)
        self._workers = max(1, int(workers))
        self._progress_step = max(1, int(progress_step))

    @property
    def threshold(self) -> float:
        return self._threshold

    def compare(self, records: Sequence[PromptRecord]) -> ComparisonResult:
        records = list(records)
        total_pairs = len(records) * (len(records) - 1) // 2
        if total_pairs == 0:
            return ComparisonResult()

        logger.info(
            "Comparing {} records ({} pairs, threshold={}, workers={})",
            len(records),
            total_pairs,
            self._threshold,
            self._workers,
        )
        if self._workers > 1 and len(records) > self._workers:
            result = self._compare_sharded(records, total_pairs)
        else:
            result = self._compare_serial(records, total_pairs)

        logger.info(
            "Comparison finished: {} edges, {} failed pairs",
            len(result.edges),
            len(result.failures),
        )
        return result

    def _compare_serial(self, records: list[PromptRecord], total_pairs: int) -> ComparisonResult:
        result = ComparisonResult()
        progress = _Progress(total_pairs, self._progress_step)
        for i in range(len(records)):
            _compare_row(records, i, self._similarity, self._threshold, result)
            progress.advance(len(records) - i - 1)
        return result

    def _compare_sharded(self, records: list[PromptRecord], total_pairs: int) -> ComparisonResult:
        # Strided rows give every shard a similar mix of long and short rows.
        shards = [list(range(offset, len(records), self._workers)) for offset in range(self._workers)]
        result = ComparisonResult()
        progress = _Progress(total_pairs, self._progress_step)
        with ProcessPoolExecutor(max_workers=self._workers) as pool:
            futures = [
                pool.submit(_compare_rows, records, rows, self._similarity, self._threshold)
                for rows in shards
            ]
            for future in futures:
                shard_result = future.result()
                result.edges.extend(shard_result.edges)
                result.failures.extend(shard_result.failures)
                result.pair_count += shard_result.pair_count
                progress.advance(shard_result.pair_count)
        return result


def _compare_rows(
    records: list[PromptRecord],
    rows: Sequence[int],
    similarity: RecordComparator,
    threshold: float,
) -> ComparisonResult:
    result = ComparisonResult()
    for i in rows:
        _compare_row(records, i, similarity, threshold, result)
    return result


def _compare_row(
    records: list[PromptRecord],
    i: int,
    similarity: RecordComparator,
    threshold: float,
    result: ComparisonResult,
) -> None:
    left = records[i]
    for right in records[i + 1 :]:
        result.pair_count += 1
        try:
            score = _score_pair(similarity, left, right)
        except ComparisonFailure as failure:
            logger.warning("{}; treating pair as unrelated", failure)
            result.failures.append(PairFailure(failure.left_id, failure.right_id, failure.reason))
            continue
        if score >= threshold:
            result.edges.append(SimilarityEdge(left.record_id, right.record_id, score))


def _score_pair(similarity: RecordComparator, left: PromptRecord, right: PromptRecord) -> float:
    left_id = getattr(left, "record_id", "?")
    right_id = getattr(right, "record_id", "?")
    try:
        score = similarity.score(left, right)
    except Exception as exc:  # noqa: BLE001
        raise ComparisonFailure(left_id, right_id, f"{type(exc).__name__}: {exc}") from exc
    if isinstance(score, bool) or not isinstance(score, (int, float)) or math.isnan(score):
        raise ComparisonFailure(left_id, right_id, f"non-numeric score {score!r}")
    return float(score)


class _Progress:
    def __init__(self, total: int, step: int) -> None:
        self._total = total
        self._step = step
        self._done = 0
        self._last = 0

    def advance(self, count: int) -> None:
        self._done += count
        percent = int(self._done * 100 / self._total) if self._total else 100
        if percent >= self._last + self._step or (percent == 100 and self._last < 100):
            logger.info("Comparison progress: {}%", percent)
            self._last = percent
