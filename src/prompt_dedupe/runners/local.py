from __future__ import annotations

from collections import Counter
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import StrEnum
from pathlib import Path

from loguru import logger

from prompt_dedupe.audit import AuditReport, build_report, load_report, replay_deleted_ids, write_report
from prompt_dedupe.errors import (
    DedupeError,
    InputError,
    PartialCompletionError,
    StoreReadFailure,
    StoreWriteFailure,
)
from prompt_dedupe.interfaces import RecordComparator, RecordStore
from prompt_dedupe.models import Cluster, DeduplicationPlan, PromptRecord
from prompt_dedupe.steps.clustering import cluster_records
from prompt_dedupe.steps.comparator import ComparisonResult, PairwiseComparator, validate_threshold
from prompt_dedupe.steps.similarity import RecordSimilarity
from prompt_dedupe.steps.survivor import SurvivorSelector


class RunStage(StrEnum):
    START = "start"
    FETCH = "fetch"
    COMPARE = "compare"
    CLUSTER = "cluster"
    PLAN = "plan"
    LOG = "log"
    REPORTED = "reported"
    DELETE = "delete"
    DONE = "done"


@dataclass(slots=True)
class PlanOutcome:
    plan: DeduplicationPlan
    clusters: list[Cluster]
    comparison: ComparisonResult


@dataclass(slots=True)
class RunResult:
    mode: str
    stage: RunStage
    report_path: Path | None
    plan: DeduplicationPlan | None = None
    report: AuditReport | None = None
    deleted_ids: list[str] = field(default_factory=list)
    deleted_count: int = 0


class LocalDedupePipeline:
    """Single-process runner: fetch, compare, cluster, plan, log, then maybe delete.

    Nothing touches the store until the audit report has been written, so an
    interrupted run leaves the store as it was.
    """

    def __init__(
        self,
        store: RecordStore,
        similarity: RecordComparator | None = None,
        threshold: float = 0.8,
        report_dir: Path | str = Path("logs"),
        workers: int = 1,
        progress_step: int = 10,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._store = store
        self._similarity = similarity or RecordSimilarity()
        self._threshold = validate_threshold(threshold)
        self._report_dir = Path(report_dir)
        self._workers = workers
        self._progress_step = progress_step
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def plan(self, records: Sequence[PromptRecord]) -> PlanOutcome:
        records = list(records)
        _check_unique_ids(records)

        comparator = PairwiseComparator(
            similarity=self._similarity,
            threshold=self._threshold,
            workers=self._workers,
            progress_step=self._progress_step,
        )
        _enter(RunStage.COMPARE)
        comparison = comparator.compare(records)

        _enter(RunStage.CLUSTER)
        clusters = cluster_records([record.record_id for record in records], comparison.edges)

        _enter(RunStage.PLAN)
        plan = SurvivorSelector(self._similarity).build_plan(
            clusters,
            {record.record_id: record for record in records},
            threshold=self._threshold,
            score_lookup=comparison.score_lookup(),
        )
        logger.info(
            "Plan: {} clusters to reconcile, {} kept, {} to delete",
            len(plan.decisions),
            plan.total_kept,
            plan.total_deleted,
        )
        return PlanOutcome(plan=plan, clusters=clusters, comparison=comparison)

    def run(self, mode: str = "dry_run") -> RunResult:
        if mode not in {"dry_run", "execute"}:
            raise InputError(f"unknown run mode {mode!r}")

        _enter(RunStage.START, mode=mode)
        _enter(RunStage.FETCH)
        records = self._fetch()
        if len(records) < 2:
            logger.info("{} record(s) in scope; nothing to deduplicate", len(records))

        outcome = self.plan(records)

        _enter(RunStage.LOG)
        records_by_id = {record.record_id: record for record in records}
        report = build_report(
            outcome.plan,
            records_by_id,
            mode=mode,
            timestamp=self._clock(),
            failures=outcome.comparison.failures,
        )
        report_path = write_report(report, self._report_dir)
        deleted_ids = outcome.plan.deleted_ids

        if mode == "dry_run":
            _enter(RunStage.REPORTED)
            logger.info("Dry run: {} records would be deleted; store untouched", len(deleted_ids))
            return RunResult(
                mode=mode,
                stage=RunStage.REPORTED,
                report_path=report_path,
                plan=outcome.plan,
                report=report,
                deleted_ids=deleted_ids,
            )

        deleted_count = self._delete(deleted_ids, report_path)
        return RunResult(
            mode=mode,
            stage=RunStage.DONE,
            report_path=report_path,
            plan=outcome.plan,
            report=report,
            deleted_ids=deleted_ids,
            deleted_count=deleted_count,
        )

    def replay_apply(self, report_path: Path | str, dry_run: bool = False) -> RunResult:
        """Delete exactly what a saved report marks as deleted. No similarity is computed."""
        report_path = Path(report_path)
        mode = "dry_run" if dry_run else "execute"
        _enter(RunStage.START, mode=f"replay:{mode}")

        report = load_report(report_path)
        deleted_ids = replay_deleted_ids(report)
        logger.info("Report {} lists {} records to delete", report_path, len(deleted_ids))

        if dry_run:
            _enter(RunStage.REPORTED)
            return RunResult(
                mode=mode,
                stage=RunStage.REPORTED,
                report_path=report_path,
                report=report,
                deleted_ids=deleted_ids,
            )

        deleted_count = self._delete(deleted_ids, report_path, partial_on_failure=False)
        return RunResult(
            mode=mode,
            stage=RunStage.DONE,
            report_path=report_path,
            report=report,
            deleted_ids=deleted_ids,
            deleted_count=deleted_count,
        )

    def _fetch(self) -> list[PromptRecord]:
        try:
            records = self._store.fetch_all()
        except DedupeError:
            raise
        except Exception as exc:  # noqa: BLE001
            raise StoreReadFailure(f"fetching records failed: {type(exc).__name__}: {exc}") from exc
        logger.info("Fetched {} records", len(records))
        return list(records)

    def _delete(self, deleted_ids: list[str], report_path: Path, partial_on_failure: bool = True) -> int:
        _enter(RunStage.DELETE)
        if not deleted_ids:
            logger.info("Nothing to delete")
            _enter(RunStage.DONE)
            return 0

        try:
            deleted_count = self._store.delete_ids(deleted_ids)
        except Exception as exc:  # noqa: BLE001
            reason = f"{type(exc).__name__}: {exc}"
            logger.error("Batch delete failed after report {} was written: {}", report_path, reason)
            if partial_on_failure:
                raise PartialCompletionError(report_path, deleted_ids, reason) from exc
            if isinstance(exc, StoreWriteFailure):
                raise
            raise StoreWriteFailure(f"batch delete of {len(deleted_ids)} ids failed: {reason}") from exc

        logger.info("Deleted {} of {} records", deleted_count, len(deleted_ids))
        _enter(RunStage.DONE)
        return deleted_count


def _check_unique_ids(records: Sequence[PromptRecord]) -> None:
    counts = Counter(record.record_id for record in records)
    duplicates = sorted(record_id for record_id, count in counts.items() if count > 1)
    if duplicates:
        raise InputError(f"record ids must be unique; repeated: {', '.join(duplicates[:10])}")


def _enter(stage: RunStage, **context: object) -> None:
    logger.debug("stage={} {}", stage.value, " ".join(f"{k}={v}" for k, v in context.items()))
