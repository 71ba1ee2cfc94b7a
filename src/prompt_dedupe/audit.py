"""Audit reports: the durable record of what a run decided to delete.

A report is self-contained. `replay_deleted_ids` reads the deletion list back
out of it without touching the records or recomputing any similarity, so an
operator can review a dry-run report, hand-edit it, and apply exactly that.
"""

from __future__ import annotations

import json
import os
import tempfile
from collections.abc import Mapping, Sequence
from datetime import datetime, timezone
from pathlib import Path
from typing import Literal

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from prompt_dedupe.errors import ReportParseError
from prompt_dedupe.models import DeduplicationPlan, PairFailure, PromptRecord

REPORT_VERSION = 1
REPORT_PREFIX = "dedupe-report"

RunMode = Literal["dry_run", "execute"]


class RecordSnapshot(BaseModel):
    """Keeper fields as they were when the decision was made."""

    model_config = ConfigDict(extra="allow")

    title: str = ""
    body: str = ""
    updated_at: datetime | None = None
    created_at: datetime | None = None


class MemberEntry(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    title_snapshot: str = ""
    similarity_to_keeper: float | None = None
    deleted: bool


class ClusterEntry(BaseModel):
    model_config = ConfigDict(extra="allow")

    cluster_id: str | None = None
    # mean edge score inside the cluster; informational only, replay ignores it
    confidence: float | None = None
    keeper_id: str
    keeper_snapshot: RecordSnapshot | None = None
    deleted_ids: list[str] = Field(default_factory=list)
    members: list[MemberEntry]


class FailureEntry(BaseModel):
    left_id: str
    right_id: str
    error: str


class AuditReport(BaseModel):
    model_config = ConfigDict(extra="allow")

    version: int = REPORT_VERSION
    timestamp: datetime
    mode: RunMode
    threshold: float
    cluster_count: int
    total_kept: int
    total_deleted: int
    comparison_failures: list[FailureEntry] = Field(default_factory=list)
    clusters: list[ClusterEntry]

    @field_validator("version")
    @classmethod
    def _supported_version(cls, value: int) -> int:
        if value != REPORT_VERSION:
            raise ValueError(f"unsupported report version {value} (expected {REPORT_VERSION})")
        return value


def build_report(
    plan: DeduplicationPlan,
    records_by_id: Mapping[str, PromptRecord],
    mode: RunMode,
    timestamp: datetime | None = None,
    failures: Sequence[PairFailure] = (),
) -> AuditReport:
    clusters: list[ClusterEntry] = []
    for decision in plan.decisions:
        keeper = records_by_id[decision.keeper_id]
        deleted = set(decision.deleted_ids)
        members = [
            MemberEntry(
                id=record_id,
                title_snapshot=records_by_id[record_id].title,
                similarity_to_keeper=round(decision.similarity_for(record_id), 6),
                deleted=record_id in deleted,
            )
            for record_id in decision.member_ids
        ]
        clusters.append(
            ClusterEntry(
                cluster_id=decision.cluster_id,
                confidence=round(decision.confidence, 6),
                keeper_id=keeper.record_id,
                keeper_snapshot=RecordSnapshot(
                    title=keeper.title,
                    body=keeper.body,
                    updated_at=keeper.updated_at,
                    created_at=keeper.created_at,
                ),
                deleted_ids=decision.deleted_ids,
                members=members,
            )
        )

    return AuditReport(
        timestamp=timestamp or datetime.now(timezone.utc),
        mode=mode,
        threshold=plan.threshold,
        cluster_count=len(clusters),
        total_kept=plan.total_kept,
        total_deleted=plan.total_deleted,
        comparison_failures=[
            FailureEntry(left_id=failure.left_id, right_id=failure.right_id, error=failure.error)
            for failure in failures
        ],
        clusters=clusters,
    )


def report_filename(timestamp: datetime) -> str:
    stamp = timestamp.astimezone(timezone.utc).strftime("%Y%m%dT%H%M%S%fZ")
    return f"{REPORT_PREFIX}-{stamp}.json"


def write_report(report: AuditReport, report_dir: Path | str) -> Path:
    """Write the report and fsync it before returning its path."""
    report_dir = Path(report_dir)
    report_dir.mkdir(parents=True, exist_ok=True)
    path = _unused_path(report_dir, report_filename(report.timestamp))
    payload = report.model_dump_json(indent=2)

    fd, tmp_name = tempfile.mkstemp(dir=report_dir, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(payload)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise

    logger.info("Audit report written to {}", path)
    return path


def _unused_path(report_dir: Path, filename: str) -> Path:
    # same-timestamp runs get -1, -2, ... so no earlier report is replaced
    path = report_dir / filename
    stem, suffix = path.stem, path.suffix
    counter = 0
    while path.exists():
        counter += 1
        path = report_dir / f"{stem}-{counter}{suffix}"
    return path


def load_report(path: Path | str) -> AuditReport:
    path = Path(path)
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ReportParseError(f"cannot read report {path}: {exc}") from exc

    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ReportParseError(f"report {path} is not valid JSON: {exc}") from exc

    try:
        return AuditReport.model_validate(payload)
    except ValidationError as exc:
        raise ReportParseError(f"report {path} is malformed: {exc}") from exc


def replay_deleted_ids(report: AuditReport) -> list[str]:
    """Every member flagged `deleted`, in document order, exactly as written."""
    return [member.id for cluster in report.clusters for member in cluster.members if member.deleted]
