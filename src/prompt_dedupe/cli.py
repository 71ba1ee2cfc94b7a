from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Sequence

from prompt_dedupe.audit import AuditReport
from prompt_dedupe.config import DedupeConfig, resolve_config
from prompt_dedupe.datasets import ReferenceDatasetGenerator
from prompt_dedupe.errors import DedupeError, PartialCompletionError
from prompt_dedupe.interfaces import DedupePipeline, RecordStore
from prompt_dedupe.logging import setup_logging
from prompt_dedupe.runners import LocalDedupePipeline, RunResult
from prompt_dedupe.steps import RecordSimilarity
from prompt_dedupe.stores import JsonFileRecordStore, open_store


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    try:
        config = resolve_config(
            DedupeConfig.from_env(),
            threshold=getattr(args, "threshold", None),
            mode="execute" if getattr(args, "execute", False) else None,
            report_dir=getattr(args, "report_dir", None),
            database_url=getattr(args, "database_url", None),
            table=getattr(args, "table", None),
            input_json=getattr(args, "input_json", None),
            workers=getattr(args, "workers", None),
            log_level=args.log_level,
        )
        setup_logging(config.log_level, log_file=args.log_file)

        if args.command == "run":
            return run(config, show_clusters=args.show_clusters)
        if args.command == "replay-apply":
            return replay_apply(config, report_path=args.report, dry_run=args.dry_run)
        if args.command == "run-test":
            return run_test(
                config,
                size=args.size,
                duplicate_rate=args.duplicate_rate,
                seed=args.seed,
                output_dir=args.output_dir,
                show_clusters=args.show_clusters,
            )
    except PartialCompletionError as exc:
        print(f"✗ {exc}", file=sys.stderr)
        print(f"  Recover with: prompt-dedupe replay-apply {exc.report_path}", file=sys.stderr)
        return 1
    except DedupeError as exc:
        print(f"✗ {type(exc).__name__}: {exc}", file=sys.stderr)
        return 1

    parser.print_help()
    return 0


def run(config: DedupeConfig, show_clusters: int = 10) -> int:
    pipeline = _pipeline(config, open_store(config))
    result = pipeline.run(mode=config.mode)
    _print_run(result, show_clusters)
    return 0


def replay_apply(config: DedupeConfig, report_path: Path, dry_run: bool) -> int:
    pipeline = _pipeline(config, open_store(config))
    result = pipeline.replay_apply(report_path, dry_run=dry_run)

    print(f"Report: {result.report_path}")
    print(f"mode={'dry_run' if dry_run else 'execute'}")
    print(f"ids_in_report={len(result.deleted_ids)}")
    for record_id in result.deleted_ids[:20]:
        print(f"  - {record_id}")
    if dry_run:
        print(f"Preview only. To delete: prompt-dedupe replay-apply {report_path}")
    else:
        print(f"deleted={result.deleted_count}")
    return 0


def run_test(
    config: DedupeConfig,
    *,
    size: int,
    duplicate_rate: float,
    seed: int,
    output_dir: Path,
    show_clusters: int,
) -> int:
    output_dir.mkdir(parents=True, exist_ok=True)
    records = ReferenceDatasetGenerator(seed=seed).generate(size=size, duplicate_rate=duplicate_rate)

    dataset_path = output_dir / "test_dataset.json"
    store = JsonFileRecordStore(dataset_path)
    store.write_records(records)
    print(f"Dataset: {dataset_path}")

    test_config = resolve_config(config, mode="dry_run", report_dir=output_dir)
    result = _pipeline(test_config, store).run(mode="dry_run")
    _print_run(result, show_clusters)
    return 0


def _pipeline(config: DedupeConfig, store: RecordStore) -> DedupePipeline:
    return LocalDedupePipeline(
        store=store,
        similarity=RecordSimilarity(length_cutoff=config.length_cutoff),
        threshold=config.threshold,
        report_dir=config.report_dir,
        workers=config.workers,
    )


def _print_run(result: RunResult, show_clusters: int) -> None:
    report = result.report
    print(f"Report: {result.report_path}")
    print("---")
    summary = _build_summary(report)
    for key, value in summary.items():
        print(f"{key}={value}")
    if result.mode == "dry_run":
        print("Dry run: nothing was deleted. Re-run with --execute, or replay-apply the report.")
    else:
        print(f"deleted={result.deleted_count}")
    if show_clusters > 0 and report.clusters:
        print("---")
        print("sample_clusters=")
        print(json.dumps(_cluster_sample_payload(report, limit=show_clusters), indent=2, ensure_ascii=False))


def _build_summary(report: AuditReport) -> dict[str, object]:
    sizes = [len(cluster.members) for cluster in report.clusters]
    return {
        "mode": report.mode,
        "threshold": report.threshold,
        "clusters": report.cluster_count,
        "kept": report.total_kept,
        "to_delete": report.total_deleted,
        "comparison_failures": len(report.comparison_failures),
        "avg_cluster_size": round(sum(sizes) / len(sizes), 3) if sizes else 0.0,
        "max_cluster_size": max(sizes) if sizes else 0,
    }


def _cluster_sample_payload(report: AuditReport, limit: int = 10) -> list[dict[str, Any]]:
    ranked = sorted(report.clusters, key=lambda cluster: (-len(cluster.members), cluster.keeper_id))
    payload: list[dict[str, Any]] = []
    for cluster in ranked[:limit]:
        payload.append(
            {
                "cluster_id": cluster.cluster_id,
                "keeper_id": cluster.keeper_id,
                "keeper_title": _truncate(cluster.keeper_snapshot.title if cluster.keeper_snapshot else "", 50),
                "deleted": [
                    {
                        "id": member.id,
                        "similarity": f"{(member.similarity_to_keeper or 0.0) * 100:.1f}%",
                        "title": _truncate(member.title_snapshot, 30),
                    }
                    for member in cluster.members
                    if member.deleted
                ],
            }
        )
    return payload


def _truncate(text: str, limit: int) -> str:
    return text if len(text) <= limit else text[:limit] + "..."


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="prompt-dedupe", description="Near-duplicate prompt reconciliation")
    parser.add_argument("--log-level", type=str, default=None)
    parser.add_argument("--log-file", type=Path, default=None)
    subparsers = parser.add_subparsers(dest="command")

    run_parser = subparsers.add_parser("run", help="Find near-duplicates, write an audit report, optionally delete")
    run_parser.add_argument("--threshold", type=float, default=None)
    run_parser.add_argument(
        "--execute",
        action="store_true",
        help="Delete the planned ids after the report is written (default is a dry run)",
    )
    run_parser.add_argument("--show-clusters", type=int, default=10)
    run_parser.add_argument("--workers", type=int, default=None)
    run_parser.add_argument("--report-dir", type=Path, default=None)
    _add_store_arguments(run_parser)

    replay_parser = subparsers.add_parser(
        "replay-apply",
        help="Delete exactly the ids an existing audit report marks as deleted",
    )
    replay_parser.add_argument("report", type=Path)
    replay_parser.add_argument("--dry-run", action="store_true", help="List the ids without deleting")
    _add_store_arguments(replay_parser)

    test_parser = subparsers.add_parser(
        "run-test",
        help="Generate a synthetic dataset and dry-run the dedupe over it",
    )
    test_parser.add_argument("--size", type=int, default=500)
    test_parser.add_argument("--duplicate-rate", type=float, default=0.15)
    test_parser.add_argument("--seed", type=int, default=42)
    test_parser.add_argument("--threshold", type=float, default=None)
    test_parser.add_argument("--output-dir", type=Path, default=Path("data/cli_output"))
    test_parser.add_argument("--show-clusters", type=int, default=10)

    return parser


def _add_store_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--database-url", type=str, default=None)
    parser.add_argument("--table", type=str, default=None)
    parser.add_argument("--input-json", type=Path, default=None, help="Use a JSON export instead of the database")


if __name__ == "__main__":
    raise SystemExit(main())
