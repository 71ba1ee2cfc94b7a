import json

import pytest
from loguru import logger

from conftest import make_record
from prompt_dedupe.cli import main
from prompt_dedupe.stores import JsonFileRecordStore


@pytest.fixture(autouse=True)
def _drop_cli_log_sinks():
    # setup_logging binds a sink to the captured stderr of the running test
    yield
    logger.remove()


def _export(tmp_path):
    path = tmp_path / "export.json"
    JsonFileRecordStore(path).write_records(
        [
            make_record("a", "Write a poem", "Compose a short poem about the sea.", updated=1),
            make_record("b", "Write a poem!", "Compose a short poem about the sea.", updated=5),
            make_record("c", "Plan a sprint", "List the goals for the next two weeks.", updated=3),
        ]
    )
    return path


def test_run_defaults_to_dry_run(tmp_path, capsys) -> None:
    export = _export(tmp_path)
    reports = tmp_path / "reports"

    code = main(["run", "--input-json", str(export), "--report-dir", str(reports), "--show-clusters", "1"])

    assert code == 0
    assert len(json.loads(export.read_text(encoding="utf-8"))) == 3
    [report] = list(reports.glob("dedupe-report-*.json"))
    assert json.loads(report.read_text(encoding="utf-8"))["mode"] == "dry_run"
    out = capsys.readouterr().out
    assert "to_delete=1" in out
    assert "Dry run" in out


def test_run_execute_then_replay_is_idempotent(tmp_path) -> None:
    export = _export(tmp_path)
    reports = tmp_path / "reports"

    assert main(["run", "--execute", "--input-json", str(export), "--report-dir", str(reports)]) == 0
    ids = [row["id"] for row in json.loads(export.read_text(encoding="utf-8"))]
    assert sorted(ids) == ["b", "c"]

    [report] = list(reports.glob("dedupe-report-*.json"))
    assert main(["replay-apply", str(report), "--input-json", str(export)]) == 0
    assert sorted(row["id"] for row in json.loads(export.read_text(encoding="utf-8"))) == ["b", "c"]


def test_replay_apply_dry_run_keeps_records(tmp_path, capsys) -> None:
    export = _export(tmp_path)
    reports = tmp_path / "reports"
    main(["run", "--input-json", str(export), "--report-dir", str(reports)])
    [report] = list(reports.glob("dedupe-report-*.json"))

    assert main(["replay-apply", str(report), "--dry-run", "--input-json", str(export)]) == 0

    assert len(json.loads(export.read_text(encoding="utf-8"))) == 3
    assert "ids_in_report=1" in capsys.readouterr().out


def test_missing_database_driver_exits_non_zero(tmp_path, monkeypatch, capsys) -> None:
    def _no_driver(url):
        raise ModuleNotFoundError("No module named 'psycopg2'")

    monkeypatch.setattr("prompt_dedupe.stores.sql.create_engine", _no_driver)

    code = main(["run", "--database-url", "postgres://u:p@localhost:1/db", "--report-dir", str(tmp_path)])

    assert code == 1
    assert "StoreReadFailure" in capsys.readouterr().err


def test_bad_threshold_exits_non_zero(tmp_path, capsys) -> None:
    export = _export(tmp_path)

    code = main(["run", "--threshold", "1.5", "--input-json", str(export), "--report-dir", str(tmp_path)])

    assert code == 1
    assert "InputError" in capsys.readouterr().err


def test_malformed_report_exits_non_zero(tmp_path, capsys) -> None:
    report = tmp_path / "report.json"
    report.write_text("not json", encoding="utf-8")

    code = main(["replay-apply", str(report), "--input-json", str(_export(tmp_path))])

    assert code == 1
    assert "ReportParseError" in capsys.readouterr().err


def test_run_test_generates_dataset_and_report(tmp_path) -> None:
    out = tmp_path / "out"

    code = main(["run-test", "--size", "24", "--duplicate-rate", "0.2", "--output-dir", str(out), "--show-clusters", "0"])

    assert code == 0
    assert len(json.loads((out / "test_dataset.json").read_text(encoding="utf-8"))) == 24
    assert list(out.glob("dedupe-report-*.json"))
