from pathlib import Path

import pytest

from prompt_dedupe.config import (
    DedupeConfig,
    database_url_from_env,
    normalize_mode,
    postgres_url,
    resolve_config,
    sqlite_url,
)
from prompt_dedupe.errors import InputError

_ENV_VARS = [
    "DEDUPE_THRESHOLD",
    "DEDUPE_MODE",
    "DEDUPE_REPORT_DIR",
    "DEDUPE_WORKERS",
    "DEDUPE_LENGTH_CUTOFF",
    "DEDUPE_TABLE",
    "DEDUPE_INPUT_JSON",
    "DEDUPE_LOG_LEVEL",
    "DATABASE_URL",
    "NEON_DATABASE_URL",
    "SUPABASE_URL",
    "DB_FILE_NAME",
]


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch, tmp_path):
    # setenv first so teardown also removes anything load_dotenv wrote
    for name in _ENV_VARS:
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    monkeypatch.chdir(tmp_path)


def _from_env() -> DedupeConfig:
    return DedupeConfig.from_env(dotenv_path=Path("missing.env"))


def test_defaults_are_a_safe_dry_run() -> None:
    config = _from_env()

    assert config.threshold == 0.8
    assert config.mode == "dry_run"
    assert config.is_dry_run
    assert config.report_dir == Path("logs")
    assert config.database_url == "sqlite:///sqlite.db"
    assert config.input_json is None


def test_env_overrides(monkeypatch) -> None:
    monkeypatch.setenv("DEDUPE_THRESHOLD", "0.9")
    monkeypatch.setenv("DEDUPE_MODE", "execute")
    monkeypatch.setenv("DEDUPE_WORKERS", "4")
    monkeypatch.setenv("DEDUPE_INPUT_JSON", "export.json")

    config = _from_env()

    assert config.threshold == 0.9
    assert config.mode == "execute"
    assert not config.is_dry_run
    assert config.workers == 4
    assert config.input_json == Path("export.json")


def test_dotenv_file_is_loaded(monkeypatch, tmp_path) -> None:
    env_file = tmp_path / "custom.env"
    env_file.write_text("DEDUPE_THRESHOLD=0.95\nDEDUPE_TABLE=prompts\n", encoding="utf-8")

    config = DedupeConfig.from_env(dotenv_path=env_file)

    assert config.threshold == 0.95
    assert config.table == "prompts"


@pytest.mark.parametrize("raw", ["abc", "0", "1.5"])
def test_bad_threshold_in_env_is_rejected(monkeypatch, raw) -> None:
    monkeypatch.setenv("DEDUPE_THRESHOLD", raw)
    with pytest.raises(InputError):
        _from_env()


def test_unknown_mode_falls_back_to_dry_run() -> None:
    assert normalize_mode("EXECUTE") == "execute"
    assert normalize_mode("dry-run") == "dry_run"
    assert normalize_mode("yolo") == "dry_run"
    assert normalize_mode(None) == "dry_run"


def test_database_url_precedence(monkeypatch) -> None:
    monkeypatch.setenv("DB_FILE_NAME", "file:local.db")
    assert database_url_from_env() == "sqlite:///local.db"

    monkeypatch.setenv("SUPABASE_URL", "postgresql://supabase/db")
    assert database_url_from_env() == "postgresql://supabase/db"

    monkeypatch.setenv("DATABASE_URL", "postgresql://primary/db")
    assert database_url_from_env() == "postgresql://primary/db"


def test_postgres_scheme_is_mapped_to_a_dialect(monkeypatch) -> None:
    monkeypatch.setenv("NEON_DATABASE_URL", "postgres://u:p@neon.example/db")
    assert database_url_from_env() == "postgresql+psycopg2://u:p@neon.example/db"

    assert postgres_url("postgresql://primary/db") == "postgresql://primary/db"
    assert resolve_config(DedupeConfig(), database_url="postgres://x/db").database_url == "postgresql+psycopg2://x/db"


def test_sqlite_url_forms() -> None:
    assert sqlite_url("sqlite.db") == "sqlite:///sqlite.db"
    assert sqlite_url("file:data/app.db") == "sqlite:///data/app.db"
    assert sqlite_url("sqlite:///x.db") == "sqlite:///x.db"


def test_resolve_config_ignores_unset_overrides() -> None:
    base = DedupeConfig(threshold=0.85)

    config = resolve_config(base, threshold=None, mode="execute", report_dir="out")

    assert config.threshold == 0.85
    assert config.mode == "execute"
    assert config.report_dir == Path("out")


def test_resolve_config_validates_overrides() -> None:
    with pytest.raises(InputError):
        resolve_config(DedupeConfig(), threshold=2.0)
    with pytest.raises(InputError):
        resolve_config(DedupeConfig(), colour="blue")
