from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from pathlib import Path

from dotenv import load_dotenv

from prompt_dedupe.errors import InputError
from prompt_dedupe.steps.comparator import validate_threshold

RUN_MODES = {"dry_run", "execute"}
DEFAULT_DATABASE_URL = "sqlite:///sqlite.db"

# Checked in order; the first one set wins.
_DATABASE_URL_VARS = ("DATABASE_URL", "NEON_DATABASE_URL", "SUPABASE_URL")


@dataclass
class DedupeConfig:
    threshold: float = 0.8
    mode: str = "dry_run"
    report_dir: Path = Path("logs")
    database_url: str = DEFAULT_DATABASE_URL
    table: str = "prompt"
    input_json: Path | None = None
    workers: int = 1
    length_cutoff: int = 1000
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, dotenv_path: str | Path | None = None) -> "DedupeConfig":
        load_dotenv(dotenv_path)
        input_json = os.getenv("DEDUPE_INPUT_JSON", "").strip()
        return cls(
            threshold=validate_threshold(_env_number("DEDUPE_THRESHOLD", 0.8, float)),
            mode=normalize_mode(os.getenv("DEDUPE_MODE", "dry_run")),
            report_dir=Path(os.getenv("DEDUPE_REPORT_DIR", "logs")),
            database_url=database_url_from_env(),
            table=os.getenv("DEDUPE_TABLE", "prompt").strip() or "prompt",
            input_json=Path(input_json) if input_json else None,
            workers=max(1, _env_number("DEDUPE_WORKERS", 1, int)),
            length_cutoff=_env_number("DEDUPE_LENGTH_CUTOFF", 1000, int),
            log_level=os.getenv("DEDUPE_LOG_LEVEL", "INFO").strip().upper() or "INFO",
        )

    @property
    def is_dry_run(self) -> bool:
        return self.mode != "execute"


def normalize_mode(mode: str | None) -> str:
    candidate = (mode or "").strip().lower().replace("-", "_")
    return candidate if candidate in RUN_MODES else "dry_run"


def database_url_from_env() -> str:
    for name in _DATABASE_URL_VARS:
        value = os.getenv(name, "").strip()
        if value:
            return postgres_url(value)

    db_file = os.getenv("DB_FILE_NAME", "").strip()
    if db_file:
        return sqlite_url(db_file)
    return DEFAULT_DATABASE_URL


def postgres_url(url: str) -> str:
    """Maps the `postgres://` scheme hosted providers hand out onto the psycopg2 dialect."""
    if url.startswith("postgres://"):
        return "postgresql+psycopg2://" + url[len("postgres://") :]
    return url


def sqlite_url(db_file: str) -> str:
    """Accepts a plain path or a libsql-style `file:` URL."""
    if db_file.startswith("sqlite:"):
        return db_file
    if db_file.startswith("file:"):
        db_file = db_file[len("file:") :]
    return f"sqlite:///{db_file}"


def resolve_config(config: DedupeConfig | None = None, **overrides: object) -> DedupeConfig:
    """Apply non-None overrides (typically CLI flags) on top of an env config."""
    base = config or DedupeConfig.from_env()
    known = {f.name for f in fields(DedupeConfig)}
    unknown = set(overrides) - known
    if unknown:
        raise InputError(f"unknown config fields: {', '.join(sorted(unknown))}")

    changes = {key: value for key, value in overrides.items() if value is not None}
    if "threshold" in changes:
        changes["threshold"] = validate_threshold(changes["threshold"])
    if "mode" in changes:
        changes["mode"] = normalize_mode(str(changes["mode"]))
    if "report_dir" in changes:
        changes["report_dir"] = Path(changes["report_dir"])
    if "database_url" in changes:
        changes["database_url"] = postgres_url(str(changes["database_url"]))
    if "input_json" in changes:
        changes["input_json"] = Path(changes["input_json"])
    return replace(base, **changes)


def _env_number(name: str, default, cast):
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return cast(raw)
    except ValueError as exc:
        raise InputError(f"{name}={raw!r} is not a valid {cast.__name__}") from exc
