from __future__ import annotations

from prompt_dedupe.config import DedupeConfig
from prompt_dedupe.interfaces import RecordStore
from prompt_dedupe.stores.json_file import JsonFileRecordStore
from prompt_dedupe.stores.memory import InMemoryRecordStore
from prompt_dedupe.stores.sql import SqlRecordStore


def open_store(config: DedupeConfig) -> RecordStore:
    """JSON export when one is configured, otherwise the SQL table."""
    if config.input_json is not None:
        return JsonFileRecordStore(config.input_json)
    return SqlRecordStore(config.database_url, table=config.table)


__all__ = ["InMemoryRecordStore", "JsonFileRecordStore", "SqlRecordStore", "open_store"]
