from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from prompt_dedupe.models import PromptRecord

BASE_TIME = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


def make_record(
    record_id: str,
    title: str = "",
    body: str = "",
    updated: int = 0,
    created: int = 0,
) -> PromptRecord:
    """Timestamps are minutes after BASE_TIME."""
    return PromptRecord(
        record_id=record_id,
        title=title,
        body=body,
        updated_at=BASE_TIME + timedelta(minutes=updated),
        created_at=BASE_TIME + timedelta(minutes=created),
    )


@pytest.fixture
def poem_records() -> list[PromptRecord]:
    return [
        make_record("a", "Write a poem", "Compose a short poem about the sea.", updated=1),
        make_record("b", "Write a poem!", "Compose a short poem about the sea.", updated=5),
    ]
