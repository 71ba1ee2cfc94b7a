from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import StrEnum
from typing import Mapping, Sequence

from prompt_dedupe.errors import RecordSchemaError
from prompt_dedupe.models import PromptRecord


class FieldTag(StrEnum):
    ID = "ID"
    TITLE = "TITLE"
    BODY = "BODY"
    UPDATED_AT = "UPDATED_AT"
    CREATED_AT = "CREATED_AT"


_REQUIRED_TAGS = (FieldTag.ID, FieldTag.TITLE, FieldTag.BODY, FieldTag.UPDATED_AT, FieldTag.CREATED_AT)


@dataclass(frozen=True)
class RecordSchema:
    """Maps store columns to the fields of a prompt record.

    Text tags may span several columns (joined with a space); id and
    timestamp tags read the first listed column.
    """

    tag_to_columns: Mapping[FieldTag, tuple[str, ...]]

    @classmethod
    def from_mapping(cls, mapping: Mapping[FieldTag, Sequence[str]]) -> "RecordSchema":
        frozen = {tag: tuple(columns) for tag, columns in mapping.items()}
        missing = [tag.value for tag in _REQUIRED_TAGS if not frozen.get(tag)]
        if missing:
            raise RecordSchemaError(f"schema has no columns for: {', '.join(missing)}")
        return cls(tag_to_columns=frozen)

    def columns_for(self, tag: FieldTag) -> tuple[str, ...]:
        return self.tag_to_columns.get(tag, ())

    def all_columns(self) -> list[str]:
        return [column for tag in _REQUIRED_TAGS for column in self.columns_for(tag)]

    def id_column(self) -> str:
        return self.columns_for(FieldTag.ID)[0]

    def values_for(self, attributes: Mapping[str, object], tag: FieldTag) -> list[str]:
        values: list[str] = []
        for column in self.columns_for(tag):
            value = attributes.get(column)
            if value is None:
                continue
            text = str(value).strip()
            if text:
                values.append(text)
        return values

    def joined_value(self, attributes: Mapping[str, object], tag: FieldTag, sep: str = " ") -> str:
        return sep.join(self.values_for(attributes, tag)).strip()

    def to_record(self, row: Mapping[str, object]) -> PromptRecord:
        missing = [column for column in self.all_columns() if column not in row]
        if missing:
            raise RecordSchemaError(f"row is missing columns: {', '.join(missing)}")

        raw_id = row[self.id_column()]
        if raw_id is None or not str(raw_id).strip():
            raise RecordSchemaError("row has an empty id")
        record_id = str(raw_id)

        return PromptRecord(
            record_id=record_id,
            title=self.joined_value(row, FieldTag.TITLE),
            body=self.joined_value(row, FieldTag.BODY),
            updated_at=_timestamp(row, self.columns_for(FieldTag.UPDATED_AT)[0], record_id),
            created_at=_timestamp(row, self.columns_for(FieldTag.CREATED_AT)[0], record_id),
        )

    def to_row(self, record: PromptRecord) -> dict[str, object]:
        """Inverse of `to_record` for JSON exports (timestamps as ISO strings)."""
        return {
            self.id_column(): record.record_id,
            self.columns_for(FieldTag.TITLE)[0]: record.title,
            self.columns_for(FieldTag.BODY)[0]: record.body,
            self.columns_for(FieldTag.UPDATED_AT)[0]: record.updated_at.isoformat(),
            self.columns_for(FieldTag.CREATED_AT)[0]: record.created_at.isoformat(),
        }


def coerce_timestamp(value: object) -> datetime:
    """Accepts datetimes, epoch milliseconds and ISO-8601 strings; returns aware UTC."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, bool):
        raise ValueError("boolean is not a timestamp")
    elif isinstance(value, (int, float)):
        parsed = datetime.fromtimestamp(value / 1000.0, tz=timezone.utc)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            raise ValueError("empty timestamp")
        if text.isdigit():
            parsed = datetime.fromtimestamp(int(text) / 1000.0, tz=timezone.utc)
        else:
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    else:
        raise ValueError(f"unsupported timestamp type {type(value).__name__}")

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _timestamp(row: Mapping[str, object], column: str, record_id: str) -> datetime:
    try:
        return coerce_timestamp(row[column])
    except ValueError as exc:
        raise RecordSchemaError(f"record {record_id!r}: bad {column} value ({exc})") from exc
