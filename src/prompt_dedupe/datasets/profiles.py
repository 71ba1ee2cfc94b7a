from __future__ import annotations

from prompt_dedupe.schema import FieldTag, RecordSchema

# `prompt` table columns (SQLite and Postgres share the snake_case names).
PROMPT_SCHEMA = RecordSchema.from_mapping(
    {
        FieldTag.ID: ["id"],
        FieldTag.TITLE: ["title"],
        FieldTag.BODY: ["content"],
        FieldTag.UPDATED_AT: ["updated_at"],
        FieldTag.CREATED_AT: ["created_at"],
    }
)

# JSON exports of the same table use the camelCase property names.
EXPORT_SCHEMA = RecordSchema.from_mapping(
    {
        FieldTag.ID: ["id"],
        FieldTag.TITLE: ["title"],
        FieldTag.BODY: ["content"],
        FieldTag.UPDATED_AT: ["updatedAt"],
        FieldTag.CREATED_AT: ["createdAt"],
    }
)
