from __future__ import annotations

from collections.abc import Sequence

from loguru import logger
from sqlalchemy import MetaData, Table, create_engine, delete, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import NoSuchTableError, SQLAlchemyError

from prompt_dedupe.datasets.profiles import PROMPT_SCHEMA
from prompt_dedupe.errors import RecordSchemaError, StoreReadFailure, StoreWriteFailure
from prompt_dedupe.models import PromptRecord
from prompt_dedupe.schema import RecordSchema


class SqlRecordStore:
    """SQLAlchemy Core adapter over an existing prompt table.

    The table is reflected once; every column the schema names must exist.
    """

    def __init__(
        self,
        engine: Engine | str,
        table: str = "prompt",
        schema: RecordSchema = PROMPT_SCHEMA,
    ) -> None:
        self._schema = schema
        try:
            self._engine = create_engine(engine) if isinstance(engine, str) else engine
            self._table = Table(table, MetaData(), autoload_with=self._engine)
        except NoSuchTableError as exc:
            raise StoreReadFailure(f"table {table!r} does not exist") from exc
        except SQLAlchemyError as exc:
            raise StoreReadFailure(f"cannot inspect table {table!r}: {exc}") from exc
        except ImportError as exc:
            raise StoreReadFailure(f"database driver not installed ({exc}); try `pip install prompt-dedupe[postgres]`") from exc

        missing = [column for column in schema.all_columns() if column not in self._table.c]
        if missing:
            raise RecordSchemaError(f"table {table!r} has no columns: {', '.join(missing)}")

    @property
    def engine(self) -> Engine:
        return self._engine

    def fetch_all(self) -> list[PromptRecord]:
        columns = [self._table.c[name] for name in dict.fromkeys(self._schema.all_columns())]
        try:
            with self._engine.connect() as connection:
                rows = connection.execute(select(*columns)).mappings().all()
        except SQLAlchemyError as exc:
            raise StoreReadFailure(f"cannot read {self._table.name}: {exc}") from exc

        records = [self._schema.to_record(row) for row in rows]
        logger.info("Loaded {} records from table {}", len(records), self._table.name)
        return records

    def delete_ids(self, record_ids: Sequence[str]) -> int:
        ids = list(dict.fromkeys(record_ids))
        if not ids:
            return 0
        id_column = self._table.c[self._schema.id_column()]
        try:
            with self._engine.begin() as connection:
                result = connection.execute(delete(self._table).where(id_column.in_(ids)))
        except SQLAlchemyError as exc:
            raise StoreWriteFailure(f"batch delete of {len(ids)} ids failed: {exc}") from exc
        logger.info("Deleted {} rows from {}", result.rowcount, self._table.name)
        return result.rowcount
