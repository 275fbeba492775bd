from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Sequence

from sqlalchemy import Table, delete, insert, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from dentalcare.models import Base

logger = logging.getLogger("dentalcare.row_store")

Filters = Mapping[str, Any]


@dataclass(frozen=True)
class StoreError:
    table: str
    operation: str
    message: str


@dataclass(frozen=True)
class StoreResult:
    data: list[dict[str, Any]] | None
    error: StoreError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class RowStore:
    """Key-filtered row access to the clinic tables.

    Each call runs in its own transaction and reports failures as a
    ``StoreResult`` error instead of raising, so callers can decide per
    operation whether a failure is fatal. Unknown tables or columns are
    programming errors and raise ``ValueError``.
    """

    def __init__(self, session: Session) -> None:
        self.session = session

    def _table(self, name: str) -> Table:
        table = Base.metadata.tables.get(name)
        if table is None:
            raise ValueError(f"Unknown table: {name}")
        return table

    def _column(self, table: Table, name: str):
        if name not in table.c:
            raise ValueError(f"Unknown column {table.name}.{name}")
        return table.c[name]

    def _where(self, table: Table, filters: Filters | None) -> list:
        clauses = []
        for key, value in (filters or {}).items():
            column = self._column(table, key)
            if isinstance(value, (list, tuple, set, frozenset)):
                clauses.append(column.in_(list(value)))
            elif value is None:
                clauses.append(column.is_(None))
            else:
                clauses.append(column == value)
        return clauses

    def _order(self, table: Table, order: Sequence[str] | None) -> list:
        clauses = []
        for key in order or ():
            if key.startswith("-"):
                clauses.append(self._column(table, key[1:]).desc())
            else:
                clauses.append(self._column(table, key).asc())
        return clauses

    def _fail(self, table: str, operation: str, exc: SQLAlchemyError) -> StoreResult:
        self.session.rollback()
        logger.error("Row store %s on %s failed: %s", operation, table, exc)
        return StoreResult(data=None, error=StoreError(table=table, operation=operation, message=str(exc)))

    def _fetch(self, table: Table, filters: Filters | None, order=None, limit: int | None = None):
        stmt = select(table).where(*self._where(table, filters)).order_by(*self._order(table, order))
        if limit is not None:
            stmt = stmt.limit(limit)
        return [dict(row) for row in self.session.execute(stmt).mappings()]

    def select(
        self,
        table: str,
        filters: Filters | None = None,
        order: Sequence[str] | None = None,
        limit: int | None = None,
    ) -> StoreResult:
        target = self._table(table)
        try:
            rows = self._fetch(target, filters, order, limit)
        except SQLAlchemyError as exc:
            return self._fail(table, "select", exc)
        return StoreResult(data=rows)

    def insert(self, table: str, rows: Iterable[Mapping[str, Any]]) -> StoreResult:
        target = self._table(table)
        pk = target.primary_key.columns.values()[0]
        try:
            ids = []
            for row in rows:
                for key in row:
                    self._column(target, key)
                result = self.session.execute(insert(target).values(**row))
                ids.append(result.inserted_primary_key[0])
            self.session.commit()
            inserted = self._fetch(target, {pk.key: ids}, [pk.key])
        except SQLAlchemyError as exc:
            return self._fail(table, "insert", exc)
        return StoreResult(data=inserted)

    def update(self, table: str, patch: Mapping[str, Any], filters: Filters) -> StoreResult:
        target = self._table(table)
        pk = target.primary_key.columns.values()[0]
        for key in patch:
            self._column(target, key)
        try:
            ids = [row[pk.key] for row in self._fetch(target, filters)]
            if ids:
                self.session.execute(update(target).where(pk.in_(ids)).values(**patch))
            self.session.commit()
            updated = self._fetch(target, {pk.key: ids}, [pk.key]) if ids else []
        except SQLAlchemyError as exc:
            return self._fail(table, "update", exc)
        return StoreResult(data=updated)

    def delete(self, table: str, filters: Filters) -> StoreResult:
        target = self._table(table)
        try:
            removed = self._fetch(target, filters)
            self.session.execute(delete(target).where(*self._where(target, filters)))
            self.session.commit()
        except SQLAlchemyError as exc:
            return self._fail(table, "delete", exc)
        return StoreResult(data=removed)
