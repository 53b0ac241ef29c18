"""
dispatch_console.db.repositories.documents

Document-collection facade over one SQLAlchemy table.

Responsibilities:
- Translate wire-named filters/patches to ORM columns.
- Offer find/insert/update/delete with shallow-overwrite patch semantics.
- Run every operation in its own transaction and report failures as `StoreError`.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from typing import Any

from sqlalchemy import ColumnElement, delete, desc, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from dispatch_console.db.models import new_document_id
from dispatch_console.errors import StoreError

Document = dict[str, Any]
Filter = Mapping[str, Any]

ID_FIELD = "_id"


class DocumentCollection:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        model: type,
        fields: Mapping[str, str],
        *,
        name: str,
        list_fields: frozenset[str] = frozenset(),
    ) -> None:
        self._session_factory = session_factory
        self._model = model
        # wire field name -> ORM attribute name
        self._fields = dict(fields)
        self._list_fields = list_fields
        self.name = name

    @property
    def fields(self) -> frozenset[str]:
        return frozenset(self._fields)

    @contextmanager
    def _translate(self, op: str) -> Iterator[None]:
        try:
            yield
        except SQLAlchemyError as e:
            raise StoreError(f"{self.name}.{op} failed: {e}") from e

    def _column(self, key: str) -> Any:
        attr = self._fields.get(key)
        if attr is None or key in self._list_fields:
            raise StoreError(f"cannot filter {self.name} on {key!r}")
        return getattr(self._model, attr)

    def _where(self, flt: Filter | None) -> list[ColumnElement[bool]]:
        clauses: list[ColumnElement[bool]] = []
        for key, value in (flt or {}).items():
            column = self._column(key)
            if isinstance(value, Mapping):
                if set(value) != {"$in"}:
                    raise StoreError(f"unsupported operator in {self.name} filter: {sorted(value)}")
                members = value["$in"]
                if not isinstance(members, (list, tuple, set, frozenset)):
                    raise StoreError(f"\"$in\" on {self.name}.{key} needs a list")
                clauses.append(column.in_(list(members)))
            else:
                clauses.append(column == value)
        return clauses

    def _values(self, patch: Mapping[str, Any]) -> dict[str, Any]:
        # Unknown fields are dropped, ids are never rewritten.
        return {
            self._fields[k]: (list(v) if k in self._list_fields else v)
            for k, v in patch.items()
            if k in self._fields and k != ID_FIELD
        }

    def to_doc(self, row: Any) -> Document:
        doc: Document = {}
        for wire, attr in self._fields.items():
            value = getattr(row, attr)
            doc[wire] = list(value or []) if wire in self._list_fields else value
        return doc

    async def find_one(self, flt: Filter | None = None, *, newest_first: bool = False) -> Document | None:
        order = desc(self._model.seq) if newest_first else self._model.seq
        stmt = select(self._model).where(*self._where(flt)).order_by(order).limit(1)
        with self._translate("find_one"):
            async with self._session_factory() as session:
                row = (await session.execute(stmt)).scalar_one_or_none()
                return None if row is None else self.to_doc(row)

    async def find_many(self, flt: Filter | None = None) -> list[Document]:
        stmt = select(self._model).where(*self._where(flt)).order_by(self._model.seq)
        with self._translate("find_many"):
            async with self._session_factory() as session:
                rows = (await session.execute(stmt)).scalars().all()
                return [self.to_doc(r) for r in rows]

    async def count(self, flt: Filter | None = None) -> int:
        stmt = select(func.count()).select_from(self._model).where(*self._where(flt))
        with self._translate("count"):
            async with self._session_factory() as session:
                return int((await session.execute(stmt)).scalar_one())

    async def insert(self, doc: Mapping[str, Any]) -> Document:
        values = self._values(doc)
        values["id"] = new_document_id()
        with self._translate("insert"):
            async with self._session_factory.begin() as session:
                row = self._model(**values)
                session.add(row)
                await session.flush()
                await session.refresh(row)
                return self.to_doc(row)

    async def update_one(self, flt: Filter, patch: Mapping[str, Any]) -> bool:
        """Overwrite `patch` fields on the first match; False when nothing matched."""

        values = self._values(patch)
        stmt = select(self._model.seq).where(*self._where(flt)).order_by(self._model.seq).limit(1)
        with self._translate("update_one"):
            async with self._session_factory.begin() as session:
                seq = (await session.execute(stmt)).scalar_one_or_none()
                if seq is None:
                    return False
                if values:
                    await session.execute(
                        update(self._model).where(self._model.seq == seq).values(**values)
                    )
                return True

    async def update_many(self, flt: Filter, patch: Mapping[str, Any]) -> int:
        values = self._values(patch)
        if not values:
            return await self.count(flt)
        stmt = (
            update(self._model)
            .where(*self._where(flt))
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        with self._translate("update_many"):
            async with self._session_factory.begin() as session:
                result = await session.execute(stmt)
                return int(result.rowcount or 0)

    async def delete_one(self, flt: Filter) -> bool:
        stmt = select(self._model.seq).where(*self._where(flt)).order_by(self._model.seq).limit(1)
        with self._translate("delete_one"):
            async with self._session_factory.begin() as session:
                seq = (await session.execute(stmt)).scalar_one_or_none()
                if seq is None:
                    return False
                await session.execute(delete(self._model).where(self._model.seq == seq))
                return True


# --- Module Notes -----------------------------------------------------------
# Filters support equality and `{"$in": [...]}` only, which is all the command set needs.
