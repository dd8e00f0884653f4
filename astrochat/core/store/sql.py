from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping, Sequence

from sqlalchemy import JSON, BigInteger, ColumnElement, Integer, String, UniqueConstraint, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.pool import NullPool

from astrochat.core.store.base import (
    BatchOp,
    Delete,
    DocumentExists,
    DocumentNotFound,
    DocumentStore,
    Insert,
    StoreError,
    Update,
    apply_update,
    matches,
    resolve_value,
)
from astrochat.core.utils.clock import Clock, utc_now
from astrochat.core.utils.ids import uuid7

_DT_TAG = "$dt"


class Base(DeclarativeBase):
    pass


class DocumentRecord(Base):
    __tablename__ = "documents"

    seq: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True
    )
    collection: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    doc_id: Mapped[str] = mapped_column(String(64), nullable=False)
    body: Mapped[dict] = mapped_column(JSON, nullable=False)

    __table_args__ = (UniqueConstraint("collection", "doc_id", name="uq_documents_collection_doc"),)


def _encode(value: Any) -> Any:
    if isinstance(value, datetime):
        return {_DT_TAG: value.isoformat()}
    if isinstance(value, Mapping):
        return {k: _encode(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_encode(v) for v in value]
    return value


def _decode(value: Any) -> Any:
    if isinstance(value, dict):
        if set(value) == {_DT_TAG}:
            return datetime.fromisoformat(value[_DT_TAG])
        return {k: _decode(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_decode(v) for v in value]
    return value


def equality_clauses(
    filters: Mapping[str, Any] | None,
) -> tuple[list[ColumnElement[bool]], dict[str, Any]]:
    """Split equality filters into JSON-path SQL clauses and the remainder.

    Top-level string, integer and boolean fields compare in SQL. Dotted paths
    and other value types are left for the Python matcher.
    """
    clauses: list[ColumnElement[bool]] = []
    residual: dict[str, Any] = {}
    for key, expected in (filters or {}).items():
        if "." in key:
            residual[key] = expected
            continue
        element = DocumentRecord.body[key]
        if isinstance(expected, bool):
            clauses.append(element.as_boolean() == expected)
        elif isinstance(expected, int):
            clauses.append(element.as_integer() == expected)
        elif isinstance(expected, str):
            clauses.append(element.as_string() == expected)
        else:
            residual[key] = expected
    return clauses, residual


class SqlDocumentStore(DocumentStore):
    """Document collections stored as JSON rows in one SQL table.

    Scalar equality filters run as JSON-path expressions in the database;
    ``contains`` filters and nested paths are checked in Python on the rows
    the query returns. Batches run in one transaction.
    """

    def __init__(self, engine: AsyncEngine, clock: Clock | None = None) -> None:
        self.engine = engine
        self.clock = clock or utc_now
        self._sessionmaker = async_sessionmaker(engine, expire_on_commit=False)

    @classmethod
    def from_url(cls, database_url: str, *, env: str = "dev", clock: Clock | None = None) -> "SqlDocumentStore":
        poolclass = NullPool if env in {"test"} else None
        kwargs: dict[str, Any] = {"echo": False}
        if poolclass is not None:
            kwargs["poolclass"] = poolclass
        return cls(create_async_engine(database_url, **kwargs), clock=clock)

    async def create_schema(self) -> None:
        try:
            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        except SQLAlchemyError as exc:
            raise StoreError(str(exc)) from exc

    async def dispose(self) -> None:
        await self.engine.dispose()

    @staticmethod
    def _out(row: DocumentRecord) -> dict[str, Any]:
        doc = _decode(row.body)
        doc["id"] = row.doc_id
        return doc

    async def _row(self, session: AsyncSession, collection: str, doc_id: str) -> DocumentRecord | None:
        stmt = select(DocumentRecord).where(
            DocumentRecord.collection == collection, DocumentRecord.doc_id == doc_id
        )
        return (await session.execute(stmt)).scalar_one_or_none()

    async def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        try:
            async with self._sessionmaker() as session:
                row = await self._row(session, collection, doc_id)
                return self._out(row) if row else None
        except SQLAlchemyError as exc:
            raise StoreError(str(exc)) from exc

    async def _query(
        self,
        collection: str,
        filters: Mapping[str, Any] | None,
        contains: Mapping[str, Any] | None,
        *,
        first_only: bool = False,
    ) -> list[dict[str, Any]]:
        clauses, residual = equality_clauses(filters)
        stmt = (
            select(DocumentRecord)
            .where(DocumentRecord.collection == collection, *clauses)
            .order_by(DocumentRecord.seq)
        )
        if first_only and not residual and not contains:
            stmt = stmt.limit(1)
        try:
            async with self._sessionmaker() as session:
                rows = (await session.execute(stmt)).scalars().all()
        except SQLAlchemyError as exc:
            raise StoreError(str(exc)) from exc
        docs = [self._out(row) for row in rows]
        return [doc for doc in docs if matches(doc, residual, contains)]

    async def find_many(
        self,
        collection: str,
        filters: Mapping[str, Any] | None = None,
        *,
        contains: Mapping[str, Any] | None = None,
    ) -> list[dict[str, Any]]:
        return await self._query(collection, filters, contains)

    async def find_one(
        self,
        collection: str,
        filters: Mapping[str, Any] | None = None,
        *,
        contains: Mapping[str, Any] | None = None,
    ) -> dict[str, Any] | None:
        found = await self._query(collection, filters, contains, first_only=True)
        return found[0] if found else None

    async def insert(self, collection: str, doc: Mapping[str, Any], *, doc_id: str | None = None) -> str:
        doc_id = doc_id or uuid7()
        await self.atomic_batch([Insert(collection, doc_id, doc)])
        return doc_id

    async def update_fields(self, collection: str, doc_id: str, fields: Mapping[str, Any]) -> None:
        await self.atomic_batch([Update(collection, doc_id, fields)])

    async def delete(self, collection: str, doc_id: str) -> None:
        await self.atomic_batch([Delete(collection, doc_id)])

    async def atomic_batch(self, ops: Sequence[BatchOp]) -> datetime:
        now = self.clock()
        try:
            async with self._sessionmaker() as session:
                async with session.begin():
                    for op in ops:
                        row = await self._row(session, op.collection, op.doc_id)
                        if isinstance(op, Delete):
                            if row is not None:
                                await session.delete(row)
                        elif isinstance(op, Insert):
                            if row is not None:
                                raise DocumentExists(f"{op.collection}/{op.doc_id} already exists")
                            body = resolve_value({k: v for k, v in op.doc.items() if k != "id"}, now)
                            session.add(DocumentRecord(collection=op.collection, doc_id=op.doc_id, body=_encode(body)))
                        elif isinstance(op, Update):
                            if row is None:
                                raise DocumentNotFound(f"{op.collection}/{op.doc_id} does not exist")
                            current = _decode(row.body)
                            row.body = _encode(apply_update(current, op.fields, now))
                        else:
                            raise TypeError(f"Unsupported batch op: {op!r}")
                        await session.flush()
        except SQLAlchemyError as exc:
            raise StoreError(str(exc)) from exc
        return now


__all__ = ["Base", "DocumentRecord", "SqlDocumentStore", "equality_clauses"]
