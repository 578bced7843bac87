"""
SQL-backed knowledge store.

This module persists knowledge chunks in a relational database through
SQLModel. Any SQLAlchemy URL works; SQLite is the default for single-node
deployments and tests.

Features:
- Unique constraint on the chunk identity tuple
- Embeddings, keywords, categories and source snapshots stored as JSON
- Blocking database work runs in a worker thread (``asyncio.to_thread``)
  behind a lock, so the event loop never blocks on I/O

Example:
    >>> store = SQLKnowledgeStore("sqlite:///./knowledge.db")
    >>> await store.upsert(chunk)
    >>> chunks = await store.find(KnowledgeFilter(organization_id="org-1"))
    >>> await store.close()
"""

import asyncio
import logging
import threading
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import JSON, Column, UniqueConstraint, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import StaticPool
from sqlmodel import Field, Session, SQLModel, col, create_engine, select

from ..entities.knowledge_chunk import KnowledgeChunk
from ..errors import StoreError
from .base import BaseKnowledgeStore, KnowledgeFilter

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class KnowledgeChunkRecord(SQLModel, table=True):
    """Knowledge chunk table, one row per chunk identity tuple."""
    __tablename__ = "knowledge_chunks"
    __table_args__ = (
        UniqueConstraint(
            "organization_id", "project_key", "source_type", "source_id", "chunk_index",
            name="uq_knowledge_chunk_identity",
        ),
    )

    pk: Optional[int] = Field(default=None, primary_key=True)
    id: str = Field(index=True, unique=True)
    organization_id: str = Field(index=True)
    project_id: Optional[str] = Field(default=None, index=True)
    # project_id with NULL mapped to "" so the unique constraint covers org-wide chunks
    project_key: str = Field(default="")
    source_type: str = Field(index=True)
    source_id: str = Field(index=True)
    chunk_index: int = 0
    user_id: Optional[str] = None
    title: str
    content: str
    embedding: list = Field(default_factory=list, sa_column=Column(JSON))
    embedding_model: str
    keywords: list = Field(default_factory=list, sa_column=Column(JSON))
    categories: list = Field(default_factory=list, sa_column=Column(JSON))
    total_chunks: int = 1
    original_data: dict = Field(default_factory=dict, sa_column=Column(JSON))
    processed_at: datetime = Field(default_factory=_utcnow)
    is_active: bool = Field(default=True, index=True)
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)


def _to_record_fields(chunk: KnowledgeChunk) -> dict[str, Any]:
    data = chunk.model_dump(mode="json", include={"original_data", "categories"})
    return {
        "id": chunk.id,
        "organization_id": chunk.organization_id,
        "project_id": chunk.project_id,
        "project_key": chunk.project_id or "",
        "source_type": str(chunk.source_type),
        "source_id": chunk.source_id,
        "chunk_index": chunk.chunk_index,
        "user_id": chunk.user_id,
        "title": chunk.title,
        "content": chunk.content,
        "embedding": list(chunk.embedding),
        "embedding_model": chunk.embedding_model,
        "keywords": list(chunk.keywords),
        "categories": data["categories"],
        "total_chunks": chunk.total_chunks,
        "original_data": data["original_data"],
        "processed_at": chunk.processed_at,
        "is_active": True,
    }


def _to_chunk(record: KnowledgeChunkRecord) -> KnowledgeChunk:
    return KnowledgeChunk(
        id=record.id,
        organization_id=record.organization_id,
        project_id=record.project_id,
        source_type=record.source_type,
        source_id=record.source_id,
        chunk_index=record.chunk_index,
        user_id=record.user_id,
        title=record.title,
        content=record.content,
        embedding=record.embedding or [],
        embedding_model=record.embedding_model,
        keywords=record.keywords or [],
        categories=record.categories or [],
        total_chunks=record.total_chunks,
        original_data=record.original_data or {},
        processed_at=record.processed_at,
        is_active=record.is_active,
        created_at=record.created_at,
        updated_at=record.updated_at,
    )


class SQLKnowledgeStore(BaseKnowledgeStore):
    """
    Persistent knowledge store using SQLModel.

    Attributes:
        database_url: SQLAlchemy database URL
        echo: Log emitted SQL
    """

    def __init__(self, database_url: str = "sqlite:///./kbsync.db", echo: bool = False):
        self.database_url = database_url
        self._lock = threading.RLock()

        engine_kwargs: dict[str, Any] = {"echo": echo}
        if database_url.startswith("sqlite"):
            engine_kwargs["connect_args"] = {"check_same_thread": False}
            if database_url in ("sqlite://", "sqlite:///:memory:"):
                # One shared connection, otherwise every connection sees an empty DB
                engine_kwargs["poolclass"] = StaticPool

        self._engine = create_engine(database_url, **engine_kwargs)
        SQLModel.metadata.create_all(self._engine, tables=[KnowledgeChunkRecord.__table__])
        logger.debug(f"SQLKnowledgeStore initialized: {database_url}")

    async def _run(self, fn, *args):
        def locked():
            with self._lock:
                try:
                    return fn(*args)
                except SQLAlchemyError as e:
                    logger.error(f"Knowledge store operation {fn.__name__} failed: {e}")
                    raise StoreError(
                        f"Knowledge store operation failed: {fn.__name__}",
                        original_error=e,
                    )
        return await asyncio.to_thread(locked)

    @staticmethod
    def _source_clause(statement, organization_id, project_id, source_type, source_id):
        return statement.where(
            KnowledgeChunkRecord.organization_id == organization_id,
            KnowledgeChunkRecord.project_key == (project_id or ""),
            KnowledgeChunkRecord.source_type == str(source_type),
            KnowledgeChunkRecord.source_id == source_id,
        )

    # ==================== Writes ====================

    async def upsert(self, chunk: KnowledgeChunk) -> KnowledgeChunk:
        return await self._run(self._upsert, chunk)

    def _upsert(self, chunk: KnowledgeChunk) -> KnowledgeChunk:
        fields = _to_record_fields(chunk)
        with Session(self._engine) as session:
            statement = self._source_clause(
                select(KnowledgeChunkRecord),
                chunk.organization_id, chunk.project_id, chunk.source_type, chunk.source_id,
            ).where(KnowledgeChunkRecord.chunk_index == chunk.chunk_index)
            record = session.exec(statement).first()

            if record is None:
                record = KnowledgeChunkRecord(**fields)
            else:
                fields.pop("id")
                for name, value in fields.items():
                    setattr(record, name, value)
                record.updated_at = _utcnow()

            session.add(record)
            session.commit()
            session.refresh(record)
            return _to_chunk(record)

    async def delete_chunks_from(self, organization_id, project_id, source_type, source_id, start_index) -> int:
        return await self._run(
            self._delete_chunks_from, organization_id, project_id, source_type, source_id, start_index
        )

    def _delete_chunks_from(self, organization_id, project_id, source_type, source_id, start_index) -> int:
        with Session(self._engine) as session:
            statement = self._source_clause(
                select(KnowledgeChunkRecord), organization_id, project_id, source_type, source_id
            ).where(KnowledgeChunkRecord.chunk_index >= start_index)
            records = session.exec(statement).all()
            for record in records:
                session.delete(record)
            session.commit()
            return len(records)

    async def delete_by_source(self, organization_id, project_id, source_type, source_id=None, hard=False) -> int:
        return await self._run(
            self._delete_by_source, organization_id, project_id, source_type, source_id, hard
        )

    def _delete_by_source(self, organization_id, project_id, source_type, source_id, hard) -> int:
        with Session(self._engine) as session:
            statement = select(KnowledgeChunkRecord).where(
                KnowledgeChunkRecord.source_type == str(source_type)
            )
            if organization_id is not None:
                statement = statement.where(KnowledgeChunkRecord.organization_id == organization_id)
            if project_id is not None:
                statement = statement.where(KnowledgeChunkRecord.project_id == project_id)
            if source_id is not None:
                statement = statement.where(KnowledgeChunkRecord.source_id == source_id)
            if not hard:
                statement = statement.where(KnowledgeChunkRecord.is_active == True)  # noqa: E712

            records = session.exec(statement).all()
            now = _utcnow()
            for record in records:
                if hard:
                    session.delete(record)
                else:
                    record.is_active = False
                    record.updated_at = now
                    session.add(record)
            session.commit()
            return len(records)

    async def delete_organization(self, organization_id: str) -> int:
        return await self._run(self._delete_organization, organization_id)

    def _delete_organization(self, organization_id: str) -> int:
        with Session(self._engine) as session:
            records = session.exec(
                select(KnowledgeChunkRecord).where(
                    KnowledgeChunkRecord.organization_id == organization_id
                )
            ).all()
            for record in records:
                session.delete(record)
            session.commit()
            return len(records)

    # ==================== Reads ====================

    async def has_source(self, organization_id, project_id, source_type, source_id) -> bool:
        return await self._run(self._has_source, organization_id, project_id, source_type, source_id)

    def _has_source(self, organization_id, project_id, source_type, source_id) -> bool:
        with Session(self._engine) as session:
            statement = self._source_clause(
                select(KnowledgeChunkRecord.pk), organization_id, project_id, source_type, source_id
            ).where(KnowledgeChunkRecord.is_active == True).limit(1)  # noqa: E712
            return session.exec(statement).first() is not None

    async def find(self, knowledge_filter: KnowledgeFilter) -> list[KnowledgeChunk]:
        return await self._run(self._find, knowledge_filter)

    def _find(self, knowledge_filter: KnowledgeFilter) -> list[KnowledgeChunk]:
        with Session(self._engine) as session:
            statement = select(KnowledgeChunkRecord).where(
                KnowledgeChunkRecord.organization_id == knowledge_filter.organization_id
            )
            if not knowledge_filter.include_inactive:
                statement = statement.where(KnowledgeChunkRecord.is_active == True)  # noqa: E712
            if knowledge_filter.project_id:
                statement = statement.where(KnowledgeChunkRecord.project_id == knowledge_filter.project_id)
            if knowledge_filter.source_types:
                statement = statement.where(
                    col(KnowledgeChunkRecord.source_type).in_([str(s) for s in knowledge_filter.source_types])
                )
            statement = statement.order_by(KnowledgeChunkRecord.pk)
            chunks = [_to_chunk(record) for record in session.exec(statement).all()]

        # JSON containment is not portable across backends; categories are filtered here
        if knowledge_filter.categories:
            chunks = [c for c in chunks if knowledge_filter.matches(c)]
        return chunks

    async def count_by_source_type(self, organization_id: str) -> dict[str, int]:
        return await self._run(self._count_by_source_type, organization_id)

    def _count_by_source_type(self, organization_id: str) -> dict[str, int]:
        with Session(self._engine) as session:
            statement = (
                select(KnowledgeChunkRecord.source_type, func.count(KnowledgeChunkRecord.pk))
                .where(
                    KnowledgeChunkRecord.organization_id == organization_id,
                    KnowledgeChunkRecord.is_active == True,  # noqa: E712
                )
                .group_by(KnowledgeChunkRecord.source_type)
            )
            return {source_type: count for source_type, count in session.exec(statement).all()}

    async def average_chunks_by_source_type(self, organization_id: str) -> dict[str, float]:
        return await self._run(self._average_chunks_by_source_type, organization_id)

    def _average_chunks_by_source_type(self, organization_id: str) -> dict[str, float]:
        with Session(self._engine) as session:
            statement = (
                select(KnowledgeChunkRecord.source_type, func.avg(KnowledgeChunkRecord.total_chunks))
                .where(
                    KnowledgeChunkRecord.organization_id == organization_id,
                    KnowledgeChunkRecord.is_active == True,  # noqa: E712
                )
                .group_by(KnowledgeChunkRecord.source_type)
            )
            return {source_type: float(avg) for source_type, avg in session.exec(statement).all()}

    async def close(self) -> None:
        self._engine.dispose()
