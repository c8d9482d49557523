# trans_sync/persistence/schema.py
"""
定义了任务库与文档库的 SQLAlchemy ORM 模型。

`ts_translation_jobs` 是只追加的审计记录：每次（重新）生成都会新增一行，从不删除。
部分唯一索引保证同一语言同一时刻最多只有一个 processing 任务。
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import JSON, DateTime, Index, Integer, MetaData, String, Text, text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.engine import Dialect
from sqlalchemy.orm import DeclarativeBase, Mapped, MappedAsDataclass, mapped_column
from sqlalchemy.types import TypeDecorator

metadata = MetaData()

# PostgreSQL 使用 JSONB，其余方言回退为通用 JSON
json_type = JSON().with_variant(JSONB(), "postgresql")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UTCDateTime(TypeDecorator[datetime]):
    """
    始终以 UTC 存取的时间类型。
    SQLite 不保存时区信息，读出的朴素时间在这里补回 UTC。
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(
        self, value: Optional[datetime], dialect: Dialect
    ) -> Optional[datetime]:
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    def process_result_value(
        self, value: Optional[datetime], dialect: Dialect
    ) -> Optional[datetime]:
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


class Base(MappedAsDataclass, DeclarativeBase):
    """项目统一的声明式基类（数据类风格）。"""

    __abstract__ = True
    metadata = metadata


class TsTranslationJob(Base):
    __tablename__ = "ts_translation_jobs"

    locale: Mapped[str] = mapped_column(String(35), nullable=False)
    priority: Mapped[int] = mapped_column(Integer, nullable=False)
    source_fingerprint: Mapped[str] = mapped_column(String(64), nullable=False)
    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True, init=False
    )
    status: Mapped[str] = mapped_column(
        String(16), nullable=False, default="pending", server_default="pending"
    )
    attempts: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default="0"
    )
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), nullable=False, default_factory=utcnow
    )
    started_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime(), default=None)
    completed_at: Mapped[Optional[datetime]] = mapped_column(
        UTCDateTime(), default=None
    )
    error_message: Mapped[Optional[str]] = mapped_column(Text, default=None)
    review_status: Mapped[str] = mapped_column(
        String(16), nullable=False, default="pending", server_default="pending"
    )
    review_score: Mapped[Optional[int]] = mapped_column(Integer, default=None)
    review_notes: Mapped[Optional[str]] = mapped_column(Text, default=None)

    __table_args__ = (
        Index("ix_ts_jobs_queue", "status", "priority", "created_at"),
        Index("ix_ts_jobs_locale_fingerprint", "locale", "source_fingerprint"),
        Index("ix_ts_jobs_locale_created", "locale", "created_at"),
        Index(
            "uq_ts_jobs_one_processing_per_locale",
            "locale",
            unique=True,
            sqlite_where=text("status = 'processing'"),
            postgresql_where=text("status = 'processing'"),
        ),
    )


class TsDocument(Base):
    __tablename__ = "ts_documents"

    locale: Mapped[str] = mapped_column(String(35), primary_key=True)
    document: Mapped[dict[str, Any]] = mapped_column(json_type, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), nullable=False, default_factory=utcnow, onupdate=utcnow
    )
