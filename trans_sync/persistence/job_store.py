# trans_sync/persistence/job_store.py
"""
翻译任务库的 SQLAlchemy 实现。

租用（pending -> processing）在存储层原子完成：
1. 按 (priority, created_at, id) 选出候选任务（PostgreSQL 上附加 FOR UPDATE SKIP LOCKED）；
2. 执行带条件的 UPDATE（仍为 pending 且尝试次数未耗尽），以受影响行数判断是否抢到；
3. 部分唯一索引拒绝同一语言的第二个 processing 任务，违反约束视为竞争失败。
竞争失败时换下一个候选重试，因此两个重叠的 Worker 激活永远不会租到同一个任务。
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional

import structlog
from sqlalchemy import and_, exists, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import aliased

from trans_sync.exceptions import DatabaseError
from trans_sync.types import JobStatus, ReviewResult, TranslationJob

from .schema import TsTranslationJob, utcnow

logger = structlog.get_logger(__name__)

_MAX_LEASE_CANDIDATES = 5


class SqlAlchemyJobStore:
    """持久化的优先级任务队列。"""

    def __init__(
        self,
        sessionmaker: async_sessionmaker[AsyncSession],
        use_skip_locked: bool = False,
    ):
        self._sessionmaker = sessionmaker
        self._use_skip_locked = use_skip_locked

    @asynccontextmanager
    async def _transaction(self) -> AsyncIterator[AsyncSession]:
        """打开一个事务；底层驱动异常统一包装为 DatabaseError。"""
        try:
            async with self._sessionmaker() as session, session.begin():
                yield session
        except IntegrityError:
            raise
        except SQLAlchemyError as e:
            raise DatabaseError(f"任务库操作失败: {e}") from e

    async def create_job(
        self, locale: str, priority: int, source_fingerprint: str
    ) -> TranslationJob:
        async with self._transaction() as session:
            row = TsTranslationJob(
                locale=locale, priority=priority, source_fingerprint=source_fingerprint
            )
            session.add(row)
            await session.flush()
            job = TranslationJob.model_validate(row)
        logger.info(
            "已创建翻译任务。",
            job_id=job.id,
            locale=locale,
            priority=priority,
            fingerprint=source_fingerprint[:12],
        )
        return job

    async def has_job_for_fingerprint(self, locale: str, source_fingerprint: str) -> bool:
        stmt = select(
            exists().where(
                TsTranslationJob.locale == locale,
                TsTranslationJob.source_fingerprint == source_fingerprint,
            )
        )
        async with self._transaction() as session:
            return bool((await session.execute(stmt)).scalar())

    async def get_job(self, job_id: int) -> Optional[TranslationJob]:
        async with self._transaction() as session:
            row = await session.get(TsTranslationJob, job_id)
            return TranslationJob.model_validate(row) if row else None

    # ---------- 租用 ----------

    def _lease_update(self, job_id: int, max_attempts: int):
        return (
            update(TsTranslationJob)
            .where(
                TsTranslationJob.id == job_id,
                TsTranslationJob.status == JobStatus.PENDING.value,
                TsTranslationJob.attempts < max_attempts,
            )
            .values(
                status=JobStatus.PROCESSING.value,
                attempts=TsTranslationJob.attempts + 1,
                started_at=utcnow(),
            )
            .execution_options(synchronize_session=False)
        )

    async def _apply_lease(
        self, session: AsyncSession, job_id: int, max_attempts: int
    ) -> Optional[TranslationJob]:
        result = await session.execute(self._lease_update(job_id, max_attempts))
        if result.rowcount != 1:
            return None
        row = await session.get(TsTranslationJob, job_id, populate_existing=True)
        return TranslationJob.model_validate(row) if row else None

    def _candidate_query(self, max_attempts: int, excluded: set[int]):
        processing = aliased(TsTranslationJob)
        busy_locales = select(processing.locale).where(
            processing.status == JobStatus.PROCESSING.value
        )
        stmt = (
            select(TsTranslationJob.id)
            .where(
                TsTranslationJob.status == JobStatus.PENDING.value,
                TsTranslationJob.attempts < max_attempts,
                TsTranslationJob.locale.not_in(busy_locales),
            )
            .order_by(
                TsTranslationJob.priority.asc(),
                TsTranslationJob.created_at.asc(),
                TsTranslationJob.id.asc(),
            )
            .limit(1)
        )
        if excluded:
            stmt = stmt.where(TsTranslationJob.id.not_in(excluded))
        if self._use_skip_locked:
            stmt = stmt.with_for_update(of=TsTranslationJob, skip_locked=True)
        return stmt

    async def lease_next_job(self, max_attempts: int) -> Optional[TranslationJob]:
        """原子地租用优先级最高、创建最早的可处理任务。"""
        lost: set[int] = set()
        for _ in range(_MAX_LEASE_CANDIDATES):
            job_id: Optional[int] = None
            try:
                async with self._transaction() as session:
                    job_id = (
                        await session.execute(self._candidate_query(max_attempts, lost))
                    ).scalar_one_or_none()
                    if job_id is None:
                        return None
                    job = await self._apply_lease(session, job_id, max_attempts)
            except IntegrityError:
                # 同一语言已有 processing 任务
                job = None

            if job is not None:
                logger.info(
                    "已租用翻译任务。",
                    job_id=job.id,
                    locale=job.locale,
                    attempt=job.attempts,
                )
                return job
            logger.debug("租用竞争失败，尝试下一个候选任务。", job_id=job_id)
            if job_id is not None:
                lost.add(job_id)
        logger.warning("连续租用竞争失败，本次放弃。", candidates=sorted(lost))
        return None

    async def lease_job(self, job_id: int, max_attempts: int) -> Optional[TranslationJob]:
        """租用指定任务（用于立即处理的重新生成请求）。"""
        try:
            async with self._transaction() as session:
                return await self._apply_lease(session, job_id, max_attempts)
        except IntegrityError:
            logger.info("该语言已有任务在处理中，暂不租用。", job_id=job_id)
            return None

    # ---------- 状态转换 ----------

    async def mark_completed(self, job_id: int, review: ReviewResult) -> None:
        stmt = (
            update(TsTranslationJob)
            .where(TsTranslationJob.id == job_id)
            .values(
                status=JobStatus.COMPLETED.value,
                completed_at=utcnow(),
                error_message=None,
                review_status=review.status.value,
                review_score=review.score,
                review_notes=review.notes,
            )
            .execution_options(synchronize_session=False)
        )
        async with self._transaction() as session:
            await session.execute(stmt)

    async def mark_failed(self, job_id: int, error_message: str) -> None:
        await self._set_status(job_id, JobStatus.FAILED, error_message)

    async def release_for_retry(self, job_id: int, error_message: str) -> None:
        await self._set_status(job_id, JobStatus.PENDING, error_message)

    async def _set_status(self, job_id: int, status: JobStatus, error_message: str) -> None:
        stmt = (
            update(TsTranslationJob)
            .where(TsTranslationJob.id == job_id)
            .values(
                status=status.value,
                error_message=error_message,
                # failed 同样是终态，记录结束时间
                completed_at=utcnow() if status is JobStatus.FAILED else None,
            )
            .execution_options(synchronize_session=False)
        )
        async with self._transaction() as session:
            await session.execute(stmt)

    async def requeue_stale(self, started_before: datetime, max_attempts: int) -> int:
        """
        回收 `started_at` 早于给定时间的 processing 任务。
        尝试次数已耗尽的记为 failed，其余回到 pending。
        """
        stale = and_(
            TsTranslationJob.status == JobStatus.PROCESSING.value,
            TsTranslationJob.started_at < started_before,
        )
        message = "租约超时：处理过程未在规定时间内结束。"
        async with self._transaction() as session:
            exhausted = await session.execute(
                update(TsTranslationJob)
                .where(stale, TsTranslationJob.attempts >= max_attempts)
                .values(
                    status=JobStatus.FAILED.value,
                    error_message=message,
                    completed_at=utcnow(),
                )
                .execution_options(synchronize_session=False)
            )
            requeued = await session.execute(
                update(TsTranslationJob)
                .where(stale, TsTranslationJob.attempts < max_attempts)
                .values(status=JobStatus.PENDING.value, error_message=message)
                .execution_options(synchronize_session=False)
            )
        total = (exhausted.rowcount or 0) + (requeued.rowcount or 0)
        if total:
            logger.warning(
                "已回收租约超时的任务。",
                failed=exhausted.rowcount,
                requeued=requeued.rowcount,
            )
        return total

    # ---------- 查询 ----------

    async def latest_job(self, locale: str) -> Optional[TranslationJob]:
        stmt = (
            select(TsTranslationJob)
            .where(TsTranslationJob.locale == locale)
            .order_by(TsTranslationJob.created_at.desc(), TsTranslationJob.id.desc())
            .limit(1)
        )
        async with self._transaction() as session:
            row = (await session.execute(stmt)).scalar_one_or_none()
            return TranslationJob.model_validate(row) if row else None

    async def latest_completed_job(self, locale: str) -> Optional[TranslationJob]:
        stmt = (
            select(TsTranslationJob)
            .where(
                TsTranslationJob.locale == locale,
                TsTranslationJob.status == JobStatus.COMPLETED.value,
            )
            .order_by(TsTranslationJob.completed_at.desc(), TsTranslationJob.id.desc())
            .limit(1)
        )
        async with self._transaction() as session:
            row = (await session.execute(stmt)).scalar_one_or_none()
            return TranslationJob.model_validate(row) if row else None

    async def list_jobs(
        self, locale: Optional[str] = None, limit: int = 50
    ) -> list[TranslationJob]:
        stmt = select(TsTranslationJob).order_by(TsTranslationJob.id.desc()).limit(limit)
        if locale:
            stmt = stmt.where(TsTranslationJob.locale == locale)
        async with self._transaction() as session:
            rows = (await session.execute(stmt)).scalars().all()
            return [TranslationJob.model_validate(row) for row in rows]

    async def close(self) -> None:
        return None
