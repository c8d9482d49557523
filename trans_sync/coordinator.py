# trans_sync/coordinator.py
"""
Trans-Sync 的门面对象。

对外暴露四个入口：发布源文档并入队 (Enqueue)、触发一次 Worker 激活
(Trigger/Process)、读取文档 (Serve) 以及强制重新生成 (Regenerate)，
并管理数据库与文本生成引擎的生命周期。
"""

from __future__ import annotations

from typing import Any, Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncEngine

from trans_sync.config import TransSyncConfig
from trans_sync.engines.base import BaseGenerationEngine
from trans_sync.exceptions import DocumentShapeError, TransSyncError
from trans_sync.interfaces import DocumentStore, JobStore
from trans_sync.locales import LocalePolicy
from trans_sync.persistence.db import create_schema
from trans_sync.pipeline.enqueue import JobEnqueuer
from trans_sync.pipeline.worker import SequentialWorker
from trans_sync.serving.client import ClientLoader, LocalTranslationSource
from trans_sync.serving.server import TranslationServer
from trans_sync.types import (
    Document,
    EnqueueResult,
    JobOutcome,
    JobStatus,
    JobStatusView,
    ProcessResult,
    ServeResult,
)

logger = structlog.get_logger(__name__)


class Coordinator:
    """组合流水线各组件的门面；所有依赖由 bootstrap 注入。"""

    def __init__(
        self,
        config: TransSyncConfig,
        locales: LocalePolicy,
        job_store: JobStore,
        document_store: DocumentStore,
        engine: BaseGenerationEngine[Any],
        enqueuer: JobEnqueuer,
        worker: SequentialWorker,
        server: TranslationServer,
        db_engine: Optional[AsyncEngine] = None,
    ):
        self.config = config
        self.locales = locales
        self.job_store = job_store
        self.document_store = document_store
        self.engine = engine
        self.enqueuer = enqueuer
        self.worker = worker
        self.server = server
        self._db_engine = db_engine
        self.initialized = False

    async def initialize(self) -> None:
        """创建缺失的表并初始化文本生成引擎（幂等）。"""
        if self.initialized:
            return
        if self._db_engine is not None:
            await create_schema(self._db_engine)
        await self.engine.initialize()
        self.initialized = True
        logger.info("Coordinator 初始化完成。", engine=self.engine.name())

    async def close(self) -> None:
        """安全释放引擎、存储与数据库连接池。"""
        await self.engine.close()
        await self.document_store.close()
        await self.job_store.close()
        if self._db_engine is not None:
            await self._db_engine.dispose()
        self.initialized = False
        logger.info("Coordinator 已关闭。")

    def _check_initialized(self) -> None:
        if not self.initialized:
            raise TransSyncError("Coordinator 尚未初始化，请先调用 initialize()。")

    # ---------- Enqueue ----------

    async def publish_source(self, document: Document) -> EnqueueResult:
        """保存规范语言源文档，并为所有尚未对应该指纹的语言入队。"""
        self._check_initialized()
        if not isinstance(document, dict):
            raise DocumentShapeError("源文档必须是一个 JSON 对象。")
        result = await self.enqueuer.publish_source(document)
        self.server.invalidate(self.locales.canonical)
        return result

    async def enqueue(self) -> EnqueueResult:
        """按当前已发布的源文档补齐任务。"""
        self._check_initialized()
        return await self.enqueuer.enqueue_current()

    async def is_fresh(self, locale: str) -> bool:
        self._check_initialized()
        return await self.enqueuer.is_fresh(self.locales.validate_target(locale))

    # ---------- Trigger / Process ----------

    async def trigger(self, max_jobs: Optional[int] = None) -> ProcessResult:
        """执行一次 Worker 激活；从不抛出异常。"""
        self._check_initialized()
        return await self.worker.run_once(max_jobs)

    # ---------- Regenerate ----------

    async def regenerate(self, locale: str) -> JobOutcome:
        """
        不做新鲜度检查，为该语言新建任务并立即处理。
        若该语言已有任务在处理中，新任务保持 pending，由下一次激活处理。
        """
        self._check_initialized()
        code = self.locales.validate_target(locale)
        job = await self.enqueuer.enqueue_regeneration(code)
        leased = await self.job_store.lease_job(job.id, self.config.worker.max_attempts)
        if leased is None:
            logger.info("重新生成任务已入队，等待下一次激活。", job_id=job.id, locale=code)
            return JobOutcome(job_id=job.id, locale=code, status=JobStatus.PENDING)

        outcome = await self.worker.process_job(leased)
        self.server.invalidate(code)
        return outcome

    # ---------- Serve ----------

    async def serve(
        self, locale: Optional[str], force: bool = False, include_status: bool = False
    ) -> ServeResult:
        return await self.server.get(locale, force=force, include_status=include_status)

    async def status(self, locale: Optional[str]) -> JobStatusView:
        return await self.server.status(self.locales.validate(locale))

    def client_loader(self) -> ClientLoader:
        """返回一个进程内的客户端加载器，拥有自己独立的缓存。"""
        return ClientLoader(
            LocalTranslationSource(self.server),
            default_locale=self.locales.canonical,
            ttl=self.config.client.cache_ttl,
        )
