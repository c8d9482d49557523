# trans_sync/pipeline/enqueue.py
"""变更检测与入队：源文档指纹变化时，为每个目标语言创建新任务。"""

from __future__ import annotations

from typing import Optional

import structlog

from trans_sync.content.fingerprint import compute_fingerprint
from trans_sync.exceptions import SourceDocumentMissingError
from trans_sync.interfaces import DocumentStore, JobStore
from trans_sync.locales import LocalePolicy
from trans_sync.types import Document, EnqueueResult, TranslationJob

logger = structlog.get_logger(__name__)


class JobEnqueuer:
    """根据源文档的当前指纹为各语言补齐翻译任务。"""

    def __init__(
        self, job_store: JobStore, document_store: DocumentStore, locales: LocalePolicy
    ):
        self._jobs = job_store
        self._documents = document_store
        self._locales = locales

    async def current_fingerprint(self) -> Optional[str]:
        source = await self._documents.get(self._locales.canonical)
        return compute_fingerprint(source) if source is not None else None

    async def enqueue_for(self, fingerprint: str) -> EnqueueResult:
        """
        对每个非规范语言：若尚无以该指纹创建的任务，则按优先级策略新建一个。
        已存在的任务（无论状态如何）都不会重复创建。
        """
        result = EnqueueResult(fingerprint=fingerprint)
        for locale in self._locales.targets:
            if await self._jobs.has_job_for_fingerprint(locale, fingerprint):
                result.skipped_locales.append(locale)
                continue
            job = await self._jobs.create_job(
                locale, self._locales.priority_for(locale), fingerprint
            )
            result.created_jobs.append(job)

        logger.info(
            "入队完成。",
            fingerprint=fingerprint[:12],
            created=len(result.created_jobs),
            skipped=len(result.skipped_locales),
        )
        return result

    async def enqueue_current(self) -> EnqueueResult:
        fingerprint = await self.current_fingerprint()
        if fingerprint is None:
            raise SourceDocumentMissingError(
                f"规范语言 {self._locales.canonical!r} 的源文档尚未发布。"
            )
        return await self.enqueue_for(fingerprint)

    async def publish_source(self, document: Document) -> EnqueueResult:
        """保存新的源文档并触发入队。"""
        fingerprint = compute_fingerprint(document)
        await self._documents.put(self._locales.canonical, document)
        logger.info("源文档已发布。", fingerprint=fingerprint[:12])
        return await self.enqueue_for(fingerprint)

    async def enqueue_regeneration(self, locale: str) -> TranslationJob:
        """不做新鲜度检查，为指定语言创建一个最高优先级的新任务。"""
        fingerprint = await self.current_fingerprint()
        if fingerprint is None:
            raise SourceDocumentMissingError(
                f"规范语言 {self._locales.canonical!r} 的源文档尚未发布。"
            )
        return await self._jobs.create_job(
            locale, self._locales.regenerate_priority, fingerprint
        )

    async def is_fresh(self, locale: str) -> bool:
        """最近一次完成的任务的指纹等于当前源文档指纹时，该语言是新鲜的。"""
        fingerprint = await self.current_fingerprint()
        if fingerprint is None:
            return False
        job = await self._jobs.latest_completed_job(locale)
        return job is not None and job.source_fingerprint == fingerprint
