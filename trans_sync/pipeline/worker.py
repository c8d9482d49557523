# trans_sync/pipeline/worker.py
"""
顺序 Worker：每次激活最多处理 N 个任务，逐个执行
抽取 -> 分批翻译 -> 整体审核 -> 重建 -> 写入文档库 -> 任务状态转换。

Worker 不会把异常抛出激活边界：所有失败都记录在任务上，
`run_once` 总是返回一个描述本次处理情况的结果。
"""

from __future__ import annotations

import asyncio
import signal
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import structlog

from trans_sync.config import TransSyncConfig
from trans_sync.content.extractor import extract_strings, rebuild_document
from trans_sync.content.fingerprint import compute_fingerprint
from trans_sync.exceptions import (
    DocumentShapeError,
    SourceDocumentMissingError,
    StructuralTranslationError,
)
from trans_sync.interfaces import DocumentStore, JobStore
from trans_sync.types import (
    Document,
    JobOutcome,
    JobStatus,
    ProcessResult,
    ReviewResult,
    TranslationJob,
)

from .reviewer import QualityReviewer
from .translator import BulkTranslator

logger = structlog.get_logger(__name__)


def _iso_now() -> str:
    return datetime.now(timezone.utc).isoformat()


class SequentialWorker:
    """
    负责处理翻译任务的 Worker 类。
    所有依赖项通过构造函数注入。
    """

    def __init__(
        self,
        config: TransSyncConfig,
        job_store: JobStore,
        document_store: DocumentStore,
        translator: BulkTranslator,
        reviewer: QualityReviewer,
    ):
        self._config = config
        self._jobs = job_store
        self._documents = document_store
        self._translator = translator
        self._reviewer = reviewer

    @property
    def canonical_locale(self) -> str:
        return self._config.locales.canonical

    # ---------- 文档构建 ----------

    def build_translated_document(
        self,
        source: Document,
        translated: list[tuple[str, str]],
        locale: str,
        review: ReviewResult,
        source_fingerprint: str,
    ) -> Document:
        """重建译文并附加 meta，审核分数达到阈值时附加完成标记。"""
        document = rebuild_document(translated, source)
        reviewed_at = _iso_now()

        existing_meta = document.get("meta")
        meta: dict[str, Any] = dict(existing_meta) if isinstance(existing_meta, dict) else {}
        meta.update(
            locale=locale,
            last_updated=reviewed_at,
            translated_from=self.canonical_locale,
            provider=self._config.translation.provider_label,
            source_fingerprint=source_fingerprint,
            review={
                "score": review.score,
                "status": review.status.value,
                "notes": review.notes,
                "reviewed_at": reviewed_at,
            },
        )
        document["meta"] = meta

        document.pop("completion_marker", None)
        if review.score >= self._config.review.completion_threshold:
            document["completion_marker"] = {
                "status": "completed",
                "quality": review.status.value,
                "completed_at": reviewed_at,
                "done": True,
            }
        return document

    # ---------- 单个任务 ----------

    async def _execute(self, job: TranslationJob) -> ReviewResult:
        source = await self._documents.get(self.canonical_locale)
        if source is None:
            raise SourceDocumentMissingError(
                f"规范语言 {self.canonical_locale!r} 的源文档不存在。"
            )
        live_fingerprint = compute_fingerprint(source)
        if live_fingerprint != job.source_fingerprint:
            # 被取代的任务照常完成，基于最新的源文档翻译
            logger.info(
                "任务的源指纹已过期，将按当前源文档处理。",
                job_fingerprint=job.source_fingerprint[:12],
                live_fingerprint=live_fingerprint[:12],
            )

        strings = extract_strings(source)
        originals = [text for _, text in strings]
        logger.info("开始翻译。", strings=len(strings))

        translations = await self._translator.translate_all(originals, job.locale)
        review = await self._reviewer.review(originals, translations, job.locale)
        logger.info("质量审核完成。", score=review.score, review_status=review.status.value)

        translated = [(path, text) for (path, _), text in zip(strings, translations)]
        document = self.build_translated_document(
            source, translated, job.locale, review, live_fingerprint
        )
        await self._documents.put(job.locale, document)
        return review

    async def process_job(self, job: TranslationJob) -> JobOutcome:
        """处理一个已租用的任务，并把结果记录到任务上。"""
        with structlog.contextvars.bound_contextvars(job_id=job.id, locale=job.locale):
            try:
                review = await self._execute(job)
            except (StructuralTranslationError, DocumentShapeError) as e:
                logger.error("任务遇到结构性错误，标记为永久失败。", error=str(e))
                await self._jobs.mark_failed(job.id, str(e))
                return JobOutcome(
                    job_id=job.id, locale=job.locale, status=JobStatus.FAILED, error=str(e)
                )
            except Exception as e:
                error = f"{e.__class__.__name__}: {e}"
                if job.attempts >= self._config.worker.max_attempts:
                    logger.error(
                        "任务失败且尝试次数已耗尽。", attempts=job.attempts, error=error
                    )
                    await self._jobs.mark_failed(job.id, error)
                    status = JobStatus.FAILED
                else:
                    logger.warning(
                        "任务失败，将在下一次激活时重试。",
                        attempts=job.attempts,
                        error=error,
                    )
                    await self._jobs.release_for_retry(job.id, error)
                    status = JobStatus.PENDING
                return JobOutcome(
                    job_id=job.id, locale=job.locale, status=status, error=error
                )

            await self._jobs.mark_completed(job.id, review)
            logger.info("翻译任务已完成。", score=review.score)
            return JobOutcome(
                job_id=job.id,
                locale=job.locale,
                status=JobStatus.COMPLETED,
                review=review,
            )

    # ---------- 一次激活 ----------

    async def recover_stale_leases(self) -> int:
        cutoff = datetime.now(timezone.utc) - timedelta(
            seconds=self._config.worker.lease_timeout
        )
        return await self._jobs.requeue_stale(cutoff, self._config.worker.max_attempts)

    async def run_once(self, max_jobs: Optional[int] = None) -> ProcessResult:
        """
        执行一次激活：最多租用并处理 `max_jobs` 个任务后返回。
        """
        limit = max_jobs or self._config.worker.max_jobs_per_run
        outcomes: list[JobOutcome] = []

        try:
            await self.recover_stale_leases()
            while len(outcomes) < limit:
                if outcomes and self._config.worker.job_delay > 0:
                    await asyncio.sleep(self._config.worker.job_delay)
                job = await self._jobs.lease_next_job(self._config.worker.max_attempts)
                if job is None:
                    break
                outcomes.append(await self.process_job(job))
        except Exception as e:
            logger.error("处理任务时发生未知错误，本次激活提前结束。", error=str(e), exc_info=True)

        return self._summarize(outcomes)

    @staticmethod
    def _summarize(outcomes: list[JobOutcome]) -> ProcessResult:
        completed = sum(1 for o in outcomes if o.status is JobStatus.COMPLETED)
        failed = sum(1 for o in outcomes if o.status is JobStatus.FAILED)
        requeued = sum(1 for o in outcomes if o.status is JobStatus.PENDING)
        if outcomes:
            message = (
                f"Processed {len(outcomes)} translation job(s): "
                f"{completed} completed, {failed} failed, {requeued} requeued."
            )
            logger.info("本轮任务处理完成。", total_processed=len(outcomes))
        else:
            message = "No pending translation jobs."
            logger.debug("本轮未发现需要处理的任务。")
        return ProcessResult(
            processed_count=len(outcomes),
            completed=completed,
            failed=failed,
            requeued=requeued,
            message=message,
        )

    async def run_loop(self, shutdown_event: asyncio.Event) -> None:
        """以固定间隔反复激活 run_once，充当外部定时触发器。"""

        def _signal_handler(*args: Any) -> None:
            logger.warning("收到停机信号，正在准备优雅关闭...")
            shutdown_event.set()

        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, _signal_handler)
            except (NotImplementedError, RuntimeError):
                pass  # 非主线程或不支持信号的平台

        logger.info(
            "翻译 Worker 已启动，正在轮询任务...",
            poll_interval=self._config.worker.poll_interval,
        )
        try:
            while not shutdown_event.is_set():
                await self.run_once()
                try:
                    await asyncio.wait_for(
                        shutdown_event.wait(), timeout=self._config.worker.poll_interval
                    )
                except asyncio.TimeoutError:
                    pass
        except asyncio.CancelledError:
            logger.info("翻译 Worker 循环被取消。")
        finally:
            logger.info("翻译 Worker 已停止。")
