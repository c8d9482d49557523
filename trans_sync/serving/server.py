# trans_sync/serving/server.py
"""
读路径：带短 TTL 内存缓存的文档服务，目标语言缺失时回退到规范语言文档。

除了语言代码校验失败之外，本层从不向调用方抛出异常：
存储读失败时按“缺失”处理并回退，连规范语言文档都拿不到时返回内置占位文档。
"""

from __future__ import annotations

import copy
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Optional

import structlog
from cachetools import TTLCache

from trans_sync.config import ServingSettings
from trans_sync.interfaces import DocumentStore, JobStore
from trans_sync.locales import LocalePolicy
from trans_sync.types import Document, JobStatusView, QualityInfo, ServeResult

logger = structlog.get_logger(__name__)

FALLBACK_FLAG = "_fallback"
ORIGINAL_LOCALE_KEY = "_original_locale"


@dataclass(frozen=True)
class CacheEntry:
    locale: str
    document: Document
    fetched_at: float
    fallback: bool = False


def placeholder_document(locale: str, reason: str) -> Document:
    """连规范语言文档都不可用时返回的最小文档。"""
    return {
        "meta": {
            "locale": locale,
            "error": True,
            "error_message": reason,
        },
        FALLBACK_FLAG: True,
    }


def quality_of(document: Document) -> Optional[QualityInfo]:
    meta = document.get("meta")
    review = meta.get("review") if isinstance(meta, dict) else None
    if not isinstance(review, dict) or "score" not in review:
        return None
    return QualityInfo(
        score=review["score"],
        status=str(review.get("status", "unknown")),
        reviewed_at=review.get("reviewed_at"),
    )


def completion_of(document: Document) -> tuple[Optional[bool], Optional[str]]:
    marker = document.get("completion_marker")
    if isinstance(marker, dict) and marker.get("done") is True:
        return True, marker.get("completed_at")
    return None, None


class TranslationServer:
    """按语言提供文档的只读服务。"""

    def __init__(
        self,
        document_store: DocumentStore,
        job_store: JobStore,
        locales: LocalePolicy,
        settings: ServingSettings,
        timer: Callable[[], float] = time.monotonic,
    ):
        self._documents = document_store
        self._jobs = job_store
        self._locales = locales
        self._timer = timer
        self._cache: TTLCache[str, CacheEntry] = TTLCache(
            maxsize=settings.cache_maxsize, ttl=settings.cache_ttl, timer=timer
        )

    @property
    def supported_locales(self) -> tuple[str, ...]:
        return self._locales.supported

    async def _read_store(self, locale: str) -> Optional[Document]:
        try:
            return await self._documents.get(locale)
        except Exception as e:
            logger.warning("读取文档失败，按缺失处理。", locale=locale, error=str(e))
            return None

    async def _load(self, locale: str, force: bool) -> tuple[Optional[CacheEntry], bool]:
        """返回 (缓存条目, 是否命中缓存)；文档不存在时条目为 None。"""
        if not force:
            entry = self._cache.get(locale)
            if entry is not None:
                return entry, True

        document = await self._read_store(locale)
        if document is None:
            return None, False
        entry = CacheEntry(locale=locale, document=document, fetched_at=self._timer())
        self._cache[locale] = entry
        return entry, False

    async def get(
        self, locale: Optional[str], force: bool = False, include_status: bool = False
    ) -> ServeResult:
        """
        读取指定语言的文档。

        Raises:
            UnsupportedLocaleError: 语言代码缺失或不受支持。
        """
        code = self._locales.validate(locale)
        canonical = self._locales.canonical

        entry, cached = await self._load(code, force)
        if entry is None and code != canonical:
            entry, cached = await self._fallback(code, force)

        if entry is None:
            logger.error("规范语言文档也不可用，返回占位文档。", locale=code)
            document = placeholder_document(code, "Translation and fallback unavailable")
            fallback = True
        else:
            document = entry.document
            fallback = entry.fallback

        complete, completed_at = completion_of(document)
        result = ServeResult(
            locale=code,
            document=document,
            cached=cached,
            fallback=fallback,
            quality=quality_of(document),
            translation_complete=complete,
            completed_at=completed_at,
        )
        if include_status:
            result.job_status = await self.status(code)
        return result

    async def _fallback(self, locale: str, force: bool) -> tuple[Optional[CacheEntry], bool]:
        canonical = self._locales.canonical
        logger.info("译文不存在，回退到规范语言。", locale=locale, fallback_locale=canonical)
        source_entry, cached = await self._load(canonical, force)
        if source_entry is None:
            return None, False

        document: dict[str, Any] = copy.deepcopy(source_entry.document)
        document[FALLBACK_FLAG] = True
        document[ORIGINAL_LOCALE_KEY] = canonical
        entry = CacheEntry(
            locale=locale, document=document, fetched_at=self._timer(), fallback=True
        )
        self._cache[locale] = entry
        return entry, cached

    async def status(self, locale: str) -> JobStatusView:
        """返回该语言最近一个任务的状态视图，仅用于可观测性。"""
        try:
            job = await self._jobs.latest_job(locale)
        except Exception as e:
            logger.warning("读取任务状态失败。", locale=locale, error=str(e))
            return JobStatusView(locale=locale, status="unknown", error_message=str(e))
        return JobStatusView.from_job(job) if job else JobStatusView.no_job(locale)

    def invalidate(self, locale: Optional[str] = None) -> None:
        """丢弃一个或全部缓存条目。"""
        if locale is None:
            self._cache.clear()
        else:
            self._cache.pop(locale, None)

    def cache_stats(self) -> dict[str, Any]:
        self._cache.expire()
        return {"size": len(self._cache), "locales": sorted(self._cache.keys())}
