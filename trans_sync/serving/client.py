# trans_sync/serving/client.py
"""
客户端加载器：消费端自己的一层 TTL 缓存。

回退顺序：新鲜的本地缓存 -> 读路径 -> 过期的本地缓存 -> 默认语言 -> 空文档。
各客户端的缓存彼此独立、互不协调，TTL 内的陈旧是可接受的。
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any, Optional

import httpx
import structlog

from trans_sync.interfaces import TranslationSource
from trans_sync.types import Document

from .server import TranslationServer

logger = structlog.get_logger(__name__)


class LocalTranslationSource:
    """在同一进程内直接调用读路径服务。"""

    def __init__(self, server: TranslationServer):
        self._server = server

    async def fetch(
        self, locale: str, *, force: bool = False, include_status: bool = False
    ) -> dict[str, Any]:
        result = await self._server.get(locale, force=force, include_status=include_status)
        return result.model_dump(mode="json")


class HttpTranslationSource:
    """通过 HTTP API 访问读路径服务。"""

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=base_url.rstrip("/"), timeout=httpx.Timeout(timeout)
        )

    async def fetch(
        self, locale: str, *, force: bool = False, include_status: bool = False
    ) -> dict[str, Any]:
        params = {}
        if force:
            params["force"] = "true"
        if include_status:
            params["include_status"] = "true"
        response = await self._client.get(f"/translations/{locale}", params=params)
        response.raise_for_status()
        payload = response.json()
        if not isinstance(payload, dict) or not isinstance(payload.get("document"), dict):
            raise ValueError("读路径响应缺少 document 对象。")
        return payload

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()


@dataclass
class _Entry:
    document: Document
    fetched_at: float


class ClientLoader:
    """带独立 TTL 缓存的翻译文档加载器。"""

    def __init__(
        self,
        source: TranslationSource,
        default_locale: str = "en",
        ttl: float = 300.0,
        timer: Callable[[], float] = time.monotonic,
    ):
        self._source = source
        self._default_locale = default_locale
        self._ttl = ttl
        self._timer = timer
        # 过期条目不会被主动淘汰，读路径失败时还要用它兜底
        self._cache: dict[str, _Entry] = {}

    def _fresh(self, locale: str) -> Optional[_Entry]:
        entry = self._cache.get(locale)
        if entry is not None and self._timer() - entry.fetched_at < self._ttl:
            return entry
        return None

    async def load(
        self, locale: str, include_status: bool = False, force: bool = False
    ) -> Document:
        """加载指定语言的文档；任何失败都按回退顺序降级，从不抛出异常。"""
        if not force:
            entry = self._fresh(locale)
            if entry is not None:
                return entry.document

        try:
            payload = await self._source.fetch(
                locale, force=force, include_status=include_status
            )
        except Exception as e:
            logger.warning("加载翻译失败，开始降级。", locale=locale, error=str(e))
            return await self._degrade(locale)

        document: Document = payload["document"]
        self._cache[locale] = _Entry(document=document, fetched_at=self._timer())
        if payload.get("fallback"):
            logger.info("读路径返回了回退文档。", locale=locale)
        elif payload.get("translation_complete"):
            logger.debug("翻译已标记为完成。", locale=locale, quality=payload.get("quality"))
        return document

    async def _degrade(self, locale: str) -> Document:
        stale = self._cache.get(locale)
        if stale is not None:
            logger.info("使用过期的本地缓存。", locale=locale)
            return stale.document
        if locale != self._default_locale:
            logger.info("回退到默认语言。", locale=locale, default_locale=self._default_locale)
            return await self.load(self._default_locale)
        return {}

    async def get_translation(self, locale: str) -> Document:
        return await self.load(locale)

    async def load_with_status(self, locale: str) -> Document:
        return await self.load(locale, include_status=True)

    async def preload(self, locales: Iterable[str]) -> None:
        """并发预热多个语言的缓存。"""
        targets = list(dict.fromkeys(locales))
        await asyncio.gather(*(self.load(locale) for locale in targets))
        logger.debug("翻译预加载完成。", locales=targets)

    async def refresh(self, locale: str) -> Document:
        """丢弃本地缓存，并要求读路径绕过它自己的缓存。"""
        self.clear_cache(locale)
        return await self.load(locale, force=True)

    def has_cached(self, locale: str) -> bool:
        return self._fresh(locale) is not None

    def clear_cache(self, locale: Optional[str] = None) -> None:
        if locale is None:
            self._cache.clear()
        else:
            self._cache.pop(locale, None)

    def cache_stats(self) -> dict[str, Any]:
        return {"size": len(self._cache), "locales": sorted(self._cache)}
