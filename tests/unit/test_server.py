# tests/unit/test_server.py
"""
针对读路径 `TranslationServer` 的单元测试。

使用内存文档库与可控时钟，验证缓存 TTL、回退到规范语言以及占位文档。
"""

from typing import Any
from unittest.mock import AsyncMock

import pytest

from tests.helpers.fakes import FakeClock, InMemoryDocumentStore
from trans_sync.config import LocaleSettings, ServingSettings
from trans_sync.exceptions import DatabaseError, UnsupportedLocaleError
from trans_sync.locales import LocalePolicy
from trans_sync.serving import TranslationServer

SOURCE = {"meta": {"locale": "en"}, "hero": {"title": "Hello"}}
SWEDISH = {
    "meta": {
        "locale": "sv",
        "review": {"score": 92, "status": "excellent", "notes": "ok", "reviewed_at": "2024-05-01T10:00:00+00:00"},
    },
    "hero": {"title": "Hej"},
    "completion_marker": {
        "status": "completed",
        "quality": "excellent",
        "completed_at": "2024-05-01T10:00:00+00:00",
        "done": True,
    },
}


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def documents() -> InMemoryDocumentStore:
    return InMemoryDocumentStore({"en": SOURCE, "sv": SWEDISH})


@pytest.fixture
def job_store() -> Any:
    store = AsyncMock()
    store.latest_job.return_value = None
    return store


@pytest.fixture
def server(documents: InMemoryDocumentStore, job_store: Any, clock: FakeClock) -> TranslationServer:
    return TranslationServer(
        documents, job_store, LocalePolicy(LocaleSettings()), ServingSettings(), timer=clock
    )


@pytest.mark.asyncio
async def test_serves_translation_with_quality_annotations(server: TranslationServer) -> None:
    result = await server.get("sv")
    assert result.document["hero"]["title"] == "Hej"
    assert result.fallback is False
    assert result.cached is False
    assert result.quality is not None and result.quality.score == 92
    assert result.translation_complete is True
    assert result.completed_at == "2024-05-01T10:00:00+00:00"


@pytest.mark.asyncio
async def test_cache_hit_until_ttl_expires(
    server: TranslationServer, documents: InMemoryDocumentStore, clock: FakeClock
) -> None:
    """测试 TTL 内第二次读取命中缓存，过期后重新读取存储。"""
    await server.get("sv")
    clock.advance(299)
    second = await server.get("sv")
    assert second.cached is True
    assert documents.reads == ["sv"]

    clock.advance(2)
    third = await server.get("sv")
    assert third.cached is False
    assert documents.reads == ["sv", "sv"]


@pytest.mark.asyncio
async def test_force_bypasses_cache(
    server: TranslationServer, documents: InMemoryDocumentStore
) -> None:
    await server.get("sv")
    documents.documents["sv"] = {"hero": {"title": "Hej igen"}}
    result = await server.get("sv", force=True)
    assert result.cached is False
    assert result.document["hero"]["title"] == "Hej igen"


@pytest.mark.asyncio
async def test_missing_translation_falls_back_to_canonical(
    server: TranslationServer, documents: InMemoryDocumentStore
) -> None:
    result = await server.get("de")
    assert result.fallback is True
    assert result.document["hero"]["title"] == "Hello"
    assert result.document["_fallback"] is True
    assert result.document["_original_locale"] == "en"
    # 回退标记只出现在副本上，缓存中的规范文档保持原样
    canonical = await server.get("en")
    assert "_fallback" not in canonical.document
    assert "_fallback" not in documents.documents["en"]


@pytest.mark.asyncio
async def test_fallback_is_cached_under_requested_locale(
    server: TranslationServer, documents: InMemoryDocumentStore
) -> None:
    await server.get("de")
    reads_after_first = list(documents.reads)
    second = await server.get("de")
    assert second.cached is True
    assert second.fallback is True
    assert documents.reads == reads_after_first


@pytest.mark.asyncio
async def test_storage_failure_degrades_to_placeholder(
    server: TranslationServer, documents: InMemoryDocumentStore
) -> None:
    """测试存储不可用时返回占位文档，且占位文档不进入缓存。"""
    documents.fail_reads = True
    result = await server.get("fr")
    assert result.fallback is True
    assert result.document["meta"]["error"] is True
    assert result.document["_fallback"] is True

    documents.fail_reads = False
    recovered = await server.get("fr")
    assert recovered.document["hero"]["title"] == "Hello"
    assert "error" not in recovered.document["meta"]


@pytest.mark.asyncio
@pytest.mark.parametrize("locale", [None, "", "xx"])
async def test_unsupported_locale_is_rejected(server: TranslationServer, locale: Any) -> None:
    with pytest.raises(UnsupportedLocaleError):
        await server.get(locale)


@pytest.mark.asyncio
async def test_include_status_reports_no_job(server: TranslationServer) -> None:
    result = await server.get("sv", include_status=True)
    assert result.job_status is not None
    assert result.job_status.status == "no_job"


@pytest.mark.asyncio
async def test_status_reports_unknown_when_job_store_fails(
    server: TranslationServer, job_store: Any
) -> None:
    job_store.latest_job.side_effect = DatabaseError("down")
    view = await server.status("sv")
    assert view.status == "unknown"
    assert view.error_message == "down"


@pytest.mark.asyncio
async def test_invalidate_drops_entries(
    server: TranslationServer, documents: InMemoryDocumentStore
) -> None:
    await server.get("sv")
    await server.get("en")
    assert server.cache_stats()["locales"] == ["en", "sv"]

    server.invalidate("sv")
    assert server.cache_stats()["locales"] == ["en"]
    server.invalidate()
    assert server.cache_stats()["size"] == 0
