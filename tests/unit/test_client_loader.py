# tests/unit/test_client_loader.py
"""
针对客户端加载器 `ClientLoader` 与 `HttpTranslationSource` 的单元测试。

回退顺序：新鲜缓存 -> 读路径 -> 过期缓存 -> 默认语言 -> 空文档。
"""

from typing import Any
from unittest.mock import AsyncMock

import httpx
import pytest

from tests.helpers.fakes import FakeClock
from trans_sync.serving import ClientLoader, HttpTranslationSource


def payload(document: dict[str, Any], **extra: Any) -> dict[str, Any]:
    return {"locale": "sv", "document": document, "cached": False, "fallback": False, **extra}


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def source() -> AsyncMock:
    src = AsyncMock()
    src.fetch.return_value = payload({"hero": {"title": "Hej"}})
    return src


@pytest.fixture
def loader(source: AsyncMock, clock: FakeClock) -> ClientLoader:
    return ClientLoader(source, default_locale="en", ttl=300, timer=clock)


@pytest.mark.asyncio
async def test_fresh_cache_avoids_second_fetch(
    loader: ClientLoader, source: AsyncMock, clock: FakeClock
) -> None:
    assert await loader.get_translation("sv") == {"hero": {"title": "Hej"}}
    clock.advance(100)
    await loader.get_translation("sv")
    assert source.fetch.await_count == 1
    assert loader.has_cached("sv")

    clock.advance(300)
    assert not loader.has_cached("sv")
    await loader.get_translation("sv")
    assert source.fetch.await_count == 2


@pytest.mark.asyncio
async def test_stale_cache_is_used_when_fetch_fails(
    loader: ClientLoader, source: AsyncMock, clock: FakeClock
) -> None:
    await loader.get_translation("sv")
    clock.advance(1000)
    source.fetch.side_effect = httpx.ConnectError("offline")
    assert await loader.get_translation("sv") == {"hero": {"title": "Hej"}}


@pytest.mark.asyncio
async def test_falls_back_to_default_locale_then_empty(
    loader: ClientLoader, source: AsyncMock
) -> None:
    """测试没有任何缓存时先回退到默认语言，默认语言也失败时返回空文档。"""

    async def fetch(locale: str, **kwargs: Any) -> dict[str, Any]:
        if locale == "en":
            return payload({"hero": {"title": "Hello"}})
        raise httpx.ConnectError("offline")

    source.fetch.side_effect = fetch
    assert await loader.get_translation("de") == {"hero": {"title": "Hello"}}

    source.fetch.side_effect = httpx.ConnectError("offline")
    loader.clear_cache()
    assert await loader.get_translation("de") == {}


@pytest.mark.asyncio
async def test_refresh_forces_server_bypass(loader: ClientLoader, source: AsyncMock) -> None:
    await loader.get_translation("sv")
    await loader.refresh("sv")
    assert source.fetch.await_args.kwargs["force"] is True


@pytest.mark.asyncio
async def test_load_with_status_requests_job_status(
    loader: ClientLoader, source: AsyncMock
) -> None:
    await loader.load_with_status("sv")
    assert source.fetch.await_args.kwargs["include_status"] is True


@pytest.mark.asyncio
async def test_preload_fetches_each_locale_once(loader: ClientLoader, source: AsyncMock) -> None:
    await loader.preload(["sv", "de", "sv"])
    assert sorted(c.args[0] for c in source.fetch.await_args_list) == ["de", "sv"]
    assert loader.cache_stats() == {"size": 2, "locales": ["de", "sv"]}


@pytest.mark.asyncio
async def test_http_source_fetches_translation() -> None:
    """测试 HTTP 数据源的请求参数与响应校验。"""
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        if request.url.path == "/translations/sv":
            return httpx.Response(200, json=payload({"hero": {"title": "Hej"}}))
        return httpx.Response(200, json={"unexpected": True})

    client = httpx.AsyncClient(
        base_url="http://testserver", transport=httpx.MockTransport(handler)
    )
    source = HttpTranslationSource("http://testserver", client=client)

    data = await source.fetch("sv", force=True, include_status=True)
    assert data["document"] == {"hero": {"title": "Hej"}}
    assert seen[0].url.params["force"] == "true"
    assert seen[0].url.params["include_status"] == "true"

    with pytest.raises(ValueError):
        await source.fetch("de")
    await client.aclose()
