# tests/unit/test_translator.py
"""针对 `trans_sync.pipeline.translator.BulkTranslator` 的单元测试。"""

from unittest.mock import AsyncMock

import pytest
from pytest_mock import MockerFixture

from tests.helpers.fakes import ScriptedEngine
from trans_sync.config import TranslationSettings
from trans_sync.exceptions import APIError, BatchCountMismatchError, DelimiterCollisionError
from trans_sync.pipeline import BulkTranslator


def make_translator(engine: ScriptedEngine, **overrides: object) -> BulkTranslator:
    settings = TranslationSettings(**{"batch_delay": 0, **overrides})
    return BulkTranslator(engine, settings, source_locale="en")


@pytest.mark.asyncio
async def test_translate_batch_keeps_positional_order() -> None:
    engine = ScriptedEngine(translate=lambda t: t[::-1])
    translator = make_translator(engine)

    result = await translator.translate_batch(["abc", "Hello", "xy"], "sv")

    assert result == ["cba", "olleH", "yx"]
    call = engine.translation_calls[0]
    assert call["max_tokens"] == 4096
    assert call["temperature"] == pytest.approx(0.1)
    assert call["messages"][-1].content == "abc ||| Hello ||| xy"


@pytest.mark.asyncio
async def test_system_prompt_names_languages_and_count() -> None:
    engine = ScriptedEngine()
    await make_translator(engine).translate_batch(["One", "Two"], "sv")

    system = engine.translation_calls[0]["messages"][0]
    assert system.role == "system"
    assert "English" in system.content
    assert "Swedish" in system.content
    assert "Return exactly 2 translations" in system.content


@pytest.mark.asyncio
async def test_translate_batch_strips_whitespace_around_parts() -> None:
    engine = ScriptedEngine()
    engine.translate = lambda t: f"  {t}!\n"
    result = await make_translator(engine).translate_batch(["a", "b"], "de")
    assert result == ["a!", "b!"]


@pytest.mark.asyncio
async def test_count_mismatch_raises_structural_error() -> None:
    """测试模型合并或拆分条目时抛出 BatchCountMismatchError。"""
    engine = ScriptedEngine(translate=lambda t: "merged ||| extra ||| parts")
    with pytest.raises(BatchCountMismatchError) as exc_info:
        await make_translator(engine).translate_batch(["one", "two"], "fr")
    assert exc_info.value.expected == 2
    assert exc_info.value.actual == 6


@pytest.mark.asyncio
async def test_text_containing_delimiter_is_rejected_before_request() -> None:
    engine = ScriptedEngine()
    with pytest.raises(DelimiterCollisionError):
        await make_translator(engine).translate_batch(["safe", "A ||| B"], "fr")
    assert engine.calls == []


@pytest.mark.asyncio
async def test_empty_response_raises_api_error() -> None:
    engine = ScriptedEngine(translate=lambda t: "   ")
    with pytest.raises(APIError):
        await make_translator(engine).translate_batch(["only"], "es")


@pytest.mark.asyncio
async def test_upstream_failure_propagates() -> None:
    engine = ScriptedEngine(failures=[TimeoutError("slow")])
    with pytest.raises(APIError, match="TimeoutError"):
        await make_translator(engine).translate_batch(["a"], "es")


@pytest.mark.asyncio
async def test_translate_all_batches_sequentially_with_delay(mocker: MockerFixture) -> None:
    """测试 translate_all 按批大小切分，并只在批与批之间等待。"""
    mock_sleep = mocker.patch(
        "trans_sync.pipeline.translator.asyncio.sleep", new_callable=AsyncMock
    )
    engine = ScriptedEngine()
    translator = make_translator(engine, batch_size=2, batch_delay=0.3)

    texts = [f"text {i}" for i in range(5)]
    result = await translator.translate_all(texts, "it")

    assert result == [f"T:text {i}" for i in range(5)]
    assert [len(c["messages"][-1].content.split(" ||| ")) for c in engine.calls] == [2, 2, 1]
    assert mock_sleep.await_count == 2
    mock_sleep.assert_awaited_with(0.3)


@pytest.mark.asyncio
async def test_translate_all_with_no_texts_makes_no_requests() -> None:
    engine = ScriptedEngine()
    assert await make_translator(engine).translate_all([], "it") == []
    assert engine.calls == []
