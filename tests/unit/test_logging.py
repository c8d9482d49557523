# tests/unit/test_logging.py
"""针对 `trans_sync.logging_config` 的单元测试。"""

import json
import logging
from collections.abc import Generator

import pytest
import structlog
from rich.console import Console

from trans_sync.logging_config import HybridPanelRenderer, setup_logging


@pytest.fixture
def restore_logging() -> Generator[None, None, None]:
    yield
    structlog.reset_defaults()
    logging.getLogger().handlers.clear()


@pytest.mark.usefixtures("restore_logging")
def test_json_format_emits_one_object_per_line(capsys: pytest.CaptureFixture[str]) -> None:
    setup_logging(log_level="DEBUG", log_format="json")
    structlog.get_logger("trans_sync.tests").info("任务已完成。", job_id=7)

    lines = [line for line in capsys.readouterr().err.splitlines() if line.strip()]
    events = [json.loads(line) for line in lines]
    assert events[0]["event"] == "日志系统已配置完成。"
    assert events[0]["log_format"] == "json"
    assert events[-1]["event"] == "任务已完成。"
    assert events[-1]["job_id"] == 7
    assert events[-1]["level"] == "info"


@pytest.mark.usefixtures("restore_logging")
def test_app_level_filters_debug(capsys: pytest.CaptureFixture[str]) -> None:
    setup_logging(log_level="WARNING", log_format="json")
    log = structlog.get_logger("trans_sync.tests")
    log.info("不应出现")
    log.warning("应当出现")
    err = capsys.readouterr().err
    events = [json.loads(line)["event"] for line in err.splitlines() if line.strip()]
    assert "不应出现" not in events
    assert "应当出现" in events
    # 非 ASCII 文本原样输出，不做 \\u 转义
    assert "应当出现" in err


def test_panel_renderer_includes_event_and_context() -> None:
    renderer = HybridPanelRenderer(console=Console(width=100, color_system=None))
    output = renderer(
        None,
        "info",
        {
            "event": "已租用翻译任务。",
            "level": "info",
            "logger": "trans_sync.persistence.job_store",
            "job_id": 3,
            "locale": "sv",
        },
    )
    assert "已租用翻译任务。" in output
    assert "trans_sync.persistence.job_store" in output
    assert "job_id" in output
    assert "'sv'" in output


def test_panel_renderer_skips_empty_event() -> None:
    renderer = HybridPanelRenderer(console=Console(width=80))
    assert renderer(None, "info", {"event": "  "}) == ""
