# tests/conftest.py
"""项目全局共享的测试 Fixtures。"""

from collections.abc import AsyncGenerator, Generator
from pathlib import Path
from typing import Any

import pytest
import pytest_asyncio
from pytest_mock import MockerFixture
from rich.console import Console

from tests.helpers.fakes import ScriptedEngine
from trans_sync.bootstrap import create_app_config, create_coordinator
from trans_sync.config import TransSyncConfig
from trans_sync.coordinator import Coordinator


@pytest.fixture(scope="session", autouse=True)
def disable_rich_colors_for_tests(
    session_mocker: MockerFixture,
) -> Generator[None, None, None]:
    """全局禁用 rich 库的颜色输出，以确保测试结果的确定性。"""
    original_init = Console.__init__

    def new_init(self: Console, *args: Any, **kwargs: Any) -> None:
        kwargs["force_terminal"] = False
        kwargs["color_system"] = None
        original_init(self, *args, **kwargs)

    session_mocker.patch("rich.console.Console.__init__", new=new_init)
    yield


@pytest.fixture
def test_config(tmp_path: Path) -> TransSyncConfig:
    """每个测试独享一个临时 SQLite 文件，并关闭所有礼貌性延迟。"""
    return create_app_config(
        database={"url": f"sqlite+aiosqlite:///{tmp_path / 'transsync.db'}"},
        documents={"local_dir": str(tmp_path / "documents")},
        worker={"job_delay": 0},
        translation={"batch_delay": 0},
    )


@pytest.fixture
def scripted_engine() -> ScriptedEngine:
    return ScriptedEngine()


@pytest_asyncio.fixture
async def coordinator(
    test_config: TransSyncConfig, scripted_engine: ScriptedEngine
) -> AsyncGenerator[Coordinator, None]:
    """提供一个已初始化、使用脚本引擎的 Coordinator。"""
    coord = create_coordinator(test_config, engine=scripted_engine)
    await coord.initialize()
    yield coord
    await coord.close()
