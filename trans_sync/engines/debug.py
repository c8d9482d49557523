# trans_sync/engines/debug.py
"""
提供一个用于开发和测试的调试引擎。

- 普通请求：原样返回最后一条用户消息（恒等“翻译”，分隔符与条目数保持不变）。
- JSON 模式：返回一个固定分数的审核结果。
"""

import asyncio
import json
from collections.abc import Sequence

from trans_sync.config import DebugEngineSettings
from trans_sync.exceptions import APIError
from trans_sync.types import ChatMessage

from .base import BaseGenerationEngine


class DebugEngine(BaseGenerationEngine[DebugEngineSettings]):
    """一个确定性的离线引擎实现。"""

    CONFIG_MODEL = DebugEngineSettings

    async def _complete(
        self,
        messages: Sequence[ChatMessage],
        max_tokens: int,
        temperature: float,
        json_mode: bool,
    ) -> str:
        await asyncio.sleep(0)

        user_messages = [m.content for m in messages if m.role == "user"]
        content = user_messages[-1] if user_messages else ""

        if self.config.mode == "FAIL" or (
            self.config.fail_on_text and self.config.fail_on_text in content
        ):
            raise APIError("Debug engine forced to fail")

        if json_mode:
            return json.dumps(
                {
                    "score": self.config.review_score,
                    "status": "excellent",
                    "notes": "debug engine review",
                }
            )
        return content
