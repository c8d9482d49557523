# trans_sync/engines/openai.py
"""提供一个使用 OpenAI Chat Completions API 的文本生成引擎。"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

import httpx
import structlog
from openai import (
    APIConnectionError,
    APIStatusError,
    APITimeoutError,
    AsyncOpenAI,
    AuthenticationError,
)

from trans_sync.config import OpenAISettings
from trans_sync.exceptions import APIError, ConfigurationError
from trans_sync.types import ChatMessage

from .base import BaseGenerationEngine

logger = structlog.get_logger(__name__)


class OpenAIEngine(BaseGenerationEngine[OpenAISettings]):
    """使用 OpenAI API 的文本生成引擎实现。"""

    CONFIG_MODEL = OpenAISettings
    VERSION = "1.0.0"

    def __init__(self, config: OpenAISettings):
        super().__init__(config)
        if config.api_key is None or not config.api_key.get_secret_value():
            raise ConfigurationError(
                "OpenAI 引擎配置错误: 缺少 API 密钥 (TRANSSYNC_OPENAI__API_KEY)。"
            )

        timeout = httpx.Timeout(config.timeout, connect=config.connect_timeout)
        self.client = AsyncOpenAI(
            api_key=config.api_key.get_secret_value(),
            base_url=config.base_url or None,
            timeout=timeout,
            max_retries=config.max_retries,
        )

    async def initialize(self) -> None:
        if not self.config.health_check:
            await super().initialize()
            return
        logger.info("OpenAI 引擎正在初始化并执行健康检查...", model=self.config.model)
        try:
            await self.client.models.list(timeout=10)
            logger.info("OpenAI 引擎健康检查通过。")
        except AuthenticationError as e:
            raise ConfigurationError(
                f"OpenAI API Key 无效或权限不足: {_error_message(e)}"
            ) from e
        except APIConnectionError as e:
            raise ConfigurationError(f"无法连接到 OpenAI 端点: {e}") from e
        await super().initialize()

    async def close(self) -> None:
        if not self.client.is_closed():
            await self.client.close()
            logger.info("OpenAI 引擎的 HTTP 客户端已关闭。")
        await super().close()

    async def _complete(
        self,
        messages: Sequence[ChatMessage],
        max_tokens: int,
        temperature: float,
        json_mode: bool,
    ) -> str:
        kwargs: dict[str, Any] = {}
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}

        try:
            response = await self.client.chat.completions.create(
                model=self.config.model,
                messages=[m.model_dump() for m in messages],  # type: ignore[misc]
                max_tokens=max_tokens,
                temperature=temperature,
                **kwargs,
            )
        except APITimeoutError as e:
            raise APIError(f"OpenAI 请求超时: {e}") from e
        except APIConnectionError as e:
            raise APIError(f"OpenAI 连接失败: {e}") from e
        except APIStatusError as e:
            raise APIError(
                f"OpenAI API Error ({e.status_code}): {_error_message(e)}"
            ) from e

        if not response.choices:
            raise APIError("API 返回了空的 'choices' 列表。")

        content = response.choices[0].message.content
        if not content or not content.strip():
            raise APIError("API 返回了空内容。")
        return content.strip()


def _error_message(e: APIStatusError) -> str:
    if isinstance(e.body, dict):
        return str(e.body.get("message", e))
    return str(e)
