# trans_sync/engines/base.py
"""
定义了所有文本生成引擎的抽象基类。

引擎实现 `TextGenerationClient` 协议，翻译器与审核器通过它发起请求。
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import Generic, TypeVar

import structlog

from trans_sync.config import EngineSettings
from trans_sync.exceptions import APIError, TransSyncError
from trans_sync.rate_limiter import RateLimiter
from trans_sync.types import ChatMessage

_ConfigType = TypeVar("_ConfigType", bound=EngineSettings)

logger = structlog.get_logger(__name__)


class BaseGenerationEngine(ABC, Generic[_ConfigType]):
    """文本生成引擎的纯异步抽象基类，内置速率限制。"""

    CONFIG_MODEL: type[_ConfigType]
    VERSION: str = "1.0.0"

    def __init__(self, config: _ConfigType):
        self.config = config
        self.initialized = False
        self._rate_limiter: RateLimiter | None = RateLimiter.from_settings(config)

    @classmethod
    def name(cls) -> str:
        """从类名自动推断引擎的名称。"""
        return cls.__name__.removesuffix("Engine").lower()

    async def initialize(self) -> None:
        """引擎的异步初始化钩子，用于设置连接池等。"""
        self.initialized = True

    async def close(self) -> None:
        """引擎的异步关闭钩子，用于安全释放资源。"""
        self.initialized = False

    @abstractmethod
    async def _complete(
        self,
        messages: Sequence[ChatMessage],
        max_tokens: int,
        temperature: float,
        json_mode: bool,
    ) -> str:
        """[子类实现] 真正执行一次生成请求的逻辑。"""
        raise NotImplementedError

    async def complete(
        self,
        messages: Sequence[ChatMessage],
        *,
        max_tokens: int,
        temperature: float,
        json_mode: bool = False,
    ) -> str:
        """
        [公共 API] 发送一次生成请求并返回文本。

        本方法不做任何重试：失败会以 `APIError` 抛给调用方，
        由任务的尝试次数决定是否在下一次激活时重试。
        """
        if self._rate_limiter:
            await self._rate_limiter.acquire()

        try:
            return await self._complete(messages, max_tokens, temperature, json_mode)
        except TransSyncError:
            raise
        except Exception as e:
            logger.warning("引擎执行时发生未知异常。", engine=self.name(), error=str(e))
            raise APIError(
                f"引擎 '{self.name()}' 执行异常: {e.__class__.__name__}: {e}"
            ) from e
