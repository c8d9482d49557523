# trans_sync/interfaces.py
"""
定义了 Trans-Sync 中所有基础设施和服务的抽象接口协议 (Protocols)。
流水线组件只依赖这些协议，具体实现由 bootstrap 显式注入。
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from typing import TYPE_CHECKING, Any, Optional, Protocol

if TYPE_CHECKING:
    from trans_sync.types import ChatMessage, Document, ReviewResult, TranslationJob


class TextGenerationClient(Protocol):
    """定义了文本生成能力（翻译与审核共用）的接口。"""

    async def complete(
        self,
        messages: Sequence["ChatMessage"],
        *,
        max_tokens: int,
        temperature: float,
        json_mode: bool = False,
    ) -> str:
        """
        发送一组消息并返回生成的文本。
        任何上游失败（包括超时）都应以 `APIError` 抛出。
        """
        ...


class JobStore(Protocol):
    """
    定义了持久化翻译任务队列的接口。
    `lease_next_job` 必须在存储层原子地完成 pending -> processing 的转换。
    """

    async def create_job(
        self, locale: str, priority: int, source_fingerprint: str
    ) -> "TranslationJob": ...

    async def has_job_for_fingerprint(self, locale: str, source_fingerprint: str) -> bool:
        ...

    async def get_job(self, job_id: int) -> Optional["TranslationJob"]: ...

    async def lease_next_job(self, max_attempts: int) -> Optional["TranslationJob"]:
        """按 (priority, created_at) 租用下一个可处理的任务；无任务时返回 None。"""
        ...

    async def lease_job(
        self, job_id: int, max_attempts: int
    ) -> Optional["TranslationJob"]:
        """租用指定任务；若该任务已不满足租用条件则返回 None。"""
        ...

    async def mark_completed(self, job_id: int, review: "ReviewResult") -> None: ...

    async def mark_failed(self, job_id: int, error_message: str) -> None: ...

    async def release_for_retry(self, job_id: int, error_message: str) -> None: ...

    async def requeue_stale(self, started_before: datetime, max_attempts: int) -> int:
        """回收租约超时的 processing 任务，返回受影响的任务数。"""
        ...

    async def latest_job(self, locale: str) -> Optional["TranslationJob"]: ...

    async def latest_completed_job(self, locale: str) -> Optional["TranslationJob"]:
        ...

    async def close(self) -> None: ...


class DocumentStore(Protocol):
    """定义了按语言持久化文档（源文档与译文）的接口。"""

    async def get(self, locale: str) -> Optional["Document"]:
        """读取指定语言的文档，不存在时返回 None。"""
        ...

    async def put(self, locale: str, document: "Document") -> None:
        """创建或覆盖指定语言的文档。"""
        ...

    async def list_locales(self) -> list[str]: ...

    async def close(self) -> None: ...


class TranslationSource(Protocol):
    """客户端加载器使用的读路径传输层（进程内或 HTTP）。"""

    async def fetch(
        self, locale: str, *, force: bool = False, include_status: bool = False
    ) -> dict[str, Any]:
        """返回读路径的响应载荷，至少包含 `document` 字段。"""
        ...
