# trans_sync/types.py
"""
本模块定义了 Trans-Sync 系统的核心数据类型。
这些类型是流水线各层之间数据交换的契约。
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

# 文档是任意形状的 JSON 树：映射的叶子是字符串或不透明标量
JsonScalar = Union[str, int, float, bool, None]
JsonValue = Union[JsonScalar, dict[str, Any], list[Any]]
Document = dict[str, Any]

# (点分路径, 文本)
ExtractedString = tuple[str, str]


class JobStatus(str, Enum):
    """翻译任务在其生命周期中的状态。"""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class ReviewStatus(str, Enum):
    """质量审核的定性结论。"""

    PENDING = "pending"
    EXCELLENT = "excellent"
    GOOD = "good"
    NEEDS_REVIEW = "needs_review"
    POOR = "poor"
    REVIEW_FAILED = "review_failed"


class TranslationJob(BaseModel):
    """翻译任务记录的数据传输对象 (DTO)。"""

    model_config = ConfigDict(from_attributes=True)

    id: int
    locale: str
    status: JobStatus
    priority: int
    source_fingerprint: str
    attempts: int = 0
    created_at: datetime
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    error_message: Optional[str] = None
    review_status: ReviewStatus = ReviewStatus.PENDING
    review_score: Optional[int] = None
    review_notes: Optional[str] = None


class ReviewResult(BaseModel):
    """一次质量审核的结果。"""

    score: int = Field(ge=0, le=100)
    status: ReviewStatus
    notes: str = ""


class ChatMessage(BaseModel):
    """发送给文本生成服务的一条消息。"""

    role: str
    content: str


class ProcessResult(BaseModel):
    """一次 Worker 激活的汇总结果。"""

    processed_count: int
    completed: int = 0
    failed: int = 0
    requeued: int = 0
    message: str


class JobOutcome(BaseModel):
    """单个任务的处理结果。"""

    job_id: int
    locale: str
    status: JobStatus
    review: Optional[ReviewResult] = None
    error: Optional[str] = None


class EnqueueResult(BaseModel):
    """一次源文档发布或入队操作的结果。"""

    fingerprint: str
    created_jobs: list[TranslationJob] = Field(default_factory=list)
    skipped_locales: list[str] = Field(default_factory=list)


class QualityInfo(BaseModel):
    score: int
    status: str
    reviewed_at: Optional[str] = None


class JobStatusView(BaseModel):
    """某个语言最近一次任务的可观测视图。"""

    locale: str
    status: str
    job_id: Optional[int] = None
    priority: Optional[int] = None
    attempts: Optional[int] = None
    source_fingerprint: Optional[str] = None
    review_status: Optional[str] = None
    review_score: Optional[int] = None
    created_at: Optional[datetime] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    error_message: Optional[str] = None

    @classmethod
    def no_job(cls, locale: str) -> "JobStatusView":
        return cls(locale=locale, status="no_job")

    @classmethod
    def from_job(cls, job: TranslationJob) -> "JobStatusView":
        return cls(
            locale=job.locale,
            status=job.status.value,
            job_id=job.id,
            priority=job.priority,
            attempts=job.attempts,
            source_fingerprint=job.source_fingerprint,
            review_status=job.review_status.value,
            review_score=job.review_score,
            created_at=job.created_at,
            started_at=job.started_at,
            completed_at=job.completed_at,
            error_message=job.error_message,
        )


class ServeResult(BaseModel):
    """读路径返回给调用方的文档及其注解。"""

    locale: str
    document: Document
    cached: bool
    fallback: bool
    quality: Optional[QualityInfo] = None
    translation_complete: Optional[bool] = None
    completed_at: Optional[str] = None
    job_status: Optional[JobStatusView] = None
