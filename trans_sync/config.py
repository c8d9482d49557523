# trans_sync/config.py
"""
Trans-Sync 配置（Pydantic v2）

所有配置均可通过 `TRANSSYNC_` 前缀的环境变量覆盖，嵌套字段使用 `__` 分隔，
例如 `TRANSSYNC_WORKER__MAX_JOBS_PER_RUN=10`。
每一层缓存的 TTL 在此显式声明：服务端读路径缓存见 `serving`，客户端缓存见 `client`。
"""

from __future__ import annotations

from typing import Literal, Optional

import langcodes
from pydantic import BaseModel, Field, SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine.url import make_url

# ===================== 子模型 =====================


class DatabaseSettings(BaseModel):
    """任务库与文档库所在的数据库（运行期异步驱动）"""

    url: str = Field(
        default="sqlite+aiosqlite:///transsync.db",
        description="异步 DSN（sqlite+aiosqlite / postgresql+asyncpg）",
    )
    echo: bool = Field(default=False, description="SQLAlchemy echo（调试）")

    @field_validator("url")
    @classmethod
    def _validate_async_driver(cls, v: str) -> str:
        allowed = {"sqlite+aiosqlite", "postgresql+asyncpg"}
        try:
            drv = make_url(v).drivername.lower()
        except Exception as e:
            raise ValueError(f"非法数据库 URL：{v!r}（{e}）") from e
        if drv not in allowed:
            raise ValueError(
                f"不支持的运行期数据库驱动：{drv!r}，仅允许 {', '.join(sorted(allowed))}"
            )
        return v


class DocumentStoreSettings(BaseModel):
    backend: Literal["db", "local"] = Field(default="db")
    local_dir: str = Field(default="./data/translations")


class LocaleSettings(BaseModel):
    """支持的语言集合以及入队优先级策略。"""

    canonical: str = Field(default="en")
    supported: list[str] = Field(
        default_factory=lambda: [
            "en", "sv", "de", "fr", "es", "it", "pt",
            "nl", "da", "no", "fi", "ja", "zh",
        ]
    )
    high_priority: list[str] = Field(default_factory=lambda: ["sv", "de", "fr", "es"])
    high_priority_value: int = Field(default=1, ge=0)
    default_priority_value: int = Field(default=2, ge=0)
    regenerate_priority_value: int = Field(default=0, ge=0)

    @field_validator("canonical")
    @classmethod
    def _validate_canonical(cls, v: str) -> str:
        if not langcodes.tag_is_valid(v):
            raise ValueError(f"非法语言代码: {v}")
        return v

    @field_validator("supported", "high_priority")
    @classmethod
    def _validate_codes(cls, v: list[str]) -> list[str]:
        invalid = [code for code in v if not langcodes.tag_is_valid(code)]
        if invalid:
            raise ValueError(f"非法语言代码: {', '.join(invalid)}")
        return v

    @model_validator(mode="after")
    def _canonical_is_supported(self) -> "LocaleSettings":
        if self.canonical not in self.supported:
            raise ValueError(f"规范语言 {self.canonical!r} 必须包含在 supported 列表中")
        return self


class WorkerSettings(BaseModel):
    max_jobs_per_run: int = Field(default=5, ge=1)
    max_attempts: int = Field(default=3, ge=1)
    job_delay: float = Field(default=1.0, ge=0)
    poll_interval: float = Field(default=60.0, gt=0)
    lease_timeout: float = Field(default=900.0, gt=0)


class TranslationSettings(BaseModel):
    batch_size: int = Field(default=15, ge=1, le=100)
    batch_delay: float = Field(default=0.3, ge=0)
    delimiter: str = Field(default=" ||| ", min_length=1)
    max_tokens: int = Field(default=4096, gt=0)
    temperature: float = Field(default=0.1, ge=0)
    domain: str = Field(default="travel and tourism")
    provider_label: str = Field(default="openai-sequential")

    @field_validator("delimiter")
    @classmethod
    def _delimiter_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("分隔符不能只包含空白字符")
        return v


class ReviewSettings(BaseModel):
    max_tokens: int = Field(default=1024, gt=0)
    temperature: float = Field(default=0.1, ge=0)
    completion_threshold: int = Field(default=70, ge=0, le=100)


class ServingSettings(BaseModel):
    cache_ttl: float = Field(default=300.0, gt=0)
    cache_maxsize: int = Field(default=64, ge=1)


class ClientSettings(BaseModel):
    cache_ttl: float = Field(default=300.0, gt=0)
    base_url: Optional[str] = Field(default=None)
    timeout: float = Field(default=10.0, gt=0)


class EngineSettings(BaseModel):
    """所有文本生成引擎配置的基类，提供了通用的速率控制选项。"""

    rpm: Optional[int] = Field(
        default=None, description="每分钟最大请求数 (Requests Per Minute)", gt=0
    )
    burst: Optional[int] = Field(
        default=None, description="可累积的突发请求数，缺省等于 rpm", gt=0
    )


class OpenAISettings(EngineSettings):
    api_key: Optional[SecretStr] = Field(default=None)
    base_url: Optional[str] = Field(default=None)
    model: str = Field(default="gpt-4o-mini")
    timeout: float = Field(default=60.0, gt=0)
    connect_timeout: float = Field(default=5.0, gt=0)
    # 重试完全交给任务的 attempts 计数，SDK 内部不做重试
    max_retries: int = Field(default=0, ge=0)
    health_check: bool = Field(default=True, description="初始化时是否请求 /models 做连通性检查")


class DebugEngineSettings(EngineSettings):
    mode: Literal["SUCCESS", "FAIL"] = Field(default="SUCCESS")
    fail_on_text: Optional[str] = Field(default=None)
    review_score: int = Field(default=95, ge=0, le=100)


class LoggingSettings(BaseModel):
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(default="INFO")
    format: Literal["console", "json"] = Field(default="console")


class ApiSettings(BaseModel):
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8000, ge=1, le=65535)


# ===================== 顶层配置 =====================
class TransSyncConfig(BaseSettings):
    """
    Trans-Sync 核心配置模型。
    """

    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    documents: DocumentStoreSettings = Field(default_factory=DocumentStoreSettings)
    locales: LocaleSettings = Field(default_factory=LocaleSettings)
    worker: WorkerSettings = Field(default_factory=WorkerSettings)
    translation: TranslationSettings = Field(default_factory=TranslationSettings)
    review: ReviewSettings = Field(default_factory=ReviewSettings)
    serving: ServingSettings = Field(default_factory=ServingSettings)
    client: ClientSettings = Field(default_factory=ClientSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    api: ApiSettings = Field(default_factory=ApiSettings)

    active_engine: Literal["debug", "openai"] = "debug"
    openai: OpenAISettings = Field(default_factory=OpenAISettings)
    debug_engine: DebugEngineSettings = Field(default_factory=DebugEngineSettings)

    # --- Pydantic v2 设置 ---
    model_config = SettingsConfigDict(
        env_nested_delimiter="__",
        env_prefix="TRANSSYNC_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
        env_file_encoding="utf-8",
    )
