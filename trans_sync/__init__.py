# trans_sync/__init__.py
"""
Trans-Sync：让多语言文档与单一规范源文档保持同步的翻译任务流水线。

主要入口：
- `create_app_config` / `create_coordinator`：加载配置并装配组件。
- `Coordinator`：发布源文档、触发 Worker、读取文档、强制重新生成。
"""

__version__ = "0.1.0"

from trans_sync.bootstrap import create_app_config, create_coordinator
from trans_sync.config import TransSyncConfig
from trans_sync.coordinator import Coordinator
from trans_sync.types import (
    JobStatus,
    ProcessResult,
    ReviewResult,
    ReviewStatus,
    ServeResult,
    TranslationJob,
)

__all__ = [
    "Coordinator",
    "JobStatus",
    "ProcessResult",
    "ReviewResult",
    "ReviewStatus",
    "ServeResult",
    "TransSyncConfig",
    "TranslationJob",
    "__version__",
    "create_app_config",
    "create_coordinator",
]
