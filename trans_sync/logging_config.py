# trans_sync/logging_config.py
"""
本模块负责集中配置项目的日志系统。

- console：使用 Rich 渲染信息块式的面板，适合开发环境。
- json：每行一个 JSON 对象，时间戳为 UTC ISO 格式，适合生产环境。
"""

import logging
from collections.abc import MutableMapping
from typing import Any, Literal

import structlog
from rich.console import Console, Group, RenderableType
from rich.panel import Panel
from rich.table import Table
from rich.text import Text
from structlog.typing import Processor

APP_LOGGER_NAME = "trans_sync"


class HybridPanelRenderer:
    """将 structlog 事件渲染为带键值表格的 Rich 面板。"""

    def __init__(
        self,
        kv_truncate_at: int = 256,
        show_timestamp: bool = True,
        show_logger_name: bool = True,
        kv_key_width: int = 15,
        console: Console | None = None,
    ):
        self._console = console or Console()
        self._kv_truncate_at = kv_truncate_at
        self._show_timestamp = show_timestamp
        self._show_logger_name = show_logger_name
        self._kv_key_width = kv_key_width

        # 级别文本等宽，面板标题才能对齐
        self._level_styles = {
            "debug": ("blue", "DEBUG   "),
            "info": ("green", "INFO    "),
            "warning": ("yellow", "WARNING "),
            "error": ("bold red", "ERROR   "),
            "critical": ("bold magenta", "CRITICAL"),
        }

    def __call__(
        self, logger: Any, name: str, event_dict: MutableMapping[str, Any]
    ) -> str:
        event = str(event_dict.pop("event", "")).strip()
        if not event:
            return ""

        timestamp = event_dict.pop("timestamp", "")
        level = event_dict.pop("level", "info").lower()
        logger_name = event_dict.pop("logger", "unknown")
        style, level_text = self._level_styles.get(level, ("default", level.upper()))

        title_parts = [f"[{style}]{level_text}[/]"]
        if self._show_logger_name:
            title_parts.append(f"[cyan dim]({logger_name})[/]")
        title = Text.from_markup(" ".join(title_parts))

        renderables: list[RenderableType] = [Text(event, justify="left")]
        if event_dict:
            renderables.append(self._render_kv(event_dict))

        subtitle = (
            Text(str(timestamp), style="dim")
            if self._show_timestamp and timestamp
            else None
        )

        with self._console.capture() as capture:
            self._console.print(
                Panel(
                    Group(*renderables),
                    title=title,
                    border_style=style,
                    subtitle=subtitle,
                    subtitle_align="right",
                    expand=False,
                    title_align="left",
                )
            )
        return capture.get().rstrip()

    def _render_kv(self, kv: MutableMapping[str, Any]) -> Table:
        kv_table = Table(show_header=False, show_edge=False, box=None, padding=(0, 1))
        kv_table.add_column(style="dim", justify="right", width=self._kv_key_width)
        kv_table.add_column(style="bright_white", overflow="fold")

        for key, value in sorted(kv.items()):
            value_repr = repr(value)
            # 长字符串去掉引号，换行效果更好
            if len(value_repr) > self._kv_truncate_at or "\n" in value_repr:
                if value_repr[:1] in ("'", '"') and value_repr[-1:] == value_repr[:1]:
                    value_repr = value_repr[1:-1]
            kv_table.add_row(f"{key} :", Text(value_repr))
        return kv_table


def setup_logging(
    log_level: str = "INFO",
    log_format: Literal["json", "console"] = "console",
    show_timestamp: bool = True,
    show_logger_name: bool = True,
    kv_truncate_at: int = 80,
) -> None:
    """
    配置全局的 structlog 日志系统。这是整个应用的日志配置入口。

    Args:
        log_level: 应用日志的最低级别 (DEBUG, INFO, WARNING, ERROR, CRITICAL)。
        log_format: 'console' 用于开发环境的面板输出，'json' 用于生产环境的机器可读输出。
        show_timestamp: 是否在日志中包含时间戳。
        show_logger_name: 是否在日志中包含记录器的名称 (例如 'trans_sync.pipeline.worker')。
        kv_truncate_at: 在 console 模式下，键值对中值的折叠长度。
    """
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S", utc=False),
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if log_format == "console":
        processors.append(
            HybridPanelRenderer(
                kv_truncate_at=kv_truncate_at,
                show_timestamp=show_timestamp,
                show_logger_name=show_logger_name,
            )
        )
    else:
        processors[3] = structlog.processors.TimeStamper(fmt="iso", utc=True)
        processors.append(structlog.processors.JSONRenderer(ensure_ascii=False))

    structlog.configure(
        processors=processors,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler()

    class PassthroughFormatter(logging.Formatter):
        """直接输出 structlog 已经渲染好的字符串。"""

        def format(self, record: logging.LogRecord) -> str:
            return str(record.getMessage())

    handler.setFormatter(PassthroughFormatter())

    root_logger = logging.getLogger()
    if root_logger.hasHandlers():
        root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(logging.WARNING)  # 屏蔽第三方库的噪音

    app_logger = logging.getLogger(APP_LOGGER_NAME)
    app_logger.setLevel(log_level.upper())
    app_logger.propagate = True

    structlog.get_logger(f"{APP_LOGGER_NAME}.logging_config").debug(
        "日志系统已配置完成。",
        log_format=log_format,
        app_log_level=log_level.upper(),
    )
