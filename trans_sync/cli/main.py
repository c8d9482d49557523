# trans_sync/cli/main.py
"""
Trans-Sync 命令行管理工具。

所有子命令共享主回调中加载的配置；每个命令自行创建并关闭 Coordinator。
"""

import asyncio
import json
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, Optional, TypeVar

import structlog
import typer
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table

from trans_sync.bootstrap import create_app_config, create_coordinator
from trans_sync.config import TransSyncConfig
from trans_sync.coordinator import Coordinator
from trans_sync.exceptions import TransSyncError, UnsupportedLocaleError
from trans_sync.logging_config import setup_logging

logger = structlog.get_logger(__name__)
console = Console()

_T = TypeVar("_T")

app = typer.Typer(
    name="trans-sync",
    help="🌐 Trans-Sync 命令行管理工具。",
    add_completion=False,
    no_args_is_help=True,
)
db_app = typer.Typer(help="数据库管理。", no_args_is_help=True)
source_app = typer.Typer(help="发布源文档并为目标语言入队。", no_args_is_help=True)
worker_app = typer.Typer(help="运行翻译 Worker。", no_args_is_help=True)
app.add_typer(db_app, name="db")
app.add_typer(source_app, name="source")
app.add_typer(worker_app, name="worker")


@app.callback()
def main(ctx: typer.Context) -> None:
    """加载配置并初始化日志系统。"""
    try:
        config = create_app_config()
    except ValidationError as e:
        console.print(f"[bold red]❌ 启动失败：配置无效: {escape(str(e))}[/bold red]")
        raise typer.Exit(code=1) from e
    setup_logging(log_level=config.logging.level, log_format=config.logging.format)
    ctx.obj = config


@asynccontextmanager
async def _open_coordinator(config: TransSyncConfig) -> AsyncIterator[Coordinator]:
    coordinator = create_coordinator(config)
    await coordinator.initialize()
    try:
        yield coordinator
    finally:
        await coordinator.close()


def _run(
    ctx: typer.Context, action: Callable[[Coordinator], Awaitable[_T]]
) -> _T:
    """在一个新建的 Coordinator 上执行异步操作，并把领域错误转成退出码。"""
    config: TransSyncConfig = ctx.obj

    async def _main() -> _T:
        async with _open_coordinator(config) as coordinator:
            return await action(coordinator)

    try:
        return asyncio.run(_main())
    except UnsupportedLocaleError as e:
        console.print(f"[bold red]❌ {escape(str(e))}[/bold red]")
        console.print(f"支持的语言: {', '.join(e.supported_locales)}")
        raise typer.Exit(code=1) from e
    except TransSyncError as e:
        console.print(f"[bold red]❌ 操作失败: {escape(str(e))}[/bold red]")
        raise typer.Exit(code=1) from e


def _print_json(data: Any, title: str) -> None:
    console.print(
        Panel(
            Syntax(json.dumps(data, indent=2, ensure_ascii=False), "json", theme="monokai"),
            title=title,
            border_style="cyan",
        )
    )


# ---------- db ----------


@db_app.command("init")
def db_init(ctx: typer.Context) -> None:
    """创建缺失的数据表。"""

    async def _noop(coordinator: Coordinator) -> None:
        return None

    _run(ctx, _noop)
    console.print("[green]✅ 数据库表已就绪。[/green]")


# ---------- source ----------


@source_app.command("publish")
def source_publish(
    ctx: typer.Context,
    file: Path = typer.Argument(..., exists=True, dir_okay=False, help="规范语言的 JSON 文档。"),
) -> None:
    """发布规范语言源文档，并为所有过期的目标语言入队。"""
    try:
        document = json.loads(file.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        console.print(f"[bold red]❌ JSON 格式错误: {escape(str(e))}[/bold red]")
        raise typer.Exit(code=1) from e

    result = _run(ctx, lambda c: c.publish_source(document))
    console.print(f"源文档指纹: [bold]{result.fingerprint}[/bold]")
    console.print(
        f"[green]✅ 新建任务 {len(result.created_jobs)} 个[/green]，"
        f"跳过 {len(result.skipped_locales)} 个已是最新的语言。"
    )


@source_app.command("enqueue")
def source_enqueue(ctx: typer.Context) -> None:
    """按当前已发布的源文档补齐缺失的任务。"""
    result = _run(ctx, lambda c: c.enqueue())
    console.print(
        f"[green]✅ 新建任务 {len(result.created_jobs)} 个[/green] "
        f"(指纹 {result.fingerprint[:12]})。"
    )


# ---------- worker ----------


@worker_app.command("run")
def worker_run(
    ctx: typer.Context,
    loop: bool = typer.Option(False, "--loop", help="持续轮询，直到收到停机信号。"),
    max_jobs: Optional[int] = typer.Option(
        None, "--max-jobs", min=1, help="单次激活最多处理的任务数。"
    ),
) -> None:
    """执行一次 Worker 激活，或以 --loop 持续运行。"""
    if loop:

        async def _loop(coordinator: Coordinator) -> None:
            await coordinator.worker.run_loop(asyncio.Event())

        console.print("[cyan]🚀 正在启动翻译 Worker...[/cyan]")
        try:
            _run(ctx, _loop)
        except KeyboardInterrupt:
            console.print("\n[yellow]🛑 Worker 已被用户中断。[/yellow]")
        return

    result = _run(ctx, lambda c: c.trigger(max_jobs))
    console.print(result.message)


# ---------- 单个语言 ----------


@app.command("regenerate")
def regenerate(
    ctx: typer.Context,
    locale: str = typer.Argument(..., help="目标语言代码。"),
) -> None:
    """不做新鲜度检查，立即重新生成指定语言的译文。"""
    outcome = _run(ctx, lambda c: c.regenerate(locale))
    if outcome.review is not None:
        console.print(
            f"[green]✅ {outcome.locale} 已重新生成[/green]，"
            f"质量评分 {outcome.review.score} ({outcome.review.status.value})。"
        )
    elif outcome.error:
        console.print(f"[bold red]❌ {outcome.locale} 重新生成失败: {escape(outcome.error)}[/bold red]")
        raise typer.Exit(code=1)
    else:
        console.print(f"[yellow]任务 #{outcome.job_id} 已入队，状态 {outcome.status.value}。[/yellow]")


@app.command("status")
def status(
    ctx: typer.Context,
    locale: str = typer.Argument(..., help="语言代码。"),
) -> None:
    """查看指定语言最近一个任务的状态。"""
    view = _run(ctx, lambda c: c.status(locale))
    table = Table(title=f"{view.locale} 任务状态")
    table.add_column("字段", style="cyan")
    table.add_column("值")
    for key, value in view.model_dump(mode="json", exclude_none=True).items():
        table.add_row(key, str(value))
    console.print(table)


@app.command("get")
def get_document(
    ctx: typer.Context,
    locale: str = typer.Argument(..., help="语言代码。"),
    include_status: bool = typer.Option(False, "--status", help="附带任务状态。"),
) -> None:
    """经读路径读取指定语言的文档。"""
    result = _run(ctx, lambda c: c.serve(locale, include_status=include_status))
    title = f"{result.locale} (fallback)" if result.fallback else result.locale
    _print_json(result.model_dump(mode="json", exclude_none=True), title)


@app.command("serve")
def serve(
    ctx: typer.Context,
    host: Optional[str] = typer.Option(None, help="监听地址。"),
    port: Optional[int] = typer.Option(None, help="监听端口。"),
) -> None:
    """启动 HTTP API 服务。"""
    import uvicorn

    from trans_sync.api import create_app

    config: TransSyncConfig = ctx.obj
    uvicorn.run(
        create_app(),
        host=host or config.api.host,
        port=port or config.api.port,
        log_config=None,
    )


if __name__ == "__main__":
    app()
