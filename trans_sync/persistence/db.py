# trans_sync/persistence/db.py
"""
异步引擎工厂与 schema 初始化。

- PostgreSQL：使用默认连接池。
- SQLite：NullPool，并设置较长的锁等待时间，让并发的租用请求排队而不是立即报错。
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import structlog
from sqlalchemy.engine.url import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from trans_sync.config import DatabaseSettings
from trans_sync.exceptions import DatabaseError

from .schema import metadata

logger = structlog.get_logger(__name__)

SQLITE_BUSY_TIMEOUT = 30.0


def is_sqlite(url: str) -> bool:
    return make_url(url).get_backend_name() == "sqlite"


def _ensure_sqlite_parent_dir(url: str) -> None:
    database = make_url(url).database
    if database and database != ":memory:":
        Path(database).expanduser().parent.mkdir(parents=True, exist_ok=True)


def create_async_db_engine(settings: DatabaseSettings) -> AsyncEngine:
    """根据数据库配置创建 AsyncEngine。"""
    kwargs: dict[str, Any] = {"echo": settings.echo}

    if is_sqlite(settings.url):
        _ensure_sqlite_parent_dir(settings.url)
        # SQLite 推荐使用 NullPool，避免共享句柄问题
        kwargs["poolclass"] = NullPool
        kwargs["connect_args"] = {"timeout": SQLITE_BUSY_TIMEOUT}
    else:
        kwargs["pool_pre_ping"] = True

    return create_async_engine(settings.url, **kwargs)


def create_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False)


async def create_schema(engine: AsyncEngine) -> None:
    """创建所有缺失的表与索引（幂等）。"""
    try:
        async with engine.begin() as conn:
            await conn.run_sync(metadata.create_all)
    except SQLAlchemyError as e:
        raise DatabaseError(f"初始化数据库 schema 失败: {e}") from e
    logger.info("数据库 schema 已就绪。", url=engine.url.render_as_string(hide_password=True))
