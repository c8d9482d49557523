# trans_sync/persistence/document_store.py
"""
按语言持久化文档的两种实现：

- `SqlAlchemyDocumentStore`：与任务库同库的 `ts_documents` 表（默认）。
- `LocalFileDocumentStore`：目录下的 `<locale>.json` 文件，便于本地开发或静态托管。
"""

from __future__ import annotations

import asyncio
import json
import os
import tempfile
from pathlib import Path
from typing import Any, Optional

import structlog
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from trans_sync.exceptions import DatabaseError
from trans_sync.types import Document

from .schema import TsDocument, utcnow

logger = structlog.get_logger(__name__)


class SqlAlchemyDocumentStore:
    """把文档以 JSON 列的形式保存在数据库中。"""

    def __init__(self, sessionmaker: async_sessionmaker[AsyncSession]):
        self._sessionmaker = sessionmaker

    async def get(self, locale: str) -> Optional[Document]:
        try:
            async with self._sessionmaker() as session:
                row = await session.get(TsDocument, locale)
                return dict(row.document) if row else None
        except SQLAlchemyError as e:
            raise DatabaseError(f"读取文档失败 (locale={locale}): {e}") from e

    async def put(self, locale: str, document: Document) -> None:
        try:
            async with self._sessionmaker() as session, session.begin():
                row = await session.get(TsDocument, locale)
                if row is None:
                    session.add(TsDocument(locale=locale, document=document))
                else:
                    row.document = document
                    row.updated_at = utcnow()
        except SQLAlchemyError as e:
            raise DatabaseError(f"写入文档失败 (locale={locale}): {e}") from e
        logger.debug("文档已保存。", locale=locale, store="db")

    async def list_locales(self) -> list[str]:
        try:
            async with self._sessionmaker() as session:
                result = await session.execute(
                    select(TsDocument.locale).order_by(TsDocument.locale)
                )
                return list(result.scalars().all())
        except SQLAlchemyError as e:
            raise DatabaseError(f"列出文档失败: {e}") from e

    async def close(self) -> None:
        return None


class LocalFileDocumentStore:
    """Store documents as `<locale>.json` files on the local filesystem."""

    def __init__(self, base_path: str = "./data/translations"):
        self.base_path = Path(base_path)
        self.base_path.mkdir(parents=True, exist_ok=True)

    def _locale_to_path(self, locale: str) -> Path:
        if not locale or "/" in locale or "\\" in locale or locale.startswith("."):
            raise DatabaseError(f"非法的语言代码，无法映射为文件名: {locale!r}")
        return self.base_path / f"{locale}.json"

    def _read(self, path: Path) -> Optional[Document]:
        if not path.exists():
            return None
        data: Any = json.loads(path.read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            raise DatabaseError(f"文档文件的顶层不是 JSON 对象: {path}")
        return data

    def _write(self, path: Path, document: Document) -> None:
        payload = json.dumps(document, ensure_ascii=False, indent=2)
        # 先写临时文件再替换，读方永远看不到写了一半的文档
        fd, tmp_name = tempfile.mkstemp(dir=self.base_path, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(payload)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    async def get(self, locale: str) -> Optional[Document]:
        path = self._locale_to_path(locale)
        try:
            return await asyncio.to_thread(self._read, path)
        except (OSError, json.JSONDecodeError) as e:
            raise DatabaseError(f"读取文档文件失败 ({path}): {e}") from e

    async def put(self, locale: str, document: Document) -> None:
        path = self._locale_to_path(locale)
        try:
            await asyncio.to_thread(self._write, path, document)
        except (OSError, TypeError, ValueError) as e:
            raise DatabaseError(f"写入文档文件失败 ({path}): {e}") from e
        logger.debug("文档已保存。", locale=locale, store="local", path=str(path))

    async def list_locales(self) -> list[str]:
        return sorted(p.stem for p in self.base_path.glob("*.json"))

    async def close(self) -> None:
        return None
