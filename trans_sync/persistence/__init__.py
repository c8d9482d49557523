# trans_sync/persistence/__init__.py
"""任务库与文档库的持久化实现。"""

from .db import create_async_db_engine, create_schema, create_sessionmaker, is_sqlite
from .document_store import LocalFileDocumentStore, SqlAlchemyDocumentStore
from .job_store import SqlAlchemyJobStore

__all__ = [
    "LocalFileDocumentStore",
    "SqlAlchemyDocumentStore",
    "SqlAlchemyJobStore",
    "create_async_db_engine",
    "create_schema",
    "create_sessionmaker",
    "is_sqlite",
]
