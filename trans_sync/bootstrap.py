# trans_sync/bootstrap.py
"""
应用引导程序：加载配置并显式装配所有组件。

组件之间不共享任何全局单例，文本生成引擎作为依赖注入到翻译器与审核器。
"""

from __future__ import annotations

from typing import Any, Optional

import structlog

from trans_sync.config import TransSyncConfig
from trans_sync.coordinator import Coordinator
from trans_sync.engines import create_engine_instance
from trans_sync.engines.base import BaseGenerationEngine
from trans_sync.interfaces import DocumentStore
from trans_sync.locales import LocalePolicy
from trans_sync.persistence import (
    LocalFileDocumentStore,
    SqlAlchemyDocumentStore,
    SqlAlchemyJobStore,
    create_async_db_engine,
    create_sessionmaker,
    is_sqlite,
)
from trans_sync.pipeline import BulkTranslator, JobEnqueuer, QualityReviewer, SequentialWorker
from trans_sync.serving import TranslationServer

logger = structlog.get_logger(__name__)


def create_app_config(**overrides: Any) -> TransSyncConfig:
    """加载、验证并返回应用配置对象（环境变量与 .env 文件）。"""
    return TransSyncConfig(**overrides)


def create_coordinator(
    config: TransSyncConfig,
    engine: Optional[BaseGenerationEngine[Any]] = None,
) -> Coordinator:
    """
    按配置装配一个 Coordinator。

    Args:
        config: 应用配置。
        engine: 可选的文本生成引擎；缺省按 `config.active_engine` 创建。
    """
    db_engine = create_async_db_engine(config.database)
    sessionmaker = create_sessionmaker(db_engine)
    locales = LocalePolicy(config.locales)

    job_store = SqlAlchemyJobStore(
        sessionmaker, use_skip_locked=not is_sqlite(config.database.url)
    )
    document_store: DocumentStore
    if config.documents.backend == "local":
        document_store = LocalFileDocumentStore(config.documents.local_dir)
    else:
        document_store = SqlAlchemyDocumentStore(sessionmaker)

    generation_engine = engine or create_engine_instance(config)
    translator = BulkTranslator(
        generation_engine, config.translation, source_locale=locales.canonical
    )
    reviewer = QualityReviewer(
        generation_engine,
        config.review,
        source_locale=locales.canonical,
        domain=config.translation.domain,
    )
    worker = SequentialWorker(config, job_store, document_store, translator, reviewer)
    server = TranslationServer(document_store, job_store, locales, config.serving)
    enqueuer = JobEnqueuer(job_store, document_store, locales)

    logger.debug(
        "组件装配完成。",
        engine=generation_engine.name(),
        documents=config.documents.backend,
    )
    return Coordinator(
        config=config,
        locales=locales,
        job_store=job_store,
        document_store=document_store,
        engine=generation_engine,
        enqueuer=enqueuer,
        worker=worker,
        server=server,
        db_engine=db_engine,
    )
