# trans_sync/api/app.py
"""
Trans-Sync 的 HTTP API。

- GET  /translations/{locale}             读取文档（Serve）
- POST /translations/{locale}/regenerate  强制重新生成（Regenerate）
- POST /worker/trigger                    触发一次 Worker 激活（Trigger/Process）
- POST /source                            发布源文档并入队（Enqueue）
- GET  /status/{locale}                   最近一个任务的状态
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any, Optional

import structlog
from fastapi import Body, Depends, FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from trans_sync import __version__
from trans_sync.bootstrap import create_app_config, create_coordinator
from trans_sync.coordinator import Coordinator
from trans_sync.exceptions import (
    DocumentShapeError,
    SourceDocumentMissingError,
    TransSyncError,
    UnsupportedLocaleError,
)
from trans_sync.types import EnqueueResult, JobOutcome, JobStatusView, ProcessResult

logger = structlog.get_logger(__name__)

FALLBACK_MAX_AGE = 300
TRANSLATION_MAX_AGE = 3600


def get_coordinator(request: Request) -> Coordinator:
    return request.app.state.coordinator


def create_app(coordinator: Optional[Coordinator] = None) -> FastAPI:
    """
    创建 FastAPI 应用。

    未传入 coordinator 时按环境配置创建一个，并由应用的 lifespan 负责关闭。
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        owned = coordinator is None
        coord = coordinator or create_coordinator(create_app_config())
        await coord.initialize()
        app.state.coordinator = coord
        logger.info("Trans-Sync API 已启动。")
        try:
            yield
        finally:
            if owned:
                await coord.close()
            logger.info("Trans-Sync API 已关闭。")

    app = FastAPI(
        title="Trans-Sync API",
        description="多语言文档同步翻译服务",
        version=__version__,
        lifespan=lifespan,
    )
    if coordinator is not None:
        app.state.coordinator = coordinator
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )

    @app.exception_handler(UnsupportedLocaleError)
    async def _unsupported_locale(request: Request, exc: UnsupportedLocaleError) -> JSONResponse:
        return JSONResponse(
            status_code=400,
            content={
                "error": "Invalid or missing locale parameter",
                "supported_locales": exc.supported_locales,
            },
        )

    @app.exception_handler(SourceDocumentMissingError)
    async def _source_missing(request: Request, exc: SourceDocumentMissingError) -> JSONResponse:
        return JSONResponse(status_code=409, content={"error": str(exc)})

    @app.exception_handler(DocumentShapeError)
    async def _bad_document(request: Request, exc: DocumentShapeError) -> JSONResponse:
        return JSONResponse(status_code=422, content={"error": str(exc)})

    @app.exception_handler(TransSyncError)
    async def _internal(request: Request, exc: TransSyncError) -> JSONResponse:
        logger.error("请求处理失败。", path=request.url.path, error=str(exc))
        return JSONResponse(status_code=500, content={"error": str(exc)})

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok", "version": __version__}

    @app.get("/translations/{locale}")
    async def serve_translation(
        locale: str,
        force: bool = Query(False, description="绕过服务端缓存"),
        include_status: bool = Query(False, description="附带最近一个任务的状态"),
        coord: Coordinator = Depends(get_coordinator),
    ) -> JSONResponse:
        result = await coord.serve(locale, force=force, include_status=include_status)
        max_age = FALLBACK_MAX_AGE if result.fallback else TRANSLATION_MAX_AGE
        return JSONResponse(
            content=result.model_dump(mode="json", exclude_none=True),
            headers={"Cache-Control": f"public, max-age={max_age}"},
        )

    @app.get("/status/{locale}", response_model=JobStatusView)
    async def translation_status(
        locale: str, coord: Coordinator = Depends(get_coordinator)
    ) -> JobStatusView:
        return await coord.status(locale)

    @app.post("/translations/{locale}/regenerate", response_model=JobOutcome)
    async def regenerate_translation(
        locale: str, coord: Coordinator = Depends(get_coordinator)
    ) -> JobOutcome:
        return await coord.regenerate(locale)

    @app.post("/worker/trigger", response_model=ProcessResult)
    async def trigger_worker(
        max_jobs: Optional[int] = Query(None, ge=1, le=100),
        coord: Coordinator = Depends(get_coordinator),
    ) -> ProcessResult:
        return await coord.trigger(max_jobs)

    @app.post("/source", response_model=EnqueueResult)
    async def publish_source(
        document: dict[str, Any] = Body(...),
        coord: Coordinator = Depends(get_coordinator),
    ) -> EnqueueResult:
        return await coord.publish_source(document)

    return app
