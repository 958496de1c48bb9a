from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from mockprep.api.routes import router as api_router
from mockprep.api.schemas import ErrorResponse
from mockprep.config import get_settings
from mockprep.db.init import init_database
from mockprep.errors import (
    AuthenticationError,
    ConflictError,
    NotFoundError,
    RemoteError,
    ValidationError,
)

logger = logging.getLogger(__name__)


def _error(status_code: int, detail: str, code: str = "", errors: list | None = None) -> JSONResponse:
    body = ErrorResponse(detail=detail, code=code, errors=errors or [])
    return JSONResponse(status_code=status_code, content=body.model_dump())


def create_app() -> FastAPI:
    settings = get_settings()

    app = FastAPI(title=settings.app_name)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list or ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.on_event("startup")
    def _startup() -> None:
        init_database()

    @app.exception_handler(ValidationError)
    async def _validation_error(request: Request, exc: ValidationError) -> JSONResponse:
        return _error(422, str(exc), "validation_error", exc.errors)

    @app.exception_handler(RemoteError)
    async def _remote_error(request: Request, exc: RemoteError) -> JSONResponse:
        if isinstance(exc, AuthenticationError):
            return _error(401, exc.message, exc.code)
        if isinstance(exc, NotFoundError):
            return _error(404, exc.message, exc.code)
        if isinstance(exc, ConflictError):
            return _error(409, exc.message, exc.code)
        logger.error("remote failure on %s %s: %s", request.method, request.url.path, exc)
        return _error(502, exc.message, exc.code)

    @app.get("/health")
    def health() -> JSONResponse:
        return JSONResponse({"status": "ok"})

    app.include_router(api_router)
    app.mount(
        "/storage",
        StaticFiles(directory=str(settings.storage_dir), check_dir=False),
        name="storage",
    )
    return app
