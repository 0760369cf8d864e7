"""FastAPI application factory for the document Q&A service."""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from dataclasses import asdict
from datetime import datetime, timezone
from typing import AsyncIterator, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from docqa.api.routes import chat_router, pdf_router
from docqa.config import Settings, get_settings
from docqa.errors import DocQAError
from docqa.logging_config import configure_logging
from docqa.services.documents import DocumentService, build_service
from docqa.telemetry import emit_app_startup_event, emit_exception

LOGGER = logging.getLogger(__name__)


def create_app(
    service: Optional[DocumentService] = None,
    settings: Optional[Settings] = None,
) -> FastAPI:
    """Build the application around ``service`` (or one wired from ``settings``)."""

    settings = settings or (service.settings if service is not None else get_settings())
    configure_logging(settings.log_dir, settings.log_level)
    service = service or build_service(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        emit_app_startup_event()
        try:
            yield
        finally:
            app.state.service.close()
            LOGGER.info("Document service closed")

    app = FastAPI(title="DocQA API", lifespan=lifespan)
    app.state.service = service
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.frontend_url],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(DocQAError)
    async def _handle_docqa_error(request: Request, exc: DocQAError) -> JSONResponse:
        if exc.status_code >= 500:
            emit_exception(module=f"{__name__}.{request.url.path}", error=exc)
        else:
            LOGGER.info("Request to %s rejected: %s (%s)", request.url.path, exc.message, exc.kind)
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(Exception)
    async def _handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
        emit_exception(module=f"{__name__}.{request.url.path}", error=exc)
        return JSONResponse(
            status_code=500,
            content={"success": False, "error": str(exc) or "Internal Server Error", "kind": DocQAError.kind},
        )

    @app.get("/api/health")
    def healthcheck() -> dict[str, object]:
        """Liveness check reporting the configured LLM backend."""

        return {
            "status": "ok",
            "message": "DocQA API is running",
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "llm": asdict(app.state.service.llm.status()),
        }

    app.include_router(pdf_router)
    app.include_router(chat_router)
    return app


app = create_app()
