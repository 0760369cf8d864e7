"""Structured lifecycle events emitted through the standard logging module."""

from __future__ import annotations

import logging
import os
import platform
import socket
import sys
import traceback
from pathlib import Path
from typing import Any, Iterable, Optional

LOGGER = logging.getLogger("docqa.telemetry")

_ENV_KEYS_TO_LOG: tuple[str, ...] = (
    "EMBEDDING_PROVIDER",
    "EMBEDDING_DIMENSION",
    "EMBEDDING_MODEL_PATH",
    "RETRIEVAL_TOP_K",
    "LLM_PROVIDER",
    "LLM_MODEL",
    "LLM_MAX_TOKENS",
    "LLM_TEMPERATURE",
    "LLM_TIMEOUT_SECONDS",
    "OPENAI_BASE_URL",
    "MAX_UPLOAD_BYTES",
    "FRONTEND_URL",
)


def _format_exception(error: BaseException) -> str:
    return "".join(traceback.format_exception(error.__class__, error, error.__traceback__))


def log_event(
    logger: Optional[logging.Logger],
    step: str,
    *,
    level: str = "info",
    req_id: str | None = None,
    document_id: str | None = None,
    duration_ms: float | None = None,
    exc: BaseException | str | None = None,
    details: dict[str, Any] | None = None,
    **payload: Any,
) -> None:
    """Emit a structured log event with the agreed-upon schema."""

    logger = logger or LOGGER
    event: dict[str, Any] = {"step": step, "module": logger.name}
    if req_id:
        event["req_id"] = req_id
    if document_id:
        event["document_id"] = document_id
    if duration_ms is not None:
        event["duration_ms"] = round(duration_ms, 3)
    if details is not None:
        event["details"] = details
    event.update(payload)

    if exc is not None:
        if isinstance(exc, BaseException):
            event["exc"] = _format_exception(exc)
        else:
            event["exc"] = str(exc)

    log_method = getattr(logger, level.lower(), logger.info)
    log_method(event)


def emit_app_startup_event() -> None:
    env_values = {key: os.getenv(key) for key in _ENV_KEYS_TO_LOG if os.getenv(key) is not None}
    details = {
        "env": env_values,
        "python": sys.version.split()[0],
        "platform": platform.platform(),
    }
    log_event(
        LOGGER,
        "app.startup",
        details=details,
        pid=os.getpid(),
        hostname=socket.gethostname(),
        cwd=str(Path.cwd()),
    )


def emit_embeddings_event(
    *, model: str, count: int, duration_ms: float, errors: list[str] | None = None
) -> None:
    details = {
        "model": model,
        "count": count,
        "errors": errors or [],
        "per_item_ms": round(duration_ms / count, 3) if count else None,
    }
    level = "warning" if errors else "debug"
    log_event(LOGGER, "embeddings.compute", level=level, duration_ms=duration_ms, details=details)


def emit_store_event(
    step: str,
    *,
    document_id: str,
    total_pages: int,
    stored_pages: int,
    failed_pages: Iterable[int] = (),
    duration_ms: float | None = None,
) -> None:
    failed = list(failed_pages)
    details = {
        "total_pages": total_pages,
        "stored_pages": stored_pages,
        "failed_pages": failed,
    }
    level = "warning" if failed else "info"
    log_event(LOGGER, step, level=level, document_id=document_id, duration_ms=duration_ms, details=details)


def emit_page_failure(*, document_id: str, page_number: int, error: BaseException) -> None:
    log_event(
        LOGGER,
        "store.page_failed",
        level="error",
        document_id=document_id,
        details={"page_number": page_number},
        exc=error,
    )


def emit_retriever_event(
    *,
    document_id: str,
    query: str,
    top_k: int,
    results: list[dict[str, Any]],
    duration_ms: float,
) -> None:
    details = {
        "query_preview": query[:120],
        "top_k": top_k,
        "results": results,
    }
    log_event(LOGGER, "retriever.search", document_id=document_id, duration_ms=duration_ms, details=details)


def emit_prompt_event(
    *,
    system_prompt: str,
    pages: Iterable[int],
    context_chars: int,
    history_turns: int,
) -> None:
    details = {
        "system_prompt_preview": system_prompt[:120],
        "pages": list(pages),
        "context_chars": context_chars,
        "history_turns": history_turns,
    }
    log_event(LOGGER, "prompt.compose", details=details)


def emit_inference_request(
    *,
    req_id: str,
    document_id: str,
    model: str,
    message_count: int,
    max_tokens: int,
    timeout: float | None,
) -> None:
    details = {
        "model": model,
        "message_count": message_count,
        "max_tokens": max_tokens,
        "timeout": timeout,
    }
    log_event(LOGGER, "inference.request", req_id=req_id, document_id=document_id, details=details)


def emit_inference_result(
    *,
    req_id: str,
    document_id: str,
    duration_ms: float,
    model: str,
    answer_preview: str,
    citations: Iterable[int],
) -> None:
    details = {
        "model": model,
        "answer_preview": answer_preview[:120],
        "citations": list(citations),
    }
    log_event(
        LOGGER,
        "inference.result",
        req_id=req_id,
        document_id=document_id,
        duration_ms=duration_ms,
        details=details,
    )


def emit_ingest_event(
    step: str,
    *,
    file_name: str,
    document_id: str | None = None,
    size_bytes: int | None = None,
    duration_ms: float | None = None,
    pages: int | None = None,
    stored_pages: int | None = None,
) -> None:
    details = {
        "file": file_name,
        "size_bytes": size_bytes,
        "pages": pages,
        "stored_pages": stored_pages,
    }
    log_event(LOGGER, step, document_id=document_id, duration_ms=duration_ms, details=details)


def emit_exception(
    *,
    module: str,
    error: BaseException,
    req_id: str | None = None,
    document_id: str | None = None,
) -> None:
    log_event(
        LOGGER,
        "exception",
        level="error",
        req_id=req_id,
        document_id=document_id,
        details={"module": module, "kind": getattr(error, "kind", type(error).__name__)},
        exc=error,
    )


__all__ = [
    "emit_app_startup_event",
    "emit_embeddings_event",
    "emit_exception",
    "emit_inference_request",
    "emit_inference_result",
    "emit_ingest_event",
    "emit_page_failure",
    "emit_prompt_event",
    "emit_retriever_event",
    "emit_store_event",
    "log_event",
]
