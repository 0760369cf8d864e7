"""Service facade coordinating extraction, storage, retrieval and answering."""
from __future__ import annotations

import logging
import time
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from docqa.assembler import AnswerAssembler
from docqa.config import Settings, get_settings
from docqa.embeddings import EmbeddingModel, create_embedding_model
from docqa.errors import DocumentNotFoundError, MissingFieldError
from docqa.extract import PDFExtractor, validate_upload
from docqa.llm_provider import LLM, create_llm
from docqa.logging_config import AUDIT_LOGGER_NAME
from docqa.models import AnswerResult, ChatTurn, IngestResult
from docqa.retriever import Retriever
from docqa.store import DocumentStore
from docqa.telemetry import emit_exception, emit_ingest_event

LOGGER = logging.getLogger(__name__)
AUDIT_LOGGER = logging.getLogger(AUDIT_LOGGER_NAME)

DEFAULT_SUGGESTIONS: tuple[str, ...] = (
    "What is the main topic of this document?",
    "Can you summarize the key points?",
    "What are the conclusions or recommendations?",
    "Explain the main concepts discussed",
)


class DocumentService:
    """Entry points used by the transport layer: ingest, ask, suggestions, metadata, delete."""

    def __init__(
        self,
        *,
        store: DocumentStore,
        assembler: AnswerAssembler,
        extractor: Optional[PDFExtractor] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.store = store
        self.assembler = assembler
        self.extractor = extractor or PDFExtractor()

    @property
    def llm(self) -> LLM:
        return self.assembler.llm

    def ingest(
        self,
        file_bytes: bytes,
        file_name: str,
        file_size: Optional[int] = None,
        content_type: Optional[str] = "application/pdf",
    ) -> IngestResult:
        size = len(file_bytes) if file_size is None else file_size
        validate_upload(file_name, content_type, size, max_bytes=self.settings.max_upload_bytes)

        started = time.perf_counter()
        emit_ingest_event("ingest.file.start", file_name=file_name, size_bytes=size)
        try:
            extraction = self.extractor.extract(file_bytes)
        except Exception as error:
            emit_exception(module=f"{__name__}.extract", error=error)
            raise

        document_id = str(uuid.uuid4())
        stored_pages = self.store.add_document(
            document_id,
            extraction.pages,
            {
                "fileName": file_name,
                "fileSize": size,
                "uploadedAt": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
                "info": extraction.info,
            },
        )
        metadata = self.store.get_metadata(document_id) or {}

        emit_ingest_event(
            "ingest.file.complete",
            file_name=file_name,
            document_id=document_id,
            size_bytes=size,
            duration_ms=(time.perf_counter() - started) * 1000.0,
            pages=extraction.total_pages,
            stored_pages=stored_pages,
        )
        AUDIT_LOGGER.info(
            {
                "event": "ingest",
                "document_id": document_id,
                "file_name": file_name,
                "total_pages": extraction.total_pages,
                "stored_pages": stored_pages,
            }
        )
        return IngestResult(
            document_id=document_id,
            file_name=file_name,
            total_pages=extraction.total_pages,
            stored_pages=stored_pages,
            metadata=metadata,
        )

    def ask(
        self,
        document_id: Optional[str],
        query: Optional[str],
        history: Iterable[ChatTurn] = (),
        *,
        timeout: Optional[float] = None,
    ) -> AnswerResult:
        if not document_id or not document_id.strip() or not query or not query.strip():
            raise MissingFieldError("Missing required fields: documentId and query")

        LOGGER.info("Processing query for document %s", document_id)
        effective_timeout = self.settings.llm_timeout_seconds if timeout is None else timeout
        result = self.assembler.answer(document_id, query, history, timeout=effective_timeout)
        AUDIT_LOGGER.info(
            {
                "event": "query",
                "document_id": document_id,
                "query": query,
                "citations": result.citations,
                "pages": [page.page_number for page in result.relevant_pages],
            }
        )
        return result

    def suggestions(self, document_id: str) -> List[str]:
        self._require(document_id)
        return list(DEFAULT_SUGGESTIONS)

    def get_metadata(self, document_id: str) -> Dict[str, Any]:
        return self._require(document_id)

    def list_documents(self) -> List[Dict[str, Any]]:
        documents: List[Dict[str, Any]] = []
        for document_id in sorted(self.store.list_document_ids()):
            metadata = self.store.get_metadata(document_id)
            if metadata is not None:
                documents.append({"documentId": document_id, **metadata})
        return documents

    def delete_document(self, document_id: str) -> bool:
        self._require(document_id)
        removed = self.store.remove_document(document_id)
        AUDIT_LOGGER.info({"event": "delete", "document_id": document_id, "removed": removed})
        return removed

    def close(self) -> None:
        self.store.clear()

    def _require(self, document_id: str) -> Dict[str, Any]:
        metadata = self.store.get_metadata(document_id)
        if metadata is None:
            raise DocumentNotFoundError(document_id)
        return metadata


def build_service(
    settings: Optional[Settings] = None,
    *,
    embedding_model: Optional[EmbeddingModel] = None,
    llm: Optional[LLM] = None,
    extractor: Optional[PDFExtractor] = None,
) -> DocumentService:
    """Wire store, retriever, assembler and extractor from ``settings``."""

    settings = settings or get_settings()
    embedding_model = embedding_model or create_embedding_model(
        settings.embedding_provider,
        dimension=settings.embedding_dimension,
        max_tokens=settings.embedding_max_tokens,
        model_name_or_path=settings.embedding_model_path,
        device=settings.embedding_device,
    )
    store = DocumentStore(embedding_model)
    retriever = Retriever(store, embedding_model, default_top_k=settings.retrieval_top_k)
    assembler = AnswerAssembler(
        retriever,
        llm or create_llm(settings),
        top_k=settings.retrieval_top_k,
        max_tokens=settings.llm_max_tokens,
    )
    return DocumentService(store=store, assembler=assembler, extractor=extractor, settings=settings)


__all__ = ["DEFAULT_SUGGESTIONS", "DocumentService", "build_service"]
