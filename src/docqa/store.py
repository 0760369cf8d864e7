"""In-memory store of vectorized documents keyed by document id."""
from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Sequence, Set, Tuple, Union

from docqa.embeddings import EmbeddingModel
from docqa.errors import IngestInProgressError, VectorizationFailedError
from docqa.models import Document, ExtractedPage, Page
from docqa.telemetry import emit_page_failure, emit_store_event

LOGGER = logging.getLogger(__name__)

PageInput = Union[ExtractedPage, Mapping[str, Any]]


def _page_fields(page: PageInput) -> Tuple[int, str]:
    if isinstance(page, Mapping):
        number = page.get("page_number", page.get("pageNumber"))
        return int(number), page.get("text", "")
    return int(page.page_number), page.text


@dataclass(slots=True)
class _PageFailure:
    page_number: int
    error: VectorizationFailedError


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class DocumentStore:
    """Hold vectorized pages per document.

    Documents are embedded completely before they are published, so readers
    never observe a partially vectorized document. All access to the mapping
    goes through a lock.
    """

    def __init__(self, embedding_model: EmbeddingModel) -> None:
        self.embedding_model = embedding_model
        self._documents: Dict[str, Document] = {}
        self._inflight: Set[str] = set()
        self._lock = threading.RLock()

    def add_document(
        self,
        document_id: str,
        pages: Sequence[PageInput],
        metadata: Optional[Mapping[str, Any]] = None,
    ) -> int:
        """Vectorize ``pages`` and publish the document; return the stored page count.

        A page that fails to embed is skipped and recorded in
        ``Document.failed_pages``. ``metadata["totalPages"]`` always reports the
        number of input pages.
        """

        with self._lock:
            if document_id in self._inflight:
                raise IngestInProgressError(f"Document {document_id} is already being ingested")
            self._inflight.add(document_id)

        started = time.perf_counter()
        try:
            stored, failures = self._vectorize(document_id, pages)
            document_metadata = dict(metadata or {})
            document_metadata["createdAt"] = _utc_now()
            document_metadata["totalPages"] = len(pages)
            document = Document(
                id=document_id,
                pages=tuple(stored),
                metadata=document_metadata,
                failed_pages=tuple(failure.page_number for failure in failures),
            )
            with self._lock:
                self._documents[document_id] = document
        finally:
            with self._lock:
                self._inflight.discard(document_id)

        emit_store_event(
            "store.add",
            document_id=document_id,
            total_pages=len(pages),
            stored_pages=len(stored),
            failed_pages=document.failed_pages,
            duration_ms=(time.perf_counter() - started) * 1000.0,
        )
        return len(stored)

    def _vectorize(
        self, document_id: str, pages: Sequence[PageInput]
    ) -> Tuple[List[Page], List[_PageFailure]]:
        stored: List[Page] = []
        failures: List[_PageFailure] = []
        for page in pages:
            page_number, text = _page_fields(page)
            try:
                embedding = self.embedding_model.embed(text)
            except Exception as error:
                failure = _PageFailure(
                    page_number,
                    VectorizationFailedError(
                        f"Failed to vectorize page {page_number}: {error}", cause=error
                    ),
                )
                failures.append(failure)
                emit_page_failure(document_id=document_id, page_number=page_number, error=failure.error)
                continue
            stored.append(Page(page_number=page_number, text=text, embedding=tuple(embedding)))
            LOGGER.debug("Vectorized page %s/%s of %s", page_number, len(pages), document_id)
        return stored, failures

    def has_document(self, document_id: str) -> bool:
        with self._lock:
            return document_id in self._documents

    def get_document(self, document_id: str) -> Optional[Document]:
        with self._lock:
            return self._documents.get(document_id)

    def get_metadata(self, document_id: str) -> Optional[Dict[str, Any]]:
        """Return a copy of the document metadata, or ``None`` when unknown."""

        document = self.get_document(document_id)
        return dict(document.metadata) if document is not None else None

    def remove_document(self, document_id: str) -> bool:
        with self._lock:
            return self._documents.pop(document_id, None) is not None

    def list_document_ids(self) -> Set[str]:
        with self._lock:
            return set(self._documents)

    def clear(self) -> None:
        with self._lock:
            self._documents.clear()
        LOGGER.info("Document store cleared")

    def __len__(self) -> int:
        with self._lock:
            return len(self._documents)


__all__ = ["DocumentStore"]
