"""Rank the stored pages of a document against a query."""
from __future__ import annotations

import time
from typing import List, Optional

from docqa.embeddings import EmbeddingModel
from docqa.errors import DocQAError, DocumentNotFoundError, EmbeddingUnavailableError
from docqa.models import SearchResult
from docqa.similarity import cosine_similarity
from docqa.store import DocumentStore
from docqa.telemetry import emit_retriever_event


class Retriever:
    """Top-K page retrieval over a :class:`DocumentStore`."""

    def __init__(
        self,
        store: DocumentStore,
        embedding_model: Optional[EmbeddingModel] = None,
        *,
        default_top_k: int = 3,
    ) -> None:
        if default_top_k <= 0:
            raise ValueError("default_top_k must be a positive integer")
        self._store = store
        self._embedding_model = embedding_model or store.embedding_model
        self.default_top_k = default_top_k

    def search(self, document_id: str, query: str, top_k: Optional[int] = None) -> List[SearchResult]:
        """Return up to ``top_k`` pages sorted by descending similarity.

        Ties keep their original page order.
        """

        top_k = self.default_top_k if top_k is None else top_k
        if top_k <= 0:
            raise ValueError("top_k must be a positive integer")

        document = self._store.get_document(document_id)
        if document is None:
            raise DocumentNotFoundError(document_id)

        started = time.perf_counter()
        try:
            query_embedding = self._embedding_model.embed(query)
        except DocQAError:
            raise
        except Exception as error:
            raise EmbeddingUnavailableError(f"Failed to embed query: {error}", cause=error) from error

        scored = [
            SearchResult(
                page_number=page.page_number,
                text=page.text,
                similarity=cosine_similarity(query_embedding, page.embedding),
            )
            for page in document.pages
        ]
        results = sorted(scored, key=lambda result: result.similarity, reverse=True)[:top_k]

        emit_retriever_event(
            document_id=document_id,
            query=query,
            top_k=top_k,
            results=[
                {"page_number": result.page_number, "similarity": round(result.similarity, 6)}
                for result in results
            ],
            duration_ms=(time.perf_counter() - started) * 1000.0,
        )
        return results


__all__ = ["Retriever"]
