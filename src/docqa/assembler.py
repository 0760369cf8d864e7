"""Answer assembly: retrieve pages, prompt the model, collect citations."""
from __future__ import annotations

import logging
import time
import uuid
from typing import Iterable, List, Optional

from docqa.citations import extract_citations
from docqa.errors import GenerationFailedError
from docqa.llm_provider import LLM
from docqa.models import AnswerResult, ChatTurn, RelevantPage, SearchResult
from docqa.prompt_builder import build_context, build_messages
from docqa.retriever import Retriever
from docqa.telemetry import (
    emit_exception,
    emit_inference_request,
    emit_inference_result,
    emit_prompt_event,
)

LOGGER = logging.getLogger(__name__)

PREVIEW_CHARS = 200


def _preview(text: str) -> str:
    return text[:PREVIEW_CHARS] + "..."


class AnswerAssembler:
    """Build a grounded prompt from the top pages and turn the reply into a cited answer."""

    def __init__(self, retriever: Retriever, llm: LLM, *, top_k: int = 3, max_tokens: int = 1000) -> None:
        if top_k <= 0:
            raise ValueError("top_k must be a positive integer")
        if max_tokens <= 0:
            raise ValueError("max_tokens must be a positive integer")
        self.retriever = retriever
        self.llm = llm
        self.top_k = top_k
        self.max_tokens = max_tokens

    def answer(
        self,
        document_id: str,
        query: str,
        history: Iterable[ChatTurn] = (),
        *,
        timeout: Optional[float] = None,
    ) -> AnswerResult:
        results = self.retriever.search(document_id, query, self.top_k)
        LOGGER.debug("Found %d relevant pages for document %s", len(results), document_id)

        turns = list(history)
        context = build_context(results)
        messages = build_messages(context, query, turns)
        emit_prompt_event(
            system_prompt=messages[0]["content"],
            pages=[result.page_number for result in results],
            context_chars=len(context),
            history_turns=len(turns),
        )

        req_id = uuid.uuid4().hex
        emit_inference_request(
            req_id=req_id,
            document_id=document_id,
            model=self.llm.model_name,
            message_count=len(messages),
            max_tokens=self.max_tokens,
            timeout=timeout,
        )
        started = time.perf_counter()
        response = self._generate(req_id, document_id, messages, timeout)
        citations = extract_citations(response)

        emit_inference_result(
            req_id=req_id,
            document_id=document_id,
            duration_ms=(time.perf_counter() - started) * 1000.0,
            model=self.llm.model_name,
            answer_preview=response,
            citations=citations,
        )
        return AnswerResult(
            response=response,
            citations=citations,
            relevant_pages=self._relevant_pages(results),
        )

    def _generate(self, req_id: str, document_id: str, messages: list, timeout: Optional[float]) -> str:
        try:
            return self.llm.generate(messages, max_tokens=self.max_tokens, timeout=timeout)
        except GenerationFailedError as error:
            emit_exception(module=f"{__name__}.llm", error=error, req_id=req_id, document_id=document_id)
            raise
        except Exception as error:
            emit_exception(module=f"{__name__}.llm", error=error, req_id=req_id, document_id=document_id)
            raise GenerationFailedError(f"Failed to generate chat response: {error}", cause=error) from error

    @staticmethod
    def _relevant_pages(results: List[SearchResult]) -> List[RelevantPage]:
        return [
            RelevantPage(
                page_number=result.page_number,
                similarity=result.similarity,
                preview=_preview(result.text),
            )
            for result in results
        ]


__all__ = ["AnswerAssembler", "PREVIEW_CHARS"]
