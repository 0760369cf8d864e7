"""Data containers shared across the ingest and query paths."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Tuple

Role = Literal["system", "user", "assistant"]


@dataclass(frozen=True, slots=True)
class Page:
    """A vectorized page; ``embedding`` is derived from ``text`` only."""

    page_number: int
    text: str
    embedding: Tuple[float, ...]


@dataclass(frozen=True, slots=True)
class Document:
    id: str
    pages: Tuple[Page, ...]
    metadata: Dict[str, Any]
    failed_pages: Tuple[int, ...] = ()


@dataclass(slots=True)
class SearchResult:
    page_number: int
    text: str
    similarity: float


@dataclass(slots=True)
class ChatTurn:
    role: Role
    content: str

    def as_message(self) -> Dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass(slots=True)
class RelevantPage:
    page_number: int
    similarity: float
    preview: str


@dataclass(slots=True)
class AnswerResult:
    """Structured result returned from :meth:`AnswerAssembler.answer`."""

    response: str
    citations: List[int]
    relevant_pages: List[RelevantPage]


@dataclass(slots=True)
class ExtractedPage:
    """Text extracted from a single PDF page."""

    page_number: int
    text: str
    word_count: int = 0


@dataclass(slots=True)
class ExtractionResult:
    total_pages: int
    pages: List[ExtractedPage]
    info: Dict[str, str] = field(default_factory=dict)


@dataclass(slots=True)
class IngestResult:
    """Structured result returned from :meth:`DocumentService.ingest`."""

    document_id: str
    file_name: str
    total_pages: int
    stored_pages: int
    metadata: Dict[str, Any]


__all__ = [
    "AnswerResult",
    "ChatTurn",
    "Document",
    "ExtractedPage",
    "ExtractionResult",
    "IngestResult",
    "Page",
    "RelevantPage",
    "Role",
    "SearchResult",
]
