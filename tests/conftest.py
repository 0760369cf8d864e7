"""Shared fixtures: a tiny PDF writer, stores, fake LLMs and a wired service."""
from __future__ import annotations

from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence

import pytest

from docqa.config import Settings
from docqa.embeddings import HashEmbeddingModel
from docqa.llm_provider import LLM, Messages
from docqa.services.documents import DocumentService, build_service
from docqa.store import DocumentStore


def _escape_pdf_text(text: str) -> str:
    return text.replace("\\", "\\\\").replace("(", "\\(").replace(")", "\\)")


def build_pdf(pages: Sequence[str], *, title: Optional[str] = None) -> bytes:
    """Write a minimal single-font PDF with one text line per page."""

    page_count = len(pages)
    font_id = 3
    info_id = 4 + 2 * page_count
    page_ids = [4 + 2 * index for index in range(page_count)]

    objects: Dict[int, bytes] = {
        1: b"<< /Type /Catalog /Pages 2 0 R >>",
        2: (
            "<< /Type /Pages /Kids [{}] /Count {} >>".format(
                " ".join(f"{page_id} 0 R" for page_id in page_ids), page_count
            )
        ).encode("latin-1"),
        font_id: b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>",
    }
    for page_id, text in zip(page_ids, pages):
        content_id = page_id + 1
        stream = (
            f"BT /F1 12 Tf 72 720 Td ({_escape_pdf_text(text)}) Tj ET".encode("latin-1")
            if text
            else b"BT ET"
        )
        objects[page_id] = (
            f"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] "
            f"/Resources << /Font << /F1 {font_id} 0 R >> >> /Contents {content_id} 0 R >>"
        ).encode("latin-1")
        objects[content_id] = b"<< /Length %d >>\nstream\n" % len(stream) + stream + b"\nendstream"
    objects[info_id] = f"<< /Title ({_escape_pdf_text(title or 'Untitled')}) >>".encode("latin-1")

    output = bytearray(b"%PDF-1.4\n")
    offsets: List[int] = [0] * (info_id + 1)
    for object_id in range(1, info_id + 1):
        offsets[object_id] = len(output)
        output += b"%d 0 obj\n" % object_id + objects[object_id] + b"\nendobj\n"

    xref_offset = len(output)
    output += b"xref\n0 %d\n" % (info_id + 1)
    output += b"0000000000 65535 f \n"
    for object_id in range(1, info_id + 1):
        output += b"%010d 00000 n \n" % offsets[object_id]
    output += (
        b"trailer\n<< /Size %d /Root 1 0 R /Info %d 0 R >>\nstartxref\n%d\n%%%%EOF\n"
        % (info_id + 1, info_id, xref_offset)
    )
    return bytes(output)


class RecordingLLM(LLM):
    """Returns a fixed reply and remembers every request."""

    provider = "recording"

    def __init__(self, reply: str = "The risks are listed on [page 2].") -> None:
        self.reply = reply
        self.calls: List[Dict[str, object]] = []

    def generate(self, messages: Messages, max_tokens: int, timeout: float | None = None) -> str:
        self.calls.append({"messages": list(messages), "max_tokens": max_tokens, "timeout": timeout})
        return self.reply

    @property
    def model_name(self) -> str:
        return "recording"


class FailingEmbeddingModel(HashEmbeddingModel):
    """Hash embedder that raises for selected page texts."""

    def __init__(self, failing_texts: Sequence[str]) -> None:
        super().__init__()
        self._failing = set(failing_texts)

    def vectorize(self, text):
        if text in self._failing:
            raise RuntimeError(f"cannot embed {text!r}")
        return super().vectorize(text)


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def make_pdf() -> Callable[..., bytes]:
    return build_pdf


@pytest.fixture
def embedding_model() -> HashEmbeddingModel:
    return HashEmbeddingModel()


@pytest.fixture
def store(embedding_model: HashEmbeddingModel) -> DocumentStore:
    return DocumentStore(embedding_model)


@pytest.fixture
def failing_embedding_model() -> Callable[[Sequence[str]], FailingEmbeddingModel]:
    return FailingEmbeddingModel


@pytest.fixture
def recording_llm() -> RecordingLLM:
    return RecordingLLM()


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(log_dir=str(tmp_path / "logs"))


@pytest.fixture
def service(settings: Settings, recording_llm: RecordingLLM) -> DocumentService:
    return build_service(settings, llm=recording_llm)
