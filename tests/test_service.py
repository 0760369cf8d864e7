from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

from docqa.errors import (
    DocumentNotFoundError,
    InvalidFileError,
    MissingFieldError,
    ParseFailedError,
)
from docqa.logging_config import AUDIT_LOGGER_NAME, configure_logging
from docqa.models import ChatTurn
from docqa.services.documents import DEFAULT_SUGGESTIONS, DocumentService


def _ingest(service: DocumentService, make_pdf, pages=("Revenue grew strongly", "Risks include competition")):
    data = make_pdf(list(pages), title="Report")
    return service.ingest(data, "report.pdf")


def test_ingest_stores_pages_and_metadata(service: DocumentService, make_pdf) -> None:
    result = _ingest(service, make_pdf)

    assert result.file_name == "report.pdf"
    assert result.total_pages == 2
    assert result.stored_pages == 2
    assert service.store.has_document(result.document_id)
    assert result.metadata["fileName"] == "report.pdf"
    assert result.metadata["totalPages"] == 2
    assert result.metadata["fileSize"] > 0
    assert result.metadata["uploadedAt"].endswith("Z")
    assert result.metadata["info"]["Title"] == "Report"


def test_each_ingest_gets_a_new_document_id(service: DocumentService, make_pdf) -> None:
    first = _ingest(service, make_pdf)
    second = _ingest(service, make_pdf)

    assert first.document_id != second.document_id
    assert [entry["documentId"] for entry in service.list_documents()] == sorted(
        [first.document_id, second.document_id]
    )


def test_ingest_rejects_invalid_uploads(service: DocumentService, make_pdf) -> None:
    with pytest.raises(InvalidFileError):
        service.ingest(b"hello", "notes.txt", content_type="text/plain")
    with pytest.raises(InvalidFileError):
        service.ingest(b"", "empty.pdf")
    with pytest.raises(ParseFailedError):
        service.ingest(b"not really a pdf", "broken.pdf")

    assert service.list_documents() == []


def test_ask_returns_cited_answer(service: DocumentService, make_pdf, recording_llm) -> None:
    document_id = _ingest(service, make_pdf).document_id
    history = [ChatTurn("user", "Hello"), ChatTurn("assistant", "Hi there")]

    result = service.ask(document_id, "risks", history)

    assert result.citations == [2]
    assert result.relevant_pages[0].page_number == 2
    call = recording_llm.calls[0]
    assert call["timeout"] == service.settings.llm_timeout_seconds
    assert call["max_tokens"] == service.settings.llm_max_tokens
    assert [message["role"] for message in call["messages"]] == ["system", "user", "assistant", "user"]


@pytest.mark.parametrize(("document_id", "query"), [("", "risks"), ("doc", ""), ("doc", "   ")])
def test_ask_requires_document_and_query(service: DocumentService, document_id: str, query: str) -> None:
    with pytest.raises(MissingFieldError):
        service.ask(document_id, query)


def test_unknown_document_errors(service: DocumentService) -> None:
    with pytest.raises(DocumentNotFoundError):
        service.ask("missing", "risks")
    with pytest.raises(DocumentNotFoundError):
        service.suggestions("missing")
    with pytest.raises(DocumentNotFoundError):
        service.get_metadata("missing")
    with pytest.raises(DocumentNotFoundError):
        service.delete_document("missing")


def test_suggestions_metadata_and_delete(service: DocumentService, make_pdf) -> None:
    document_id = _ingest(service, make_pdf).document_id

    assert service.suggestions(document_id) == list(DEFAULT_SUGGESTIONS)
    assert len(service.suggestions(document_id)) == 4
    assert service.get_metadata(document_id)["fileName"] == "report.pdf"

    assert service.delete_document(document_id) is True
    with pytest.raises(DocumentNotFoundError):
        service.get_metadata(document_id)


def test_close_clears_documents(service: DocumentService, make_pdf) -> None:
    _ingest(service, make_pdf)

    service.close()

    assert service.list_documents() == []


def test_ingest_and_query_are_written_to_audit_log(service: DocumentService, make_pdf, tmp_path: Path) -> None:
    log_dir = tmp_path / "audit"
    configure_logging(log_dir)
    try:
        document_id = _ingest(service, make_pdf).document_id
        service.ask(document_id, "risks")
    finally:
        for handler in logging.getLogger(AUDIT_LOGGER_NAME).handlers:
            handler.flush()

    lines = (log_dir / "ingest_audit.log").read_text(encoding="utf-8").splitlines()
    events = [json.loads(line) for line in lines]
    assert [event["event"] for event in events] == ["ingest", "query"]
    assert events[0]["document_id"] == document_id
    assert events[0]["stored_pages"] == 2
    assert events[1]["citations"] == [2]
    assert events[1]["logger"] == AUDIT_LOGGER_NAME
