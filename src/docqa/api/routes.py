"""API routers exposing the PDF and chat endpoints."""
from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, File, Request, UploadFile
from pydantic import BaseModel, Field
from starlette.concurrency import run_in_threadpool

from docqa.errors import InvalidFileError
from docqa.extract import validate_upload
from docqa.models import AnswerResult, ChatTurn, IngestResult, Role
from docqa.services.documents import DocumentService

pdf_router = APIRouter(prefix="/api/pdf", tags=["pdf"])
chat_router = APIRouter(prefix="/api/chat", tags=["chat"])


def get_service(request: Request) -> DocumentService:
    return request.app.state.service


class UploadData(BaseModel):
    documentId: str
    fileName: str
    totalPages: int
    storedPages: int
    metadata: dict[str, Any]


class UploadResponse(BaseModel):
    """Response body returned from the upload endpoint."""

    success: bool = True
    message: str = "PDF uploaded and processed successfully"
    data: UploadData


class MetadataResponse(BaseModel):
    success: bool = True
    data: dict[str, Any]


class DocumentListResponse(BaseModel):
    success: bool = True
    data: list[dict[str, Any]]


class MessageResponse(BaseModel):
    success: bool = True
    message: str


class ChatTurnModel(BaseModel):
    role: Role
    content: str


class ChatRequest(BaseModel):
    """Request body accepted by the chat endpoint.

    Missing or null ``documentId`` or ``query`` are reported as ``MissingField`` by the
    service rather than as a schema validation error.
    """

    documentId: str | None = Field(None, description="Identifier returned by the upload endpoint.")
    query: str | None = Field(None, description="Question to ask about the document.")
    conversationHistory: list[ChatTurnModel] = Field(default_factory=list)


class RelevantPageModel(BaseModel):
    pageNumber: int
    similarity: float
    preview: str


class ChatData(BaseModel):
    response: str
    citations: list[int]
    relevantPages: list[RelevantPageModel]


class ChatResponse(BaseModel):
    success: bool = True
    data: ChatData


class SuggestionsData(BaseModel):
    suggestions: list[str]
    documentName: str | None = None


class SuggestionsResponse(BaseModel):
    success: bool = True
    data: SuggestionsData


def _serialise_upload(result: IngestResult) -> UploadResponse:
    return UploadResponse(
        data=UploadData(
            documentId=result.document_id,
            fileName=result.file_name,
            totalPages=result.total_pages,
            storedPages=result.stored_pages,
            metadata=result.metadata,
        )
    )


def _serialise_answer(result: AnswerResult) -> ChatResponse:
    return ChatResponse(
        data=ChatData(
            response=result.response,
            citations=result.citations,
            relevantPages=[
                RelevantPageModel(
                    pageNumber=page.page_number,
                    similarity=page.similarity,
                    preview=page.preview,
                )
                for page in result.relevant_pages
            ],
        )
    )


@pdf_router.post("/upload", response_model=UploadResponse)
async def upload_pdf(
    pdf: UploadFile | None = File(None),
    service: DocumentService = Depends(get_service),
) -> UploadResponse:
    """Extract, vectorize and store an uploaded PDF."""

    if pdf is None:
        raise InvalidFileError("No file provided")

    max_bytes = service.settings.max_upload_bytes
    if pdf.size is not None and pdf.size > max_bytes:
        validate_upload(pdf.filename, pdf.content_type, pdf.size, max_bytes=max_bytes)

    # one byte past the limit is enough for ingest to reject an oversized body
    data = await pdf.read(max_bytes + 1)
    result = await run_in_threadpool(
        service.ingest,
        data,
        pdf.filename or "",
        len(data),
        pdf.content_type,
    )
    return _serialise_upload(result)


@pdf_router.get("", response_model=DocumentListResponse)
def list_documents(service: DocumentService = Depends(get_service)) -> DocumentListResponse:
    return DocumentListResponse(data=service.list_documents())


@pdf_router.get("/{document_id}", response_model=MetadataResponse)
def get_document_metadata(
    document_id: str,
    service: DocumentService = Depends(get_service),
) -> MetadataResponse:
    return MetadataResponse(data=service.get_metadata(document_id))


@pdf_router.delete("/{document_id}", response_model=MessageResponse)
def delete_document(
    document_id: str,
    service: DocumentService = Depends(get_service),
) -> MessageResponse:
    service.delete_document(document_id)
    return MessageResponse(message="Document deleted successfully")


@chat_router.post("", response_model=ChatResponse)
def chat(
    request: ChatRequest,
    service: DocumentService = Depends(get_service),
) -> ChatResponse:
    """Answer a question about an uploaded document with page citations."""

    history = [ChatTurn(role=turn.role, content=turn.content) for turn in request.conversationHistory]
    result = service.ask(request.documentId, request.query, history)
    return _serialise_answer(result)


@chat_router.get("/suggestions/{document_id}", response_model=SuggestionsResponse)
def suggestions(
    document_id: str,
    service: DocumentService = Depends(get_service),
) -> SuggestionsResponse:
    metadata = service.get_metadata(document_id)
    return SuggestionsResponse(
        data=SuggestionsData(
            suggestions=service.suggestions(document_id),
            documentName=metadata.get("fileName"),
        )
    )


__all__ = ["chat_router", "get_service", "pdf_router"]
