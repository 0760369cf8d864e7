"""Exception taxonomy shared by the ingest and query paths."""
from __future__ import annotations


class DocQAError(RuntimeError):
    """Base error carrying a stable ``kind`` and the HTTP status it maps to."""

    kind = "InternalError"
    status_code = 500

    def __init__(self, message: str, *, cause: Exception | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.__cause__ = cause

    def to_dict(self) -> dict[str, object]:
        return {"success": False, "error": self.message, "kind": self.kind}


class InvalidFileError(DocQAError):
    """Raised when an upload is missing, too large or not a PDF."""

    kind = "InvalidFile"
    status_code = 400


class ParseFailedError(DocQAError):
    """Raised when the PDF extractor cannot produce page text."""

    kind = "ParseFailed"
    status_code = 422


class VectorizationFailedError(DocQAError):
    """Raised when a single page cannot be embedded.

    The document store recovers from this per page; it never escapes ingest.
    """

    kind = "VectorizationFailed"


class DocumentNotFoundError(DocQAError):
    kind = "DocumentNotFound"
    status_code = 404

    def __init__(self, document_id: str) -> None:
        super().__init__(f"Document {document_id} not found")
        self.document_id = document_id


class MissingFieldError(DocQAError):
    kind = "MissingField"
    status_code = 400


class DimensionMismatchError(DocQAError, ValueError):
    """Raised when vectors of different lengths are compared."""

    kind = "DimensionMismatch"


class GenerationFailedError(DocQAError):
    """Raised when the text generation backend fails or times out."""

    kind = "GenerationFailed"
    status_code = 502


class IngestInProgressError(DocQAError):
    kind = "IngestInProgress"
    status_code = 409


class EmbeddingUnavailableError(DocQAError):
    """Raised when the configured embedding backend cannot be initialised."""

    kind = "EmbeddingUnavailable"
    status_code = 503


__all__ = [
    "DocQAError",
    "DimensionMismatchError",
    "DocumentNotFoundError",
    "EmbeddingUnavailableError",
    "GenerationFailedError",
    "IngestInProgressError",
    "InvalidFileError",
    "MissingFieldError",
    "ParseFailedError",
    "VectorizationFailedError",
]
