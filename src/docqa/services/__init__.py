"""Service layer wiring extraction, retrieval and generation together."""

from .documents import DocumentService, build_service

__all__ = ["DocumentService", "build_service"]
