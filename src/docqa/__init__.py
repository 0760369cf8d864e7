"""PDF question answering: per-page retrieval and citation-aware answers."""

__version__ = "0.1.0"
