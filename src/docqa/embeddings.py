"""Text embedding backends: the deterministic hash embedder and Sentence Transformers."""
from __future__ import annotations

import logging
import time
from typing import Any, Callable, List, Protocol, Sequence, runtime_checkable

import numpy as np

from docqa.errors import EmbeddingUnavailableError
from docqa.telemetry import emit_embeddings_event

LOGGER = logging.getLogger(__name__)

DEFAULT_DIMENSION = 384
DEFAULT_MAX_TOKENS = 100
EMPTY_PAGE_TEXT = "Empty page"


@runtime_checkable
class EmbeddingModel(Protocol):
    """Contract every embedding backend satisfies: text in, fixed-length vector out."""

    @property
    def dimension(self) -> int:
        ...

    @property
    def model_name(self) -> str:
        ...

    def embed(self, text: Any) -> List[float]:
        ...

    def embed_texts(self, texts: Sequence[Any]) -> List[List[float]]:
        ...


def _is_blank(text: Any) -> bool:
    return not isinstance(text, str) or not text.strip()


class _InstrumentedEmbedder:
    """Shared ``embed``/``embed_texts`` plumbing with telemetry around a per-batch function."""

    _model_name = "unknown"
    _dimension = DEFAULT_DIMENSION
    _embedder: Callable[[Sequence[Any]], List[List[float]]]

    @property
    def dimension(self) -> int:
        return int(self._dimension)

    @property
    def model_name(self) -> str:
        return self._model_name

    def embed(self, text: Any) -> List[float]:
        return self.embed_texts([text])[0]

    def embed_texts(self, texts: Sequence[Any]) -> List[List[float]]:
        if not texts:
            return []
        started = time.perf_counter()
        try:
            embeddings = self._embedder(texts)
        except Exception as error:
            emit_embeddings_event(
                model=self._model_name,
                count=len(texts),
                duration_ms=(time.perf_counter() - started) * 1000.0,
                errors=[str(error)],
            )
            raise

        emit_embeddings_event(
            model=self._model_name,
            count=len(texts),
            duration_ms=(time.perf_counter() - started) * 1000.0,
        )
        return embeddings


class HashEmbeddingModel(_InstrumentedEmbedder):
    """Deterministic bag-of-characters hash embedding.

    Each whitespace token is hashed to the sum of its character codes and
    bucketed modulo ``dimension``; the bucket receives ``1 / (position + 1)``
    so earlier tokens weigh more. The vector is L2-normalised. Blank or
    non-string input embeds the literal ``"Empty page"`` instead.
    """

    def __init__(self, dimension: int = DEFAULT_DIMENSION, max_tokens: int = DEFAULT_MAX_TOKENS) -> None:
        if dimension <= 0:
            raise ValueError("dimension must be a positive integer")
        if max_tokens <= 0:
            raise ValueError("max_tokens must be a positive integer")
        self._dimension = dimension
        self._max_tokens = max_tokens
        self._model_name = f"hash-{dimension}"
        self._embedder = self._embed_batch

    def _embed_batch(self, texts: Sequence[Any]) -> List[List[float]]:
        return [self.vectorize(text) for text in texts]

    def vectorize(self, text: Any) -> List[float]:
        """Embed a single text without telemetry."""

        if _is_blank(text):
            return self.vectorize(EMPTY_PAGE_TEXT)

        tokens = text.strip().lower().split()[: self._max_tokens]
        vector = np.zeros(self._dimension, dtype=np.float64)
        for idx, token in enumerate(tokens):
            bucket = sum(ord(char) for char in token) % self._dimension
            vector[bucket] += 1.0 / (idx + 1)

        norm = float(np.linalg.norm(vector))
        if norm == 0.0:
            return vector.tolist()
        return (vector / norm).tolist()


class SentenceTransformerEmbeddingModel(_InstrumentedEmbedder):
    """Learned embeddings backed by a SentenceTransformer model."""

    def __init__(self, model_name_or_path: str, *, device: str | None = None) -> None:
        try:
            from sentence_transformers import SentenceTransformer
        except ImportError as error:
            raise EmbeddingUnavailableError(
                "EMBEDDING_PROVIDER=sentence-transformers requires the 'sentence-transformers' package",
                cause=error,
            ) from error

        try:
            self._model = SentenceTransformer(model_name_or_path, device=device)
        except Exception as error:
            raise EmbeddingUnavailableError(
                f"Failed to load sentence-transformers model '{model_name_or_path}'",
                cause=error,
            ) from error

        self._model_name = model_name_or_path
        self._dimension = int(self._model.get_sentence_embedding_dimension())
        self._embedder = self._embed_batch

    def _embed_batch(self, texts: Sequence[Any]) -> List[List[float]]:
        cleaned = [EMPTY_PAGE_TEXT if _is_blank(text) else text for text in texts]
        embeddings = self._model.encode(
            cleaned,
            convert_to_numpy=True,
            show_progress_bar=False,
            normalize_embeddings=True,
        )
        return np.asarray(embeddings, dtype=np.float64).tolist()


def create_embedding_model(provider: str, **options: Any) -> EmbeddingModel:
    """Instantiate the embedding backend named by ``provider``."""

    provider = provider.strip().lower()
    if provider == "hash":
        return HashEmbeddingModel(
            dimension=options.get("dimension", DEFAULT_DIMENSION),
            max_tokens=options.get("max_tokens", DEFAULT_MAX_TOKENS),
        )
    if provider in {"sentence-transformers", "sentence_transformers"}:
        return SentenceTransformerEmbeddingModel(
            options["model_name_or_path"], device=options.get("device")
        )
    raise ValueError(f"Unsupported EMBEDDING_PROVIDER: {provider!r}")


__all__ = [
    "DEFAULT_DIMENSION",
    "EMPTY_PAGE_TEXT",
    "EmbeddingModel",
    "HashEmbeddingModel",
    "SentenceTransformerEmbeddingModel",
    "create_embedding_model",
]
