"""Cosine similarity between embedding vectors."""
from __future__ import annotations

from typing import Sequence

import numpy as np

from docqa.errors import DimensionMismatchError


def cosine_similarity(vec_a: Sequence[float], vec_b: Sequence[float]) -> float:
    """Return ``dot(a, b) / (|a| * |b|)``, or ``0.0`` when either vector has zero norm."""

    if len(vec_a) != len(vec_b):
        raise DimensionMismatchError(
            f"Vectors must have the same length ({len(vec_a)} != {len(vec_b)})"
        )

    a = np.asarray(vec_a, dtype=np.float64)
    b = np.asarray(vec_b, dtype=np.float64)
    norm_a = float(np.linalg.norm(a))
    norm_b = float(np.linalg.norm(b))
    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0

    similarity = float(np.dot(a, b)) / (norm_a * norm_b)
    return max(-1.0, min(1.0, similarity))


__all__ = ["cosine_similarity"]
