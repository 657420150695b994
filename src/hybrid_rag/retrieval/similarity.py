"""
Vector math for retrieval scoring.

Pure functions only: no state, no I/O.
"""

from __future__ import annotations

from typing import Sequence

import numpy as np

from hybrid_rag.core.errors import DimensionMismatchError


def cosine_similarity(a: Sequence[float] | np.ndarray, b: Sequence[float] | np.ndarray) -> float:
    """
    Cosine similarity: dot(a, b) / (|a| * |b|).

    Returns 0.0 when either vector has zero magnitude.

    Raises:
        DimensionMismatchError: If the vectors differ in length or are empty.
    """
    vec_a = np.asarray(a, dtype=np.float64).ravel()
    vec_b = np.asarray(b, dtype=np.float64).ravel()

    if vec_a.shape != vec_b.shape:
        raise DimensionMismatchError(vec_a.size, vec_b.size)
    if vec_a.size == 0:
        raise DimensionMismatchError(0, 0, "Cannot compare empty vectors")

    norm_a = np.linalg.norm(vec_a)
    norm_b = np.linalg.norm(vec_b)
    if norm_a == 0 or norm_b == 0:
        return 0.0

    return float(np.dot(vec_a, vec_b) / (norm_a * norm_b))
