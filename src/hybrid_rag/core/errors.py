"""
Error hierarchy for hybrid retrieval.

Each error carries an ``error_type`` tag so the engine can report a
terminal ERROR state without losing which step failed.
"""

from __future__ import annotations


class HybridRagError(Exception):
    """Base class for all hybrid retrieval errors."""

    error_type = "HybridRagError"


class IndexRequiredError(HybridRagError):
    """Retrieval was attempted before every document had an embedding."""

    error_type = "IndexRequired"

    def __init__(self, missing_ids: list[int]):
        self.missing_ids = missing_ids
        super().__init__(
            f"Index required: {len(missing_ids)} document(s) have no embedding "
            f"(ids: {', '.join(str(i) for i in missing_ids)})"
        )


class EmbeddingError(HybridRagError):
    """The embedding collaborator failed (credentials, transport, bad payload)."""

    error_type = "EmbeddingFailure"


class GenerationError(HybridRagError):
    """The generation collaborator failed after relevant documents were found."""

    error_type = "GenerationFailure"


class DimensionMismatchError(HybridRagError, ValueError):
    """Two vectors of different length were compared."""

    error_type = "DimensionMismatch"

    def __init__(self, left: int, right: int, message: str | None = None):
        self.left = left
        self.right = right
        super().__init__(
            message or f"Cannot compare vectors of dimension {left} and {right}"
        )


class IndexInProgressError(HybridRagError):
    """index_corpus was called while another indexing run holds the store."""

    error_type = "IndexInProgress"
