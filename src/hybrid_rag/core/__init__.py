"""
Core module - shared protocols and errors for the entire system.

USAGE:
------
from hybrid_rag.core import EmbeddingProvider, AnswerGenerator

class MyEmbeddings:
    '''Implements EmbeddingProvider protocol.'''
    ...
"""

from hybrid_rag.core.protocols import (
    EmbeddingProvider,
    AnswerGenerator,
)
from hybrid_rag.core.errors import (
    HybridRagError,
    IndexRequiredError,
    EmbeddingError,
    GenerationError,
    DimensionMismatchError,
    IndexInProgressError,
)

__all__ = [
    # Protocols
    "EmbeddingProvider",
    "AnswerGenerator",
    # Errors
    "HybridRagError",
    "IndexRequiredError",
    "EmbeddingError",
    "GenerationError",
    "DimensionMismatchError",
    "IndexInProgressError",
]
