"""
Retrieval module - hybrid vector + structured search.

This module provides:
- Document / ScoredDocument: the data model
- cosine_similarity(): vector math
- DocumentStore: in-memory corpus with incremental indexing
- HybridRetrievalEngine: the AND merge of similarity and client filter
- create_engine(): Factory function
"""

from hybrid_rag.retrieval.document import Document, ScoredDocument
from hybrid_rag.retrieval.similarity import cosine_similarity
from hybrid_rag.retrieval.store import DocumentStore, IndexReport
from hybrid_rag.retrieval.engine import (
    SIMILARITY_THRESHOLD,
    NO_RELEVANT_DOCUMENTS_ANSWER,
    HybridRetrievalEngine,
    PipelineLogEntry,
    PipelineStep,
    RetrievalFailure,
    RetrievalRequest,
    RetrievalResult,
    RetrievalStatus,
    create_engine,
    is_relevant,
    score_document,
)
from hybrid_rag.retrieval.seeds import (
    SeedRecord,
    get_customer_documents,
    load_seed_file,
)

__all__ = [
    # Documents
    "Document",
    "ScoredDocument",
    # Vector math
    "cosine_similarity",
    # Store
    "DocumentStore",
    "IndexReport",
    # Engine
    "SIMILARITY_THRESHOLD",
    "NO_RELEVANT_DOCUMENTS_ANSWER",
    "HybridRetrievalEngine",
    "PipelineLogEntry",
    "PipelineStep",
    "RetrievalFailure",
    "RetrievalRequest",
    "RetrievalResult",
    "RetrievalStatus",
    "create_engine",
    "is_relevant",
    "score_document",
    # Seeds
    "SeedRecord",
    "get_customer_documents",
    "load_seed_file",
]
