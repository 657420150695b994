"""
Hybrid RAG - dense-vector similarity AND a structured equality filter.

A query is embedded, scored against every indexed document, and merged
with an exact-match client filter. Only documents that pass BOTH signals
are handed to answer generation.

USAGE:
------
from hybrid_rag import DocumentStore, RetrievalRequest, create_engine

engine = create_engine()
engine.store.index_corpus(engine.embeddings.embed)
result = engine.retrieve(RetrievalRequest(query="Payment status", filter_value=101))
"""

from hybrid_rag.retrieval import (
    Document,
    ScoredDocument,
    DocumentStore,
    IndexReport,
    HybridRetrievalEngine,
    RetrievalRequest,
    RetrievalResult,
    RetrievalStatus,
    SIMILARITY_THRESHOLD,
    NO_RELEVANT_DOCUMENTS_ANSWER,
    cosine_similarity,
    create_engine,
)

__version__ = "0.1.0"

__all__ = [
    "Document",
    "ScoredDocument",
    "DocumentStore",
    "IndexReport",
    "HybridRetrievalEngine",
    "RetrievalRequest",
    "RetrievalResult",
    "RetrievalStatus",
    "SIMILARITY_THRESHOLD",
    "NO_RELEVANT_DOCUMENTS_ANSWER",
    "cosine_similarity",
    "create_engine",
]
