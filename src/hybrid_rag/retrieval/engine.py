"""
Hybrid Retrieval Engine

Combines two INDEPENDENT signals with a logical AND:
- VECTOR: cosine similarity between the query and each document
- SQL: equality filter on client_id

A document is relevant only when it passes the filter AND scores above
SIMILARITY_THRESHOLD. There is no weighted blend: a perfect semantic match
for the wrong client is never relevant.

STATE MACHINE (per request):
----------------------------
    IDLE -> EMBEDDING -> SEARCHING -> GENERATING -> COMPLETE
                                  \\-> COMPLETE  (no relevant documents)
    EMBEDDING | SEARCHING | GENERATING -> ERROR
    IDLE -> ERROR  (corpus not fully indexed; no collaborator is called)

The engine is read-only with respect to the store. Each request carries
its own status, so the engine itself holds no per-request state.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable

import numpy as np

from hybrid_rag.config import HybridRagConfig, get_config
from hybrid_rag.core.errors import (
    EmbeddingError,
    GenerationError,
    HybridRagError,
    IndexRequiredError,
)
from hybrid_rag.core.protocols import AnswerGenerator, EmbeddingProvider
from hybrid_rag.generation import build_context, build_prompt, get_answer_generator
from hybrid_rag.embeddings import get_embedding_provider
from hybrid_rag.observability import (
    RETRIEVAL_ERROR_TYPE,
    RETRIEVAL_FILTER_MATCHES,
    RETRIEVAL_RELEVANT_COUNT,
    RETRIEVAL_STATUS,
    gen_ai_attributes,
    get_config as get_phoenix_config,
    get_tracer,
    retrieval_request_attributes,
)
from hybrid_rag.retrieval.document import Document, ScoredDocument
from hybrid_rag.retrieval.similarity import cosine_similarity
from hybrid_rag.retrieval.store import DocumentStore

logger = logging.getLogger(__name__)


SIMILARITY_THRESHOLD = 0.45

NO_RELEVANT_DOCUMENTS_ANSWER = "No relevant documents found matching the criteria."


# ---------------------------------------------------------------------------
# REQUEST / RESULT TYPES
# ---------------------------------------------------------------------------


class RetrievalStatus(str, Enum):
    IDLE = "IDLE"
    EMBEDDING = "EMBEDDING"
    SEARCHING = "SEARCHING"
    GENERATING = "GENERATING"
    COMPLETE = "COMPLETE"
    ERROR = "ERROR"


class PipelineStep(str, Enum):
    """Which signal of the pipeline a log entry belongs to."""
    VECTOR = "VECTOR"
    SQL = "SQL"
    MERGE = "MERGE"
    GENERATE = "GENERATE"


@dataclass
class PipelineLogEntry:
    step: PipelineStep
    message: str
    details: str | None = None
    timestamp: float = field(default_factory=time.time)


@dataclass(frozen=True)
class RetrievalRequest:
    query: str
    filter_value: int


@dataclass
class RetrievalFailure:
    """Terminal error attached to a result in the ERROR state."""
    error_type: str
    error_message: str
    exception: HybridRagError | None = None

    @classmethod
    def from_exception(cls, exc: HybridRagError) -> "RetrievalFailure":
        return cls(error_type=exc.error_type, error_message=str(exc), exception=exc)


@dataclass
class RetrievalResult:
    """
    Outcome of one retrieve() call.

    ``documents`` holds EVERY scored document, including filtered-out and
    low-similarity ones, sorted by similarity descending, so callers can
    audit why a document was or was not used.
    """
    request: RetrievalRequest
    status: RetrievalStatus
    documents: list[ScoredDocument] = field(default_factory=list)
    answer: str | None = None
    context: str | None = None
    error: RetrievalFailure | None = None
    status_history: list[RetrievalStatus] = field(default_factory=list)
    log: list[PipelineLogEntry] = field(default_factory=list)

    @property
    def relevant_documents(self) -> list[ScoredDocument]:
        return [doc for doc in self.documents if doc.is_relevant]

    @property
    def succeeded(self) -> bool:
        return self.status == RetrievalStatus.COMPLETE

    def raise_for_error(self) -> None:
        """Re-raise the failure that put this result in the ERROR state."""
        if self.error is None:
            return
        if self.error.exception is not None:
            raise self.error.exception
        raise HybridRagError(self.error.error_message)

    def to_dict(self) -> dict[str, Any]:
        return {
            "query": self.request.query,
            "filter_value": self.request.filter_value,
            "status": self.status.value,
            "answer": self.answer,
            "error": (
                {"type": self.error.error_type, "message": self.error.error_message}
                if self.error
                else None
            ),
            "documents": [doc.to_dict() for doc in self.documents],
            "relevant_ids": [doc.id for doc in self.relevant_documents],
            "status_history": [status.value for status in self.status_history],
        }


# ---------------------------------------------------------------------------
# SCORING
# ---------------------------------------------------------------------------


def score_document(document: Document, query_embedding: np.ndarray) -> float:
    """Similarity of one document to the query; 0.0 if it has no embedding."""
    if document.embedding is None:
        return 0.0
    return cosine_similarity(query_embedding, document.embedding)


def is_relevant(similarity: float, passed_filter: bool) -> bool:
    """The AND merge: both signals must agree."""
    return passed_filter and similarity > SIMILARITY_THRESHOLD


# ---------------------------------------------------------------------------
# ENGINE
# ---------------------------------------------------------------------------


class HybridRetrievalEngine:
    """
    Orchestrates embedding, scoring, filtering, merging and generation.

    Dependencies are INJECTED: the store, the embedding provider and the
    answer generator. Collaborator failures never raise out of retrieve();
    they end the request in the ERROR state.
    """

    def __init__(
        self,
        store: DocumentStore,
        embeddings: EmbeddingProvider,
        generator: AnswerGenerator,
        on_status: Callable[[RetrievalStatus], None] | None = None,
    ):
        """
        Args:
            store: Document store to search
            embeddings: Embedding collaborator for the query
            generator: Answer collaborator
            on_status: Called on every state transition (e.g. to drive a UI)
        """
        self.store = store
        self.embeddings = embeddings
        self.generator = generator
        self._on_status = on_status

    def retrieve(self, request: RetrievalRequest) -> RetrievalResult:
        """Run one hybrid retrieval request to a terminal state."""
        result = RetrievalResult(request=request, status=RetrievalStatus.IDLE)
        result.status_history.append(RetrievalStatus.IDLE)
        capture_query = get_phoenix_config().capture_query_text

        tracer = get_tracer()
        with tracer.start_span(
            "hybrid_rag.retrieve",
            attributes=retrieval_request_attributes(
                filter_value=request.filter_value,
                document_count=len(self.store),
                threshold=SIMILARITY_THRESHOLD,
                query=request.query if capture_query else None,
            ),
        ) as span:
            self._run(request, result)

            span.set_attribute(RETRIEVAL_STATUS, result.status.value)
            span.set_attribute(RETRIEVAL_RELEVANT_COUNT, len(result.relevant_documents))
            if result.error:
                span.set_attribute(RETRIEVAL_ERROR_TYPE, result.error.error_type)
                span.set_status("error", result.error.error_message)
                if result.error.exception is not None:
                    span.record_exception(result.error.exception)
            else:
                span.set_status("ok")

        return result

    def _run(self, request: RetrievalRequest, result: RetrievalResult) -> None:
        missing = self.store.unindexed_ids()
        if missing:
            self._fail(result, IndexRequiredError(missing), PipelineStep.VECTOR)
            return

        logger.info(
            f"Hybrid search for {request.query!r} with client_id={request.filter_value}"
        )

        # 1. Vector path: embed the query
        self._transition(result, RetrievalStatus.EMBEDDING)
        result.log.append(PipelineLogEntry(PipelineStep.VECTOR, "Embedding user query"))
        try:
            with get_tracer().start_span(
                "hybrid_rag.embed_query", attributes=gen_ai_attributes(self.embeddings)
            ):
                query_embedding = self.embeddings.embed(request.query)
        except EmbeddingError as e:
            self._fail(result, e, PipelineStep.VECTOR)
            return

        # 2. Score every document, run the filter, merge
        self._transition(result, RetrievalStatus.SEARCHING)
        with get_tracer().start_span("hybrid_rag.search") as span:
            result.documents = self._search(request, query_embedding, result.log)
            span.set_attribute(
                RETRIEVAL_FILTER_MATCHES,
                sum(1 for doc in result.documents if doc.passed_filter),
            )

        relevant = result.relevant_documents
        result.log.append(
            PipelineLogEntry(
                PipelineStep.MERGE,
                f"Found {len(relevant)} relevant document(s) after filtering",
                details=", ".join(str(doc.id) for doc in relevant) or None,
            )
        )
        logger.info(f"{len(relevant)} relevant document(s) for client_id={request.filter_value}")

        if not relevant:
            result.answer = NO_RELEVANT_DOCUMENTS_ANSWER
            self._transition(result, RetrievalStatus.COMPLETE)
            return

        # 3. Generate from the relevant documents only
        self._transition(result, RetrievalStatus.GENERATING)
        result.context = build_context(relevant)
        result.log.append(
            PipelineLogEntry(PipelineStep.GENERATE, "Sending context for answer generation")
        )
        try:
            with get_tracer().start_span(
                "hybrid_rag.generate", attributes=gen_ai_attributes(self.generator)
            ):
                answer = self.generator.generate(build_prompt(request.query, result.context))
        except GenerationError as e:
            self._fail(result, e, PipelineStep.GENERATE)
            return

        result.answer = answer
        self._transition(result, RetrievalStatus.COMPLETE)

    def _search(
        self,
        request: RetrievalRequest,
        query_embedding: np.ndarray,
        log: list[PipelineLogEntry],
    ) -> list[ScoredDocument]:
        documents = self.store.list_documents()

        log.append(
            PipelineLogEntry(
                PipelineStep.VECTOR,
                f"Computing cosine similarity against {len(documents)} documents",
            )
        )
        similarities = {doc.id: score_document(doc, query_embedding) for doc in documents}

        log.append(
            PipelineLogEntry(
                PipelineStep.SQL,
                "Running structured filter",
                details=f"SELECT id FROM documents WHERE client_id = {request.filter_value}",
            )
        )
        allowed_ids = self.store.filter_by_client_id(request.filter_value)

        scored = []
        for doc in documents:
            similarity = similarities[doc.id]
            passed = doc.id in allowed_ids
            logger.debug(f"Document {doc.id}: similarity={similarity:.3f} passed_filter={passed}")
            scored.append(
                ScoredDocument(
                    document=doc,
                    similarity=similarity,
                    passed_filter=passed,
                    is_relevant=is_relevant(similarity, passed),
                )
            )

        # sorted() is stable, so equal scores keep corpus order
        return sorted(scored, key=lambda s: s.similarity, reverse=True)

    def _transition(self, result: RetrievalResult, status: RetrievalStatus) -> None:
        result.status = status
        result.status_history.append(status)
        logger.debug(f"Retrieval status -> {status.value}")
        if self._on_status:
            self._on_status(status)

    def _fail(self, result: RetrievalResult, exc: HybridRagError, step: PipelineStep) -> None:
        logger.warning(f"Retrieval failed ({exc.error_type}): {exc}")
        result.error = RetrievalFailure.from_exception(exc)
        result.answer = None
        result.log.append(PipelineLogEntry(step, f"Error: {exc}"))
        self._transition(result, RetrievalStatus.ERROR)


# ---------------------------------------------------------------------------
# FACTORY FUNCTION
# ---------------------------------------------------------------------------


def create_engine(
    config: HybridRagConfig | None = None,
    store: DocumentStore | None = None,
    embeddings: EmbeddingProvider | None = None,
    generator: AnswerGenerator | None = None,
    on_status: Callable[[RetrievalStatus], None] | None = None,
) -> HybridRetrievalEngine:
    """
    Factory function wiring an engine from configuration.

    Any collaborator passed in is used as-is; the rest are built from
    ``config`` (default: loaded from environment). The store is
    initialized but NOT indexed.
    """
    config = config or get_config()

    if store is None:
        store = DocumentStore()
    store.initialize()

    return HybridRetrievalEngine(
        store=store,
        embeddings=embeddings or get_embedding_provider(config=config),
        generator=generator or get_answer_generator(config=config),
        on_status=on_status,
    )
