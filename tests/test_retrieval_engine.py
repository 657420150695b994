"""
Unit Tests for the Hybrid Retrieval Engine

Tests the AND merge, the state machine, and failure handling.

The embedding stub is ENGINEERED: each sample document gets a basis
vector, and the query vector is chosen so that its cosine with each
document is known exactly:

    doc 1 -> e0   similarity 0.9
    doc 2 -> e3   similarity 0.0
    doc 3 -> e1   similarity 0.2
    doc 4 -> e4   similarity 0.0
    doc 5 -> e0   similarity 0.9

    query = (0.9, 0.2, sqrt(0.15), 0, 0)   |query| == 1
"""

import math
from unittest.mock import MagicMock, patch

import numpy as np
import pytest
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter
from opentelemetry.trace import StatusCode

from hybrid_rag.core.errors import (
    EmbeddingError,
    GenerationError,
    IndexRequiredError,
)
from hybrid_rag.generation import MockAnswerGenerator
from hybrid_rag.observability import (
    GEN_AI_REQUEST_MODEL,
    GEN_AI_SYSTEM,
    RETRIEVAL_ERROR_TYPE,
    RETRIEVAL_FILTER_MATCHES,
    RETRIEVAL_RELEVANT_COUNT,
    RETRIEVAL_STATUS,
)
from hybrid_rag.observability.tracer import OTelTracer
from hybrid_rag.retrieval.document import Document
from hybrid_rag.retrieval.engine import (
    NO_RELEVANT_DOCUMENTS_ANSWER,
    SIMILARITY_THRESHOLD,
    HybridRetrievalEngine,
    PipelineStep,
    RetrievalRequest,
    RetrievalStatus,
    create_engine,
    is_relevant,
    score_document,
)
from hybrid_rag.retrieval.seeds import get_customer_documents
from hybrid_rag.retrieval.store import DocumentStore


QUERY = "What is the status of my payment?"


def basis(i: int, dim: int = 5) -> np.ndarray:
    vec = np.zeros(dim, dtype=np.float32)
    vec[i] = 1.0
    return vec


DOC_VECTORS = {1: basis(0), 2: basis(3), 3: basis(1), 4: basis(4), 5: basis(0)}
QUERY_VECTOR = np.array([0.9, 0.2, math.sqrt(0.15), 0.0, 0.0])


# ---------------------------------------------------------------------------
# FIXTURES
# ---------------------------------------------------------------------------


@pytest.fixture
def engineered_embeddings():
    """Embedding provider returning the engineered vectors above."""
    by_content = {doc.content: DOC_VECTORS[doc.id] for doc in get_customer_documents()}

    def mock_embed(text):
        if text == QUERY:
            return QUERY_VECTOR
        return by_content[text]

    embeddings = MagicMock()
    embeddings.embed.side_effect = mock_embed
    return embeddings


@pytest.fixture
def indexed_store(engineered_embeddings):
    store = DocumentStore()
    store.initialize()
    store.index_corpus(engineered_embeddings.embed)
    engineered_embeddings.embed.reset_mock()
    return store


@pytest.fixture
def generator():
    generator = MagicMock()
    generator.generate.return_value = "Your January payment was processed."
    return generator


@pytest.fixture
def engine(indexed_store, engineered_embeddings, generator):
    return HybridRetrievalEngine(
        store=indexed_store,
        embeddings=engineered_embeddings,
        generator=generator,
    )


def single_doc_engine(similarity_vector, passes_filter: bool, generator):
    """Engine over one document whose similarity and filter outcome are fixed."""
    doc = Document(id=42, content="fixture", client_id=7, category="test")
    store = DocumentStore(seed=lambda: [doc])
    store.initialize()
    store.index_corpus(lambda _text: np.array([1.0, 0.0]))

    embeddings = MagicMock()
    embeddings.embed.return_value = np.array(similarity_vector)
    engine = HybridRetrievalEngine(store=store, embeddings=embeddings, generator=generator)
    return engine, RetrievalRequest(query="q", filter_value=7 if passes_filter else 8)


# ---------------------------------------------------------------------------
# MERGE POLICY
# ---------------------------------------------------------------------------


class TestRelevancePolicy:
    """A document is relevant iff passed_filter AND similarity > threshold."""

    def test_threshold_constant(self):
        assert SIMILARITY_THRESHOLD == 0.45

    @pytest.mark.parametrize(
        "similarity, passed, expected",
        [
            (0.9, True, True),
            (0.9, False, False),
            (0.2, True, False),
            (0.2, False, False),
            (0.45, True, False),
            (0.4501, True, True),
            (-0.8, True, False),
        ],
    )
    def test_is_relevant(self, similarity, passed, expected):
        assert is_relevant(similarity, passed) is expected

    def test_filter_passes_similarity_low(self, generator):
        engine, request = single_doc_engine([0.2, 0.98], True, generator)
        result = engine.retrieve(request)

        doc = result.documents[0]
        assert doc.passed_filter is True
        assert doc.similarity < SIMILARITY_THRESHOLD
        assert doc.is_relevant is False
        generator.generate.assert_not_called()

    def test_filter_fails_similarity_high(self, generator):
        engine, request = single_doc_engine([1.0, 0.0], False, generator)
        result = engine.retrieve(request)

        doc = result.documents[0]
        assert doc.passed_filter is False
        assert doc.similarity == pytest.approx(1.0)
        assert doc.is_relevant is False
        generator.generate.assert_not_called()

    def test_both_pass(self, generator):
        engine, request = single_doc_engine([1.0, 0.0], True, generator)
        result = engine.retrieve(request)

        assert result.documents[0].is_relevant is True
        generator.generate.assert_called_once()

    def test_both_fail(self, generator):
        engine, request = single_doc_engine([0.0, 1.0], False, generator)
        result = engine.retrieve(request)

        assert result.documents[0].is_relevant is False
        assert result.answer == NO_RELEVANT_DOCUMENTS_ANSWER


class TestScoreDocument:
    def test_unindexed_document_scores_zero(self):
        doc = Document(id=1, content="c", client_id=1, category="x")
        assert score_document(doc, np.array([1.0, 0.0])) == 0.0


# ---------------------------------------------------------------------------
# END-TO-END SCENARIOS
# ---------------------------------------------------------------------------


class TestEndToEnd:
    """Full pipeline runs over the five-document sample corpus."""

    def test_client_101_relevant_docs_1_and_5(self, engine, generator):
        result = engine.retrieve(RetrievalRequest(query=QUERY, filter_value=101))

        assert result.status == RetrievalStatus.COMPLETE
        assert {doc.id for doc in result.documents if doc.passed_filter} == {1, 3, 5}
        assert [doc.id for doc in result.relevant_documents] == [1, 5]

        scores = {doc.id: doc.similarity for doc in result.documents}
        assert scores[1] == pytest.approx(0.9, abs=1e-6)
        assert scores[3] == pytest.approx(0.2, abs=1e-6)
        assert scores[5] == pytest.approx(0.9, abs=1e-6)
        assert scores[2] == pytest.approx(0.0, abs=1e-6)
        assert scores[4] == pytest.approx(0.0, abs=1e-6)

        generator.generate.assert_called_once()
        prompt = generator.generate.call_args.args[0]
        assert "[ID:1]" in prompt
        assert "[ID:5]" in prompt
        assert "[ID:3]" not in prompt
        assert QUERY in prompt
        assert result.answer == "Your January payment was processed."

    def test_context_lists_relevant_docs_in_rank_order(self, engine):
        result = engine.retrieve(RetrievalRequest(query=QUERY, filter_value=101))

        docs = {doc.id: doc for doc in get_customer_documents()}
        assert result.context == (
            f"- [ID:1] {docs[1].content}\n- [ID:5] {docs[5].content}"
        )

    def test_status_sequence_with_generation(self, engine):
        seen = []
        engine._on_status = seen.append
        result = engine.retrieve(RetrievalRequest(query=QUERY, filter_value=101))

        assert result.status_history == [
            RetrievalStatus.IDLE,
            RetrievalStatus.EMBEDDING,
            RetrievalStatus.SEARCHING,
            RetrievalStatus.GENERATING,
            RetrievalStatus.COMPLETE,
        ]
        assert seen == result.status_history[1:]

    def test_unknown_client_never_generates(self, engine, generator):
        result = engine.retrieve(RetrievalRequest(query=QUERY, filter_value=999))

        assert result.status == RetrievalStatus.COMPLETE
        assert result.relevant_documents == []
        assert all(not doc.passed_filter for doc in result.documents)
        assert result.answer == NO_RELEVANT_DOCUMENTS_ANSWER
        assert result.context is None
        generator.generate.assert_not_called()
        assert RetrievalStatus.GENERATING not in result.status_history

    def test_unindexed_store_fails_fast(self, engineered_embeddings, generator):
        store = DocumentStore()
        store.initialize()
        engine = HybridRetrievalEngine(
            store=store, embeddings=engineered_embeddings, generator=generator
        )

        result = engine.retrieve(RetrievalRequest(query=QUERY, filter_value=101))

        assert result.status == RetrievalStatus.ERROR
        assert result.error.error_type == "IndexRequired"
        assert result.documents == []
        assert result.answer is None
        engineered_embeddings.embed.assert_not_called()
        generator.generate.assert_not_called()

    def test_partially_indexed_store_fails_fast(self, engineered_embeddings, generator):
        store = DocumentStore()
        store.initialize()

        def skip_doc_4(text):
            if "Fiber" in text:
                raise EmbeddingError("rate limited")
            return engineered_embeddings.embed(text)

        store.index_corpus(skip_doc_4)
        engineered_embeddings.embed.reset_mock()
        engine = HybridRetrievalEngine(
            store=store, embeddings=engineered_embeddings, generator=generator
        )

        result = engine.retrieve(RetrievalRequest(query=QUERY, filter_value=101))

        assert result.error.error_type == "IndexRequired"
        assert isinstance(result.error.exception, IndexRequiredError)
        assert result.error.exception.missing_ids == [4]
        engineered_embeddings.embed.assert_not_called()


# ---------------------------------------------------------------------------
# RANKING
# ---------------------------------------------------------------------------


class TestRanking:
    """All documents are returned, sorted by similarity descending."""

    def test_returns_every_document(self, engine):
        result = engine.retrieve(RetrievalRequest(query=QUERY, filter_value=102))
        assert sorted(doc.id for doc in result.documents) == [1, 2, 3, 4, 5]

    def test_sorted_descending_with_stable_ties(self, engine):
        result = engine.retrieve(RetrievalRequest(query=QUERY, filter_value=101))
        assert [doc.id for doc in result.documents] == [1, 5, 3, 2, 4]

    def test_repeated_runs_identical_order(self, engine):
        first = engine.retrieve(RetrievalRequest(query=QUERY, filter_value=101))
        second = engine.retrieve(RetrievalRequest(query=QUERY, filter_value=101))
        assert [d.id for d in first.documents] == [d.id for d in second.documents]


# ---------------------------------------------------------------------------
# FAILURES
# ---------------------------------------------------------------------------


class TestFailures:
    """Collaborator failures end the request in ERROR."""

    def test_query_embedding_failure(self, engine, engineered_embeddings, generator):
        engineered_embeddings.embed.side_effect = EmbeddingError("Server API key missing")

        result = engine.retrieve(RetrievalRequest(query=QUERY, filter_value=101))

        assert result.status == RetrievalStatus.ERROR
        assert result.status_history == [
            RetrievalStatus.IDLE,
            RetrievalStatus.EMBEDDING,
            RetrievalStatus.ERROR,
        ]
        assert result.error.error_type == "EmbeddingFailure"
        assert "API key missing" in result.error.error_message
        assert result.documents == []
        assert result.answer is None
        generator.generate.assert_not_called()

    def test_generation_failure_keeps_scored_documents(self, engine, generator):
        generator.generate.side_effect = GenerationError("upstream returned 503")

        result = engine.retrieve(RetrievalRequest(query=QUERY, filter_value=101))

        assert result.status == RetrievalStatus.ERROR
        assert result.status_history[-2:] == [
            RetrievalStatus.GENERATING,
            RetrievalStatus.ERROR,
        ]
        assert result.error.error_type == "GenerationFailure"
        assert result.answer is None
        assert len(result.documents) == 5
        assert [doc.id for doc in result.relevant_documents] == [1, 5]

    def test_raise_for_error_reraises(self, engine, generator):
        generator.generate.side_effect = GenerationError("boom")
        result = engine.retrieve(RetrievalRequest(query=QUERY, filter_value=101))

        with pytest.raises(GenerationError, match="boom"):
            result.raise_for_error()

    def test_raise_for_error_noop_on_success(self, engine):
        result = engine.retrieve(RetrievalRequest(query=QUERY, filter_value=101))
        result.raise_for_error()

    def test_failed_request_leaves_store_intact(self, engine, indexed_store, generator):
        generator.generate.side_effect = GenerationError("boom")
        engine.retrieve(RetrievalRequest(query=QUERY, filter_value=101))

        assert indexed_store.is_indexed
        assert len(indexed_store) == 5

    def test_dimension_mismatch_propagates(self, engine, engineered_embeddings):
        """Comparing vectors of different size is a programming error."""
        engineered_embeddings.embed.side_effect = lambda _text: np.ones(3)

        with pytest.raises(ValueError):
            engine.retrieve(RetrievalRequest(query=QUERY, filter_value=101))


# ---------------------------------------------------------------------------
# RESULT OBJECT
# ---------------------------------------------------------------------------


class TestRetrievalResult:
    def test_log_covers_each_step(self, engine):
        result = engine.retrieve(RetrievalRequest(query=QUERY, filter_value=101))
        steps = {entry.step for entry in result.log}
        assert steps == {
            PipelineStep.VECTOR,
            PipelineStep.SQL,
            PipelineStep.MERGE,
            PipelineStep.GENERATE,
        }

    def test_sql_log_names_filter(self, engine):
        result = engine.retrieve(RetrievalRequest(query=QUERY, filter_value=101))
        sql = [entry for entry in result.log if entry.step == PipelineStep.SQL]
        assert "client_id = 101" in sql[0].details

    def test_to_dict(self, engine):
        data = engine.retrieve(RetrievalRequest(query=QUERY, filter_value=101)).to_dict()

        assert data["status"] == "COMPLETE"
        assert data["relevant_ids"] == [1, 5]
        assert data["error"] is None
        assert len(data["documents"]) == 5
        assert data["documents"][0]["passed_filter"] is True


# ---------------------------------------------------------------------------
# FACTORY FUNCTION
# ---------------------------------------------------------------------------


class TestCreateEngine:
    """Test the create_engine factory."""

    def test_initializes_store_without_indexing(self):
        generator = MockAnswerGenerator()
        engine = create_engine(embeddings=MagicMock(), generator=generator)

        assert len(engine.store) == 5
        assert engine.store.is_indexed is False
        assert engine.generator is generator

    def test_mock_pipeline_runs_end_to_end(self):
        from hybrid_rag.config import HybridRagConfig

        config = HybridRagConfig(use_mock_embeddings=True, use_mock_generation=True)
        engine = create_engine(config=config)
        engine.store.index_corpus(engine.embeddings.embed)

        result = engine.retrieve(RetrievalRequest(query=QUERY, filter_value=999))

        assert result.status == RetrievalStatus.COMPLETE
        assert result.answer == NO_RELEVANT_DOCUMENTS_ANSWER

    def test_mock_generator_sees_only_relevant_documents(
        self, indexed_store, engineered_embeddings
    ):
        generator = MockAnswerGenerator()
        engine = create_engine(
            store=indexed_store, embeddings=engineered_embeddings, generator=generator
        )

        result = engine.retrieve(RetrievalRequest(query=QUERY, filter_value=101))

        assert len(generator.prompts) == 1
        context_lines = [
            line for line in generator.prompts[0].splitlines() if line.startswith("- [ID:")
        ]
        assert [line.split("]")[0] for line in context_lines] == ["- [ID:1", "- [ID:5"]
        assert "2 document(s)" in result.answer


# ---------------------------------------------------------------------------
# TRACING
# ---------------------------------------------------------------------------


@pytest.fixture
def span_exporter():
    """Route the engine's spans to an in-memory OTel exporter."""
    exporter = InMemorySpanExporter()
    provider = TracerProvider()
    provider.add_span_processor(SimpleSpanProcessor(exporter))
    tracer = OTelTracer(provider.get_tracer("hybrid-rag-test"))

    with patch("hybrid_rag.retrieval.engine.get_tracer", return_value=tracer):
        yield exporter

    provider.shutdown()


def spans_by_name(exporter):
    return {span.name: span for span in exporter.get_finished_spans()}


class TestTracing:
    """Spans emitted through a real OTel SDK provider."""

    def test_client_101_spans(self, engine, generator, span_exporter):
        generator.system = "openai"
        generator.model = "gpt-4o-mini"

        engine.retrieve(RetrievalRequest(query=QUERY, filter_value=101))

        spans = spans_by_name(span_exporter)
        assert set(spans) == {
            "hybrid_rag.retrieve",
            "hybrid_rag.embed_query",
            "hybrid_rag.search",
            "hybrid_rag.generate",
        }

        root = spans["hybrid_rag.retrieve"]
        assert root.attributes[RETRIEVAL_STATUS] == "COMPLETE"
        assert root.attributes[RETRIEVAL_RELEVANT_COUNT] == 2
        assert root.status.status_code == StatusCode.OK

        assert spans["hybrid_rag.search"].attributes[RETRIEVAL_FILTER_MATCHES] == 3
        assert spans["hybrid_rag.generate"].attributes[GEN_AI_SYSTEM] == "openai"
        assert spans["hybrid_rag.generate"].attributes[GEN_AI_REQUEST_MODEL] == "gpt-4o-mini"
        for name in ("hybrid_rag.embed_query", "hybrid_rag.search", "hybrid_rag.generate"):
            assert spans[name].parent.span_id == root.context.span_id

    def test_unknown_client_has_no_generate_span(self, engine, span_exporter):
        engine.retrieve(RetrievalRequest(query=QUERY, filter_value=999))

        spans = spans_by_name(span_exporter)
        assert "hybrid_rag.generate" not in spans
        assert spans["hybrid_rag.retrieve"].attributes[RETRIEVAL_RELEVANT_COUNT] == 0

    def test_error_recorded_on_root_span(self, engine, generator, span_exporter):
        generator.generate.side_effect = GenerationError("upstream returned 503")

        engine.retrieve(RetrievalRequest(query=QUERY, filter_value=101))

        root = spans_by_name(span_exporter)["hybrid_rag.retrieve"]
        assert root.attributes[RETRIEVAL_STATUS] == "ERROR"
        assert root.attributes[RETRIEVAL_ERROR_TYPE] == "GenerationFailure"
        assert root.status.status_code == StatusCode.ERROR
        assert any(event.name == "exception" for event in root.events)
