"""
Semantic Conventions for Span Attributes

Attribute keys follow the OpenTelemetry GenAI conventions where one
exists, plus a custom ``retrieval.*`` namespace for the hybrid merge.

Reference: https://opentelemetry.io/docs/specs/semconv/gen-ai/
"""

from __future__ import annotations

from typing import Any

# ---------------------------------------------------------------------------
# GENAI NAMESPACE (OTel standard)
# ---------------------------------------------------------------------------

GEN_AI_SYSTEM = "gen_ai.system"  # "openai"
GEN_AI_REQUEST_MODEL = "gen_ai.request.model"

# ---------------------------------------------------------------------------
# RETRIEVAL NAMESPACE (custom)
# ---------------------------------------------------------------------------

RETRIEVAL_QUERY = "retrieval.query"  # only when PHOENIX_CAPTURE_QUERY_TEXT=true
RETRIEVAL_FILTER_VALUE = "retrieval.filter.client_id"
RETRIEVAL_FILTER_MATCHES = "retrieval.filter.match_count"
RETRIEVAL_DOCUMENT_COUNT = "retrieval.document_count"
RETRIEVAL_RELEVANT_COUNT = "retrieval.relevant_count"
RETRIEVAL_THRESHOLD = "retrieval.similarity_threshold"
RETRIEVAL_STATUS = "retrieval.status"  # "COMPLETE", "ERROR"
RETRIEVAL_ERROR_TYPE = "retrieval.error_type"


def retrieval_request_attributes(
    filter_value: int,
    document_count: int,
    threshold: float,
    query: str | None = None,
) -> dict[str, Any]:
    """Attributes for the top-level retrieval span."""
    attrs: dict[str, Any] = {
        RETRIEVAL_FILTER_VALUE: filter_value,
        RETRIEVAL_DOCUMENT_COUNT: document_count,
        RETRIEVAL_THRESHOLD: threshold,
    }
    if query is not None:
        attrs[RETRIEVAL_QUERY] = query
    return attrs


def gen_ai_attributes(collaborator: Any) -> dict[str, Any]:
    """GenAI attributes for a model-backed collaborator; empty for doubles."""
    attrs: dict[str, Any] = {}
    system = getattr(collaborator, "system", None)
    model = getattr(collaborator, "model", None)
    if isinstance(system, str):
        attrs[GEN_AI_SYSTEM] = system
    if isinstance(model, str):
        attrs[GEN_AI_REQUEST_MODEL] = model
    return attrs
