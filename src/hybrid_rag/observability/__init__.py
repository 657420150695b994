"""
Observability Module - Phoenix + OpenTelemetry Integration

USAGE:
------
from hybrid_rag.observability import init_phoenix, get_tracer

init_phoenix()  # Starts local Phoenix UI if PHOENIX_ENABLED=true

tracer = get_tracer()
with tracer.start_span("my_operation", attributes={"key": "value"}) as span:
    span.set_attribute("result", "success")
"""

from __future__ import annotations

import logging

from opentelemetry import trace
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

from hybrid_rag.observability.config import (
    PhoenixConfig,
    get_config,
    reset_config,
)
from hybrid_rag.observability.tracer import (
    TracerProtocol,
    SpanProtocol,
    NoOpTracer,
    NoOpSpan,
    get_tracer,
    reset_tracer,
)
from hybrid_rag.observability.attributes import (
    GEN_AI_SYSTEM,
    GEN_AI_REQUEST_MODEL,
    RETRIEVAL_QUERY,
    RETRIEVAL_FILTER_VALUE,
    RETRIEVAL_FILTER_MATCHES,
    RETRIEVAL_DOCUMENT_COUNT,
    RETRIEVAL_RELEVANT_COUNT,
    RETRIEVAL_THRESHOLD,
    RETRIEVAL_STATUS,
    RETRIEVAL_ERROR_TYPE,
    gen_ai_attributes,
    retrieval_request_attributes,
)

logger = logging.getLogger(__name__)

_phoenix_initialized = False


def init_phoenix(config: PhoenixConfig | None = None) -> bool:
    """
    Initialize Phoenix observability.

    Call once at application startup. Phoenix itself ships in the
    ``phoenix`` extra; without it tracing stays disabled.

    Returns:
        True if Phoenix was initialized, False if disabled or unavailable
    """
    global _phoenix_initialized
    if _phoenix_initialized:
        return True

    config = config or get_config()

    if not config.enabled:
        logger.debug("Phoenix observability disabled")
        return False

    try:
        if config.collector_endpoint:
            # Remote Phoenix instance
            from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter

            exporter = OTLPSpanExporter(endpoint=config.collector_endpoint)
            logger.info(f"Phoenix connecting to remote: {config.collector_endpoint}")
        else:
            # Local Phoenix - launch app and get exporter
            import phoenix as px

            session = px.launch_app()
            exporter = px.otel.SimpleSpanProcessor.exporter()
            logger.info(f"Phoenix UI available at: {session.url}")

        provider = TracerProvider()
        provider.add_span_processor(BatchSpanProcessor(exporter))
        trace.set_tracer_provider(provider)

    except ImportError as e:
        logger.warning(f"Phoenix not installed, observability disabled: {e}")
        return False
    except Exception as e:
        logger.error(f"Failed to initialize Phoenix: {e}")
        return False

    reset_tracer()
    _phoenix_initialized = True
    return True


def shutdown_phoenix() -> None:
    """Flush spans and reset tracing state."""
    global _phoenix_initialized

    if not _phoenix_initialized:
        return

    provider = trace.get_tracer_provider()
    if hasattr(provider, "shutdown"):
        provider.shutdown()

    reset_tracer()
    reset_config()
    _phoenix_initialized = False


__all__ = [
    # Initialization
    "init_phoenix",
    "shutdown_phoenix",
    # Config
    "PhoenixConfig",
    "get_config",
    "reset_config",
    # Tracer
    "TracerProtocol",
    "SpanProtocol",
    "NoOpTracer",
    "NoOpSpan",
    "get_tracer",
    "reset_tracer",
    # Attributes
    "GEN_AI_SYSTEM",
    "GEN_AI_REQUEST_MODEL",
    "RETRIEVAL_QUERY",
    "RETRIEVAL_FILTER_VALUE",
    "RETRIEVAL_FILTER_MATCHES",
    "RETRIEVAL_DOCUMENT_COUNT",
    "RETRIEVAL_RELEVANT_COUNT",
    "RETRIEVAL_THRESHOLD",
    "RETRIEVAL_STATUS",
    "RETRIEVAL_ERROR_TYPE",
    "gen_ai_attributes",
    "retrieval_request_attributes",
]
