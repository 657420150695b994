"""
Embeddings Module - Single Responsibility: Generate text embeddings.

Every way a remote embedding call can go wrong (no credentials, transport
or HTTP failure, a response without vectors) surfaces as one error type,
EmbeddingError, carrying a readable message.
"""

from __future__ import annotations

import hashlib

import numpy as np
from openai import OpenAI, OpenAIError

from hybrid_rag.config import HybridRagConfig, get_config
from hybrid_rag.core.errors import EmbeddingError
from hybrid_rag.core.protocols import EmbeddingProvider


class OpenAIEmbeddings:
    """
    OpenAI-based embedding provider.

    Uses text-embedding-3-small by default (1536 dimensions). The client
    makes a single attempt per call; retries are left to the caller.
    """

    system = "openai"

    def __init__(
        self,
        model: str = "text-embedding-3-small",
        api_key: str | None = None,
        timeout: float | None = None,
    ):
        self.model = model
        self._api_key = api_key
        self._timeout = timeout
        self._client: OpenAI | None = None

    @property
    def dimensions(self) -> int:
        """Return embedding dimensions for the model."""
        model_dims = {
            "text-embedding-3-small": 1536,
            "text-embedding-3-large": 3072,
            "text-embedding-ada-002": 1536,
        }
        return model_dims.get(self.model, 1536)

    def _get_client(self) -> OpenAI:
        if self._client is None:
            if not self._api_key:
                raise EmbeddingError("Server API key missing: OPENAI_API_KEY is not set")
            self._client = OpenAI(
                api_key=self._api_key,
                timeout=self._timeout,
                max_retries=0,
            )
        return self._client

    def embed(self, text: str) -> np.ndarray:
        """Generate embedding for a single text."""
        if not text or not text.strip():
            raise EmbeddingError("Cannot embed empty text")

        client = self._get_client()
        try:
            response = client.embeddings.create(input=text, model=self.model)
        except OpenAIError as e:
            raise EmbeddingError(f"Embedding request failed: {e}") from e

        if not response.data or not response.data[0].embedding:
            raise EmbeddingError("Embedding response contained no vectors")
        return np.array(response.data[0].embedding, dtype=np.float32)


class MockEmbeddings:
    """
    Mock embedding provider for testing without API calls.

    Generates deterministic pseudo-embeddings seeded from text hashes.
    NOT for production use - only for testing/development.
    """

    def __init__(self, dimensions: int = 256):
        self._dimensions = dimensions

    @property
    def dimensions(self) -> int:
        return self._dimensions

    def embed(self, text: str) -> np.ndarray:
        """Generate deterministic pseudo-embedding from text hash."""
        if not text or not text.strip():
            raise EmbeddingError("Cannot embed empty text")
        seed = int.from_bytes(hashlib.sha256(text.encode()).digest()[:8], "big")
        rng = np.random.default_rng(seed)
        return rng.standard_normal(self._dimensions).astype(np.float32)


def get_embedding_provider(
    use_mock: bool | None = None,
    config: HybridRagConfig | None = None,
) -> EmbeddingProvider:
    """
    Factory function to get the appropriate embedding provider.

    Args:
        use_mock: If True, return MockEmbeddings (default: from config)
        config: Settings to use (default: loaded from environment)
    """
    config = config or get_config()
    if use_mock is None:
        use_mock = config.use_mock_embeddings
    if use_mock:
        return MockEmbeddings()
    return OpenAIEmbeddings(
        model=config.embedding_model,
        api_key=config.api_key,
        timeout=config.request_timeout,
    )
