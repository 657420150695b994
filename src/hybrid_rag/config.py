"""
Application Configuration

Loads collaborator and indexing settings from environment variables.
Credentials are read here and handed to the collaborators; the retrieval
core never sees them.
"""

import os
from dataclasses import dataclass, field


def _env_flag(name: str, default: str = "false") -> bool:
    return os.environ.get(name, default).lower() in ("true", "1", "yes")


@dataclass
class HybridRagConfig:
    """Configuration for the hybrid retrieval pipeline.

    Environment Variables:
        OPENAI_API_KEY: Credentials for embedding and generation calls
        EMBEDDING_MODEL: Embedding model name (default: text-embedding-3-small)
        GENERATION_MODEL: Chat model used for answers (default: gpt-4o-mini)
        USE_MOCK_EMBEDDINGS: Use deterministic hash embeddings (default: false)
        USE_MOCK_GENERATION: Use the canned answer generator (default: false)
        REQUEST_TIMEOUT_SECONDS: Transport timeout per collaborator call (default: 30)
        INDEX_DELAY_SECONDS: Pause between document embeddings while indexing (default: 0)
    """

    api_key: str | None = field(default=None, repr=False)
    embedding_model: str = "text-embedding-3-small"
    generation_model: str = "gpt-4o-mini"
    use_mock_embeddings: bool = False
    use_mock_generation: bool = False
    request_timeout: float = 30.0
    index_delay: float = 0.0

    @classmethod
    def from_env(cls) -> "HybridRagConfig":
        """Load config from environment variables."""
        return cls(
            api_key=os.environ.get("OPENAI_API_KEY") or None,
            embedding_model=os.environ.get("EMBEDDING_MODEL", "text-embedding-3-small"),
            generation_model=os.environ.get("GENERATION_MODEL", "gpt-4o-mini"),
            use_mock_embeddings=_env_flag("USE_MOCK_EMBEDDINGS"),
            use_mock_generation=_env_flag("USE_MOCK_GENERATION"),
            request_timeout=float(os.environ.get("REQUEST_TIMEOUT_SECONDS", "30")),
            index_delay=float(os.environ.get("INDEX_DELAY_SECONDS", "0")),
        )


# Global config singleton
_config: HybridRagConfig | None = None


def get_config() -> HybridRagConfig:
    """Get the global config (lazy-loaded from env)."""
    global _config
    if _config is None:
        _config = HybridRagConfig.from_env()
    return _config


def reset_config() -> None:
    """Reset config (useful for testing)."""
    global _config
    _config = None
