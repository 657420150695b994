"""
Core protocols defining contracts for the external collaborators.

The retrieval engine never talks to a model directly. It is handed an
EmbeddingProvider and an AnswerGenerator, which lets tests inject
deterministic doubles and keeps transport concerns out of the core.

PATTERN:
--------
- Protocol defines the contract
- Production implementation (OpenAI)
- Test double (Mock*)
- Factory function for instantiation
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

import numpy as np


# ---------------------------------------------------------------------------
# EMBEDDING PROVIDER PROTOCOL
# ---------------------------------------------------------------------------


@runtime_checkable
class EmbeddingProvider(Protocol):
    """
    Contract for embedding generation.

    Implementations:
    - OpenAIEmbeddings (production)
    - MockEmbeddings (testing)

    Every failure is raised as EmbeddingError.
    """

    def embed(self, text: str) -> np.ndarray:
        """Generate embedding for a single text."""
        ...


# ---------------------------------------------------------------------------
# ANSWER GENERATOR PROTOCOL
# ---------------------------------------------------------------------------


@runtime_checkable
class AnswerGenerator(Protocol):
    """
    Contract for free-text answer synthesis.

    Implementations:
    - OpenAIAnswerGenerator (production)
    - MockAnswerGenerator (testing)

    The prompt is fully assembled by the caller. Every failure is
    raised as GenerationError.
    """

    def generate(self, prompt: str) -> str:
        """Return the model's answer for a prompt."""
        ...
