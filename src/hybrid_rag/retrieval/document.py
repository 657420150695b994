"""
Document models for the retrieval system.

Document is what the store owns. ScoredDocument is what a retrieval
returns: a document annotated with both signals of the hybrid merge.
"""

from __future__ import annotations

from dataclasses import dataclass, replace

import numpy as np


@dataclass(frozen=True, eq=False)
class Document:
    """
    A retrievable record with an optional embedding.

    Frozen: the store swaps in a new instance when an embedding is
    attached, and the vector itself is made read-only.
    """
    id: int
    content: str
    client_id: int
    category: str
    embedding: np.ndarray | None = None

    @property
    def is_indexed(self) -> bool:
        return self.embedding is not None

    def with_embedding(self, embedding: np.ndarray) -> "Document":
        """Return a copy carrying ``embedding``. Fails if one is already set."""
        if self.embedding is not None:
            raise ValueError(f"Document {self.id} already has an embedding")
        vector = np.array(embedding, dtype=np.float32)
        vector.setflags(write=False)
        return replace(self, embedding=vector)

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization (embedding omitted)."""
        return {
            "id": self.id,
            "client_id": self.client_id,
            "category": self.category,
            "content": self.content,
            "indexed": self.is_indexed,
        }


@dataclass(frozen=True)
class ScoredDocument:
    """A document with its similarity score and filter outcome."""
    document: Document
    similarity: float
    passed_filter: bool
    is_relevant: bool = False

    @property
    def id(self) -> int:
        return self.document.id

    @property
    def content(self) -> str:
        return self.document.content

    @property
    def client_id(self) -> int:
        return self.document.client_id

    @property
    def category(self) -> str:
        return self.document.category

    def to_dict(self) -> dict:
        return {
            **self.document.to_dict(),
            "similarity": self.similarity,
            "passed_filter": self.passed_filter,
            "relevant": self.is_relevant,
        }
