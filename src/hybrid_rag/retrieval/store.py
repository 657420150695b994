"""
In-memory document store with incremental indexing.

The store owns the corpus. It is populated once from a seed loader and
only ever mutated by index_corpus(), which attaches embeddings to
documents that lack one. Embeddings move from absent to present and are
never cleared, so readers that see a vector can keep relying on it.

The embedding function is INJECTED per indexing run, so tests index the
corpus with a deterministic stub instead of a live model.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Callable

import numpy as np

from hybrid_rag.core.errors import IndexInProgressError
from hybrid_rag.retrieval.document import Document
from hybrid_rag.retrieval.seeds import get_customer_documents

logger = logging.getLogger(__name__)

EmbedFn = Callable[[str], np.ndarray]
ProgressFn = Callable[[str], None]


@dataclass
class IndexReport:
    """Outcome of one index_corpus() run."""
    indexed_ids: list[int] = field(default_factory=list)
    skipped_ids: list[int] = field(default_factory=list)
    failed_ids: list[int] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        return not self.failed_ids


class DocumentStore:
    """
    Holds the retrievable corpus keyed by document id.

    Insertion order of the seed corpus is preserved everywhere.
    """

    def __init__(self, seed: Callable[[], list[Document]] | None = None):
        """
        Args:
            seed: Zero-argument loader returning the corpus
                  (default: the five-document customer sample).
        """
        self._seed = seed or get_customer_documents
        self._documents: dict[int, Document] = {}
        self._initialized = False
        self._write_lock = threading.Lock()

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    @property
    def is_indexed(self) -> bool:
        """True when every document carries an embedding."""
        return not self.unindexed_ids()

    def __len__(self) -> int:
        return len(self._documents)

    def initialize(self) -> None:
        """Load the seed corpus. Calling again after success is a no-op."""
        if self._initialized:
            return

        documents: dict[int, Document] = {}
        for doc in self._seed():
            if doc.id in documents:
                raise ValueError(f"Duplicate document id: {doc.id}")
            documents[doc.id] = doc

        self._documents = documents
        self._initialized = True
        logger.info(f"Document store initialized with {len(documents)} documents")

    def index_corpus(
        self,
        embed_fn: EmbedFn,
        on_progress: ProgressFn | None = None,
        delay_seconds: float = 0.0,
    ) -> IndexReport:
        """
        Attach embeddings to every document that lacks one.

        Documents already indexed are skipped silently. A failed embedding
        leaves that document unindexed and the run carries on.

        Args:
            embed_fn: Maps document content to its vector
            on_progress: Receives human-readable progress messages
            delay_seconds: Optional pause before each embedding call

        Returns:
            IndexReport listing indexed, skipped and failed ids

        Raises:
            IndexInProgressError: If another run is indexing this store
        """
        if not self._write_lock.acquire(blocking=False):
            raise IndexInProgressError("Another indexing run is in progress for this store")

        notify = on_progress or (lambda _msg: None)
        report = IndexReport()
        try:
            for doc_id, doc in list(self._documents.items()):
                if doc.is_indexed:
                    logger.debug(f"Skipping document {doc_id}: already indexed")
                    report.skipped_ids.append(doc_id)
                    continue

                notify(f"Indexing document {doc_id}...")
                if delay_seconds > 0:
                    time.sleep(delay_seconds)

                try:
                    embedding = embed_fn(doc.content)
                    self._documents[doc_id] = doc.with_embedding(embedding)
                except Exception as e:
                    logger.warning(f"Failed to embed document {doc_id}: {e}")
                    report.failed_ids.append(doc_id)
                    notify(f"Failed to index document {doc_id}: {e}")
                    continue

                report.indexed_ids.append(doc_id)
                notify(f"Indexed document {doc_id}")
        finally:
            self._write_lock.release()

        notify("Indexing complete!")
        logger.info(
            f"Indexing finished: {len(report.indexed_ids)} indexed, "
            f"{len(report.skipped_ids)} skipped, {len(report.failed_ids)} failed"
        )
        return report

    def list_documents(self) -> list[Document]:
        """Snapshot of the corpus in insertion order."""
        return list(self._documents.values())

    def unindexed_ids(self) -> list[int]:
        return [doc.id for doc in self._documents.values() if not doc.is_indexed]

    def filter_by_client_id(self, client_id: int) -> set[int]:
        """Equivalent of ``SELECT id FROM documents WHERE client_id = ?``."""
        return {doc.id for doc in self._documents.values() if doc.client_id == client_id}
