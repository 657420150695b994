"""
CLI module - command-line interface for hybrid retrieval.

Provides entry points for:
- Listing the corpus
- Indexing it
- Asking a question with a client filter
"""

from hybrid_rag.cli.commands import (
    main,
    run_docs_cli,
    run_index_cli,
    run_ask_cli,
)

__all__ = [
    "main",
    "run_docs_cli",
    "run_index_cli",
    "run_ask_cli",
]
