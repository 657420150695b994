"""
CLI commands - thin wrappers around the retrieval engine.

Each command follows a consistent pattern:
1. Parse arguments
2. Build the store and collaborators
3. Run the operation
4. Print results
5. Return exit code

The store is in-memory, so every invocation starts unindexed; ``ask``
indexes before it searches.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import replace

from dotenv import load_dotenv

from hybrid_rag.config import get_config
from hybrid_rag.observability import init_phoenix, shutdown_phoenix
from hybrid_rag.retrieval import (
    DocumentStore,
    HybridRetrievalEngine,
    RetrievalRequest,
    RetrievalResult,
    create_engine,
    load_seed_file,
)


def _load_env() -> None:
    """Load environment variables from .env file."""
    load_dotenv()


def _add_common_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--corpus", help="JSON file with seed records (default: sample corpus)")
    parser.add_argument("--mock", action="store_true", help="Use mock embeddings and generation")
    parser.add_argument("--verbose", action="store_true", help="Debug logging")


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _build_store(corpus: str | None) -> DocumentStore:
    """Load the corpus. A bad --corpus file raises OSError or ValueError."""
    if corpus:
        store = DocumentStore(seed=lambda: load_seed_file(corpus))
    else:
        store = DocumentStore()
    store.initialize()
    return store


# Unreadable file, invalid JSON, or records pydantic rejects
CORPUS_ERRORS = (OSError, ValueError)


def _corpus_failure(error: Exception) -> int:
    print(f"Error loading corpus: {error}", file=sys.stderr)
    return 1


def _build_engine(args: argparse.Namespace) -> HybridRetrievalEngine:
    config = get_config()
    if args.mock:
        config = replace(config, use_mock_embeddings=True, use_mock_generation=True)
    return create_engine(config=config, store=_build_store(args.corpus))


def _index(engine: HybridRetrievalEngine, quiet: bool = False) -> bool:
    report = engine.store.index_corpus(
        engine.embeddings.embed,
        on_progress=None if quiet else (lambda msg: print(f"  {msg}")),
        delay_seconds=get_config().index_delay,
    )
    return report.complete


def print_result(result: RetrievalResult) -> None:
    print(f"\nStatus: {result.status.value}")
    print(f"Filter: client_id = {result.request.filter_value}")
    print("\nScored documents:")
    for doc in result.documents:
        sql = "PASS" if doc.passed_filter else "FAIL"
        mark = "*" if doc.is_relevant else " "
        print(f"  {mark} [ID:{doc.id}] sim={doc.similarity:.3f} sql={sql} ({doc.category})")

    if result.error:
        print(f"\nError ({result.error.error_type}): {result.error.error_message}")
    if result.answer is not None:
        print("\nAnswer:")
        print(f"  {result.answer}")


def run_docs_cli() -> int:
    """CLI entry point for listing the corpus."""
    parser = argparse.ArgumentParser(description="List corpus documents")
    _add_common_args(parser)
    args = parser.parse_args()
    _configure_logging(args.verbose)

    try:
        store = _build_store(args.corpus)
    except CORPUS_ERRORS as e:
        return _corpus_failure(e)

    for doc in store.list_documents():
        print(f"[ID:{doc.id}] client={doc.client_id} category={doc.category}")
        print(f"    {doc.content}")
    return 0


def run_index_cli() -> int:
    """CLI entry point for indexing the corpus."""
    parser = argparse.ArgumentParser(description="Index the corpus")
    _add_common_args(parser)
    args = parser.parse_args()
    _configure_logging(args.verbose)

    print("=" * 60)
    print("VECTOR INDEXING")
    print("=" * 60)

    try:
        engine = _build_engine(args)
    except CORPUS_ERRORS as e:
        return _corpus_failure(e)

    if _index(engine):
        print("\n>>> INDEX: COMPLETE <<<")
        return 0
    print(f"\n>>> INDEX: INCOMPLETE ({len(engine.store.unindexed_ids())} unindexed) <<<")
    return 1


def run_ask_cli() -> int:
    """CLI entry point for a hybrid retrieval question."""
    parser = argparse.ArgumentParser(description="Run hybrid retrieval")
    parser.add_argument("query", help="Natural-language question")
    parser.add_argument("--client-id", type=int, required=True, help="Structured filter value")
    parser.add_argument("--json", action="store_true", help="Emit the result as JSON")
    _add_common_args(parser)
    args = parser.parse_args()
    _configure_logging(args.verbose)

    try:
        engine = _build_engine(args)
    except CORPUS_ERRORS as e:
        return _corpus_failure(e)
    _index(engine, quiet=args.json)

    result = engine.retrieve(RetrievalRequest(query=args.query, filter_value=args.client_id))

    if args.json:
        print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
    else:
        print_result(result)

    return 0 if result.succeeded else 1


def main() -> int:
    """
    Main CLI entry point with subcommands.

    Usage:
        hybrid-rag docs                             # List the corpus
        hybrid-rag index                            # Embed every document
        hybrid-rag ask "Payment status" --client-id 101
    """
    _load_env()

    parser = argparse.ArgumentParser(
        description="Hybrid retrieval: vector similarity AND client filter",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Commands:
  docs        List corpus documents
  index       Index the corpus (one embedding call per document)
  ask         Index, then answer a question for one client

Examples:
  hybrid-rag ask "Payment status" --client-id 101
  hybrid-rag ask "Payment status" --client-id 999 --mock --json
        """,
    )

    parser.add_argument(
        "command",
        choices=["docs", "index", "ask"],
        help="Operation to run",
    )

    args, remaining = parser.parse_known_args()

    commands = {
        "docs": run_docs_cli,
        "index": run_index_cli,
        "ask": run_ask_cli,
    }

    # Re-inject remaining args for the subcommand
    sys.argv = [sys.argv[0]] + remaining

    init_phoenix()
    try:
        return commands[args.command]()
    except KeyboardInterrupt:
        print("\nInterrupted")
        return 130
    finally:
        shutdown_phoenix()


if __name__ == "__main__":
    sys.exit(main())
