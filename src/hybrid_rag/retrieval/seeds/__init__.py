"""
Seed data for the document store.

Separating the corpus from the store lets tests and the CLI swap in a
different dataset without touching infrastructure code.
"""

from hybrid_rag.retrieval.seeds.customer_records import (
    SeedRecord,
    get_customer_documents,
    load_seed_file,
    records_to_documents,
)

__all__ = [
    "SeedRecord",
    "get_customer_documents",
    "load_seed_file",
    "records_to_documents",
]
