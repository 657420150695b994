"""
Customer-service sample corpus.

Five records built to show where vector search alone goes wrong: the
billing notices for clients 101 and 102 read almost the same, so only the
client filter tells them apart.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Iterable

from pydantic import BaseModel, Field

from hybrid_rag.retrieval.document import Document


class SeedRecord(BaseModel):
    """One externally supplied corpus record."""

    id: int = Field(description="Unique, stable document id")
    client_id: int = Field(description="Owning client, target of the equality filter")
    category: str = Field(description="Free-form category label")
    content: str = Field(min_length=1, description="Text that gets embedded")


SAMPLE_RECORDS: list[dict] = [
    {
        "id": 1,
        "client_id": 101,
        "category": "Billing",
        "content": "Your January invoice payment was processed successfully. Amount: $150.00.",
    },
    {
        "id": 2,
        "client_id": 102,
        "category": "Billing",
        "content": "Your January invoice payment failed. Please update your credit card.",
    },
    {
        "id": 3,
        "client_id": 101,
        "category": "Technical Support",
        "content": "Your ticket about slow internet was resolved. The modem was restarted remotely.",
    },
    {
        "id": 4,
        "client_id": 103,
        "category": "Sales",
        "content": "We are offering an upgrade to the 500MB Fiber plan at a special discount.",
    },
    {
        "id": 5,
        "client_id": 101,
        "category": "Billing",
        "content": "Refund confirmed for the incorrect charge made last month.",
    },
]


def records_to_documents(records: Iterable[SeedRecord | dict]) -> list[Document]:
    """
    Validate records and convert them to unindexed Documents.

    Raises:
        pydantic.ValidationError: If a record is malformed.
        ValueError: If two records share an id.
    """
    documents: list[Document] = []
    seen: set[int] = set()
    for raw in records:
        record = raw if isinstance(raw, SeedRecord) else SeedRecord.model_validate(raw)
        if record.id in seen:
            raise ValueError(f"Duplicate document id in seed corpus: {record.id}")
        seen.add(record.id)
        documents.append(
            Document(
                id=record.id,
                content=record.content,
                client_id=record.client_id,
                category=record.category,
            )
        )
    return documents


def get_customer_documents() -> list[Document]:
    """Get the five-document sample corpus (clients 101, 102, 103)."""
    return records_to_documents(SAMPLE_RECORDS)


def load_seed_file(path: str | Path) -> list[Document]:
    """Load a corpus from a JSON file holding a list of seed records."""
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(data, list):
        raise ValueError(f"Seed file must contain a JSON list of records: {path}")
    return records_to_documents(data)
