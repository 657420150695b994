"""
Answer synthesis for hybrid retrieval.

The model only ever sees documents that passed BOTH the client filter
and the similarity threshold, and it is told to answer from that
context alone.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterable

from openai import OpenAI, OpenAIError

from hybrid_rag.config import HybridRagConfig, get_config
from hybrid_rag.core.errors import GenerationError
from hybrid_rag.core.protocols import AnswerGenerator

if TYPE_CHECKING:
    from hybrid_rag.retrieval.document import ScoredDocument


SYSTEM_PROMPT = """You are an intelligent customer support assistant.
Use ONLY the context provided below to answer the user's question.
If the answer is not in the context, say that you did not find relevant information.
Answer in a professional and concise way."""


def build_context(documents: Iterable[ScoredDocument]) -> str:
    """One line per document: ``- [ID:<id>] <content>``, order preserved."""
    return "\n".join(f"- [ID:{doc.id}] {doc.content}" for doc in documents)


def build_prompt(query: str, context: str) -> str:
    """Combine instruction, database context and question into a single prompt."""
    return f"""{SYSTEM_PROMPT}

Context (database results):
{context}

User question:
{query}"""


class OpenAIAnswerGenerator:
    """Generate answers with an OpenAI chat model."""

    system = "openai"

    def __init__(
        self,
        model: str = "gpt-4o-mini",
        api_key: str | None = None,
        timeout: float | None = None,
    ):
        self.model = model
        self._api_key = api_key
        self._timeout = timeout
        self._client: OpenAI | None = None

    def _get_client(self) -> OpenAI:
        if self._client is None:
            if not self._api_key:
                raise GenerationError("Server API key missing: OPENAI_API_KEY is not set")
            self._client = OpenAI(
                api_key=self._api_key,
                timeout=self._timeout,
                max_retries=0,
            )
        return self._client

    def generate(self, prompt: str) -> str:
        client = self._get_client()
        try:
            response = client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
            )
        except OpenAIError as e:
            raise GenerationError(f"Generation request failed: {e}") from e

        if not response.choices or not response.choices[0].message.content:
            raise GenerationError("Generation response contained no text")
        return response.choices[0].message.content.strip()


class MockAnswerGenerator:
    """
    Canned generator for tests and offline demos.

    Echoes the context lines it was given so callers can see exactly
    which documents reached generation.
    """

    def __init__(self) -> None:
        self.prompts: list[str] = []

    def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        lines = [line for line in prompt.splitlines() if line.startswith("- [ID:")]
        return f"[mock answer based on {len(lines)} document(s)]\n" + "\n".join(lines)


def get_answer_generator(
    use_mock: bool | None = None,
    config: HybridRagConfig | None = None,
) -> AnswerGenerator:
    """
    Factory function to get the appropriate answer generator.

    Args:
        use_mock: If True, return MockAnswerGenerator (default: from config)
        config: Settings to use (default: loaded from environment)
    """
    config = config or get_config()
    if use_mock is None:
        use_mock = config.use_mock_generation
    if use_mock:
        return MockAnswerGenerator()
    return OpenAIAnswerGenerator(
        model=config.generation_model,
        api_key=config.api_key,
        timeout=config.request_timeout,
    )
