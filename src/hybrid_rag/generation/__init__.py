"""
Generation module - answer synthesis from retrieved context.

The prompt template and context formatting live here; the retrieval
engine decides WHICH documents go in, this module decides HOW they are
presented to the model.
"""

from hybrid_rag.generation.answer import (
    SYSTEM_PROMPT,
    AnswerGenerator,
    OpenAIAnswerGenerator,
    MockAnswerGenerator,
    build_context,
    build_prompt,
    get_answer_generator,
)

__all__ = [
    "SYSTEM_PROMPT",
    "AnswerGenerator",
    "OpenAIAnswerGenerator",
    "MockAnswerGenerator",
    "build_context",
    "build_prompt",
    "get_answer_generator",
]
