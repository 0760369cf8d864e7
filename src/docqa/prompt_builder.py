"""Utilities for constructing chat messages grounded on retrieved pages."""
from __future__ import annotations

from typing import Dict, Iterable, List, Sequence

from docqa.models import ChatTurn, SearchResult

CONTEXT_SEPARATOR = "\n\n---\n\n"

SYSTEM_INSTRUCTIONS = """You are a helpful AI assistant that answers questions about documents.

Guidelines:
- Provide accurate, concise answers based only on the provided context
- Always cite the specific page numbers where you found the information
- Use the format [page X] to cite pages in your response
- If the answer is not in the context, say so clearly
- Be conversational but professional
- Keep responses focused and relevant to the question"""


def build_context(results: Sequence[SearchResult]) -> str:
    """Join retrieved pages as ``[Page N]`` blocks in the order given."""

    return CONTEXT_SEPARATOR.join(f"[Page {result.page_number}]\n{result.text}" for result in results)


def build_system_prompt(context: str) -> str:
    return f"{SYSTEM_INSTRUCTIONS}\n\nContext from the document:\n{context}"


def build_messages(context: str, query: str, history: Iterable[ChatTurn] = ()) -> List[Dict[str, str]]:
    """Compose system prompt, prior conversation and the new question."""

    if query is None:
        raise ValueError("query must not be None")

    messages: List[Dict[str, str]] = [{"role": "system", "content": build_system_prompt(context)}]
    messages.extend(turn.as_message() for turn in history)
    messages.append({"role": "user", "content": query})
    return messages


__all__ = ["CONTEXT_SEPARATOR", "SYSTEM_INSTRUCTIONS", "build_context", "build_messages", "build_system_prompt"]
