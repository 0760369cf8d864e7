"""Extraction of ``[page N]`` citation markers from generated answers."""
from __future__ import annotations

import re
from typing import Final, List

CITATION_PATTERN: Final[re.Pattern[str]] = re.compile(r"\[page (\d+)\]", re.IGNORECASE)


def extract_citations(text: str) -> List[int]:
    """Return the distinct cited page numbers in ascending order.

    Matching is case-insensitive, so ``[page 2]`` and ``[PAGE 2]`` count once.
    """

    seen: dict[int, None] = {}
    for match in CITATION_PATTERN.finditer(text or ""):
        seen.setdefault(int(match.group(1)), None)
    return sorted(seen)


__all__ = ["CITATION_PATTERN", "extract_citations"]
