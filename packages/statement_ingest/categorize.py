"""Deterministic keyword categorization.

Public API:
    - :func:`normalize_text`
    - :class:`KeywordMatcher`
    - :func:`categorize_batch`
    - :func:`categorize_description`

Descriptions and keywords are compared after the same normalization
(NFD decomposition, combining marks stripped, lower-cased, whitespace
collapsed), so ``"Café"`` matches ``"CAFE DU COIN"``. Active keywords are
tried in descending priority; equal priorities keep their input order. The
first keyword contained in the description wins.
"""

from __future__ import annotations

import unicodedata
from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from .models import CategorizationResult, Keyword

_NO_MATCH = CategorizationResult(None, None)


def normalize_text(value: str) -> str:
    decomposed = unicodedata.normalize("NFD", value)
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return " ".join(stripped.lower().split())


def _as_keyword(item: Keyword | Mapping[str, Any]) -> Keyword:
    return item if isinstance(item, Keyword) else Keyword.from_mapping(item)


class KeywordMatcher:
    """A keyword list normalized and ordered once, reusable across descriptions.

    Accepts :class:`~statement_ingest.models.Keyword` objects or store rows
    shaped ``{keyword, category_id, supplier_id?, priority, is_active}``.
    Inactive keywords and keywords that normalize to an empty string are
    dropped.
    """

    __slots__ = ("_entries",)

    def __init__(self, keywords: Iterable[Keyword | Mapping[str, Any]]) -> None:
        active = [kw for kw in map(_as_keyword, keywords) if kw.is_active]
        # ``sorted`` is stable: equal priorities keep stored order.
        ordered = sorted(active, key=lambda kw: -kw.priority)
        self._entries: tuple[tuple[str, CategorizationResult], ...] = tuple(
            (norm, CategorizationResult(kw.category_id, kw.supplier_id))
            for kw in ordered
            if (norm := normalize_text(kw.text))
        )

    def __len__(self) -> int:
        return len(self._entries)

    def match(self, description: str) -> CategorizationResult:
        text = normalize_text(description)
        for needle, result in self._entries:
            if needle in text:
                return result
        return _NO_MATCH


def categorize_batch(
    descriptions: Sequence[str],
    keywords: KeywordMatcher | Iterable[Keyword | Mapping[str, Any]],
) -> list[CategorizationResult]:
    """Categorize many descriptions against one keyword list (normalized once)."""

    matcher = keywords if isinstance(keywords, KeywordMatcher) else KeywordMatcher(keywords)
    return [matcher.match(d) for d in descriptions]


def categorize_description(
    description: str,
    keywords: KeywordMatcher | Iterable[Keyword | Mapping[str, Any]],
) -> CategorizationResult:
    return categorize_batch([description], keywords)[0]


__all__ = [
    "normalize_text",
    "KeywordMatcher",
    "categorize_batch",
    "categorize_description",
]
