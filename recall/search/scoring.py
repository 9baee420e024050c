# FILE: recall/search/scoring.py
"""
Relevance scoring over the cached corpus.

Per query token, substring matches add:
    title   +3
    folder  +2   (metadata["folder"], missing -> "")
    content +1

Scores are summed over tokens, with no deduplication. Ranked scores are
normalized by the maximum possible per-token score (tokens * 3).

This is a linear scan; the corpus is bounded and lives in memory.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence

from recall.corpus.document import Document

TITLE_WEIGHT = 3
FOLDER_WEIGHT = 2
CONTENT_WEIGHT = 1

MAX_RESULTS = 20
FALLBACK_SCORE = 0.5


@dataclass(frozen=True)
class ScoredDocument:
    document: Document
    score: float


def score_document(document: Document, tokens: Sequence[str]) -> int:
    title = document.title.lower()
    folder = document.folder.lower()
    content = document.content.lower()

    score = 0
    for token in tokens:
        if token in title:
            score += TITLE_WEIGHT
        if token in folder:
            score += FOLDER_WEIGHT
        if token in content:
            score += CONTENT_WEIGHT
    return score


def rank_documents(
    documents: Sequence[Document],
    tokens: Sequence[str],
    limit: int = MAX_RESULTS,
) -> List[ScoredDocument]:
    """Score, drop zeros, stable-sort descending, cap, normalize."""
    if not tokens:
        return []

    scored = []
    for document in documents:
        score = score_document(document, tokens)
        if score > 0:
            scored.append((document, score))

    # sorted() is stable with reverse=True: ties keep corpus order
    scored = sorted(scored, key=lambda pair: pair[1], reverse=True)[:limit]

    max_score = len(tokens) * TITLE_WEIGHT
    return [ScoredDocument(document=doc, score=score / max_score) for doc, score in scored]


def substring_search(
    query: str,
    documents: Sequence[Document],
    limit: int = MAX_RESULTS,
) -> List[ScoredDocument]:
    """Raw-query fallback for queries that produce no tokens.

    The query is only lowercased, so an empty query matches every document.
    """
    needle = query.lower()

    matches: List[ScoredDocument] = []
    for document in documents:
        if (
            needle in document.title.lower()
            or needle in document.content.lower()
            or needle in document.folder.lower()
        ):
            matches.append(ScoredDocument(document=document, score=FALLBACK_SCORE))
            if len(matches) >= limit:
                break
    return matches


__all__ = [
    "TITLE_WEIGHT",
    "FOLDER_WEIGHT",
    "CONTENT_WEIGHT",
    "MAX_RESULTS",
    "FALLBACK_SCORE",
    "ScoredDocument",
    "score_document",
    "rank_documents",
    "substring_search",
]
