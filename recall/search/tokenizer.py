# FILE: recall/search/tokenizer.py
"""
Query tokenization.

Tokens are lowercase, whitespace-split, longer than one character and not a
stop word. Punctuation is left in place: "alpha?" stays "alpha?". The stop
word list targets conversational questions about one's own notes ("what did
I discuss about ...") and is kept exactly as shipped; ranking behaviour
depends on it.
"""

from __future__ import annotations

from typing import FrozenSet, List

STOP_WORDS: FrozenSet[str] = frozenset({
    "what", "did", "i", "is", "the", "a", "an", "with", "was", "were",
    "do", "does", "how", "when", "where", "who", "which", "about",
    "discuss", "discussed", "discussing", "talk", "talked", "talking",
    "my", "in", "on", "at", "to", "for", "of", "and", "or",
    "have", "has", "been", "being", "am", "are",
    "this", "that", "these", "those",
})


def tokenize(query: str) -> List[str]:
    return [
        token
        for token in query.lower().split()
        if len(token) > 1 and token not in STOP_WORDS
    ]


__all__ = ["STOP_WORDS", "tokenize"]
