"""
Context assembler.

Turns the top-ranked notes into a bounded prompt context. Each note becomes
a block:

    Note 1
    Title: Weekly sync
    Folder: Work
    Format: chat log
    Content: <excerpt>

Excerpts are built around query-token hits rather than the head of the note,
so a match deep inside a long note still reaches the model. Multi-line notes
are excerpted by line windows, single-line notes by character windows.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from recall.corpus.document import Document
from recall.search.scoring import ScoredDocument

MAX_CONTEXT_NOTES = 5
NOTE_EXCERPT_CHARS = 800
BLOCKING_CONTEXT_CHARS = 6000
STREAMING_CONTEXT_CHARS = 12000

# Neighbouring lines kept on each side of a matching line
LINE_WINDOW = 1
# Characters kept on each side of a hit in single-line notes
CHAR_WINDOW = 160
MAX_HITS_PER_TOKEN = 3

ELLIPSIS = "..."
LINE_BREAK = "\n...\n"
CHAR_BREAK = " ... "
BLOCK_SEPARATOR = "\n\n---\n\n"

FORMAT_CHAT_LOG = "chat log"
FORMAT_DATABASE_ROW = "database row"

_CHAT_LINE = re.compile(
    r"^\[?"
    r"(?:\d{1,4}[-/.]\d{1,2}[-/.]\d{1,4}[,\sT]+)?"
    r"\d{1,2}:\d{2}(?::\d{2})?(?:\s?[AaPp][Mm])?"
    r"\]?\s*(?:-\s*)?"
    r"[^:\s][^:]{0,40}:\s"
)
_DB_ROW_LINE = re.compile(r"^[A-Za-z_][\w .()/-]{0,40}:\s+\S")

PROMPT_TEMPLATE = """You answer questions about the user's personal notes.

Rules:
- Answer using only the notes below. Do not use outside knowledge.
- If the notes do not contain the answer, say so plainly.
- If the question is ambiguous, ask one short clarifying question instead of guessing.
- End with a final line "Sources: " followed by the titles of the notes you used, comma-separated, or "Sources: none" if you used none.

Notes:
{context}

Question: {query}

Answer:"""


@dataclass
class AssembledContext:
    """Assembled context for the generation prompt."""
    text: str
    notes_included: int
    truncated: bool


# =============================================================================
# FORMAT DETECTION
# =============================================================================

def detect_format(content: str) -> Optional[str]:
    """Classify content as a chat log or database row by majority of lines."""
    lines = [line.strip() for line in content.splitlines() if line.strip()]
    if len(lines) < 2:
        return None

    majority = len(lines) / 2
    if sum(1 for line in lines if _CHAT_LINE.match(line)) > majority:
        return FORMAT_CHAT_LOG
    if sum(1 for line in lines if _DB_ROW_LINE.match(line)) > majority:
        return FORMAT_DATABASE_ROW
    return None


# =============================================================================
# EXCERPTS
# =============================================================================

def _truncate(text: str, limit: int) -> str:
    """Cut to at most `limit` characters, ellipsis included."""
    if len(text) <= limit:
        return text
    return text[:max(0, limit - len(ELLIPSIS))].rstrip() + ELLIPSIS


def _merge(ranges: List[Tuple[int, int]], gap: int) -> List[Tuple[int, int]]:
    merged: List[Tuple[int, int]] = []
    for start, end in sorted(ranges):
        if merged and start <= merged[-1][1] + gap:
            merged[-1] = (merged[-1][0], max(merged[-1][1], end))
        else:
            merged.append((start, end))
    return merged


def _join(pieces: List[str], separator: str, budget: int) -> Tuple[str, bool]:
    """Join pieces until the budget runs out. Returns (text, was_cut)."""
    out = ""
    for piece in pieces:
        joined = out + separator + piece if out else piece
        if len(joined) > budget:
            return _truncate(joined, budget), True
        out = joined
    return out, False


def _line_excerpt(lines: List[str], tokens: Sequence[str], budget: int) -> str:
    hits = [i for i, line in enumerate(lines) if any(t in line.lower() for t in tokens)]
    if not hits:
        return ""

    last = len(lines) - 1
    ranges = _merge(
        [(max(0, i - LINE_WINDOW), min(last, i + LINE_WINDOW)) for i in hits],
        gap=1,
    )
    pieces = ["\n".join(lines[start:end + 1]) for start, end in ranges]

    lead = ELLIPSIS + "\n" if ranges[0][0] > 0 else ""
    tail = "\n" + ELLIPSIS if ranges[-1][1] < last else ""
    text, cut = _join(pieces, LINE_BREAK, budget - len(lead) - len(tail))
    return lead + text + ("" if cut else tail)


def _char_excerpt(text: str, tokens: Sequence[str], budget: int) -> str:
    lower = text.lower()
    spans: List[Tuple[int, int]] = []
    for token in tokens:
        start = 0
        for _ in range(MAX_HITS_PER_TOKEN):
            pos = lower.find(token, start)
            if pos < 0:
                break
            spans.append((max(0, pos - CHAR_WINDOW), min(len(text), pos + len(token) + CHAR_WINDOW)))
            start = pos + len(token)

    if not spans:
        return ""

    spans = _merge(spans, gap=0)
    pieces = [text[start:end].strip() for start, end in spans]

    lead = ELLIPSIS if spans[0][0] > 0 else ""
    tail = ELLIPSIS if spans[-1][1] < len(text) else ""
    excerpt, cut = _join(pieces, CHAR_BREAK, budget - len(lead) - len(tail))
    return lead + excerpt + ("" if cut else tail)


def extract_excerpt(content: str, tokens: Sequence[str], budget: int = NOTE_EXCERPT_CHARS) -> str:
    """Token-window excerpt of a note, falling back to its head."""
    text = content.strip()
    if len(text) <= budget:
        return text

    lines = text.splitlines()
    if len(lines) > 1:
        excerpt = _line_excerpt(lines, tokens, budget)
    else:
        excerpt = _char_excerpt(text, tokens, budget)
    return excerpt or _truncate(text, budget)


# =============================================================================
# ASSEMBLY
# =============================================================================

def format_note(index: int, document: Document, excerpt: str, note_format: Optional[str] = None) -> str:
    lines = [
        f"Note {index}",
        f"Title: {document.title}",
        f"Folder: {document.folder or 'Unknown folder'}",
    ]
    if note_format:
        lines.append(f"Format: {note_format}")
    lines.append(f"Content: {excerpt}")
    return "\n".join(lines)


class ContextAssembler:
    """Assemble ranked notes into context."""

    def __init__(
        self,
        max_chars: int = BLOCKING_CONTEXT_CHARS,
        max_notes: int = MAX_CONTEXT_NOTES,
        excerpt_chars: int = NOTE_EXCERPT_CHARS,
    ):
        self.max_chars = max_chars
        self.max_notes = max_notes
        self.excerpt_chars = excerpt_chars

    def assemble(self, matches: Sequence[ScoredDocument], tokens: Sequence[str]) -> AssembledContext:
        blocks: List[str] = []
        total = 0
        truncated = False

        for index, match in enumerate(matches[: self.max_notes], start=1):
            document = match.document
            excerpt = extract_excerpt(document.content, tokens, self.excerpt_chars)
            block = format_note(index, document, excerpt, detect_format(document.content))

            added = len(block) + (len(BLOCK_SEPARATOR) if blocks else 0)
            if total + added > self.max_chars:
                truncated = True
                if not blocks:
                    blocks.append(_truncate(block, self.max_chars))
                break

            blocks.append(block)
            total += added

        return AssembledContext(
            text=BLOCK_SEPARATOR.join(blocks),
            notes_included=len(blocks),
            truncated=truncated,
        )


def build_prompt(query: str, context: str) -> str:
    return PROMPT_TEMPLATE.format(context=context, query=query.strip())


def assemble_context(
    matches: Sequence[ScoredDocument],
    tokens: Sequence[str],
    max_chars: int = BLOCKING_CONTEXT_CHARS,
) -> AssembledContext:
    """Convenience function for one-off assembly."""
    return ContextAssembler(max_chars=max_chars).assemble(matches, tokens)


__all__ = [
    "MAX_CONTEXT_NOTES",
    "NOTE_EXCERPT_CHARS",
    "BLOCKING_CONTEXT_CHARS",
    "STREAMING_CONTEXT_CHARS",
    "FORMAT_CHAT_LOG",
    "FORMAT_DATABASE_ROW",
    "AssembledContext",
    "ContextAssembler",
    "detect_format",
    "extract_excerpt",
    "format_note",
    "build_prompt",
    "assemble_context",
]
