# FILE: recall/search/engine.py
"""
Answer Engine

Composition root for search: corpus -> tokenize -> rank -> context ->
generation. Three entry points:

- search_local(query): ranked local matches only, synchronous
- search(query): local matches, prefixed with a generated answer when a
  backend is available
- search_with_stream(query, on_chunk): as search(), with answer text
  forwarded chunk by chunk as it arrives

Generation problems never hide local results: when the orchestrator
returns nothing, the caller still gets the ranked matches.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, asdict
from typing import Any, Callable, Dict, List, Optional, Sequence

from recall.corpus.document import CorpusAccessor, Document
from recall.llm.orchestrator import BackendOrchestrator
from recall.llm.schemas import GenerationRequest, GenerationResponse
from recall.search.context import (
    BLOCKING_CONTEXT_CHARS,
    STREAMING_CONTEXT_CHARS,
    ContextAssembler,
    build_prompt,
)
from recall.search.scoring import ScoredDocument, rank_documents, substring_search
from recall.search.tokenizer import tokenize

logger = logging.getLogger(__name__)

AI_RESULT_ID = "ai-answer"
AI_RESULT_FOLDER = "AI Generated"
SNIPPET_CHARS = 100
QUERY_PREVIEW_CHARS = 60


@dataclass
class SearchResult:
    id: str
    title: str
    snippet: str
    score: float
    content: Optional[str] = None
    folder: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def preview_query(query: str, limit: int = QUERY_PREVIEW_CHARS) -> str:
    """Whitespace-normalized, length-capped query for log lines."""
    normalized = " ".join(query.split())
    if len(normalized) > limit:
        return normalized[:limit] + "..."
    return normalized


def to_search_result(match: ScoredDocument) -> SearchResult:
    document = match.document
    return SearchResult(
        id=document.id,
        title=document.title,
        snippet=document.content[:SNIPPET_CHARS],
        content=document.content,
        folder=document.folder,
        score=match.score,
    )


def ai_result(text: str, label: Optional[str]) -> SearchResult:
    title = f"✨ AI Answer ({label})" if label else "✨ AI Answer"
    snippet = text[:SNIPPET_CHARS] + ("..." if len(text) > SNIPPET_CHARS else "")
    return SearchResult(
        id=AI_RESULT_ID,
        title=title,
        snippet=snippet,
        content=text,
        folder=AI_RESULT_FOLDER,
        score=1.0,
    )


class AnswerEngine:
    def __init__(
        self,
        corpus: CorpusAccessor,
        orchestrator: Optional[BackendOrchestrator] = None,
    ) -> None:
        self._corpus = corpus
        self._orchestrator = orchestrator
        self._empty_logged = False

    # ------------------------------------------------------------------
    # Matching
    # ------------------------------------------------------------------

    def _load_documents(self) -> List[Document]:
        documents = self._corpus.get_all_documents()
        if not documents:
            if not self._empty_logged:
                logger.info("[search] cache is empty - nothing indexed yet")
                self._empty_logged = True
            return []
        self._empty_logged = False
        return documents

    @staticmethod
    def _match(query: str, documents: Sequence[Document]) -> tuple:
        """Returns (matches, tokens used for excerpting)."""
        tokens = tokenize(query)
        if tokens:
            return rank_documents(documents, tokens), tokens
        needle = query.strip().lower()
        return substring_search(query, documents), [needle] if needle else []

    def search_local(self, query: str) -> List[SearchResult]:
        documents = self._load_documents()
        if not documents:
            return []
        matches, _ = self._match(query, documents)
        return [to_search_result(m) for m in matches]

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    def _generation_ready(self) -> bool:
        return self._orchestrator is not None and self._orchestrator.is_available()

    def _prepare(self, query: str, max_context_chars: int):
        """Shared front half of search/search_with_stream.

        Returns (results, prompt) where prompt is None when generation
        should be skipped.
        """
        documents = self._load_documents()
        if not documents:
            return [], None

        matches, tokens = self._match(query, documents)
        if not matches:
            logger.info("[search] no matches for %r", preview_query(query))
            return [], None

        results = [to_search_result(m) for m in matches]
        if not self._generation_ready():
            return results, None

        context = ContextAssembler(max_chars=max_context_chars).assemble(matches, tokens)
        return results, build_prompt(query, context.text)

    def _with_answer(self, results: List[SearchResult], response: Optional[GenerationResponse]) -> List[SearchResult]:
        if response is None or not response.text.strip():
            return results
        label = self._orchestrator.display_name() if self._orchestrator else None
        return [ai_result(response.text, label)] + results

    async def search(self, query: str) -> List[SearchResult]:
        results, prompt = self._prepare(query, BLOCKING_CONTEXT_CHARS)
        if prompt is None:
            return results

        response = await self._orchestrator.generate(GenerationRequest(prompt=prompt))
        return self._with_answer(results, response)

    async def search_with_stream(
        self,
        query: str,
        on_chunk: Callable[[str], None],
    ) -> List[SearchResult]:
        results, prompt = self._prepare(query, STREAMING_CONTEXT_CHARS)
        if prompt is None:
            return results

        response = await self._orchestrator.generate_stream(GenerationRequest(prompt=prompt), on_chunk)
        return self._with_answer(results, response)


__all__ = [
    "AI_RESULT_ID",
    "AI_RESULT_FOLDER",
    "SearchResult",
    "AnswerEngine",
    "preview_query",
    "to_search_result",
    "ai_result",
]
