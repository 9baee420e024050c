from recall.search.engine import AnswerEngine, SearchResult
from recall.search.scoring import ScoredDocument, rank_documents, score_document, substring_search
from recall.search.tokenizer import STOP_WORDS, tokenize

__all__ = [
    "AnswerEngine",
    "SearchResult",
    "ScoredDocument",
    "rank_documents",
    "score_document",
    "substring_search",
    "STOP_WORDS",
    "tokenize",
]
