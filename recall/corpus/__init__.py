from recall.corpus.document import CorpusAccessor, Document

__all__ = ["CorpusAccessor", "Document"]
