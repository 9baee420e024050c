"""
Cached document type and the read contract the search engine depends on.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol


@dataclass(frozen=True)
class Document:
    """One cached note. Never mutated by the search path."""
    id: str
    title: str
    content: str
    source: str
    source_id: str
    modified_at: int
    metadata: Optional[Dict[str, Any]] = field(default=None, compare=False)

    @property
    def folder(self) -> str:
        if not self.metadata:
            return ""
        value = self.metadata.get("folder")
        return value if isinstance(value, str) else ""


class CorpusAccessor(Protocol):
    def get_all_documents(self) -> List[Document]:
        ...


__all__ = ["Document", "CorpusAccessor"]
