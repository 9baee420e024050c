# FILE: recall/corpus/store.py
"""
Document Store

SQLite-backed cache of notes, implementing the corpus accessor the answer
engine reads from. Writes come from source adapters; the search path only
calls get_all_documents().
"""

from __future__ import annotations

import json
import logging
import time
from typing import Iterable, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, sessionmaker

from recall.corpus.document import Document
from recall.corpus.models import NoteRow, SyncStateRow

logger = logging.getLogger(__name__)


def _to_row(document: Document) -> NoteRow:
    return NoteRow(
        id=document.id,
        title=document.title,
        content=document.content,
        source=document.source,
        source_id=document.source_id,
        modified_at=document.modified_at,
        metadata_json=json.dumps(document.metadata) if document.metadata is not None else None,
    )


def _to_document(row: NoteRow) -> Document:
    metadata = None
    if row.metadata_json:
        try:
            metadata = json.loads(row.metadata_json)
        except ValueError:
            logger.warning("[store] note %s has unreadable metadata", row.id)
    return Document(
        id=row.id,
        title=row.title,
        content=row.content,
        source=row.source,
        source_id=row.source_id,
        modified_at=row.modified_at,
        metadata=metadata,
    )


class DocumentStore:
    def __init__(self, session_factory: Optional[sessionmaker] = None) -> None:
        if session_factory is None:
            from recall.db import SessionLocal
            session_factory = SessionLocal
        self._session_factory = session_factory

    def _session(self) -> Session:
        return self._session_factory()

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def upsert(self, document: Document) -> None:
        self.upsert_many([document])

    def upsert_many(self, documents: Iterable[Document]) -> int:
        """Insert or replace documents in one transaction."""
        count = 0
        with self._session() as session:
            with session.begin():
                for document in documents:
                    session.merge(_to_row(document))
                    count += 1
        logger.debug("[store] upserted %d document(s)", count)
        return count

    def delete_document(self, document_id: str) -> bool:
        with self._session() as session:
            with session.begin():
                deleted = session.query(NoteRow).filter(NoteRow.id == document_id).delete()
        return deleted > 0

    def clear_source(self, source: str) -> int:
        with self._session() as session:
            with session.begin():
                deleted = session.query(NoteRow).filter(NoteRow.source == source).delete()
        logger.info("[store] cleared %d document(s) from %s", deleted, source)
        return deleted

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_all_documents(self) -> List[Document]:
        with self._session() as session:
            rows = session.query(NoteRow).order_by(NoteRow.modified_at.desc()).all()
            return [_to_document(row) for row in rows]

    def get_documents_by_source(self, source: str) -> List[Document]:
        with self._session() as session:
            rows = (
                session.query(NoteRow)
                .filter(NoteRow.source == source)
                .order_by(NoteRow.modified_at.desc())
                .all()
            )
            return [_to_document(row) for row in rows]

    def count(self) -> int:
        with self._session() as session:
            return session.query(func.count(NoteRow.id)).scalar() or 0

    # ------------------------------------------------------------------
    # Sync state
    # ------------------------------------------------------------------

    def set_sync_state(self, source: str, last_sync: Optional[int] = None) -> None:
        stamp = last_sync if last_sync is not None else int(time.time() * 1000)
        with self._session() as session:
            with session.begin():
                session.merge(SyncStateRow(source=source, last_sync=stamp))

    def get_sync_state(self, source: str) -> Optional[int]:
        with self._session() as session:
            row = session.get(SyncStateRow, source)
            return row.last_sync if row else None


__all__ = ["DocumentStore"]
