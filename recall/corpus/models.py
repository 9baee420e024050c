# recall/corpus/models.py
"""
SQLAlchemy ORM models for the local note cache.

Notes arrive from source adapters (filesystem, page databases, exported
notes) and are stored flat. `metadata_json` is opaque to the cache; the
search path reads only its "folder" key.
"""

from sqlalchemy import BigInteger, Column, String, Text

from recall.db import Base


class NoteRow(Base):
    __tablename__ = "notes"

    id = Column(String(255), primary_key=True)
    title = Column(Text, nullable=False)
    content = Column(Text, nullable=False)
    source = Column(String(50), nullable=False, index=True)
    source_id = Column(String(255), nullable=False)
    modified_at = Column(BigInteger, nullable=False)  # epoch ms
    metadata_json = Column(Text, nullable=True)


class SyncStateRow(Base):
    __tablename__ = "sync_state"

    source = Column(String(50), primary_key=True)
    last_sync = Column(BigInteger, nullable=False)  # epoch ms
