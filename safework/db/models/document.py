"""Versioned JSON document storage.

TRAs and LMRA sessions are stored as JSON documents addressed by a collection
path (``organizations/{org}/tras``) and an id. ``version`` increases by one on
every write and backs the optimistic-concurrency check in the store.
"""

from datetime import datetime, timezone

from sqlalchemy import Column, String, Integer, DateTime, JSON

from safework.db.base import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Document(Base):
    """A single stored document."""
    __tablename__ = "documents"

    collection = Column(String(255), primary_key=True)
    id = Column(String(128), primary_key=True)

    # Organization scope, parsed from the collection path
    organization_id = Column(String(128), nullable=True, index=True)

    body = Column(JSON, nullable=False, default=dict)
    version = Column(Integer, nullable=False, default=1)

    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    def __repr__(self) -> str:
        return f"<Document {self.collection}/{self.id} v{self.version}>"
