"""Document store with optimistic concurrency.

``update`` with ``expected_version`` is a compare-and-swap: it succeeds only if
the stored version still equals the version the caller read, and raises
``ConcurrencyConflictError`` otherwise. Of two writers that read the same
version, exactly one wins.
"""

import copy
import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional, Protocol

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from safework.core.exceptions import ConcurrencyConflictError, ConflictError, NotFoundError, PersistenceError
from safework.db.models.document import Document as DocumentRow

logger = logging.getLogger(__name__)

TRA_COLLECTION = "organizations/{org_id}/tras"
LMRA_COLLECTION = "organizations/{org_id}/lmraSessions"


def tra_path(org_id: str) -> str:
    return TRA_COLLECTION.format(org_id=org_id)


def lmra_path(org_id: str) -> str:
    return LMRA_COLLECTION.format(org_id=org_id)


def org_from_path(path: str) -> Optional[str]:
    parts = path.split("/")
    if len(parts) >= 2 and parts[0] == "organizations":
        return parts[1]
    return None


@dataclass(frozen=True)
class Document:
    """A stored document and the version it was read at."""

    path: str
    id: str
    body: Dict[str, Any]
    version: int


class PersistenceStore(Protocol):
    def get(self, path: str, doc_id: str) -> Document: ...

    def create(self, path: str, doc_id: str, body: Dict[str, Any]) -> Document: ...

    def update(
        self,
        path: str,
        doc_id: str,
        body: Dict[str, Any],
        expected_version: Optional[int] = None,
    ) -> Document: ...


class InMemoryDocumentStore:
    """Thread-safe in-process store, used for tests and local development."""

    def __init__(self):
        self._docs: Dict[tuple[str, str], Document] = {}
        self._lock = threading.Lock()

    def get(self, path: str, doc_id: str) -> Document:
        with self._lock:
            doc = self._docs.get((path, doc_id))
            if doc is None:
                raise NotFoundError("Document", f"{path}/{doc_id}")
            return Document(path, doc_id, copy.deepcopy(doc.body), doc.version)

    def create(self, path: str, doc_id: str, body: Dict[str, Any]) -> Document:
        with self._lock:
            if (path, doc_id) in self._docs:
                raise ConflictError(f"Document {path}/{doc_id} already exists")
            doc = Document(path, doc_id, copy.deepcopy(body), 1)
            self._docs[(path, doc_id)] = doc
            return Document(path, doc_id, copy.deepcopy(body), 1)

    def update(
        self,
        path: str,
        doc_id: str,
        body: Dict[str, Any],
        expected_version: Optional[int] = None,
    ) -> Document:
        with self._lock:
            current = self._docs.get((path, doc_id))
            if current is None:
                raise NotFoundError("Document", f"{path}/{doc_id}")
            if expected_version is not None and current.version != expected_version:
                raise ConcurrencyConflictError(path, doc_id, expected_version, current.version)
            doc = Document(path, doc_id, copy.deepcopy(body), current.version + 1)
            self._docs[(path, doc_id)] = doc
            return Document(path, doc_id, copy.deepcopy(body), doc.version)


class SQLAlchemyDocumentStore:
    """Store backed by the ``documents`` table."""

    def __init__(self, session_factory: Callable[[], Session]):
        self.session_factory = session_factory

    def get(self, path: str, doc_id: str) -> Document:
        try:
            with self.session_factory() as session:
                row = session.get(DocumentRow, (path, doc_id))
                if row is None:
                    raise NotFoundError("Document", f"{path}/{doc_id}")
                return Document(path, doc_id, copy.deepcopy(row.body), row.version)
        except SQLAlchemyError as e:
            logger.error("Failed to read %s/%s: %s", path, doc_id, e)
            raise PersistenceError("Document store unavailable") from e

    def create(self, path: str, doc_id: str, body: Dict[str, Any]) -> Document:
        try:
            with self.session_factory() as session, session.begin():
                session.add(DocumentRow(
                    collection=path,
                    id=doc_id,
                    organization_id=org_from_path(path),
                    body=body,
                    version=1,
                ))
        except IntegrityError as e:
            raise ConflictError(f"Document {path}/{doc_id} already exists") from e
        except SQLAlchemyError as e:
            logger.error("Failed to create %s/%s: %s", path, doc_id, e)
            raise PersistenceError("Document store unavailable") from e
        return Document(path, doc_id, copy.deepcopy(body), 1)

    def update(
        self,
        path: str,
        doc_id: str,
        body: Dict[str, Any],
        expected_version: Optional[int] = None,
    ) -> Document:
        try:
            with self.session_factory() as session, session.begin():
                stmt = (
                    update(DocumentRow)
                    .where(DocumentRow.collection == path, DocumentRow.id == doc_id)
                    .values(
                        body=body,
                        version=DocumentRow.version + 1,
                        updated_at=datetime.now(timezone.utc),
                    )
                )
                if expected_version is not None:
                    stmt = stmt.where(DocumentRow.version == expected_version)
                result = session.execute(stmt)

                if result.rowcount == 0:
                    actual = session.execute(
                        select(DocumentRow.version).where(
                            DocumentRow.collection == path, DocumentRow.id == doc_id
                        )
                    ).scalar_one_or_none()
                    if actual is None:
                        raise NotFoundError("Document", f"{path}/{doc_id}")
                    raise ConcurrencyConflictError(path, doc_id, expected_version, actual)

                version = session.execute(
                    select(DocumentRow.version).where(
                        DocumentRow.collection == path, DocumentRow.id == doc_id
                    )
                ).scalar_one()
        except SQLAlchemyError as e:
            logger.error("Failed to update %s/%s: %s", path, doc_id, e)
            raise PersistenceError("Document store unavailable") from e
        return Document(path, doc_id, copy.deepcopy(body), version)
