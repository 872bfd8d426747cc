"""Tests for the document stores and the SQL audit recorder."""

import pytest
from sqlalchemy import select

from safework.core.exceptions import ConcurrencyConflictError, ConflictError, NotFoundError
from safework.core.transition import AuditEntry
from safework.db.models import AuditLog, AuditSeverity, Document as DocumentRow
from safework.db.store import (
    InMemoryDocumentStore,
    SQLAlchemyDocumentStore,
    lmra_path,
    org_from_path,
    tra_path,
)
from safework.services.audit import SQLAlchemyAuditRecorder, audit_severity, record_safely


PATH = tra_path("org-1")


@pytest.fixture(params=["memory", "sqlite"])
def any_store(request):
    if request.param == "memory":
        return InMemoryDocumentStore()
    return SQLAlchemyDocumentStore(request.getfixturevalue("session_factory"))


class TestPaths:
    def test_collection_paths(self):
        assert tra_path("acme") == "organizations/acme/tras"
        assert lmra_path("acme") == "organizations/acme/lmraSessions"
        assert org_from_path(lmra_path("acme")) == "acme"
        assert org_from_path("users") is None


class TestDocumentStore:
    """Behaviour shared by every store implementation."""

    def test_create_and_get(self, any_store):
        any_store.create(PATH, "t1", {"title": "Welding"})
        doc = any_store.get(PATH, "t1")
        assert doc.body == {"title": "Welding"}
        assert doc.version == 1

    def test_get_missing(self, any_store):
        with pytest.raises(NotFoundError):
            any_store.get(PATH, "missing")

    def test_duplicate_create(self, any_store):
        any_store.create(PATH, "t1", {})
        with pytest.raises(ConflictError):
            any_store.create(PATH, "t1", {})

    def test_conditional_update(self, any_store):
        any_store.create(PATH, "t1", {"n": 0})

        updated = any_store.update(PATH, "t1", {"n": 1}, expected_version=1)

        assert updated.version == 2
        assert any_store.get(PATH, "t1").body == {"n": 1}

    def test_stale_update_conflicts(self, any_store):
        any_store.create(PATH, "t1", {"n": 0})
        any_store.update(PATH, "t1", {"n": 1}, expected_version=1)

        with pytest.raises(ConcurrencyConflictError) as exc:
            any_store.update(PATH, "t1", {"n": 2}, expected_version=1)

        assert exc.value.expected_version == 1
        assert exc.value.actual_version == 2
        assert any_store.get(PATH, "t1").body == {"n": 1}

    def test_unconditional_update(self, any_store):
        any_store.create(PATH, "t1", {"n": 0})
        assert any_store.update(PATH, "t1", {"n": 5}).version == 2

    def test_update_missing(self, any_store):
        with pytest.raises(NotFoundError):
            any_store.update(PATH, "missing", {}, expected_version=1)

    def test_returned_bodies_are_copies(self, any_store):
        any_store.create(PATH, "t1", {"items": [1]})
        any_store.get(PATH, "t1").body["items"].append(2)
        assert any_store.get(PATH, "t1").body == {"items": [1]}


@pytest.mark.db
class TestSQLAlchemyStore:
    def test_organization_column_from_path(self, session_factory):
        SQLAlchemyDocumentStore(session_factory).create(lmra_path("acme"), "s1", {})
        with session_factory() as session:
            row = session.get(DocumentRow, (lmra_path("acme"), "s1"))
            assert row.organization_id == "acme"


@pytest.mark.db
class TestSQLAlchemyAuditRecorder:
    def test_writes_row_with_severity(self, session_factory):
        recorder = SQLAlchemyAuditRecorder(session_factory)

        recorder.record("org-1", "lmra-1", "worker-1", "lmra.complete", {"overallAssessment": "stop_work"})

        with session_factory() as session:
            row = session.execute(select(AuditLog)).scalar_one()
            assert row.action == "lmra.complete"
            assert row.severity == AuditSeverity.WARNING.value
            assert row.payload == {"overallAssessment": "stop_work"}

    def test_record_safely(self, session_factory):
        entry = AuditEntry("org-1", "tra-1", "u1", "tra.submit", {"comments": None})
        assert record_safely(SQLAlchemyAuditRecorder(session_factory), entry) is True
        assert record_safely(None, entry) is False

    def test_severity(self):
        assert audit_severity({"decision": "reject"}) == AuditSeverity.WARNING
        assert audit_severity({"decision": "approve"}) == AuditSeverity.INFO
