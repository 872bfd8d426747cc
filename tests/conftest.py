"""Pytest configuration and shared fixtures."""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from safework.api.main import create_app
from safework.core.approval import ApprovalService
from safework.core.lmra import LMRAService
from safework.core.rbac import Role
from safework.db.session import init_db
from safework.db.store import InMemoryDocumentStore
from safework.services.audit import InMemoryAuditRecorder
from safework.services.events import EventDispatcher, EventRecorder

from tests.factories import make_actor


@pytest.fixture
def store():
    return InMemoryDocumentStore()


@pytest.fixture
def audit():
    return InMemoryAuditRecorder()


@pytest.fixture
def events():
    return EventRecorder()


@pytest.fixture
def dispatcher(events):
    dispatcher = EventDispatcher()
    dispatcher.subscribe(events)
    return dispatcher


@pytest.fixture
def approval_service(store, audit, dispatcher):
    return ApprovalService(store, audit=audit, dispatcher=dispatcher)


@pytest.fixture
def lmra_service(store, audit, dispatcher):
    return LMRAService(store, audit=audit, dispatcher=dispatcher)


# Actors, all in the default test organization


@pytest.fixture
def field_worker():
    return make_actor(Role.FIELD_WORKER, actor_id="worker-1")


@pytest.fixture
def supervisor():
    return make_actor(Role.SUPERVISOR, actor_id="supervisor-1")


@pytest.fixture
def safety_manager():
    return make_actor(Role.SAFETY_MANAGER, actor_id="manager-1")


@pytest.fixture
def admin():
    return make_actor(Role.ADMIN, actor_id="admin-1")


@pytest.fixture
def session_factory():
    """Session factory bound to a fresh in-memory SQLite database."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    yield sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    engine.dispose()


@pytest.fixture
def client(store, audit, dispatcher):
    """API client backed by the in-memory store."""
    app = create_app(store=store, audit=audit, dispatcher=dispatcher)
    return TestClient(app)
