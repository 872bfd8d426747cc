"""End-to-end tests for the HTTP API."""

import pytest
from fastapi.testclient import TestClient

from safework.api.main import create_app
from safework.core.exceptions import PersistenceError
from safework.core.rbac import Role
from safework.db.store import tra_path
from safework.models import TRAStatus
from safework.services.audit import LoggingAuditRecorder

from tests.factories import actor_headers, make_actor, make_session, make_tra, make_workflow, seed_session, seed_tra


pytestmark = pytest.mark.integration


@pytest.fixture
def worker_headers(field_worker):
    return actor_headers(field_worker)


class TestAuthentication:
    def test_missing_headers(self, client: TestClient):
        response = client.post("/api/tras/t1/submit")
        assert response.status_code == 401

    def test_unknown_role(self, client: TestClient, worker_headers):
        response = client.post("/api/tras/t1/submit", headers=dict(worker_headers, **{"X-User-Role": "root"}))
        assert response.status_code == 401


class TestTRAEndpoints:
    """Submit, decide and sign through the API."""

    def test_submit_and_approve(self, client: TestClient, store, worker_headers, supervisor, safety_manager, events):
        tra = seed_tra(store, make_tra(workflow=make_workflow(Role.SUPERVISOR, Role.SAFETY_MANAGER)))

        response = client.post(f"/api/tras/{tra.id}/submit", headers=worker_headers, json={"comments": "ready"})
        assert response.status_code == 200
        assert response.json()["item"]["status"] == "submitted"

        response = client.post(
            f"/api/tras/{tra.id}/approvals",
            headers=actor_headers(supervisor),
            json={"stepNumber": 0, "decision": "approve"},
        )
        assert response.status_code == 200
        assert response.json()["item"]["status"] == "in_review"

        response = client.post(
            f"/api/tras/{tra.id}/approve",
            headers=actor_headers(safety_manager),
            json={"stepNumber": 1, "decision": "approve", "comments": "all good"},
        )
        item = response.json()["item"]
        assert response.status_code == 200
        assert item["status"] == "approved"
        assert item["approvalWorkflow"]["currentStep"] == 2
        assert item["approvalWorkflow"]["completedAt"] is not None
        assert events.types() == ["tra.submitted", "tra.approved"]

    def test_submit_without_body(self, client: TestClient, store, worker_headers):
        tra = seed_tra(store, make_tra())
        response = client.post(f"/api/tras/{tra.id}/submit", headers=worker_headers)
        assert response.status_code == 200
        assert response.json()["item"]["version"] == 2
        assert client.get(f"/api/tras/{tra.id}", headers=worker_headers).json()["item"]["version"] == 2

    def test_get_tra_includes_scores(self, client: TestClient, store, worker_headers):
        tra = seed_tra(store, make_tra())
        item = client.get(f"/api/tras/{tra.id}", headers=worker_headers).json()["item"]
        assert item["overallRiskScore"] == 270
        assert item["overallRiskLevel"] == "substantial"

    def test_not_found(self, client: TestClient, worker_headers):
        response = client.post("/api/tras/missing/submit", headers=worker_headers)
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "NOT_FOUND"

    def test_forbidden(self, client: TestClient, store, worker_headers):
        tra = seed_tra(store, make_tra(status=TRAStatus.SUBMITTED, workflow=make_workflow(Role.SAFETY_MANAGER)))
        response = client.post(
            f"/api/tras/{tra.id}/approvals",
            headers=worker_headers,
            json={"stepNumber": 0, "decision": "approve"},
        )
        assert response.status_code == 403
        assert response.json()["success"] is False

    def test_step_conflict(self, client: TestClient, store, admin):
        tra = seed_tra(store, make_tra(status=TRAStatus.SUBMITTED, workflow=make_workflow(Role.SUPERVISOR)))
        response = client.post(
            f"/api/tras/{tra.id}/approvals",
            headers=actor_headers(admin),
            json={"stepNumber": 1, "decision": "approve"},
        )
        assert response.status_code == 409

    @pytest.mark.parametrize("body", [
        {"stepNumber": -1, "decision": "approve"},
        {"stepNumber": 0, "decision": "maybe"},
        {"stepNumber": 0, "decision": "approve", "comments": "x" * 2001},
        {"decision": "approve"},
    ])
    def test_invalid_decision_body(self, client: TestClient, admin, body):
        response = client.post("/api/tras/t1/approvals", headers=actor_headers(admin), json=body)
        assert response.status_code == 422

    def test_signature(self, client: TestClient, store, supervisor, audit):
        tra = seed_tra(store, make_tra(status=TRAStatus.SUBMITTED, workflow=make_workflow(Role.SUPERVISOR)))

        response = client.post(
            f"/api/tras/{tra.id}/signature",
            headers=actor_headers(supervisor),
            json={"stepNumber": 0, "signatureBase64": "Q" * 120, "name": "Sam Supervisor"},
        )

        assert response.status_code == 200
        assert response.json() == {"success": True}
        body = store.get(tra_path(tra.organization_id), tra.id).body
        step = body["approvalWorkflow"]["steps"][0]
        assert step["status"] == "pending"
        assert step["digitalSignature"]["capturedByName"] == "Sam Supervisor"
        assert audit.actions() == ["approval.signature.create"]

    def test_short_signature_rejected(self, client: TestClient, supervisor):
        response = client.post(
            "/api/tras/t1/signature",
            headers=actor_headers(supervisor),
            json={"stepNumber": 0, "signatureBase64": "short", "name": "Sam"},
        )
        assert response.status_code == 422

    def test_missing_signature_step(self, client: TestClient, store, admin):
        tra = seed_tra(store, make_tra(status=TRAStatus.SUBMITTED, workflow=make_workflow(Role.SUPERVISOR)))
        response = client.post(
            f"/api/tras/{tra.id}/signature",
            headers=actor_headers(admin),
            json={"stepNumber": 4, "signatureBase64": "Q" * 120, "name": "Admin"},
        )
        assert response.status_code == 404


class TestLMRAEndpoints:
    """Start, update and complete a field session through the API."""

    def test_full_flow(self, client: TestClient, store, field_worker, worker_headers, events):
        tra = seed_tra(store, make_tra(status=TRAStatus.APPROVED))

        response = client.post("/api/lmra-sessions", headers=worker_headers, json={"traId": tra.id})
        assert response.status_code == 201
        session_id = response.json()["data"]["id"]

        readiness = client.get(f"/api/lmra-sessions/{session_id}/can-complete", headers=worker_headers).json()
        assert readiness["data"]["canComplete"] is False

        response = client.post(
            f"/api/lmra-sessions/{session_id}/complete",
            headers=worker_headers,
            json={"overallAssessment": "safe_to_proceed"},
        )
        assert response.status_code == 422
        error = response.json()["error"]
        assert error["code"] == "INCOMPLETE_CHECKS"
        assert error["missing"] == ["location", "environmentalChecks", "personnelChecks", "equipmentChecks"]

        response = client.patch(
            f"/api/lmra-sessions/{session_id}",
            headers=worker_headers,
            json={
                "location": {"latitude": 52.1, "longitude": 5.1, "accuracy": 4},
                "environmentalChecks": [{"checkType": "weather", "status": "pass"}],
                "personnelChecks": [{"userId": field_worker.actor_id, "checkedIn": True, "competenciesVerified": True}],
                "equipmentChecks": [{"equipmentName": "Harness"}],
                "stopWorkReason": "Unexpected gas reading",
            },
        )
        assert response.status_code == 200
        assert response.json()["data"]["location"]["latitude"] == 52.1

        response = client.post(
            f"/api/lmra-sessions/{session_id}/complete",
            headers=worker_headers,
            json={"overallAssessment": "stop_work", "digitalSignature": "sig"},
        )
        assert response.status_code == 200
        payload = response.json()
        assert payload["data"]["overallAssessment"] == "stop_work"
        assert payload["data"]["completedAt"] is not None
        assert "STOP WORK" in payload["message"]
        assert events.types() == ["lmra.completed", "lmra.stop_work"]

        again = client.post(
            f"/api/lmra-sessions/{session_id}/complete",
            headers=worker_headers,
            json={"overallAssessment": "safe_to_proceed"},
        )
        assert again.status_code == 409

    def test_get_session(self, client: TestClient, store, field_worker, worker_headers):
        session = seed_session(store, make_session(performed_by=field_worker.actor_id))
        response = client.get(f"/api/lmra-sessions/{session.id}", headers=worker_headers)
        assert response.status_code == 200
        assert response.json()["data"]["performedBy"] == field_worker.actor_id

    def test_other_worker_cannot_complete(self, client: TestClient, store):
        session = seed_session(store, make_session(performed_by="worker-1"))
        other = make_actor(Role.FIELD_WORKER)
        response = client.post(
            f"/api/lmra-sessions/{session.id}/complete",
            headers=actor_headers(other),
            json={"overallAssessment": "safe_to_proceed"},
        )
        assert response.status_code == 403

    def test_unknown_field_in_update(self, client: TestClient, store, field_worker, worker_headers):
        session = seed_session(store, make_session(performed_by=field_worker.actor_id))
        response = client.patch(
            f"/api/lmra-sessions/{session.id}",
            headers=worker_headers,
            json={"completedAt": "2025-01-01T00:00:00Z"},
        )
        assert response.status_code == 422

    def test_start_on_unapproved_tra(self, client: TestClient, store, worker_headers):
        tra = seed_tra(store, make_tra(status=TRAStatus.DRAFT))
        response = client.post("/api/lmra-sessions", headers=worker_headers, json={"traId": tra.id})
        assert response.status_code == 409


class TestErrorMapping:
    def test_store_failure_is_opaque(self, store, audit, dispatcher, worker_headers):
        class BrokenStore:
            def get(self, path, doc_id):
                raise PersistenceError("connection refused on 10.0.0.5")

        app = create_app(store=BrokenStore(), audit=audit, dispatcher=dispatcher)
        response = TestClient(app).get("/api/tras/t1", headers=worker_headers)

        assert response.status_code == 500
        assert "10.0.0.5" not in response.text
        assert response.json()["error"]["code"] == "INTERNAL_ERROR"

    def test_custom_store_defaults_to_logging_audit(self, store, worker_headers, caplog):
        app = create_app(store=store)
        assert isinstance(app.state.audit, LoggingAuditRecorder)

        tra = seed_tra(store, make_tra())
        response = TestClient(app).post(f"/api/tras/{tra.id}/submit", headers=worker_headers)

        assert response.status_code == 200
        assert "action=tra.submit" in caplog.text
