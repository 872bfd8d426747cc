"""Tests for TRA and LMRA document models."""

import pytest
from pydantic import ValidationError

from safework.core.scoring import RiskLevel
from safework.models import Hazard, RiskAssessment, TaskStep, TRAStatus, utcnow

from tests.factories import make_hazard, make_session, make_tra, make_workflow


class TestHazard:
    def test_scores_are_derived(self):
        hazard = make_hazard(15, 6, 3, residual_effect_score=3, residual_exposure_score=6, residual_probability_score=1)
        assert hazard.risk_score == 270
        assert hazard.risk_level == RiskLevel.SUBSTANTIAL
        assert hazard.residual_risk_score == 18
        assert hazard.residual_risk_level == RiskLevel.TRIVIAL

    def test_stored_scores_are_ignored(self):
        data = make_hazard(1, 1, 1).to_document()
        data["riskScore"] = 9999
        assert Hazard.from_document(data).risk_score == 1

    def test_off_scale_factor(self):
        with pytest.raises(ValidationError):
            make_hazard(effect=5)


class TestRiskAssessment:
    def test_step_numbers_must_be_contiguous(self):
        with pytest.raises(ValidationError):
            RiskAssessment(
                id="t", organization_id="o", project_id="p",
                task_steps=[TaskStep(step_number=1), TaskStep(step_number=3)],
            )

    def test_document_round_trip_keeps_camel_case(self):
        tra = make_tra(workflow=make_workflow())
        doc = tra.to_document()
        assert "approvalWorkflow" in doc
        assert doc["approvalWorkflow"]["currentStep"] == 0
        assert RiskAssessment.from_document(doc).id == tra.id

    def test_can_edit(self):
        assert make_tra(status=TRAStatus.REJECTED).can_edit
        assert not make_tra(status=TRAStatus.APPROVED).can_edit

    def test_hazard_count(self):
        assert make_tra(hazards=[make_hazard(), make_hazard()]).hazard_count == 2


class TestApprovalWorkflow:
    def test_consistent_workflow(self):
        assert make_workflow().invariant_violations() == []

    def test_completed_at_without_completion(self):
        workflow = make_workflow()
        workflow.completed_at = utcnow()
        assert workflow.invariant_violations() == ["completedAt set while steps remain"]


class TestLMRASession:
    def test_location_bounds(self):
        with pytest.raises(ValidationError):
            make_session(location={"latitude": 95, "longitude": 0, "accuracy": 1})
