"""Task Risk Assessment (TRA) document model.

A TRA is an ordered list of task steps, each listing the hazards of that step
with Kinney & Wiruth scores. Hazard and overall scores are derived from the
factors on every read; they are serialized for consumers but never trusted
on input.
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import Field, computed_field, field_validator, model_validator

from safework.core.rbac.roles import Role
from safework.core.scoring.kinney import (
    EFFECT_VALUES,
    EXPOSURE_VALUES,
    PROBABILITY_VALUES,
    RiskLevel,
    calculate_risk_score,
    get_overall_risk_score,
    get_risk_level,
)

from .common import DocumentModel, utcnow


class TRAStatus(str, Enum):
    """Lifecycle status of a TRA."""

    DRAFT = "draft"
    SUBMITTED = "submitted"
    IN_REVIEW = "in_review"
    APPROVED = "approved"
    REJECTED = "rejected"
    ACTIVE = "active"
    EXPIRED = "expired"
    ARCHIVED = "archived"


class StepStatus(str, Enum):
    """Status of a single approval step."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class HazardCategory(str, Enum):
    ELECTRICAL = "electrical"
    MECHANICAL = "mechanical"
    CHEMICAL = "chemical"
    BIOLOGICAL = "biological"
    PHYSICAL = "physical"
    ERGONOMIC = "ergonomic"
    PSYCHOSOCIAL = "psychosocial"
    FIRE_EXPLOSION = "fire_explosion"
    ENVIRONMENTAL = "environmental"
    OTHER = "other"


class ControlMeasureType(str, Enum):
    """Hierarchy of controls."""

    ELIMINATION = "elimination"
    SUBSTITUTION = "substitution"
    ENGINEERING = "engineering"
    ADMINISTRATIVE = "administrative"
    PPE = "ppe"


class ControlMeasure(DocumentModel):
    id: str
    type: ControlMeasureType
    description: str
    responsible_person: Optional[str] = None
    deadline: Optional[datetime] = None
    notes: Optional[str] = None


def _check_scale(value: Optional[float], allowed, factor: str) -> Optional[float]:
    if value is not None and value not in allowed:
        raise ValueError(f"{factor} must be one of {sorted(allowed)}")
    return value


class Hazard(DocumentModel):
    """A single hazard in a task step."""

    id: str
    description: str = ""
    category: HazardCategory = HazardCategory.OTHER

    effect_score: float
    exposure_score: float
    probability_score: float

    control_measures: List[ControlMeasure] = Field(default_factory=list)

    residual_effect_score: Optional[float] = None
    residual_exposure_score: Optional[float] = None
    residual_probability_score: Optional[float] = None

    @field_validator("effect_score", "residual_effect_score")
    @classmethod
    def _effect_on_scale(cls, v):
        return _check_scale(v, EFFECT_VALUES, "effect score")

    @field_validator("exposure_score", "residual_exposure_score")
    @classmethod
    def _exposure_on_scale(cls, v):
        return _check_scale(v, EXPOSURE_VALUES, "exposure score")

    @field_validator("probability_score", "residual_probability_score")
    @classmethod
    def _probability_on_scale(cls, v):
        return _check_scale(v, PROBABILITY_VALUES, "probability score")

    @computed_field
    @property
    def risk_score(self) -> float:
        return calculate_risk_score(self.effect_score, self.exposure_score, self.probability_score)

    @computed_field
    @property
    def risk_level(self) -> RiskLevel:
        return get_risk_level(self.risk_score)

    @computed_field
    @property
    def residual_risk_score(self) -> Optional[float]:
        factors = (self.residual_effect_score, self.residual_exposure_score, self.residual_probability_score)
        if any(f is None for f in factors):
            return None
        return calculate_risk_score(*factors)

    @computed_field
    @property
    def residual_risk_level(self) -> Optional[RiskLevel]:
        score = self.residual_risk_score
        return get_risk_level(score) if score is not None else None


class TaskStep(DocumentModel):
    step_number: int = Field(ge=1)
    description: str = ""
    hazards: List[Hazard] = Field(default_factory=list)
    notes: Optional[str] = None


class StepSignature(DocumentModel):
    """Digital signature captured for an approval step."""

    data: str
    captured_by: str
    captured_by_name: Optional[str] = None
    captured_at: datetime
    reason: Optional[str] = None


class ApprovalStep(DocumentModel):
    step_number: int
    name: str = ""
    required_role: Role
    approvers: List[str] = Field(default_factory=list)
    status: StepStatus = StepStatus.PENDING

    decided_by: Optional[str] = None
    decided_by_name: Optional[str] = None
    decided_at: Optional[datetime] = None
    comments: Optional[str] = None
    digital_signature: Optional[StepSignature] = None

    def reset(self) -> None:
        """Return the step to pending and drop every decision trace."""
        self.status = StepStatus.PENDING
        self.decided_by = None
        self.decided_by_name = None
        self.decided_at = None
        self.comments = None
        self.digital_signature = None


class ApprovalWorkflow(DocumentModel):
    steps: List[ApprovalStep] = Field(min_length=1)
    current_step: int = 0
    completed_at: Optional[datetime] = None

    @property
    def is_complete(self) -> bool:
        return self.current_step >= len(self.steps)

    def current(self) -> Optional[ApprovalStep]:
        """The step awaiting a decision, or None once every step is approved."""
        if self.is_complete:
            return None
        return self.steps[self.current_step]

    def invariant_violations(self) -> List[str]:
        """Describe every way the workflow breaks its ordering invariant."""
        problems = []
        if not 0 <= self.current_step <= len(self.steps):
            problems.append(f"current step {self.current_step} out of range")
            return problems
        for index, step in enumerate(self.steps):
            if index < self.current_step and step.status != StepStatus.APPROVED:
                problems.append(f"step {index} before current step is {step.status.value}")
            elif index > self.current_step and step.status != StepStatus.PENDING:
                problems.append(f"step {index} after current step is {step.status.value}")
        if self.is_complete and self.completed_at is None:
            problems.append("all steps approved but completedAt is not set")
        if not self.is_complete and self.completed_at is not None:
            problems.append("completedAt set while steps remain")
        return problems


class RiskAssessment(DocumentModel):
    """Task Risk Assessment document."""

    id: str
    organization_id: str
    project_id: str
    title: str = ""
    description: Optional[str] = None

    task_steps: List[TaskStep] = Field(default_factory=list)
    team_members: List[str] = Field(default_factory=list)

    status: TRAStatus = TRAStatus.DRAFT
    approval_workflow: Optional[ApprovalWorkflow] = None

    version: int = 1

    created_by: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: Optional[datetime] = None
    updated_by: Optional[str] = None
    submitted_at: Optional[datetime] = None
    submitted_by: Optional[str] = None
    approved_at: Optional[datetime] = None
    approved_by: Optional[str] = None

    @model_validator(mode="after")
    def _steps_contiguous(self):
        numbers = [step.step_number for step in self.task_steps]
        if numbers != list(range(1, len(numbers) + 1)):
            raise ValueError("task step numbers must be unique and contiguous from 1")
        return self

    @computed_field
    @property
    def overall_risk_score(self) -> float:
        return get_overall_risk_score(self.task_steps)

    @computed_field
    @property
    def overall_risk_level(self) -> RiskLevel:
        return get_risk_level(self.overall_risk_score)

    @property
    def can_edit(self) -> bool:
        return self.status in (TRAStatus.DRAFT, TRAStatus.REJECTED)

    @property
    def hazard_count(self) -> int:
        return sum(len(step.hazards) for step in self.task_steps)
