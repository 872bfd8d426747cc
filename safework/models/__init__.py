"""Typed document models for SafeWork."""

from safework.models.common import DocumentModel, utcnow
from safework.models.tra import (
    TRAStatus,
    StepStatus,
    HazardCategory,
    ControlMeasureType,
    ControlMeasure,
    Hazard,
    TaskStep,
    StepSignature,
    ApprovalStep,
    ApprovalWorkflow,
    RiskAssessment,
)
from safework.models.lmra import (
    LMRAAssessment,
    SyncStatus,
    CheckStatus,
    EquipmentCondition,
    LocationVerificationStatus,
    LocationVerification,
    EnvironmentalCheck,
    PersonnelCheck,
    EquipmentCheck,
    LMRAPhoto,
    LMRASession,
)

__all__ = [
    "DocumentModel",
    "utcnow",
    "TRAStatus",
    "StepStatus",
    "HazardCategory",
    "ControlMeasureType",
    "ControlMeasure",
    "Hazard",
    "TaskStep",
    "StepSignature",
    "ApprovalStep",
    "ApprovalWorkflow",
    "RiskAssessment",
    "LMRAAssessment",
    "SyncStatus",
    "CheckStatus",
    "EquipmentCondition",
    "LocationVerificationStatus",
    "LocationVerification",
    "EnvironmentalCheck",
    "PersonnelCheck",
    "EquipmentCheck",
    "LMRAPhoto",
    "LMRASession",
]
