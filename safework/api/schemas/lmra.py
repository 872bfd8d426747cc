"""Request schemas for LMRA session endpoints."""

from typing import Any, Dict, List, Optional

from pydantic import Field

from safework.models.lmra import (
    EnvironmentalCheck,
    EquipmentCheck,
    LMRAAssessment,
    LMRAPhoto,
    LocationVerification,
    PersonnelCheck,
)

from .common import RequestModel


class StartSessionRequest(RequestModel):
    tra_id: str = Field(min_length=1)
    session_id: Optional[str] = None
    team_members: List[str] = Field(default_factory=list)
    location: Optional[LocationVerification] = None
    offline: bool = False


class UpdateSessionRequest(RequestModel):
    """Incremental update; only the fields present in the body are changed."""

    location: Optional[LocationVerification] = None
    team_members: Optional[List[str]] = None
    environmental_checks: Optional[List[EnvironmentalCheck]] = None
    personnel_checks: Optional[List[PersonnelCheck]] = None
    equipment_checks: Optional[List[EquipmentCheck]] = None
    photos: Optional[List[LMRAPhoto]] = None
    stop_work_reason: Optional[str] = Field(None, max_length=2000)
    additional_hazards: Optional[str] = Field(None, max_length=2000)
    comments: Optional[str] = Field(None, max_length=2000)

    def changes(self) -> Dict[str, Any]:
        return self.model_dump(exclude_unset=True)


class CompleteSessionRequest(RequestModel):
    overall_assessment: LMRAAssessment
    comments: Optional[str] = Field(None, max_length=2000)
    digital_signature: Optional[str] = None
