"""Last-Minute Risk Analysis (LMRA) session model."""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import Field

from .common import DocumentModel, utcnow


class LMRAAssessment(str, Enum):
    """Overall field decision recorded when a session completes."""

    SAFE_TO_PROCEED = "safe_to_proceed"
    PROCEED_WITH_CAUTION = "proceed_with_caution"
    STOP_WORK = "stop_work"


class SyncStatus(str, Enum):
    SYNCED = "synced"
    PENDING_SYNC = "pending_sync"
    SYNC_FAILED = "sync_failed"


class CheckStatus(str, Enum):
    PASS = "pass"
    FAIL = "fail"
    CAUTION = "caution"
    NOT_APPLICABLE = "not_applicable"


class EquipmentCondition(str, Enum):
    GOOD = "good"
    ACCEPTABLE = "acceptable"
    DAMAGED = "damaged"
    EXPIRED = "expired"


class LocationVerificationStatus(str, Enum):
    VERIFIED = "verified"
    APPROXIMATE = "approximate"
    MANUAL_OVERRIDE = "manual_override"


class LocationVerification(DocumentModel):
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    accuracy: float = Field(ge=0)  # meters
    verification_status: LocationVerificationStatus = LocationVerificationStatus.VERIFIED
    manual_override_reason: Optional[str] = None
    captured_at: datetime = Field(default_factory=utcnow)


class EnvironmentalCheck(DocumentModel):
    check_type: str
    required: bool = True
    status: CheckStatus
    measurement: Optional[str] = None
    notes: Optional[str] = None


class PersonnelCheck(DocumentModel):
    user_id: str
    display_name: Optional[str] = None
    competencies_verified: bool = False
    checked_in: bool = False
    check_in_time: Optional[datetime] = None
    notes: Optional[str] = None


class EquipmentCheck(DocumentModel):
    equipment_name: str
    equipment_id: Optional[str] = None
    required: bool = True
    available: bool = True
    condition: EquipmentCondition = EquipmentCondition.GOOD
    notes: Optional[str] = None


class LMRAPhoto(DocumentModel):
    id: str
    url: str
    category: str = "other"
    caption: Optional[str] = None
    taken_at: datetime = Field(default_factory=utcnow)
    taken_by: Optional[str] = None


class LMRASession(DocumentModel):
    """A field verification session performed right before work starts."""

    id: str
    organization_id: str
    tra_id: str
    project_id: str

    performed_by: str
    performed_by_name: Optional[str] = None
    team_members: List[str] = Field(default_factory=list)

    location: Optional[LocationVerification] = None

    environmental_checks: List[EnvironmentalCheck] = Field(default_factory=list)
    personnel_checks: List[PersonnelCheck] = Field(default_factory=list)
    equipment_checks: List[EquipmentCheck] = Field(default_factory=list)
    photos: List[LMRAPhoto] = Field(default_factory=list)

    overall_assessment: Optional[LMRAAssessment] = None
    stop_work_reason: Optional[str] = None
    additional_hazards: Optional[str] = None
    comments: Optional[str] = None
    digital_signature: Optional[str] = None

    started_at: datetime = Field(default_factory=utcnow)
    completed_at: Optional[datetime] = None
    duration: Optional[int] = None  # seconds

    sync_status: SyncStatus = SyncStatus.SYNCED
    version: int = 1
    updated_at: Optional[datetime] = None

    @property
    def is_complete(self) -> bool:
        return self.completed_at is not None
