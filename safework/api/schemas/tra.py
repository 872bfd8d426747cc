"""Request schemas for TRA workflow endpoints."""

from typing import Optional

from pydantic import Field, field_validator

from safework.core.approval.states import Decision
from safework.core.config import get_settings

from .common import RequestModel


class SubmitRequest(RequestModel):
    comments: Optional[str] = Field(None, max_length=2000)


class ApprovalDecisionRequest(RequestModel):
    """Body of ``POST /tras/{id}/approvals`` and ``/approve``."""

    step_number: int = Field(ge=0, description="Zero-based index of the step being decided")
    decision: Decision
    comments: Optional[str] = Field(None, max_length=2000)
    digital_signature: Optional[str] = None


class SignatureRequest(RequestModel):
    step_number: int = Field(ge=0)
    signature_base64: str
    name: str = Field(min_length=1)
    reason: Optional[str] = Field(None, max_length=1000)

    @field_validator("signature_base64")
    @classmethod
    def _long_enough(cls, v: str) -> str:
        minimum = get_settings().signature_min_length
        if len(v) < minimum:
            raise ValueError(f"signature must be at least {minimum} characters")
        return v
