"""LMRA session API endpoints."""

from fastapi import APIRouter, Depends, status

from safework.api.deps import get_actor, get_lmra_service
from safework.api.schemas.lmra import CompleteSessionRequest, StartSessionRequest, UpdateSessionRequest
from safework.core.lmra import LMRAService
from safework.core.rbac import ActorContext
from safework.models.lmra import LMRAAssessment

router = APIRouter(prefix="/lmra-sessions", tags=["lmra"])


@router.post("", status_code=status.HTTP_201_CREATED)
async def start_session(
    body: StartSessionRequest,
    actor: ActorContext = Depends(get_actor),
    service: LMRAService = Depends(get_lmra_service),
):
    """Start an LMRA session for an approved or active TRA."""
    session = service.start(
        body.tra_id,
        actor,
        session_id=body.session_id,
        team_members=body.team_members,
        location=body.location,
        offline=body.offline,
    )
    return {"success": True, "data": session.to_document()}


@router.get("/{session_id}")
async def get_session(
    session_id: str,
    actor: ActorContext = Depends(get_actor),
    service: LMRAService = Depends(get_lmra_service),
):
    session = service.get(actor.organization_id, session_id)
    return {"success": True, "data": session.to_document()}


@router.patch("/{session_id}")
async def update_session(
    session_id: str,
    body: UpdateSessionRequest,
    actor: ActorContext = Depends(get_actor),
    service: LMRAService = Depends(get_lmra_service),
):
    """Record location, checks or notes on an open session."""
    session = service.update(session_id, actor, body.changes())
    return {"success": True, "data": session.to_document()}


@router.get("/{session_id}/can-complete")
async def can_complete(
    session_id: str,
    actor: ActorContext = Depends(get_actor),
    service: LMRAService = Depends(get_lmra_service),
):
    return {"success": True, "data": service.can_complete(actor.organization_id, session_id)}


@router.post("/{session_id}/complete")
async def complete_session(
    session_id: str,
    body: CompleteSessionRequest,
    actor: ActorContext = Depends(get_actor),
    service: LMRAService = Depends(get_lmra_service),
):
    """Finalize a session once every check category is recorded."""
    session = service.complete(
        session_id,
        actor,
        body.overall_assessment,
        comments=body.comments,
        signature=body.digital_signature,
    )
    return {
        "success": True,
        "data": session.to_document(),
        "message": "LMRA completed - STOP WORK"
        if session.overall_assessment == LMRAAssessment.STOP_WORK
        else "LMRA completed successfully",
    }
