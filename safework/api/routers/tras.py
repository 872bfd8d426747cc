"""TRA approval workflow API endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends

from safework.api.deps import get_actor, get_approval_service
from safework.api.schemas.tra import ApprovalDecisionRequest, SignatureRequest, SubmitRequest
from safework.core.approval import ApprovalService
from safework.core.rbac import ActorContext

router = APIRouter(prefix="/tras", tags=["tras"])


@router.get("/{tra_id}")
async def get_tra(
    tra_id: str,
    actor: ActorContext = Depends(get_actor),
    service: ApprovalService = Depends(get_approval_service),
):
    """Fetch a TRA with its derived risk scores."""
    tra = service.get(actor.organization_id, tra_id)
    return {"item": tra.to_document()}


@router.post("/{tra_id}/submit")
async def submit_tra(
    tra_id: str,
    body: Optional[SubmitRequest] = None,
    actor: ActorContext = Depends(get_actor),
    service: ApprovalService = Depends(get_approval_service),
):
    """Submit (or resubmit) a TRA for approval."""
    comments = body.comments if body else None
    tra = service.submit(tra_id, actor, comments=comments)
    return {"item": tra.to_document()}


def _decide(tra_id: str, body: ApprovalDecisionRequest, actor: ActorContext, service: ApprovalService):
    tra = service.decide(
        tra_id,
        actor,
        body.decision,
        body.step_number,
        comments=body.comments,
        signature=body.digital_signature,
    )
    return {"item": tra.to_document()}


@router.post("/{tra_id}/approvals")
async def record_decision(
    tra_id: str,
    body: ApprovalDecisionRequest,
    actor: ActorContext = Depends(get_actor),
    service: ApprovalService = Depends(get_approval_service),
):
    """Approve or reject the current approval step."""
    return _decide(tra_id, body, actor, service)


@router.post("/{tra_id}/approve")
async def approve_step(
    tra_id: str,
    body: ApprovalDecisionRequest,
    actor: ActorContext = Depends(get_actor),
    service: ApprovalService = Depends(get_approval_service),
):
    """Alias of ``/approvals``."""
    return _decide(tra_id, body, actor, service)


@router.post("/{tra_id}/signature")
async def attach_signature(
    tra_id: str,
    body: SignatureRequest,
    actor: ActorContext = Depends(get_actor),
    service: ApprovalService = Depends(get_approval_service),
):
    """Store a signature on an approval step without changing its status."""
    service.attach_signature(
        tra_id,
        actor,
        body.step_number,
        body.signature_base64,
        body.name,
        reason=body.reason,
    )
    return {"success": True}
