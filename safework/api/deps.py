from typing import Optional

from fastapi import Depends, Header, HTTPException, Request, status

from safework.core.approval import ApprovalService, ApprovalWorkflowEngine
from safework.core.config import Settings, get_settings
from safework.core.lmra import LMRAService
from safework.core.rbac import ActorContext, parse_role
from safework.db.store import PersistenceStore
from safework.services.audit import AuditRecorder
from safework.services.events import EventDispatcher


def get_actor(
    x_user_id: Optional[str] = Header(None),
    x_user_role: Optional[str] = Header(None),
    x_organization_id: Optional[str] = Header(None),
    x_user_name: Optional[str] = Header(None),
) -> ActorContext:
    """Build the actor from identity headers set by the authenticating gateway."""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
    )

    role = parse_role(x_user_role)
    if not x_user_id or not x_organization_id or role is None:
        raise credentials_exception

    return ActorContext(
        actor_id=x_user_id,
        role=role,
        organization_id=x_organization_id,
        display_name=x_user_name,
    )


def get_store(request: Request) -> PersistenceStore:
    return request.app.state.store


def get_audit(request: Request) -> Optional[AuditRecorder]:
    return request.app.state.audit


def get_dispatcher(request: Request) -> EventDispatcher:
    return request.app.state.dispatcher


def get_approval_service(
    store: PersistenceStore = Depends(get_store),
    audit: Optional[AuditRecorder] = Depends(get_audit),
    dispatcher: EventDispatcher = Depends(get_dispatcher),
    settings: Settings = Depends(get_settings),
) -> ApprovalService:
    return ApprovalService(
        store,
        audit=audit,
        dispatcher=dispatcher,
        engine=ApprovalWorkflowEngine(default_role=settings.default_approval_role),
        retries=settings.conflict_retries,
    )


def get_lmra_service(
    store: PersistenceStore = Depends(get_store),
    audit: Optional[AuditRecorder] = Depends(get_audit),
    dispatcher: EventDispatcher = Depends(get_dispatcher),
    settings: Settings = Depends(get_settings),
) -> LMRAService:
    return LMRAService(store, audit=audit, dispatcher=dispatcher, retries=settings.conflict_retries)
