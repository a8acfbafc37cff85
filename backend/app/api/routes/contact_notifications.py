"""Invitation-shaped view over the contact state machine.

Same rows and transitions as ``/api/contacts``; here an invitation is named by
the user who sent it rather than by the contact row id.
"""

from fastapi import APIRouter, Request, status

from app.api.deps import CurrentUserDep, DbSessionDep
from app.core.audit import AuditAction, audit_contact_action
from app.schemas.common import ApiResponse
from app.schemas.contact import (
    ContactInvitationCreate,
    ContactPublic,
    CountPayload,
    InvitationResponse,
    InvitationResult,
)
from app.services import contacts as contact_service


router = APIRouter(prefix="/api/contact-notifications", tags=["contact-notifications"])


@router.post("/send", response_model=ApiResponse[ContactPublic], status_code=status.HTTP_201_CREATED)
async def send_invitation(
    payload: ContactInvitationCreate,
    request: Request,
    db: DbSessionDep,
    current_user: CurrentUserDep,
) -> ApiResponse[ContactPublic]:
    contact = await contact_service.send_request(db, current_user, payload.contact_id)
    audit_contact_action(AuditAction.CONTACT_REQUEST, request, current_user.id, contact.id, payload.contact_id)
    return ApiResponse(
        data=contact_service.to_public(contact, current_user.id),
        message="Invitación enviada exitosamente",
    )


@router.get("/pending", response_model=ApiResponse[list[ContactPublic]])
async def pending_invitations(db: DbSessionDep, current_user: CurrentUserDep) -> ApiResponse[list[ContactPublic]]:
    rows = await contact_service.list_pending(db, current_user.id)
    return ApiResponse(data=[contact_service.to_public(row, current_user.id) for row in rows])


@router.post("/respond", response_model=ApiResponse[InvitationResult])
async def respond_to_invitation(
    payload: InvitationResponse,
    request: Request,
    db: DbSessionDep,
    current_user: CurrentUserDep,
) -> ApiResponse[InvitationResult]:
    contact = await contact_service.respond_to_invitation(
        db,
        current_user.id,
        payload.contact_id,
        payload.response,
    )
    action = AuditAction.CONTACT_ACCEPT if payload.response == "accepted" else AuditAction.CONTACT_REJECT
    audit_contact_action(action, request, current_user.id, contact.id, payload.contact_id)

    message = "Invitación aceptada" if payload.response == "accepted" else "Invitación rechazada"
    return ApiResponse(
        data=InvitationResult(
            invitation=contact_service.to_public(contact, current_user.id),
            response=payload.response,
            message=message,
        ),
        message=message,
    )


@router.get("/count", response_model=ApiResponse[CountPayload])
async def pending_count(db: DbSessionDep, current_user: CurrentUserDep) -> ApiResponse[CountPayload]:
    count = await contact_service.count_pending(db, current_user.id)
    return ApiResponse(data=CountPayload(count=count))
