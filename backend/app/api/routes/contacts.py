
from fastapi import APIRouter, Query, Request, status

from app.api.deps import CurrentUserDep, DbSessionDep
from app.core.audit import AuditAction, audit_contact_action
from app.core.config import settings
from app.schemas.auth import UserSummary
from app.schemas.common import ApiResponse, total_pages
from app.schemas.contact import (
    ContactPublic,
    ContactRequestCreate,
    ContactWithBirthday,
    UserSearchPage,
)
from app.services import contacts as contact_service


router = APIRouter(prefix="/api/contacts", tags=["contacts"])


def _serialize(rows, viewer_id: int) -> list[ContactPublic]:
    return [contact_service.to_public(row, viewer_id) for row in rows]


@router.get("", response_model=ApiResponse[list[ContactPublic]])
@router.get("/", response_model=ApiResponse[list[ContactPublic]], include_in_schema=False)
async def list_contacts(db: DbSessionDep, current_user: CurrentUserDep) -> ApiResponse[list[ContactPublic]]:
    rows = await contact_service.list_contacts(db, current_user.id)
    return ApiResponse(data=_serialize(rows, current_user.id))


@router.get("/birthday-order", response_model=ApiResponse[list[ContactWithBirthday]])
async def list_contacts_by_birthday(
    db: DbSessionDep,
    current_user: CurrentUserDep,
) -> ApiResponse[list[ContactWithBirthday]]:
    items = await contact_service.list_contacts_by_birthday(db, current_user.id)
    return ApiResponse(data=items)


@router.get("/pending", response_model=ApiResponse[list[ContactPublic]])
async def list_pending(db: DbSessionDep, current_user: CurrentUserDep) -> ApiResponse[list[ContactPublic]]:
    rows = await contact_service.list_pending(db, current_user.id)
    return ApiResponse(data=_serialize(rows, current_user.id))


@router.get("/sent-invitations", response_model=ApiResponse[list[ContactPublic]])
async def list_sent_invitations(db: DbSessionDep, current_user: CurrentUserDep) -> ApiResponse[list[ContactPublic]]:
    rows = await contact_service.list_sent(db, current_user.id)
    return ApiResponse(data=_serialize(rows, current_user.id))


@router.get("/blocked", response_model=ApiResponse[list[ContactPublic]])
async def list_blocked(db: DbSessionDep, current_user: CurrentUserDep) -> ApiResponse[list[ContactPublic]]:
    rows = await contact_service.list_blocked(db, current_user.id)
    return ApiResponse(data=_serialize(rows, current_user.id))


@router.get("/search", response_model=ApiResponse[UserSearchPage])
async def search_users_to_add(
    db: DbSessionDep,
    current_user: CurrentUserDep,
    q: str | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=settings.default_page_size, ge=1, le=100),
) -> ApiResponse[UserSearchPage]:
    users, total = await contact_service.search_users_to_add(
        db,
        current_user.id,
        q,
        page=page,
        limit=limit,
    )
    return ApiResponse(
        data=UserSearchPage(
            data=[UserSummary.model_validate(user) for user in users],
            total=total,
            page=page,
            limit=limit,
            total_pages=total_pages(total, limit),
        )
    )


@router.post("/request", response_model=ApiResponse[ContactPublic], status_code=status.HTTP_201_CREATED)
async def send_contact_request(
    payload: ContactRequestCreate,
    request: Request,
    db: DbSessionDep,
    current_user: CurrentUserDep,
) -> ApiResponse[ContactPublic]:
    contact = await contact_service.send_request(db, current_user, payload.user_id)
    audit_contact_action(AuditAction.CONTACT_REQUEST, request, current_user.id, contact.id, payload.user_id)
    return ApiResponse(
        data=contact_service.to_public(contact, current_user.id),
        message="Solicitud de contacto enviada",
    )


@router.put("/{contact_row_id}/accept", response_model=ApiResponse[ContactPublic])
async def accept_contact(
    contact_row_id: int,
    request: Request,
    db: DbSessionDep,
    current_user: CurrentUserDep,
) -> ApiResponse[ContactPublic]:
    contact = await contact_service.accept(db, current_user.id, contact_row_id)
    audit_contact_action(AuditAction.CONTACT_ACCEPT, request, current_user.id, contact_row_id, contact.user_id)
    return ApiResponse(
        data=contact_service.to_public(contact, current_user.id),
        message="Solicitud de contacto aceptada",
    )


@router.put("/{contact_row_id}/reject", response_model=ApiResponse[ContactPublic])
async def reject_contact(
    contact_row_id: int,
    request: Request,
    db: DbSessionDep,
    current_user: CurrentUserDep,
) -> ApiResponse[ContactPublic]:
    contact = await contact_service.reject(db, current_user.id, contact_row_id)
    audit_contact_action(AuditAction.CONTACT_REJECT, request, current_user.id, contact_row_id, contact.user_id)
    return ApiResponse(
        data=contact_service.to_public(contact, current_user.id),
        message="Solicitud de contacto rechazada",
    )


@router.delete("/{contact_row_id}/block", response_model=ApiResponse[ContactPublic])
async def block_contact(
    contact_row_id: int,
    request: Request,
    db: DbSessionDep,
    current_user: CurrentUserDep,
) -> ApiResponse[ContactPublic]:
    contact = await contact_service.block(db, current_user, contact_row_id)
    audit_contact_action(
        AuditAction.CONTACT_BLOCK,
        request,
        current_user.id,
        contact_row_id,
        contact.other_party(current_user.id),
    )
    return ApiResponse(
        data=contact_service.to_public(contact, current_user.id),
        message="Contacto bloqueado exitosamente",
    )


@router.put("/{contact_row_id}/unblock", response_model=ApiResponse[None])
async def unblock_contact(
    contact_row_id: int,
    request: Request,
    db: DbSessionDep,
    current_user: CurrentUserDep,
) -> ApiResponse[None]:
    await contact_service.unblock(db, current_user.id, contact_row_id)
    audit_contact_action(AuditAction.CONTACT_UNBLOCK, request, current_user.id, contact_row_id)
    return ApiResponse(message="Contacto desbloqueado exitosamente")


@router.delete("/{contact_row_id}", response_model=ApiResponse[None])
async def remove_contact(
    contact_row_id: int,
    request: Request,
    db: DbSessionDep,
    current_user: CurrentUserDep,
) -> ApiResponse[None]:
    contact = await contact_service.remove(db, current_user, contact_row_id)
    audit_contact_action(
        AuditAction.CONTACT_REMOVE,
        request,
        current_user.id,
        contact_row_id,
        contact.other_party(current_user.id),
    )
    return ApiResponse(message="Contacto eliminado exitosamente")
