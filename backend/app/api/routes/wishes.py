from fastapi import APIRouter, HTTPException, Query, Request, status

from app.api.deps import CurrentUserDep, DbSessionDep
from app.core.audit import AuditAction, audit_reservation_action
from app.core.config import settings
from app.models.models import User
from app.schemas.common import ApiResponse, total_pages
from app.schemas.wish import (
    WishCreate,
    WishExplorePage,
    WishPublic,
    WishReorder,
    WishUpdate,
    WishWithOwner,
)
from app.services import wishes as wish_service


router = APIRouter(prefix="/api/wishes", tags=["wishes"])


def _serialize(wishes) -> list[WishPublic]:
    return [WishPublic.model_validate(wish) for wish in wishes]


@router.get("", response_model=ApiResponse[list[WishPublic]])
@router.get("/", response_model=ApiResponse[list[WishPublic]], include_in_schema=False)
async def list_my_wishes(db: DbSessionDep, current_user: CurrentUserDep) -> ApiResponse[list[WishPublic]]:
    wishes = await wish_service.list_for_user(db, current_user.id)
    return ApiResponse(data=_serialize(wishes))


@router.get("/explore", response_model=ApiResponse[WishExplorePage])
async def explore_wishes(
    db: DbSessionDep,
    current_user: CurrentUserDep,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=settings.default_page_size, ge=1, le=100),
) -> ApiResponse[WishExplorePage]:
    wishes, total = await wish_service.explore(db, page=page, limit=limit)
    return ApiResponse(
        data=WishExplorePage(
            data=[WishWithOwner.model_validate(wish) for wish in wishes],
            total=total,
            page=page,
            limit=limit,
            total_pages=total_pages(total, limit),
        )
    )


@router.get("/user/{user_id}", response_model=ApiResponse[list[WishPublic]])
async def list_user_wishes(
    user_id: int,
    db: DbSessionDep,
    current_user: CurrentUserDep,
) -> ApiResponse[list[WishPublic]]:
    if await db.get(User, user_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Usuario no encontrado")
    wishes = await wish_service.list_for_user(db, user_id)
    return ApiResponse(data=_serialize(wishes))


@router.post("", response_model=ApiResponse[WishPublic], status_code=status.HTTP_201_CREATED)
@router.post("/", response_model=ApiResponse[WishPublic], status_code=status.HTTP_201_CREATED, include_in_schema=False)
async def create_wish(
    payload: WishCreate,
    db: DbSessionDep,
    current_user: CurrentUserDep,
) -> ApiResponse[WishPublic]:
    wish = await wish_service.add_wish(db, current_user, payload)
    return ApiResponse(data=WishPublic.model_validate(wish), message="Deseo creado exitosamente")


@router.put("/reorder", response_model=ApiResponse[list[WishPublic]])
async def reorder_wishes(
    payload: WishReorder,
    db: DbSessionDep,
    current_user: CurrentUserDep,
) -> ApiResponse[list[WishPublic]]:
    wishes = await wish_service.reorder(db, current_user, payload.wish_ids)
    return ApiResponse(data=_serialize(wishes), message="Deseos reordenados exitosamente")


@router.put("/{wish_id}", response_model=ApiResponse[WishPublic])
async def update_wish(
    wish_id: int,
    payload: WishUpdate,
    db: DbSessionDep,
    current_user: CurrentUserDep,
) -> ApiResponse[WishPublic]:
    wish = await wish_service.update_wish(db, current_user, wish_id, payload)
    return ApiResponse(data=WishPublic.model_validate(wish), message="Deseo actualizado exitosamente")


@router.delete("/{wish_id}", response_model=ApiResponse[None])
async def delete_wish(
    wish_id: int,
    db: DbSessionDep,
    current_user: CurrentUserDep,
) -> ApiResponse[None]:
    await wish_service.delete_wish(db, current_user, wish_id)
    return ApiResponse(message="Deseo eliminado exitosamente")


@router.post("/{wish_id}/reserve", response_model=ApiResponse[WishPublic])
async def reserve_wish(
    wish_id: int,
    request: Request,
    db: DbSessionDep,
    current_user: CurrentUserDep,
) -> ApiResponse[WishPublic]:
    wish = await wish_service.reserve(db, current_user, wish_id)
    audit_reservation_action(AuditAction.WISH_RESERVE, request, current_user.id, wish_id)
    return ApiResponse(data=WishPublic.model_validate(wish), message="Deseo reservado exitosamente")


@router.delete("/{wish_id}/reserve", response_model=ApiResponse[WishPublic])
async def cancel_wish_reservation(
    wish_id: int,
    request: Request,
    db: DbSessionDep,
    current_user: CurrentUserDep,
) -> ApiResponse[WishPublic]:
    wish = await wish_service.cancel_reservation(db, current_user, wish_id)
    audit_reservation_action(AuditAction.WISH_RESERVATION_CANCEL, request, current_user.id, wish_id)
    return ApiResponse(data=WishPublic.model_validate(wish), message="Reserva cancelada exitosamente")


# Registered last so the static paths above win
@router.get("/{user_id}", response_model=ApiResponse[list[WishPublic]])
async def list_wishes_by_user_id(
    user_id: int,
    db: DbSessionDep,
    current_user: CurrentUserDep,
) -> ApiResponse[list[WishPublic]]:
    return await list_user_wishes(user_id, db, current_user)
