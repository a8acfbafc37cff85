from fastapi import APIRouter, Query

from app.api.deps import CurrentUserDep, DbSessionDep
from app.core.config import settings
from app.schemas.common import ApiResponse, total_pages
from app.schemas.contact import CountPayload
from app.schemas.notification import (
    AvisoPage,
    CleanupResult,
    NotificationDetail,
    NotificationPage,
    NotificationPublic,
)
from app.services import notifications as notification_service


router = APIRouter(prefix="/api/notifications", tags=["notifications"])


@router.get("", response_model=ApiResponse[NotificationPage])
@router.get("/", response_model=ApiResponse[NotificationPage], include_in_schema=False)
async def list_notifications(
    db: DbSessionDep,
    current_user: CurrentUserDep,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=settings.default_page_size, ge=1, le=100),
) -> ApiResponse[NotificationPage]:
    rows, total = await notification_service.list_notifications(
        db,
        current_user.id,
        page=page,
        limit=limit,
    )
    return ApiResponse(
        data=NotificationPage(
            notifications=[NotificationDetail.model_validate(row) for row in rows],
            total=total,
            page=page,
            limit=limit,
            total_pages=total_pages(total, limit),
        )
    )


@router.get("/avisos", response_model=ApiResponse[AvisoPage])
async def list_avisos(
    db: DbSessionDep,
    current_user: CurrentUserDep,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=settings.default_page_size, ge=1, le=100),
) -> ApiResponse[AvisoPage]:
    rows, total = await notification_service.list_notifications(
        db,
        current_user.id,
        page=page,
        limit=limit,
        types=notification_service.AVISO_TYPES,
    )
    unread = await notification_service.unread_count(db, current_user.id, notification_service.AVISO_TYPES)
    return ApiResponse(
        data=AvisoPage(
            avisos=[NotificationDetail.model_validate(row) for row in rows],
            unread_count=unread,
            total=total,
            page=page,
            limit=limit,
            total_pages=total_pages(total, limit),
        )
    )


@router.get("/count", response_model=ApiResponse[CountPayload])
async def unread_count(db: DbSessionDep, current_user: CurrentUserDep) -> ApiResponse[CountPayload]:
    count = await notification_service.unread_count(db, current_user.id)
    return ApiResponse(data=CountPayload(count=count))


@router.put("/read-all", response_model=ApiResponse[CountPayload])
async def mark_all_read(db: DbSessionDep, current_user: CurrentUserDep) -> ApiResponse[CountPayload]:
    updated = await notification_service.mark_all_read(db, current_user.id)
    return ApiResponse(
        data=CountPayload(count=updated),
        message="Todas las notificaciones marcadas como leídas",
    )


@router.delete("/cleanup-examples", response_model=ApiResponse[CleanupResult])
async def cleanup_examples(db: DbSessionDep, current_user: CurrentUserDep) -> ApiResponse[CleanupResult]:
    deleted = await notification_service.cleanup_example_notifications(db, current_user.id)
    return ApiResponse(
        data=CleanupResult(deleted_count=deleted),
        message=f"{deleted} notificaciones de ejemplo eliminadas",
    )


@router.put("/{notification_id}/read", response_model=ApiResponse[NotificationPublic])
async def mark_read(
    notification_id: int,
    db: DbSessionDep,
    current_user: CurrentUserDep,
) -> ApiResponse[NotificationPublic]:
    notification = await notification_service.mark_read(db, current_user.id, notification_id)
    return ApiResponse(
        data=NotificationPublic.model_validate(notification),
        message="Notificación marcada como leída",
    )


@router.delete("/{notification_id}", response_model=ApiResponse[None])
async def delete_notification(
    notification_id: int,
    db: DbSessionDep,
    current_user: CurrentUserDep,
) -> ApiResponse[None]:
    await notification_service.delete_notification(db, current_user.id, notification_id)
    return ApiResponse(message="Notificación eliminada")
