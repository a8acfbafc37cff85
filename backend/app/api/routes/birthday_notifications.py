from datetime import date, datetime, timezone

from fastapi import APIRouter, Query

from app.api.deps import CurrentUserDep, DbSessionDep
from app.core.config import settings
from app.schemas.common import ApiResponse
from app.schemas.contact import BirthdayNotice
from app.services import contacts as contact_service
from app.services.birthdays import next_birthday
from app.services.notifications import display_name


router = APIRouter(prefix="/api/birthday-notifications", tags=["birthday-notifications"])


@router.get("", response_model=ApiResponse[list[BirthdayNotice]])
@router.get("/", response_model=ApiResponse[list[BirthdayNotice]], include_in_schema=False)
async def upcoming_birthdays(
    db: DbSessionDep,
    current_user: CurrentUserDep,
    days_ahead: int = Query(default=settings.birthday_days_ahead, alias="daysAhead", ge=0, le=366),
) -> ApiResponse[list[BirthdayNotice]]:
    today = date.today()
    now = datetime.now(timezone.utc)
    notices: list[BirthdayNotice] = []
    for item in await contact_service.list_contacts_by_birthday(db, current_user.id, today):
        other = item.contact
        if other is None or other.birth_date is None or item.days_until_birthday > days_ahead:
            continue
        notices.append(
            BirthdayNotice(
                id=f"birthday_{item.id}",
                contact_id=other.id,
                contact_name=display_name(other),
                contact_nickname=other.nickname,
                contact_image=other.profile_image,
                birthday_date=next_birthday(other.birth_date, today),
                days_until=item.days_until_birthday,
                read=False,
                created_at=now,
            )
        )
    return ApiResponse(data=notices)


@router.put("/mark-all-read", response_model=ApiResponse[None])
async def mark_all_read(current_user: CurrentUserDep) -> ApiResponse[None]:
    # Birthday notices are computed on the fly; nothing is stored
    return ApiResponse(message="Todas las notificaciones de cumpleaños marcadas como leídas")


@router.put("/{notice_id}/read", response_model=ApiResponse[None])
async def mark_read(notice_id: str, current_user: CurrentUserDep) -> ApiResponse[None]:
    return ApiResponse(message="Notificación de cumpleaños marcada como leída")
