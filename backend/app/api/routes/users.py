from datetime import datetime, timezone
import logging

from fastapi import APIRouter, HTTPException, Query, Request, status
from pydantic import EmailStr
from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError

from app.api.deps import CurrentUserDep, DbSessionDep
from app.core.audit import audit_account_delete
from app.core.config import settings
from app.models.models import User, utcnow
from app.schemas.auth import EmailCheck, UserCount, UserPublic, UserSummary, UserUpdate
from app.schemas.common import ApiResponse
from app.services import contact_management, notifications
from app.services.birthdays import calculate_age


router = APIRouter(prefix="/api/users", tags=["users"])
logger = logging.getLogger("gifiti.users")

_ADDRESS_FIELDS = ("city", "province", "country", "postal_address")


@router.get("/check-email", response_model=ApiResponse[EmailCheck])
async def check_email(email: EmailStr, db: DbSessionDep) -> ApiResponse[EmailCheck]:
    existing = await db.scalar(select(User.id).where(func.lower(User.email) == email.lower()))
    return ApiResponse(data=EmailCheck(exists=existing is not None))


@router.get("/profile", response_model=ApiResponse[UserPublic])
async def get_profile(current_user: CurrentUserDep) -> ApiResponse[UserPublic]:
    return ApiResponse(data=UserPublic.model_validate(current_user))


@router.put("/profile", response_model=ApiResponse[UserPublic])
async def update_profile(
    payload: UserUpdate,
    db: DbSessionDep,
    current_user: CurrentUserDep,
) -> ApiResponse[UserPublic]:
    changes = payload.model_dump(exclude_unset=True)

    nickname = changes.get("nickname")
    if nickname and nickname != current_user.nickname:
        taken = await db.scalar(
            select(User.id).where(User.nickname == nickname, User.id != current_user.id)
        )
        if taken is not None:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Este nickname ya está en uso")

    address_changed = any(
        field in changes and changes[field] != getattr(current_user, field)
        for field in _ADDRESS_FIELDS
    )

    for field, value in changes.items():
        if field in ("nickname", "real_name") and value is None:
            continue
        setattr(current_user, field, value)
    if "birth_date" in changes and current_user.birth_date is not None and "age" not in changes:
        current_user.age = calculate_age(current_user.birth_date)
    current_user.updated_at = utcnow()

    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Este nickname ya está en uso") from None
    await db.refresh(current_user)
    logger.info("Profile updated user_id=%s fields=%s", current_user.id, sorted(changes))

    if address_changed:
        await notifications.notify_address_changed(db, current_user)

    return ApiResponse(data=UserPublic.model_validate(current_user), message="Perfil actualizado exitosamente")


@router.get("/search", response_model=ApiResponse[list[UserSummary]])
async def search_users(
    db: DbSessionDep,
    current_user: CurrentUserDep,
    q: str | None = Query(default=None),
    limit: int = Query(default=settings.default_page_size, ge=1, le=100),
) -> ApiResponse[list[UserSummary]]:
    term = (q or "").strip()
    if not term:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Parámetro de búsqueda requerido")
    pattern = f"%{term}%"
    result = await db.execute(
        select(User)
        .where(
            User.id != current_user.id,
            or_(User.nickname.ilike(pattern), User.real_name.ilike(pattern)),
        )
        .order_by(User.nickname)
        .limit(limit)
    )
    return ApiResponse(data=[UserSummary.model_validate(user) for user in result.scalars().all()])


@router.get("/count", response_model=ApiResponse[UserCount])
async def count_users(db: DbSessionDep) -> ApiResponse[UserCount]:
    total = await db.scalar(select(func.count(User.id))) or 0
    return ApiResponse(data=UserCount(count=total, timestamp=datetime.now(timezone.utc)))


@router.delete("/me", response_model=ApiResponse[None])
async def delete_me(
    request: Request,
    db: DbSessionDep,
    current_user: CurrentUserDep,
) -> ApiResponse[None]:
    user_id = current_user.id
    await contact_management.delete_account(db, current_user)
    audit_account_delete(request, user_id)
    return ApiResponse(message="Cuenta eliminada exitosamente")


@router.get("/{user_id}", response_model=ApiResponse[UserSummary])
async def get_user(
    user_id: int,
    db: DbSessionDep,
    current_user: CurrentUserDep,
) -> ApiResponse[UserSummary]:
    user = await db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Usuario no encontrado")
    return ApiResponse(data=UserSummary.model_validate(user))
