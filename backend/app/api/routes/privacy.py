import logging

from fastapi import APIRouter
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import CurrentUserDep, DbSessionDep
from app.models.models import PrivacySettings, utcnow
from app.schemas.common import ApiResponse
from app.schemas.profile import PrivacySettingsPublic, PrivacySettingsUpdate


router = APIRouter(prefix="/api/privacy", tags=["privacy"])
logger = logging.getLogger("gifiti.privacy")


async def get_or_create_settings(db: AsyncSession, user_id: int) -> PrivacySettings:
    settings_row = await db.scalar(select(PrivacySettings).where(PrivacySettings.user_id == user_id))
    if settings_row is None:
        settings_row = PrivacySettings(user_id=user_id)
        db.add(settings_row)
        await db.commit()
        await db.refresh(settings_row)
        logger.info("Privacy defaults created user_id=%s", user_id)
    return settings_row


@router.get("", response_model=ApiResponse[PrivacySettingsPublic])
@router.get("/", response_model=ApiResponse[PrivacySettingsPublic], include_in_schema=False)
async def get_privacy_settings(db: DbSessionDep, current_user: CurrentUserDep) -> ApiResponse[PrivacySettingsPublic]:
    settings_row = await get_or_create_settings(db, current_user.id)
    return ApiResponse(data=PrivacySettingsPublic.model_validate(settings_row))


@router.put("", response_model=ApiResponse[PrivacySettingsPublic])
@router.put("/", response_model=ApiResponse[PrivacySettingsPublic], include_in_schema=False)
async def update_privacy_settings(
    payload: PrivacySettingsUpdate,
    db: DbSessionDep,
    current_user: CurrentUserDep,
) -> ApiResponse[PrivacySettingsPublic]:
    settings_row = await get_or_create_settings(db, current_user.id)
    for field, value in payload.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(settings_row, field, value)
    settings_row.updated_at = utcnow()
    await db.commit()
    await db.refresh(settings_row)
    return ApiResponse(
        data=PrivacySettingsPublic.model_validate(settings_row),
        message="Configuración de privacidad actualizada",
    )
