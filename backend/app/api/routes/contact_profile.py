from fastapi import APIRouter, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import CurrentUserDep, DbSessionDep
from app.api.routes.privacy import get_or_create_settings
from app.api.routes.reputation import vote_counts
from app.models.models import ContactStatusEnum, User
from app.schemas.common import ApiResponse
from app.schemas.profile import ContactProfile, ContactWish, ProfileVisibility, ProfileWishSummary
from app.services import contacts as contact_service
from app.services import wishes as wish_service
from app.services.birthdays import calculate_age


router = APIRouter(prefix="/api/contact-profile", tags=["contact-profile"])


async def _accepted_contact(db: AsyncSession, viewer_id: int, contact_user_id: int) -> User:
    edge = await contact_service.find_between(db, viewer_id, contact_user_id)
    if edge is None or edge.status != ContactStatusEnum.ACCEPTED.value:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Contacto no encontrado")
    user = await db.get(User, contact_user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Contacto no encontrado")
    return user


@router.get("/{contact_id}", response_model=ApiResponse[ContactProfile])
async def get_contact_profile(
    contact_id: int,
    db: DbSessionDep,
    current_user: CurrentUserDep,
) -> ApiResponse[ContactProfile]:
    contact = await _accepted_contact(db, current_user.id, contact_id)
    privacy = await get_or_create_settings(db, contact.id)
    wishes = await wish_service.list_for_user(db, contact.id)
    positive, negative = await vote_counts(db, contact.id)

    visibility = ProfileVisibility(
        real_name=True,
        birth_date=privacy.show_age,
        age=privacy.show_age,
        email=privacy.show_email,
        location=privacy.show_location,
        address=privacy.show_postal_address,
        wishes=True,
    )
    age = None
    if privacy.show_age:
        age = calculate_age(contact.birth_date) if contact.birth_date else contact.age

    profile = ContactProfile(
        id=contact.id,
        nickname=contact.nickname,
        real_name=contact.real_name,
        profile_image=contact.profile_image,
        birth_date=contact.birth_date if privacy.show_age else None,
        age=age,
        email=contact.email if privacy.show_email else None,
        city=contact.city if privacy.show_location else None,
        province=contact.province if privacy.show_location else None,
        country=contact.country if privacy.show_location else None,
        postal_address=contact.postal_address if privacy.show_postal_address else None,
        positive_votes=positive,
        negative_votes=negative,
        wishes_count=len(wishes),
        wishes=[ProfileWishSummary.model_validate(wish) for wish in wishes],
        is_public=visibility,
    )
    return ApiResponse(data=profile)


@router.get("/{contact_id}/wishes", response_model=ApiResponse[list[ContactWish]])
async def get_contact_wishes(
    contact_id: int,
    db: DbSessionDep,
    current_user: CurrentUserDep,
) -> ApiResponse[list[ContactWish]]:
    contact = await _accepted_contact(db, current_user.id, contact_id)
    wishes = await wish_service.list_for_user(db, contact.id)
    return ApiResponse(data=[ContactWish.model_validate(wish) for wish in wishes])
