"""Wish lists and reservations."""

import logging

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.config import settings
from app.core.errors import Conflict, Forbidden, NotFoundError, ValidationFailed
from app.models.models import NotificationTypeEnum, User, Wish, utcnow
from app.schemas.wish import WishCreate, WishUpdate
from app.services import notifications


logger = logging.getLogger("gifiti.wishes")


async def list_for_user(db: AsyncSession, user_id: int) -> list[Wish]:
    result = await db.execute(
        select(Wish).where(Wish.user_id == user_id).order_by(Wish.position, Wish.id)
    )
    return list(result.scalars().all())


async def count_for_user(db: AsyncSession, user_id: int) -> int:
    return await db.scalar(select(func.count(Wish.id)).where(Wish.user_id == user_id)) or 0


async def explore(db: AsyncSession, *, page: int, limit: int) -> tuple[list[Wish], int]:
    condition = Wish.is_reserved.is_(False)
    total = await db.scalar(select(func.count(Wish.id)).where(condition)) or 0
    result = await db.execute(
        select(Wish)
        .where(condition)
        .options(selectinload(Wish.owner))
        .order_by(Wish.created_at.desc(), Wish.id.desc())
        .limit(limit)
        .offset((page - 1) * limit)
    )
    return list(result.scalars().all()), total


async def _get_own(db: AsyncSession, owner_id: int, wish_id: int) -> Wish:
    wish = await db.scalar(select(Wish).where(Wish.id == wish_id, Wish.user_id == owner_id))
    if wish is None:
        raise NotFoundError("Deseo no encontrado")
    return wish


async def add_wish(db: AsyncSession, owner: User, payload: WishCreate) -> Wish:
    existing = await count_for_user(db, owner.id)
    if existing >= settings.max_wishes_per_user:
        raise ValidationFailed(f"No puedes tener más de {settings.max_wishes_per_user} deseos")

    wish = Wish(
        user_id=owner.id,
        title=payload.title,
        description=payload.description,
        image=payload.image,
        purchase_link=str(payload.purchase_link) if payload.purchase_link else None,
        position=existing + 1,
        is_reserved=False,
    )
    db.add(wish)
    await db.commit()
    await db.refresh(wish)
    logger.info("Wish created id=%s owner=%s position=%s", wish.id, owner.id, wish.position)
    return wish


async def update_wish(db: AsyncSession, owner: User, wish_id: int, payload: WishUpdate) -> Wish:
    wish = await _get_own(db, owner.id, wish_id)
    changes = payload.model_dump(exclude_unset=True)
    if "purchase_link" in changes:
        changes["purchase_link"] = str(payload.purchase_link) if payload.purchase_link else None
    for field, value in changes.items():
        if field in ("title", "description") and value is None:
            continue
        setattr(wish, field, value)
    wish.updated_at = utcnow()
    await db.commit()
    await db.refresh(wish)
    logger.info("Wish updated id=%s owner=%s fields=%s", wish.id, owner.id, sorted(changes))
    return wish


async def _compact_positions(db: AsyncSession, owner_id: int) -> None:
    for index, wish in enumerate(await list_for_user(db, owner_id), start=1):
        if wish.position != index:
            wish.position = index


async def delete_wish(db: AsyncSession, owner: User, wish_id: int) -> None:
    wish = await _get_own(db, owner.id, wish_id)
    reserver_id = wish.reserved_by
    title = wish.title

    await db.delete(wish)
    await db.flush()
    await _compact_positions(db, owner.id)
    await db.commit()
    logger.info("Wish deleted id=%s owner=%s", wish_id, owner.id)

    if reserver_id is not None:
        owner_name = notifications.display_name(owner)
        await notifications.notify(
            db,
            user_id=reserver_id,
            type=NotificationTypeEnum.WISH_DELETED_BY_CONTACT,
            title="Deseo eliminado",
            message=f'{owner_name} eliminó el deseo "{title}" que habías reservado',
            related_user_id=owner.id,
            metadata={"ownerName": owner_name, "wishTitle": title},
        )


async def reorder(db: AsyncSession, owner: User, wish_ids: list[int]) -> list[Wish]:
    if not wish_ids:
        raise ValidationFailed("Lista de IDs de deseos requerida")

    wishes = {wish.id: wish for wish in await list_for_user(db, owner.id)}
    unknown = [wish_id for wish_id in wish_ids if wish_id not in wishes]
    if unknown or len(set(wish_ids)) != len(wish_ids):
        raise ValidationFailed("Lista de IDs de deseos inválida")

    position = 1
    for wish_id in wish_ids:
        wishes.pop(wish_id).position = position
        position += 1
    # Wishes missing from the list keep their relative order after the listed ones
    for wish in sorted(wishes.values(), key=lambda item: (item.position, item.id)):
        wish.position = position
        position += 1

    await db.commit()
    return await list_for_user(db, owner.id)


async def reserve(db: AsyncSession, reserver: User, wish_id: int) -> Wish:
    wish = await db.get(Wish, wish_id)
    if wish is None:
        raise NotFoundError("Deseo no encontrado")
    if wish.user_id == reserver.id:
        raise ValidationFailed("No puedes reservar tu propio deseo")

    # Conditional write: of any number of concurrent attempts exactly one matches
    result = await db.execute(
        update(Wish)
        .where(Wish.id == wish_id, Wish.is_reserved.is_(False))
        .values(is_reserved=True, reserved_by=reserver.id, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        await db.rollback()
        raise Conflict("Este deseo ya está reservado")
    await db.commit()
    await db.refresh(wish)
    logger.info("Wish reserved id=%s by=%s owner=%s", wish.id, reserver.id, wish.user_id)

    await notifications.notify_wish_reserved(
        db,
        owner_id=wish.user_id,
        reserver=reserver,
        wish_id=wish.id,
        wish_title=wish.title,
    )
    return wish


async def cancel_reservation(db: AsyncSession, caller: User, wish_id: int) -> Wish:
    wish = await db.get(Wish, wish_id)
    if wish is None:
        raise NotFoundError("Deseo no encontrado")
    if wish.reserved_by != caller.id:
        raise Forbidden("No tienes permisos para cancelar esta reserva")

    result = await db.execute(
        update(Wish)
        .where(Wish.id == wish_id, Wish.reserved_by == caller.id)
        .values(is_reserved=False, reserved_by=None, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        await db.rollback()
        raise Forbidden("No tienes permisos para cancelar esta reserva")
    await db.commit()
    await db.refresh(wish)
    logger.info("Wish reservation cancelled id=%s by=%s", wish.id, caller.id)

    await notifications.notify_wish_cancelled(
        db,
        owner_id=wish.user_id,
        reserver=caller,
        wish_id=wish.id,
        wish_title=wish.title,
    )
    return wish
