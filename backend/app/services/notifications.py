"""Notification records: creation helpers and recipient-scoped queries."""

import logging
from typing import Any

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.errors import NotFoundError
from app.models.models import Contact, ContactStatusEnum, Notification, NotificationTypeEnum, User


logger = logging.getLogger("gifiti.notifications")

RESERVATION_TYPES = (
    NotificationTypeEnum.WISH_RESERVED.value,
    NotificationTypeEnum.WISH_CANCELLED.value,
)

# Everything shown in the "avisos" panel; reservation events have their own bell.
AVISO_TYPES = (
    NotificationTypeEnum.CONTACT_DELETED.value,
    NotificationTypeEnum.WISH_VIEWED.value,
    NotificationTypeEnum.WISH_DELETED_BY_CONTACT.value,
    NotificationTypeEnum.ADDRESS_CHANGED.value,
    NotificationTypeEnum.ACCOUNT_DELETED.value,
    NotificationTypeEnum.WISH_ADDED.value,
    NotificationTypeEnum.WISH_MODIFIED.value,
    NotificationTypeEnum.CONTACT_REQUEST.value,
    NotificationTypeEnum.BIRTHDAY_REMINDER.value,
)

EXAMPLE_TITLES = ("Nuevo contacto", "Nuevo deseo", "Bienvenido a GiFiTi")
EXAMPLE_TYPES = ("contact_request", "wish_created", "welcome")


def display_name(user: User | None) -> str:
    if user is None:
        return "Usuario"
    return user.real_name or user.nickname or "Usuario"


def add_notification(
    db: AsyncSession,
    *,
    user_id: int,
    type: NotificationTypeEnum,
    title: str,
    message: str,
    related_user_id: int | None = None,
    related_wish_id: int | None = None,
    metadata: dict[str, Any] | None = None,
) -> Notification:
    """Stage a notification in the caller's transaction."""
    notification = Notification(
        user_id=user_id,
        type=type.value,
        title=title,
        message=message,
        is_read=False,
        related_user_id=related_user_id,
        related_wish_id=related_wish_id,
        extra=metadata,
    )
    db.add(notification)
    return notification


async def notify_many(db: AsyncSession, items: list[dict[str, Any]]) -> list[Notification]:
    """Create and commit notifications after the primary change is committed.

    The writes go through a separate session on the same engine. Failures are
    logged and swallowed: the operation that triggered the notifications has
    already succeeded and the caller's session is left untouched.
    """
    async with AsyncSession(bind=db.bind, expire_on_commit=False) as side:
        created = [add_notification(side, **item) for item in items]
        try:
            await side.commit()
        except SQLAlchemyError:
            await side.rollback()
            logger.exception(
                "Notification create failed types=%s user_ids=%s",
                [item.get("type") for item in items],
                [item.get("user_id") for item in items],
            )
            return []
    for notification in created:
        logger.debug("Notification created id=%s type=%s user_id=%s", notification.id, notification.type, notification.user_id)
    return created


async def notify(db: AsyncSession, **kwargs: Any) -> Notification | None:
    created = await notify_many(db, [kwargs])
    return created[0] if created else None


async def notify_wish_reserved(db: AsyncSession, *, owner_id: int, reserver: User, wish_id: int, wish_title: str) -> Notification | None:
    reserver_name = display_name(reserver)
    return await notify(
        db,
        user_id=owner_id,
        type=NotificationTypeEnum.WISH_RESERVED,
        title="¡Tu deseo ha sido reservado!",
        message=f'{reserver_name} ha reservado tu deseo "{wish_title}"',
        related_user_id=reserver.id,
        related_wish_id=wish_id,
        metadata={"reserverName": reserver_name, "wishTitle": wish_title},
    )


async def notify_wish_cancelled(db: AsyncSession, *, owner_id: int, reserver: User, wish_id: int, wish_title: str) -> Notification | None:
    reserver_name = display_name(reserver)
    return await notify(
        db,
        user_id=owner_id,
        type=NotificationTypeEnum.WISH_CANCELLED,
        title="Reserva cancelada",
        message=f'{reserver_name} ha cancelado la reserva de tu deseo "{wish_title}"',
        related_user_id=reserver.id,
        related_wish_id=wish_id,
        metadata={"reserverName": reserver_name, "wishTitle": wish_title},
    )


async def notify_contact_request(db: AsyncSession, *, recipient_id: int, requester: User) -> Notification | None:
    requester_name = display_name(requester)
    return await notify(
        db,
        user_id=recipient_id,
        type=NotificationTypeEnum.CONTACT_REQUEST,
        title="Nueva solicitud de contacto",
        message=f"{requester_name} quiere agregarte como contacto",
        related_user_id=requester.id,
        metadata={"requesterName": requester_name, "requesterNickname": requester.nickname},
    )


async def list_notifications(
    db: AsyncSession,
    user_id: int,
    *,
    page: int,
    limit: int,
    types: tuple[str, ...] | None = None,
) -> tuple[list[Notification], int]:
    conditions = [Notification.user_id == user_id]
    if types is not None:
        conditions.append(Notification.type.in_(types))

    total = await db.scalar(select(func.count(Notification.id)).where(*conditions)) or 0
    result = await db.execute(
        select(Notification)
        .where(*conditions)
        .options(selectinload(Notification.related_user), selectinload(Notification.related_wish))
        .order_by(Notification.created_at.desc(), Notification.id.desc())
        .limit(limit)
        .offset((page - 1) * limit)
    )
    return list(result.scalars().all()), total


async def unread_count(db: AsyncSession, user_id: int, types: tuple[str, ...] | None = None) -> int:
    conditions = [Notification.user_id == user_id, Notification.is_read.is_(False)]
    if types is not None:
        conditions.append(Notification.type.in_(types))
    return await db.scalar(select(func.count(Notification.id)).where(*conditions)) or 0


async def _get_owned(db: AsyncSession, user_id: int, notification_id: int) -> Notification:
    notification = await db.scalar(
        select(Notification).where(
            Notification.id == notification_id,
            Notification.user_id == user_id,
        )
    )
    if notification is None:
        raise NotFoundError("Notificación no encontrada")
    return notification


async def mark_read(db: AsyncSession, user_id: int, notification_id: int) -> Notification:
    notification = await _get_owned(db, user_id, notification_id)
    notification.is_read = True
    await db.commit()
    await db.refresh(notification)
    return notification


async def mark_all_read(db: AsyncSession, user_id: int) -> int:
    result = await db.execute(
        update(Notification)
        .where(Notification.user_id == user_id, Notification.is_read.is_(False))
        .values(is_read=True)
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    return result.rowcount or 0


async def delete_notification(db: AsyncSession, user_id: int, notification_id: int) -> None:
    notification = await _get_owned(db, user_id, notification_id)
    await db.delete(notification)
    await db.commit()


async def cleanup_example_notifications(db: AsyncSession, user_id: int) -> int:
    result = await db.execute(
        delete(Notification)
        .where(
            Notification.user_id == user_id,
            or_(
                Notification.title.in_(EXAMPLE_TITLES),
                Notification.type.in_(EXAMPLE_TYPES),
            ),
        )
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    deleted = result.rowcount or 0
    logger.info("Example notifications removed user_id=%s count=%s", user_id, deleted)
    return deleted


async def notify_address_changed(db: AsyncSession, user: User) -> int:
    """Tell every accepted contact that ``user`` changed their address. Best-effort."""
    result = await db.execute(
        select(Contact).where(
            or_(Contact.user_id == user.id, Contact.contact_id == user.id),
            Contact.status == ContactStatusEnum.ACCEPTED.value,
        )
    )
    recipients = [edge.other_party(user.id) for edge in result.scalars().all()]
    if not recipients:
        return 0

    name = display_name(user)
    created = await notify_many(
        db,
        [
            {
                "user_id": recipient_id,
                "type": NotificationTypeEnum.ADDRESS_CHANGED,
                "title": "Dirección actualizada",
                "message": f"{name} actualizó su dirección",
                "related_user_id": user.id,
                "metadata": {"contactName": name},
            }
            for recipient_id in recipients
        ],
    )
    return len(created)
