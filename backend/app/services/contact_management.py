"""Deletion cascade for contacts and accounts.

Each public operation stages every change in the caller's session and commits
once, so a failure leaves no half-removed relationship behind.
"""

import logging

from sqlalchemy import and_, delete, or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.models import (
    Contact,
    Notification,
    NotificationTypeEnum,
    PrivacySettings,
    ReputationVote,
    User,
    Wish,
    utcnow,
)
from app.services.notifications import add_notification, display_name


logger = logging.getLogger("gifiti.contact_management")


async def cancel_reservations_between(
    db: AsyncSession,
    first_id: int,
    second_id: int,
    *,
    reason: str,
) -> int:
    """Release reservations either user holds on the other's wishes.

    Each wish owner gets a ``wish_cancelled`` notification. Nothing is
    committed here.
    """
    result = await db.execute(
        select(Wish).where(
            or_(
                and_(Wish.user_id == first_id, Wish.reserved_by == second_id),
                and_(Wish.user_id == second_id, Wish.reserved_by == first_id),
            )
        )
    )
    wishes = list(result.scalars().all())
    if not wishes:
        return 0

    names = {
        first_id: display_name(await db.get(User, first_id)),
        second_id: display_name(await db.get(User, second_id)),
    }
    for wish in wishes:
        reserver_id = wish.reserved_by
        reserver_name = names[reserver_id]
        wish.is_reserved = False
        wish.reserved_by = None
        wish.updated_at = utcnow()
        add_notification(
            db,
            user_id=wish.user_id,
            type=NotificationTypeEnum.WISH_CANCELLED,
            title="Reserva cancelada",
            message=f'{reserver_name} ya no tiene reservado tu deseo "{wish.title}"',
            related_user_id=reserver_id,
            related_wish_id=wish.id,
            metadata={
                "reserverName": reserver_name,
                "wishTitle": wish.title,
                "cancellationReason": reason,
            },
        )
    logger.info(
        "Reservations cancelled between users=%s,%s count=%s reason=%s",
        first_id,
        second_id,
        len(wishes),
        reason,
    )
    return len(wishes)


async def delete_contact(db: AsyncSession, caller: User, contact: Contact) -> int:
    """Remove a contact edge, releasing cross reservations and telling the other party."""
    other_id = contact.other_party(caller.id)
    caller_name = display_name(caller)
    try:
        cancelled = await cancel_reservations_between(
            db,
            caller.id,
            other_id,
            reason="contact_deleted",
        )
        add_notification(
            db,
            user_id=other_id,
            type=NotificationTypeEnum.CONTACT_DELETED,
            title="Contacto eliminado",
            message=f"{caller_name} te eliminó de sus contactos",
            related_user_id=caller.id,
            metadata={"deletedByName": caller_name, "reservationsCancelled": cancelled},
        )
        await db.delete(contact)
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        logger.exception("Contact delete failed id=%s by=%s", contact.id, caller.id)
        raise

    logger.info(
        "Contact deleted id=%s by=%s other=%s reservations_cancelled=%s",
        contact.id,
        caller.id,
        other_id,
        cancelled,
    )
    return cancelled


async def delete_account(db: AsyncSession, user: User) -> None:
    user_id = user.id
    user_name = display_name(user)

    try:
        edges = list(
            (
                await db.execute(
                    select(Contact).where(
                        or_(Contact.user_id == user_id, Contact.contact_id == user_id)
                    )
                )
            ).scalars().all()
        )
        linked_ids = sorted({edge.other_party(user_id) for edge in edges})
        for linked_id in linked_ids:
            add_notification(
                db,
                user_id=linked_id,
                type=NotificationTypeEnum.ACCOUNT_DELETED,
                title="Contacto eliminado",
                message=f"{user_name} eliminó su cuenta",
                metadata={"deletedUserName": user_name, "deletedUserNickname": user.nickname},
            )

        # Reservations other people hold on this user's wishes
        own_reserved = (
            await db.execute(
                select(Wish).where(Wish.user_id == user_id, Wish.reserved_by.is_not(None))
            )
        ).scalars().all()
        for wish in own_reserved:
            add_notification(
                db,
                user_id=wish.reserved_by,
                type=NotificationTypeEnum.WISH_CANCELLED,
                title="Reserva cancelada",
                message=f'{user_name} eliminó su cuenta y el deseo "{wish.title}" ya no está disponible',
                metadata={
                    "ownerName": user_name,
                    "wishTitle": wish.title,
                    "cancellationReason": "account_deleted",
                },
            )

        # Reservations this user holds on other people's wishes
        held = (
            await db.execute(select(Wish).where(Wish.reserved_by == user_id))
        ).scalars().all()
        for wish in held:
            wish.is_reserved = False
            wish.reserved_by = None
            wish.updated_at = utcnow()
            add_notification(
                db,
                user_id=wish.user_id,
                type=NotificationTypeEnum.WISH_CANCELLED,
                title="Reserva cancelada",
                message=f'{user_name} eliminó su cuenta y canceló la reserva de tu deseo "{wish.title}"',
                related_wish_id=wish.id,
                metadata={
                    "reserverName": user_name,
                    "wishTitle": wish.title,
                    "cancellationReason": "account_deleted",
                },
            )

        await db.flush()

        own_wish_ids = select(Wish.id).where(Wish.user_id == user_id)
        await db.execute(
            update(Notification)
            .where(Notification.related_user_id == user_id)
            .values(related_user_id=None)
            .execution_options(synchronize_session=False)
        )
        await db.execute(
            update(Notification)
            .where(Notification.related_wish_id.in_(own_wish_ids))
            .values(related_wish_id=None)
            .execution_options(synchronize_session=False)
        )
        await db.execute(
            delete(Notification)
            .where(Notification.user_id == user_id)
            .execution_options(synchronize_session=False)
        )
        await db.execute(
            delete(Contact)
            .where(or_(Contact.user_id == user_id, Contact.contact_id == user_id))
            .execution_options(synchronize_session=False)
        )
        await db.execute(
            delete(ReputationVote)
            .where(or_(ReputationVote.from_user_id == user_id, ReputationVote.to_user_id == user_id))
            .execution_options(synchronize_session=False)
        )
        await db.execute(
            delete(PrivacySettings)
            .where(PrivacySettings.user_id == user_id)
            .execution_options(synchronize_session=False)
        )
        await db.execute(
            delete(Wish).where(Wish.user_id == user_id).execution_options(synchronize_session=False)
        )
        await db.execute(
            delete(User).where(User.id == user_id).execution_options(synchronize_session=False)
        )
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        logger.exception("Account delete failed user_id=%s", user_id)
        raise

    logger.info(
        "Account deleted user_id=%s contacts_notified=%s reservations_released=%s",
        user_id,
        len(linked_ids),
        len(own_reserved) + len(held),
    )


async def cleanup_orphaned_contacts(db: AsyncSession) -> int:
    """Delete contact rows whose requester or addressee no longer exists."""
    existing_ids = select(User.id)
    result = await db.execute(
        delete(Contact)
        .where(
            or_(
                Contact.user_id.not_in(existing_ids),
                Contact.contact_id.not_in(existing_ids),
            )
        )
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    removed = result.rowcount or 0
    logger.info("Orphaned contacts removed count=%s", removed)
    return removed
