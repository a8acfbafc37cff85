"""Contact relationship state machine.

Exactly one row links any two users. ``user_id`` sent the request and
``contact_id`` received it; the ordered ``(pair_low, pair_high)`` columns let
the database reject a second row for the same pair in either direction.

    pending -> accepted | rejected       (addressee only)
    accepted -> blocked                  (either party)
    blocked -> (row removed)             (only whoever blocked)
    non-blocked -> (row removed)         (either party, deletion cascade)
"""

import logging
from datetime import date

from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.errors import Conflict, NotFoundError, ValidationFailed
from app.models.models import Contact, ContactStatusEnum, User, utcnow
from app.schemas.auth import UserSummary
from app.schemas.contact import ContactPublic, ContactWithBirthday
from app.services import contact_management, notifications
from app.services.birthdays import days_until_birthday


logger = logging.getLogger("gifiti.contacts")

NO_BIRTHDAY_DAYS = 999


def pair_key(first_id: int, second_id: int) -> tuple[int, int]:
    return (first_id, second_id) if first_id < second_id else (second_id, first_id)


def _with_parties(stmt):
    return stmt.options(selectinload(Contact.requester), selectinload(Contact.addressee))


def _involving(user_id: int):
    return or_(Contact.user_id == user_id, Contact.contact_id == user_id)


def to_public(contact: Contact, viewer_id: int) -> ContactPublic:
    other = contact.addressee if contact.user_id == viewer_id else contact.requester
    return ContactPublic(
        id=contact.id,
        user_id=contact.user_id,
        contact_id=contact.contact_id,
        status=ContactStatusEnum(contact.status),
        blocked_by=contact.blocked_by,
        deleted_at=contact.deleted_at,
        created_at=contact.created_at,
        updated_at=contact.updated_at,
        user=UserSummary.model_validate(contact.requester) if contact.requester else None,
        contact=UserSummary.model_validate(other) if other else None,
    )


async def find_between(db: AsyncSession, first_id: int, second_id: int) -> Contact | None:
    low, high = pair_key(first_id, second_id)
    return await db.scalar(
        select(Contact).where(Contact.pair_low == low, Contact.pair_high == high)
    )


async def load_contact(db: AsyncSession, contact_row_id: int) -> Contact | None:
    result = await db.execute(
        _with_parties(select(Contact))
        .where(Contact.id == contact_row_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def _get_involving(db: AsyncSession, caller_id: int, contact_row_id: int) -> Contact | None:
    return await db.scalar(
        select(Contact).where(Contact.id == contact_row_id, _involving(caller_id))
    )


async def list_contacts(db: AsyncSession, caller_id: int) -> list[Contact]:
    result = await db.execute(
        _with_parties(select(Contact))
        .where(_involving(caller_id))
        .order_by(Contact.created_at.desc(), Contact.id.desc())
    )
    return list(result.scalars().all())


async def list_contacts_by_birthday(
    db: AsyncSession,
    caller_id: int,
    today: date | None = None,
) -> list[ContactWithBirthday]:
    result = await db.execute(
        _with_parties(select(Contact)).where(
            _involving(caller_id),
            Contact.status == ContactStatusEnum.ACCEPTED.value,
        )
    )
    items: list[ContactWithBirthday] = []
    for contact in result.scalars().all():
        other = contact.addressee if contact.user_id == caller_id else contact.requester
        days = (
            days_until_birthday(other.birth_date, today)
            if other is not None and other.birth_date is not None
            else NO_BIRTHDAY_DAYS
        )
        items.append(
            ContactWithBirthday(
                **to_public(contact, caller_id).model_dump(),
                days_until_birthday=days,
            )
        )
    items.sort(key=lambda item: item.days_until_birthday)
    return items


async def list_pending(db: AsyncSession, caller_id: int) -> list[Contact]:
    result = await db.execute(
        _with_parties(select(Contact))
        .where(
            Contact.contact_id == caller_id,
            Contact.status == ContactStatusEnum.PENDING.value,
        )
        .order_by(Contact.created_at.desc(), Contact.id.desc())
    )
    return list(result.scalars().all())


async def list_sent(db: AsyncSession, caller_id: int) -> list[Contact]:
    result = await db.execute(
        _with_parties(select(Contact))
        .where(
            Contact.user_id == caller_id,
            Contact.status == ContactStatusEnum.PENDING.value,
        )
        .order_by(Contact.created_at.desc(), Contact.id.desc())
    )
    return list(result.scalars().all())


async def list_blocked(db: AsyncSession, caller_id: int) -> list[Contact]:
    result = await db.execute(
        _with_parties(select(Contact))
        .where(
            Contact.blocked_by == caller_id,
            Contact.status == ContactStatusEnum.BLOCKED.value,
        )
        .order_by(Contact.updated_at.desc(), Contact.id.desc())
    )
    return list(result.scalars().all())


async def count_pending(db: AsyncSession, caller_id: int) -> int:
    return await db.scalar(
        select(func.count(Contact.id)).where(
            Contact.contact_id == caller_id,
            Contact.status == ContactStatusEnum.PENDING.value,
        )
    ) or 0


async def search_users_to_add(
    db: AsyncSession,
    caller_id: int,
    query: str | None,
    *,
    page: int,
    limit: int,
) -> tuple[list[User], int]:
    term = (query or "").strip()
    if not term:
        raise ValidationFailed("Parámetro de búsqueda requerido")

    linked_requested = select(Contact.contact_id).where(Contact.user_id == caller_id)
    linked_received = select(Contact.user_id).where(Contact.contact_id == caller_id)
    pattern = f"%{term}%"
    conditions = [
        User.id != caller_id,
        User.id.not_in(linked_requested),
        User.id.not_in(linked_received),
        or_(
            User.nickname.ilike(pattern),
            User.real_name.ilike(pattern),
            User.email.ilike(pattern),
        ),
    ]

    total = await db.scalar(select(func.count(User.id)).where(*conditions)) or 0
    result = await db.execute(
        select(User)
        .where(*conditions)
        .order_by(User.nickname)
        .limit(limit)
        .offset((page - 1) * limit)
    )
    return list(result.scalars().all()), total


async def send_request(db: AsyncSession, requester: User, target_id: int) -> Contact:
    if target_id == requester.id:
        raise ValidationFailed("No puedes agregarte a ti mismo como contacto")

    target = await db.get(User, target_id)
    if target is None:
        raise NotFoundError("Usuario no encontrado")

    if await find_between(db, requester.id, target_id) is not None:
        raise Conflict("Ya existe una relación de contacto con este usuario")

    low, high = pair_key(requester.id, target_id)
    contact = Contact(
        user_id=requester.id,
        contact_id=target_id,
        pair_low=low,
        pair_high=high,
        status=ContactStatusEnum.PENDING.value,
    )
    db.add(contact)
    try:
        await db.commit()
    except IntegrityError:
        # Lost a race with a request in the opposite direction
        await db.rollback()
        raise Conflict("Ya existe una relación de contacto con este usuario") from None

    logger.info("Contact requested id=%s from=%s to=%s", contact.id, requester.id, target_id)
    contact_row_id = contact.id
    await notifications.notify_contact_request(db, recipient_id=target_id, requester=requester)
    return await load_contact(db, contact_row_id)


async def _answer_pending(
    db: AsyncSession,
    caller_id: int,
    contact_row_id: int,
    new_status: ContactStatusEnum,
) -> Contact:
    result = await db.execute(
        update(Contact)
        .where(
            Contact.id == contact_row_id,
            Contact.contact_id == caller_id,
            Contact.status == ContactStatusEnum.PENDING.value,
        )
        .values(status=new_status.value, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        await db.rollback()
        raise NotFoundError("Solicitud de contacto no encontrada")
    await db.commit()
    logger.info("Contact %s id=%s by=%s", new_status.value, contact_row_id, caller_id)
    return await load_contact(db, contact_row_id)


async def accept(db: AsyncSession, caller_id: int, contact_row_id: int) -> Contact:
    return await _answer_pending(db, caller_id, contact_row_id, ContactStatusEnum.ACCEPTED)


async def reject(db: AsyncSession, caller_id: int, contact_row_id: int) -> Contact:
    return await _answer_pending(db, caller_id, contact_row_id, ContactStatusEnum.REJECTED)


async def respond_to_invitation(
    db: AsyncSession,
    caller_id: int,
    requester_id: int,
    response: str,
) -> Contact:
    contact = await db.scalar(
        select(Contact).where(
            Contact.user_id == requester_id,
            Contact.contact_id == caller_id,
            Contact.status == ContactStatusEnum.PENDING.value,
        )
    )
    if contact is None:
        raise NotFoundError("Solicitud de contacto no encontrada")
    new_status = ContactStatusEnum(response)
    return await _answer_pending(db, caller_id, contact.id, new_status)


async def remove(db: AsyncSession, caller: User, contact_row_id: int) -> Contact:
    contact = await _get_involving(db, caller.id, contact_row_id)
    if contact is None or contact.status == ContactStatusEnum.BLOCKED.value:
        raise NotFoundError("Contacto no encontrado")
    await contact_management.delete_contact(db, caller, contact)
    return contact


async def block(db: AsyncSession, caller: User, contact_row_id: int) -> Contact:
    contact = await _get_involving(db, caller.id, contact_row_id)
    if contact is None or contact.status != ContactStatusEnum.ACCEPTED.value:
        raise NotFoundError("Contacto no encontrado")

    other_id = contact.other_party(caller.id)
    try:
        cancelled = await contact_management.cancel_reservations_between(
            db,
            caller.id,
            other_id,
            reason="contact_blocked",
        )
        now = utcnow()
        contact.status = ContactStatusEnum.BLOCKED.value
        contact.blocked_by = caller.id
        contact.deleted_at = now
        contact.updated_at = now
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        logger.exception("Contact block failed id=%s by=%s", contact_row_id, caller.id)
        raise

    logger.info(
        "Contact blocked id=%s by=%s other=%s reservations_cancelled=%s",
        contact_row_id,
        caller.id,
        other_id,
        cancelled,
    )
    return await load_contact(db, contact_row_id)


async def unblock(db: AsyncSession, caller_id: int, contact_row_id: int) -> None:
    contact = await db.scalar(
        select(Contact).where(
            Contact.id == contact_row_id,
            Contact.blocked_by == caller_id,
            Contact.status == ContactStatusEnum.BLOCKED.value,
        )
    )
    if contact is None:
        raise NotFoundError("Contacto bloqueado no encontrado")
    await db.delete(contact)
    await db.commit()
    logger.info("Contact unblocked id=%s by=%s", contact_row_id, caller_id)
