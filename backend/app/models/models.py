from datetime import date, datetime, timezone
from enum import Enum as StrEnumBase
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.session import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ContactStatusEnum(str, StrEnumBase):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    BLOCKED = "blocked"


class NotificationTypeEnum(str, StrEnumBase):
    WISH_RESERVED = "wish_reserved"
    WISH_CANCELLED = "wish_cancelled"
    CONTACT_REQUEST = "contact_request"
    BIRTHDAY_REMINDER = "birthday_reminder"
    CONTACT_DELETED = "contact_deleted"
    ACCOUNT_DELETED = "account_deleted"
    WISH_VIEWED = "wish_viewed"
    WISH_DELETED_BY_CONTACT = "wish_deleted_by_contact"
    ADDRESS_CHANGED = "address_changed"
    WISH_ADDED = "wish_added"
    WISH_MODIFIED = "wish_modified"


class VoteTypeEnum(str, StrEnumBase):
    POSITIVE = "positive"
    NEGATIVE = "negative"


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    email: Mapped[str] = mapped_column(String(320), unique=True, index=True, nullable=False)
    hashed_password: Mapped[str] = mapped_column(String(255), nullable=False)
    nickname: Mapped[str] = mapped_column(String(30), unique=True, index=True, nullable=False)
    real_name: Mapped[str] = mapped_column(String(50), nullable=False)
    birth_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    profile_image: Mapped[str | None] = mapped_column(String(512), nullable=True)
    city: Mapped[str | None] = mapped_column(String(120), nullable=True)
    province: Mapped[str | None] = mapped_column(String(120), nullable=True)
    country: Mapped[str | None] = mapped_column(String(120), nullable=True)
    postal_address: Mapped[str | None] = mapped_column(Text, nullable=True)
    age: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
    )

    wishes: Mapped[list["Wish"]] = relationship(
        back_populates="owner",
        foreign_keys="Wish.user_id",
    )
    privacy_settings: Mapped["PrivacySettings | None"] = relationship(
        back_populates="user",
        uselist=False,
    )

    __table_args__ = (
        CheckConstraint("age IS NULL OR (age >= 0 AND age <= 150)", name="ck_users_age_range"),
    )


class Contact(Base):
    """One row per unordered pair of users.

    ``user_id`` is the requester and ``contact_id`` the addressee; the pair
    columns hold ``(min, max)`` of the two ids so the database refuses a
    second row for the same two users in either direction.
    """

    __tablename__ = "contacts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    contact_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    pair_low: Mapped[int] = mapped_column(Integer, nullable=False)
    pair_high: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(String(20), default=ContactStatusEnum.PENDING.value, nullable=False)
    blocked_by: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True)
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
    )

    requester: Mapped[User] = relationship(foreign_keys=[user_id])
    addressee: Mapped[User] = relationship(foreign_keys=[contact_id])

    __table_args__ = (
        UniqueConstraint("pair_low", "pair_high", name="ux_contacts_pair"),
        CheckConstraint("pair_low < pair_high", name="ck_contacts_pair_ordered"),
    )

    def other_party(self, user_id: int) -> int:
        return self.contact_id if self.user_id == user_id else self.user_id


class Wish(Base):
    __tablename__ = "wishes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str] = mapped_column(String(500), nullable=False)
    image: Mapped[str | None] = mapped_column(String(512), nullable=True)
    purchase_link: Mapped[str | None] = mapped_column(String(2048), nullable=True)
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    is_reserved: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    reserved_by: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
    )

    owner: Mapped[User] = relationship(back_populates="wishes", foreign_keys=[user_id])

    __table_args__ = (
        CheckConstraint("position >= 1", name="ck_wishes_position_positive"),
    )


class Notification(Base):
    __tablename__ = "notifications"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    type: Mapped[str] = mapped_column(String(40), nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    is_read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    related_user_id: Mapped[int | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    related_wish_id: Mapped[int | None] = mapped_column(
        ForeignKey("wishes.id", ondelete="SET NULL"), nullable=True
    )
    # "metadata" is reserved on declarative classes
    extra: Mapped[dict[str, Any] | None] = mapped_column("metadata", JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
    )

    related_user: Mapped[User | None] = relationship(foreign_keys=[related_user_id])
    related_wish: Mapped[Wish | None] = relationship(foreign_keys=[related_wish_id])


class PrivacySettings(Base):
    __tablename__ = "privacy_settings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), unique=True, nullable=False)
    show_age: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    show_email: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    show_all_wishes: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    show_contacts_list: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    show_mutual_friends: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    show_location: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    show_postal_address: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_public_profile: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
    )

    user: Mapped[User] = relationship(back_populates="privacy_settings")


class ReputationVote(Base):
    __tablename__ = "reputation_votes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    from_user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    to_user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    type: Mapped[str] = mapped_column(String(10), nullable=False)
    promise_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    from_user: Mapped[User] = relationship(foreign_keys=[from_user_id])

    __table_args__ = (
        CheckConstraint("type IN ('positive', 'negative')", name="ck_reputation_votes_type"),
    )
