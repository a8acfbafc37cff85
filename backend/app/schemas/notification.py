from datetime import datetime
from typing import Any

from pydantic import AliasChoices, Field

from app.schemas.auth import UserSummary
from app.schemas.common import CamelModel, PageMeta


class WishSummary(CamelModel):
    id: int
    title: str
    image: str | None = None


class NotificationPublic(CamelModel):
    id: int
    user_id: int
    type: str
    title: str
    message: str
    is_read: bool
    related_user_id: int | None = None
    related_wish_id: int | None = None
    extra: dict[str, Any] | None = Field(
        default=None,
        validation_alias=AliasChoices("extra", "metadata"),
        serialization_alias="metadata",
    )
    created_at: datetime
    updated_at: datetime


class NotificationDetail(NotificationPublic):
    related_user: UserSummary | None = None
    related_wish: WishSummary | None = None


class NotificationPage(PageMeta):
    notifications: list[NotificationDetail]


class AvisoPage(PageMeta):
    avisos: list[NotificationDetail]
    unread_count: int


class CleanupResult(CamelModel):
    deleted_count: int
