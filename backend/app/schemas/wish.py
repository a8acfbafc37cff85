from datetime import datetime

from pydantic import AliasChoices, Field, HttpUrl, field_validator

from app.schemas.auth import UserSummary
from app.schemas.common import CamelModel, PageMeta


class WishBase(CamelModel):
    title: str = Field(min_length=1, max_length=100)
    description: str = Field(min_length=1, max_length=500)
    purchase_link: HttpUrl | None = None
    image: str | None = None

    @field_validator("title", "description")
    @classmethod
    def _strip_text(cls, value: str) -> str:
        return value.strip()

    @field_validator("purchase_link", "image", mode="before")
    @classmethod
    def _blank_to_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value


class WishCreate(WishBase):
    pass


class WishUpdate(CamelModel):
    title: str | None = Field(default=None, min_length=1, max_length=100)
    description: str | None = Field(default=None, min_length=1, max_length=500)
    purchase_link: HttpUrl | None = None
    image: str | None = None


class WishReorder(CamelModel):
    wish_ids: list[int]


class WishPublic(CamelModel):
    id: int
    user_id: int
    title: str
    description: str
    image: str | None = None
    purchase_link: str | None = None
    position: int
    is_reserved: bool
    reserved_by: int | None = None
    created_at: datetime
    updated_at: datetime


class WishWithOwner(WishPublic):
    owner: UserSummary | None = Field(
        default=None,
        validation_alias=AliasChoices("owner", "user"),
        serialization_alias="user",
    )


class WishExplorePage(PageMeta):
    data: list[WishWithOwner]
