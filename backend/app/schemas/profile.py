from datetime import date, datetime
from typing import Literal

from pydantic import Field

from app.schemas.auth import UserSummary
from app.schemas.common import CamelModel, PageMeta


class PrivacySettingsPublic(CamelModel):
    id: int
    user_id: int
    show_age: bool
    show_email: bool
    show_all_wishes: bool
    show_contacts_list: bool
    show_mutual_friends: bool
    show_location: bool
    show_postal_address: bool
    is_public_profile: bool
    created_at: datetime
    updated_at: datetime


class PrivacySettingsUpdate(CamelModel):
    show_age: bool | None = None
    show_email: bool | None = None
    show_all_wishes: bool | None = None
    show_contacts_list: bool | None = None
    show_mutual_friends: bool | None = None
    show_location: bool | None = None
    show_postal_address: bool | None = None
    is_public_profile: bool | None = None


class ProfileWishSummary(CamelModel):
    id: int
    title: str
    position: int


class ContactWish(CamelModel):
    id: int
    title: str
    description: str
    image: str | None = None
    position: int
    is_reserved: bool
    reserved_by: int | None = None


class ProfileVisibility(CamelModel):
    real_name: bool
    birth_date: bool
    age: bool
    email: bool
    location: bool
    address: bool
    wishes: bool


class ContactProfile(CamelModel):
    id: int
    nickname: str
    real_name: str | None = None
    profile_image: str | None = None
    birth_date: date | None = None
    age: int | None = None
    email: str | None = None
    city: str | None = None
    province: str | None = None
    country: str | None = None
    postal_address: str | None = None
    positive_votes: int
    negative_votes: int
    wishes_count: int
    wishes: list[ProfileWishSummary]
    is_public: ProfileVisibility


class VoteCreate(CamelModel):
    to_user_id: int = Field(gt=0)
    type: Literal["positive", "negative"]
    promise_id: str | None = Field(default=None, max_length=36)


class VotePublic(CamelModel):
    id: int
    from_user_id: int
    to_user_id: int
    type: str
    promise_id: str | None = None
    created_at: datetime


class VoteWithVoter(VotePublic):
    from_user: UserSummary | None = None


class ReputationStats(CamelModel):
    user_id: int
    positive_votes: int
    negative_votes: int
    total_votes: int


class VoteHistoryPage(PageMeta):
    votes: list[VoteWithVoter]
