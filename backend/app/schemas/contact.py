from datetime import date, datetime
from typing import Literal

from pydantic import Field

from app.models.models import ContactStatusEnum
from app.schemas.auth import UserSummary
from app.schemas.common import CamelModel, PageMeta


class ContactRequestCreate(CamelModel):
    user_id: int = Field(gt=0)


class ContactInvitationCreate(CamelModel):
    contact_id: int = Field(gt=0)


class InvitationResponse(CamelModel):
    # id of the user who sent the invitation
    contact_id: int = Field(gt=0)
    response: Literal["accepted", "rejected"]


class ContactPublic(CamelModel):
    id: int
    user_id: int
    contact_id: int
    status: ContactStatusEnum
    blocked_by: int | None = None
    deleted_at: datetime | None = None
    created_at: datetime
    updated_at: datetime
    # Requester of the relationship
    user: UserSummary | None = None
    # The other party, seen from the caller
    contact: UserSummary | None = None


class ContactWithBirthday(ContactPublic):
    days_until_birthday: int


class UserSearchPage(PageMeta):
    data: list[UserSummary]


class InvitationResult(CamelModel):
    invitation: ContactPublic
    response: str | None = None
    message: str


class CountPayload(CamelModel):
    count: int


class BirthdayNotice(CamelModel):
    id: str
    contact_id: int
    contact_name: str
    contact_nickname: str
    contact_image: str | None = None
    birthday_date: date
    days_until: int
    read: bool = False
    created_at: datetime
