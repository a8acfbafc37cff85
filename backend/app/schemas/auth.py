from datetime import date, datetime

from pydantic import EmailStr, Field, field_validator

from app.schemas.common import CamelModel


def _strip(value: str | None) -> str | None:
    if value is None:
        return None
    normalized = value.strip()
    return normalized or None


class LoginRequest(CamelModel):
    email: EmailStr
    password: str = Field(min_length=1, max_length=128)


class RegisterRequest(CamelModel):
    email: EmailStr
    password: str = Field(min_length=8, max_length=128)
    nickname: str = Field(min_length=3, max_length=30)
    real_name: str = Field(min_length=2, max_length=50)
    birth_date: date

    @field_validator("nickname", "real_name")
    @classmethod
    def _strip_names(cls, value: str) -> str:
        return value.strip()


class UserSummary(CamelModel):
    id: int
    nickname: str
    real_name: str
    profile_image: str | None = None
    birth_date: date | None = None


class UserPublic(CamelModel):
    id: int
    email: EmailStr
    nickname: str
    real_name: str
    birth_date: date | None = None
    profile_image: str | None = None
    city: str | None = None
    province: str | None = None
    country: str | None = None
    postal_address: str | None = None
    age: int | None = None
    created_at: datetime
    updated_at: datetime


class AuthPayload(CamelModel):
    user: UserPublic
    token: str


class UserUpdate(CamelModel):
    nickname: str | None = Field(default=None, min_length=3, max_length=30)
    real_name: str | None = Field(default=None, min_length=2, max_length=50)
    birth_date: date | None = None
    profile_image: str | None = None
    city: str | None = None
    province: str | None = None
    country: str | None = None
    postal_address: str | None = None
    age: int | None = Field(default=None, ge=0, le=150)

    @field_validator("nickname", "real_name", "city", "province", "country", "postal_address")
    @classmethod
    def _strip_text(cls, value: str | None) -> str | None:
        return _strip(value)


class EmailCheck(CamelModel):
    exists: bool


class UserCount(CamelModel):
    count: int
    timestamp: datetime
