from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


T = TypeVar("T")


class CamelModel(BaseModel):
    """Base schema: snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class ApiResponse(CamelModel, Generic[T]):
    success: bool = True
    data: T | None = None
    message: str | None = None


class PageMeta(CamelModel):
    total: int
    page: int
    limit: int
    total_pages: int


def total_pages(total: int, limit: int) -> int:
    return (total + limit - 1) // limit if limit else 0
