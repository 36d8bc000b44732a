"""Shared DTO building blocks."""

from decimal import Decimal
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer
from pydantic.alias_generators import to_camel

# Money travels as a decimal string, never as a binary float
DecimalString = Annotated[
    Decimal,
    PlainSerializer(lambda value: str(value), return_type=str, when_used="json-unless-none"),
]

# Salary amounts: non-negative, at most 12 digits with 2 decimals
MoneyAmount = Annotated[
    Decimal,
    Field(ge=0, max_digits=12, decimal_places=2),
    PlainSerializer(lambda value: str(value), return_type=str, when_used="json-unless-none"),
]


class CamelModel(BaseModel):
    """Base DTO accepting and emitting camelCase keys.

    snake_case field names are accepted as well.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class Pagination(CamelModel):
    """Pagination block of list responses."""

    total: int
    page: int
    limit: int
    total_pages: int

    @classmethod
    def build(cls, total: int, page: int, limit: int) -> "Pagination":
        """Build pagination metadata; ``total_pages`` is ceil(total / limit)."""
        return cls(total=total, page=page, limit=limit, total_pages=-(-total // limit))
