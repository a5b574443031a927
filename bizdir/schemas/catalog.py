"""Product, review and favorite schemas."""
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Annotated

from pydantic import BaseModel, ConfigDict, StringConstraints, field_validator

RequiredText = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


def not_null(value):
    """Reject an explicit null for a column that cannot hold one."""
    if value is None:
        raise ValueError("cannot be null")
    return value


class ProductView(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    business_id: uuid.UUID
    name: str
    description: str | None = None
    price: Decimal
    stock: int
    image_url: str | None = None
    active: bool = True
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ProductCreate(BaseModel):
    """
    New product.

    Price and stock bounds are checked by the database, not here.
    """

    model_config = ConfigDict(extra="forbid")

    id: uuid.UUID | None = None
    business_id: uuid.UUID
    name: RequiredText
    price: Decimal
    description: str | None = None
    stock: int = 0
    image_url: str | None = None
    active: bool = True
    created_at: datetime | None = None


class ProductUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: RequiredText | None = None
    description: str | None = None
    price: Decimal | None = None
    stock: int | None = None
    image_url: str | None = None
    active: bool | None = None

    @field_validator("name", "price", "stock", "active", mode="before")
    @classmethod
    def reject_null(cls, v):
        return not_null(v)


class ReviewView(BaseModel):
    """Review with the author's display fields."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    business_id: uuid.UUID
    user_id: uuid.UUID
    rating: int
    comment: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    full_name: str | None = None
    avatar_url: str | None = None


class ReviewCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: uuid.UUID | None = None
    business_id: uuid.UUID
    user_id: uuid.UUID
    rating: int
    comment: str | None = None
    created_at: datetime | None = None


class FavoriteBusinessView(BaseModel):
    id: uuid.UUID
    name: str
    description: str | None = None
    address: str | None = None
    city: str | None = None


class FavoriteView(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: uuid.UUID
    business_id: uuid.UUID
    created_at: datetime | None = None
    business: FavoriteBusinessView | None = None
