"""Business and category schemas."""
import uuid
from datetime import datetime
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, StringConstraints, field_validator, model_validator

from bizdir.core.plans import SubscriptionPlan, DEFAULT_THEME_COLOR
from bizdir.schemas.catalog import ReviewView, not_null

RequiredText = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]
ThemeColor = Annotated[str, StringConstraints(pattern=r"^#[0-9A-Fa-f]{6}$")]


class CategoryView(BaseModel):
    """Category embedded in listings or returned on its own."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    description: str | None = None
    icon: str | None = None
    created_at: datetime | None = None


class CategoryCreate(BaseModel):
    """New category."""

    model_config = ConfigDict(extra="forbid")

    id: uuid.UUID | None = None
    name: RequiredText
    description: str | None = None
    icon: str | None = None


class OwnerView(BaseModel):
    """Owner display fields."""

    id: uuid.UUID
    full_name: str | None = None
    avatar_url: str | None = None


class BusinessImageView(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    business_id: uuid.UUID
    image_url: str
    is_primary: bool = False
    uploaded_at: datetime | None = None


class BusinessHoursInput(BaseModel):
    """Opening hours of one weekday (0 = Sunday)."""

    model_config = ConfigDict(extra="forbid")

    day_of_week: int = Field(ge=0, le=6)
    open_time: str | None = None
    close_time: str | None = None
    closed: bool = False


class BusinessHoursView(BusinessHoursInput):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    business_id: uuid.UUID


class SubscriptionView(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    business_id: uuid.UUID
    plan: SubscriptionPlan
    max_products: int
    max_images: int
    includes_video: bool = False
    includes_chat: bool = False
    status: str
    current_period_start: datetime | None = None
    current_period_end: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class BusinessRecord(BaseModel):
    """Flat business row."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    description: str | None = None
    category_id: uuid.UUID | None = None
    address: str
    postal_code: str
    city: str
    phone: str | None = None
    email: str | None = None
    website: str | None = None
    lat: float | None = None
    lng: float | None = None
    owner_id: uuid.UUID | None = None
    claimed: bool = False
    theme_color: str = DEFAULT_THEME_COLOR
    subscription_plan: SubscriptionPlan = SubscriptionPlan.FREE
    created_at: datetime | None = None
    updated_at: datetime | None = None


class BusinessSummary(BusinessRecord):
    """Business in a listing, with its category and review aggregate."""

    category: CategoryView | None = None
    review_count: int = 0
    average_rating: float = 0.0


class BusinessDetail(BusinessRecord):
    """Business page view model."""

    category: CategoryView | None = None
    owner: OwnerView | None = None
    images: list[BusinessImageView] = []
    hours: list[BusinessHoursView] = []
    reviews: list[ReviewView] = []
    subscription: SubscriptionView | None = None

    @property
    def review_count(self) -> int:
        return len(self.reviews)

    @property
    def average_rating(self) -> float:
        if not self.reviews:
            return 0.0
        return sum(review.rating for review in self.reviews) / len(self.reviews)


def _check_claim(owner_id: uuid.UUID | None, claimed: bool | None) -> None:
    if claimed is not None and claimed != (owner_id is not None):
        raise ValueError("claimed must be true exactly when owner_id is set")


class BusinessCreate(BaseModel):
    """New business; name, address and postal code are required."""

    model_config = ConfigDict(extra="forbid")

    id: uuid.UUID | None = None
    name: RequiredText
    address: RequiredText
    postal_code: RequiredText
    description: str | None = None
    category_id: uuid.UUID | None = None
    city: str = "Schiedam"
    phone: str | None = None
    email: str | None = None
    website: str | None = None
    lat: float | None = None
    lng: float | None = None
    owner_id: uuid.UUID | None = None
    claimed: bool | None = None
    theme_color: ThemeColor = DEFAULT_THEME_COLOR
    subscription_plan: SubscriptionPlan = SubscriptionPlan.FREE
    created_at: datetime | None = None

    @model_validator(mode="after")
    def derive_claimed(self) -> "BusinessCreate":
        _check_claim(self.owner_id, self.claimed)
        self.claimed = self.owner_id is not None
        return self


class BusinessUpdate(BaseModel):
    """Partial business update; only the fields that were set are written."""

    model_config = ConfigDict(extra="forbid")

    name: RequiredText | None = None
    address: RequiredText | None = None
    postal_code: RequiredText | None = None
    description: str | None = None
    category_id: uuid.UUID | None = None
    city: str | None = None
    phone: str | None = None
    email: str | None = None
    website: str | None = None
    lat: float | None = None
    lng: float | None = None
    owner_id: uuid.UUID | None = None
    claimed: bool | None = None
    theme_color: ThemeColor | None = None
    subscription_plan: SubscriptionPlan | None = None

    @field_validator("name", "address", "postal_code", "city", "theme_color", "subscription_plan", mode="before")
    @classmethod
    def reject_null(cls, v):
        return not_null(v)

    @model_validator(mode="after")
    def keep_claim_invariant(self) -> "BusinessUpdate":
        if "owner_id" in self.model_fields_set:
            _check_claim(self.owner_id, self.claimed if "claimed" in self.model_fields_set else None)
            self.claimed = self.owner_id is not None
        elif "claimed" in self.model_fields_set:
            raise ValueError("claimed can only change together with owner_id")
        return self

    def changes(self) -> dict:
        """Fields to write."""
        fields = self.model_fields_set | ({"claimed"} if "owner_id" in self.model_fields_set else set())
        return {name: getattr(self, name) for name in fields}
