"""Business models."""
import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import String, Text, ForeignKey, Float, Boolean, Integer, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bizdir.database import Base, utcnow

if TYPE_CHECKING:
    from bizdir.models.category import Category
    from bizdir.models.profile import Profile
    from bizdir.models.product import Product
    from bizdir.models.review import Review
    from bizdir.models.subscription import Subscription


class Business(Base):
    """Directory listing of a local business."""

    __tablename__ = "businesses"
    __table_args__ = (
        CheckConstraint(
            "subscription_plan IN ('free', 'business', 'pro', 'vip')",
            name="ck_businesses_subscription_plan",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    category_id: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("categories.id"), nullable=True, index=True)
    address: Mapped[str] = mapped_column(String, nullable=False)
    postal_code: Mapped[str] = mapped_column(String, nullable=False)
    city: Mapped[str] = mapped_column(String, nullable=False, default="Schiedam")
    phone: Mapped[str | None] = mapped_column(String, nullable=True)
    email: Mapped[str | None] = mapped_column(String, nullable=True)
    website: Mapped[str | None] = mapped_column(String, nullable=True)
    lat: Mapped[float | None] = mapped_column(Float, nullable=True)
    lng: Mapped[float | None] = mapped_column(Float, nullable=True)
    owner_id: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("profiles.id"), nullable=True, index=True)
    claimed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)  # True iff owner_id is set
    theme_color: Mapped[str] = mapped_column(String(7), nullable=False, default="#3B82F6")
    subscription_plan: Mapped[str] = mapped_column(String, nullable=False, default="free")  # free / business / pro / vip
    created_at: Mapped[datetime] = mapped_column(default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(default=utcnow, onupdate=utcnow)

    # Relationships
    category: Mapped["Category | None"] = relationship("Category", back_populates="businesses")
    owner: Mapped["Profile | None"] = relationship("Profile", foreign_keys=[owner_id])
    images: Mapped[list["BusinessImage"]] = relationship("BusinessImage", back_populates="business")
    hours: Mapped[list["BusinessHours"]] = relationship("BusinessHours", back_populates="business")
    products: Mapped[list["Product"]] = relationship("Product", back_populates="business")
    reviews: Mapped[list["Review"]] = relationship("Review", back_populates="business")
    subscription: Mapped["Subscription | None"] = relationship("Subscription", back_populates="business")


class BusinessImage(Base):
    """Gallery image of a business."""

    __tablename__ = "business_images"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    business_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("businesses.id"), nullable=False, index=True)
    image_url: Mapped[str] = mapped_column(String, nullable=False)
    is_primary: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    uploaded_at: Mapped[datetime] = mapped_column(default=utcnow)

    business: Mapped["Business"] = relationship("Business", back_populates="images")


class BusinessHours(Base):
    """Opening hours for one day of the week (0 = Sunday)."""

    __tablename__ = "business_hours"
    __table_args__ = (
        CheckConstraint("day_of_week BETWEEN 0 AND 6", name="ck_business_hours_day_of_week"),
    )

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    business_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("businesses.id"), nullable=False, index=True)
    day_of_week: Mapped[int] = mapped_column(Integer, nullable=False)
    open_time: Mapped[str | None] = mapped_column(String(5), nullable=True)  # HH:MM
    close_time: Mapped[str | None] = mapped_column(String(5), nullable=True)
    closed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    business: Mapped["Business"] = relationship("Business", back_populates="hours")
