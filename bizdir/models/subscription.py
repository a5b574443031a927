"""Subscription model."""
import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import String, Integer, Boolean, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bizdir.database import Base, utcnow

if TYPE_CHECKING:
    from bizdir.models.business import Business


class Subscription(Base):
    """Current subscription of a business."""

    __tablename__ = "subscriptions"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    business_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("businesses.id"), unique=True, nullable=False)
    plan: Mapped[str] = mapped_column(String, nullable=False, default="free")
    max_products: Mapped[int] = mapped_column(Integer, nullable=False, default=10)
    max_images: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    includes_video: Mapped[bool] = mapped_column(Boolean, default=False)
    includes_chat: Mapped[bool] = mapped_column(Boolean, default=False)
    status: Mapped[str] = mapped_column(String, nullable=False, default="active")
    current_period_start: Mapped[datetime | None] = mapped_column(nullable=True)
    current_period_end: Mapped[datetime | None] = mapped_column(nullable=True)
    created_at: Mapped[datetime] = mapped_column(default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(default=utcnow, onupdate=utcnow)

    business: Mapped["Business"] = relationship("Business", back_populates="subscription")
