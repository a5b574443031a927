"""Profile model."""
import uuid
from datetime import datetime

from sqlalchemy import String, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column

from bizdir.database import Base, utcnow


class Profile(Base):
    """One profile per authenticated user."""

    __tablename__ = "profiles"
    __table_args__ = (
        CheckConstraint("role IN ('admin', 'owner', 'visitor')", name="ck_profiles_role"),
    )

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    role: Mapped[str] = mapped_column(String, nullable=False, default="visitor")  # admin / owner / visitor
    email: Mapped[str] = mapped_column(String, unique=True, nullable=False)
    full_name: Mapped[str | None] = mapped_column(String, nullable=True)
    avatar_url: Mapped[str | None] = mapped_column(String, nullable=True)
    created_at: Mapped[datetime] = mapped_column(default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(default=utcnow, onupdate=utcnow)
