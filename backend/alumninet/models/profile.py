from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Boolean, CheckConstraint, DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from alumninet.core.database import Base


# 时间列为无时区 UTC
def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Profile(Base):
    __tablename__ = "profiles"
    __table_args__ = (
        CheckConstraint(
            "moderation_status IN ('pending', 'approved', 'rejected')",
            name="profiles_moderation_status_check",
        ),
    )

    # Supabase user_id (uuid string)
    id: Mapped[str] = mapped_column(String, primary_key=True)
    email: Mapped[str | None] = mapped_column(String, nullable=True)

    full_name: Mapped[str | None] = mapped_column(String, nullable=True)
    phone: Mapped[str | None] = mapped_column(String, nullable=True)

    degree: Mapped[str | None] = mapped_column(String, index=True, nullable=True)
    branch: Mapped[str | None] = mapped_column(String, index=True, nullable=True)
    graduation_year: Mapped[int | None] = mapped_column(Integer, index=True, nullable=True)

    company: Mapped[str | None] = mapped_column(String, nullable=True)
    job_role: Mapped[str | None] = mapped_column(String, nullable=True)
    location: Mapped[str | None] = mapped_column(String, nullable=True)

    linkedin: Mapped[str | None] = mapped_column(String, nullable=True)
    avatar_url: Mapped[str | None] = mapped_column(String, nullable=True)

    # Set on first onboarding submission, never reset afterwards
    onboarded: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    # Written by admins outside this app, except the reset to pending on submission
    moderation_status: Mapped[str] = mapped_column(
        String, default="pending", index=True, nullable=False
    )
    moderation_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
