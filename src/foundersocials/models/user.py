"""SQLAlchemy model for registered platform accounts."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from foundersocials.db.session import Base
from foundersocials.db.time import utcnow

PLAN_FREE = "free"
PLAN_STANDARD = "standard"
PLAN_FOUNDER = "founder"
SUBSCRIPTION_PLANS = (PLAN_FREE, PLAN_STANDARD, PLAN_FOUNDER)
PAID_PLANS = (PLAN_STANDARD, PLAN_FOUNDER)

PAYMENT_PENDING = "pending"
PAYMENT_COMPLETED = "completed"
PAYMENT_FAILED = "failed"
PAYMENT_CANCELLED = "cancelled"


class User(Base):
    """A registered account together with its billing and AI quota state."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), unique=True, nullable=True)
    password_hash: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Public profile
    display_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    first_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    last_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    bio: Mapped[str | None] = mapped_column(Text, nullable=True)
    location: Mapped[str | None] = mapped_column(Text, nullable=True)
    website: Mapped[str | None] = mapped_column(Text, nullable=True)
    company: Mapped[str | None] = mapped_column(Text, nullable=True)
    job_title: Mapped[str | None] = mapped_column(Text, nullable=True)
    avatar_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    profile_image_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    cover_image_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    phone: Mapped[str | None] = mapped_column(Text, nullable=True)
    privacy: Mapped[str] = mapped_column(String(16), nullable=False, default="public")

    # Billing
    is_premium: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    payment_status: Mapped[str] = mapped_column(
        String(16), nullable=False, default=PAYMENT_PENDING
    )
    subscription_plan: Mapped[str] = mapped_column(String(16), nullable=False, default=PLAN_FREE)
    stripe_customer_id: Mapped[str | None] = mapped_column(Text, nullable=True, index=True)
    stripe_subscription_id: Mapped[str | None] = mapped_column(Text, nullable=True)
    paypal_subscription_id: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Premium-only toggle that bypasses AI moderation on new comments.
    direct_comments_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    remaining_prompts: Mapped[int] = mapped_column(Integer, nullable=False, default=3)

    reset_token: Mapped[str | None] = mapped_column(Text, nullable=True, index=True)
    reset_token_expiry: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    @property
    def has_paid_plan(self) -> bool:
        return self.subscription_plan in PAID_PLANS
