"""Models for inbound webhook replay protection and outbound subscriptions."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from foundersocials.db.session import Base
from foundersocials.db.time import utcnow


class ProcessedWebhookEvent(Base):
    """Record indicating that a provider event id has already been applied."""

    __tablename__ = "processed_webhook_events"

    # Provider event ids are globally unique (Stripe ``evt_...``).
    event_id: Mapped[str] = mapped_column(String(255), primary_key=True)
    provider: Mapped[str] = mapped_column(String(32), nullable=False, default="stripe")
    event_type: Mapped[str] = mapped_column(String(128), nullable=False)
    processed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )


class ExternalWebhookSubscription(Base):
    """Callback registered by the external project-management app."""

    __tablename__ = "external_webhook_subscriptions"

    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    callback_url: Mapped[str] = mapped_column(Text, nullable=False)
    events: Mapped[list[Any]] = mapped_column(JSON, nullable=False, default=list)
    secret: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
