"""Time utilities for database models."""

from datetime import UTC, datetime


def utcnow() -> datetime:
    """Return the current UTC time as a timezone-aware datetime."""
    return datetime.now(UTC)


def epoch_millis(moment: datetime | None = None) -> int:
    """Return milliseconds since the Unix epoch for ``moment`` (default: now)."""
    return int((moment or utcnow()).timestamp() * 1000)
