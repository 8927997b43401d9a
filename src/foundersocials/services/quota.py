"""Plan gating for AI-assisted comment features."""

from __future__ import annotations

from sqlalchemy.orm import Session

from foundersocials.models import User
from foundersocials.models.user import PLAN_FREE, PLAN_STANDARD
from foundersocials.repositories import UserRepository


class PromptQuotaError(PermissionError):
    """Raised when a user may not use an AI feature right now."""


class PlanRequiredError(PromptQuotaError):
    """Raised for free-plan users."""


class PromptQuotaExceededError(PromptQuotaError):
    """Raised for standard-plan users with no prompts left."""


def ensure_prompt_available(user: User) -> None:
    """Check, without consuming, that ``user`` can make an AI request.

    Founder-plan users are never limited.
    """
    plan = user.subscription_plan or PLAN_FREE
    if plan == PLAN_FREE:
        raise PlanRequiredError("AI features require a paid subscription plan")
    if plan == PLAN_STANDARD and user.remaining_prompts <= 0:
        raise PromptQuotaExceededError("You have used all your AI prompts for this month")


def consume_prompt(db: Session, user: User) -> None:
    """Take one prompt from a standard-plan user after a successful AI call.

    The decrement is a conditional update, so two concurrent requests can never
    drive the quota below zero; the loser gets ``PromptQuotaExceededError``.
    """
    if user.subscription_plan != PLAN_STANDARD:
        return
    if not UserRepository(db).consume_prompt(user.id):
        raise PromptQuotaExceededError("You have used all your AI prompts for this month")
