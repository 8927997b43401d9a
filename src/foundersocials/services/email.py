"""Transactional email through SendGrid.

Sending is best-effort: every helper returns False instead of raising when
SendGrid is not configured, the recipient has no address, or delivery fails.
"""

from __future__ import annotations

import asyncio
import html
import logging

from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Mail

from foundersocials.core.settings import settings
from foundersocials.models import User

logger = logging.getLogger(__name__)

_FOOTER = '<p style="margin-top: 30px;">Best regards,<br>The FounderSocials Team</p>'


def _wrap(title: str, body: str) -> str:
    return (
        '<div style="font-family: Arial, sans-serif; padding: 20px; max-width: 600px; '
        'margin: 0 auto;">'
        f'<h1 style="color: #4f46e5;">{title}</h1>{body}{_FOOTER}</div>'
    )


def _greeting(user: User) -> str:
    return f"<p>Hello {html.escape(user.display_name or user.username)},</p>"


class Mailer:
    """Thin wrapper around ``SendGridAPIClient``."""

    def __init__(self, api_key: str | None = None, sender: str | None = None) -> None:
        self.api_key = api_key if api_key is not None else settings.sendgrid_api_key
        self.sender = sender or settings.email_from
        self._client = SendGridAPIClient(self.api_key) if self.api_key else None
        if self._client is None:
            logger.info("SENDGRID_API_KEY is not set; email notifications are disabled")

    @property
    def enabled(self) -> bool:
        return self._client is not None

    def send(self, to: str | None, subject: str, html_content: str) -> bool:
        """Send one email synchronously; returns True on a 2xx response."""
        if self._client is None:
            logger.warning("Cannot send %r: SendGrid is not configured", subject)
            return False
        if not to:
            logger.warning("Cannot send %r: recipient has no email address", subject)
            return False
        message = Mail(
            from_email=self.sender,
            to_emails=to,
            subject=subject,
            html_content=html_content,
        )
        try:
            response = self._client.send(message)
        except Exception as exc:
            logger.error("SendGrid email error for %r: %s", subject, exc)
            return False
        return 200 <= response.status_code < 300

    async def send_async(self, to: str | None, subject: str, html_content: str) -> bool:
        return await asyncio.to_thread(self.send, to, subject, html_content)

    async def send_welcome(self, user: User) -> bool:
        body = (
            _greeting(user)
            + "<p>Welcome to FounderSocials, the community where founders share what they "
            "are building and learn from each other.</p>"
            + f'<p><a href="{settings.app_base_url}">Start exploring communities</a></p>'
        )
        return await self.send_async(user.email, "Welcome to FounderSocials", _wrap("Welcome!", body))

    async def send_payment_confirmation(self, user: User) -> bool:
        body = (
            _greeting(user)
            + "<p>Thank you for your payment. Your subscription to FounderSocials has been "
            "successfully activated.</p>"
            + "<p>If you have any questions about your subscription, please contact our "
            "support team.</p>"
        )
        return await self.send_async(
            user.email,
            "FounderSocials Premium - Payment Confirmation",
            _wrap("Payment Confirmation", body),
        )

    async def send_payment_failed(self, user: User) -> bool:
        body = (
            _greeting(user)
            + "<p>We were unable to process your latest subscription payment. Please update "
            "your payment method to keep your premium features.</p>"
        )
        return await self.send_async(
            user.email,
            "FounderSocials - Payment Failed",
            _wrap("Payment Failed", body),
        )

    async def send_subscription_cancelled(self, user: User) -> bool:
        body = (
            _greeting(user)
            + "<p>Your FounderSocials subscription has been cancelled. You can resubscribe "
            "at any time from your account settings.</p>"
        )
        return await self.send_async(
            user.email,
            "FounderSocials - Subscription Cancelled",
            _wrap("Subscription Cancelled", body),
        )

    async def send_password_reset(self, email: str, token: str) -> bool:
        reset_url = f"{settings.app_base_url}/reset-password?token={token}"
        body = (
            "<p>You requested a password reset for your FounderSocials account.</p>"
            f'<p><a href="{reset_url}">Reset your password</a></p>'
            f"<p>This link expires in {settings.reset_token_ttl_minutes} minutes. If you "
            "did not request a reset you can ignore this email.</p>"
        )
        return await self.send_async(
            email, "FounderSocials - Password Reset", _wrap("Password Reset", body)
        )


class _MailerSingleton:
    """Singleton wrapper for Mailer."""

    _instance: Mailer | None = None

    @classmethod
    def get_instance(cls) -> Mailer:
        if cls._instance is None:
            cls._instance = Mailer()
        return cls._instance


def get_mailer() -> Mailer:
    """Return a singleton mailer instance."""
    return _MailerSingleton.get_instance()
