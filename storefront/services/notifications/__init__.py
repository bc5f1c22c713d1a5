from __future__ import annotations

import logging
from dataclasses import dataclass

from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Mail

from storefront.utils.base import NotificationError
from storefront.utils.config import settings


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EmailMessage:
    to: str
    subject: str
    body: str


class NotificationSender:
    """Delivers an email. Implementations raise ``NotificationError`` on failure."""

    def send(self, message: EmailMessage) -> None:
        raise NotImplementedError


class SendGridNotificationSender(NotificationSender):
    def __init__(self, api_key: str, from_email: str):
        self.client = SendGridAPIClient(api_key)
        self.from_email = from_email

    def send(self, message: EmailMessage) -> None:
        mail = Mail(
            from_email=self.from_email,
            to_emails=message.to,
            subject=message.subject,
            plain_text_content=message.body,
        )
        try:
            response = self.client.send(mail)
        except Exception as exc:
            raise NotificationError(f"SendGrid rejected message to {message.to}") from exc
        if response.status_code >= 400:
            raise NotificationError(f"SendGrid returned {response.status_code} for {message.to}")
        logger.info("Email %r sent to %s", message.subject, message.to)


class ConsoleNotificationSender(NotificationSender):
    """Local development sender used when SendGrid is not configured."""

    def send(self, message: EmailMessage) -> None:
        logger.warning("SendGrid not configured; email to %s:\n%s\n%s", message.to, message.subject, message.body)


def get_notification_sender() -> NotificationSender:
    if not settings.sendgrid_api_key:
        return ConsoleNotificationSender()
    return SendGridNotificationSender(settings.sendgrid_api_key, settings.mail_from_email)


def verification_email(to: str, name: str, otp: str, minutes: int, resend: bool = False) -> EmailMessage:
    subject = "New Email Verification OTP" if resend else "Email Verification OTP"
    adjective = "new " if resend else ""
    body = (
        f"Hello {name},\n\n"
        f"Your {adjective}OTP for email verification is: {otp}\n\n"
        f"This OTP will expire in {minutes} minutes.\n\n"
        "If you didn't request this, please ignore this email."
    )
    return EmailMessage(to=to, subject=subject, body=body)


def reset_token_email(to: str, name: str, token: str, minutes: int) -> EmailMessage:
    body = (
        f"Hello {name},\n\n"
        f"Your password reset token is: {token}\n\n"
        f"This token will expire in {minutes} minutes.\n\n"
        "If you didn't request this, please ignore this email and make sure your account is secure."
    )
    return EmailMessage(to=to, subject="Password Reset Token", body=body)


def password_changed_email(to: str, name: str, reset: bool = False) -> EmailMessage:
    verb = "reset" if reset else "changed"
    subject = "Password Reset Successful" if reset else "Password Changed Successfully"
    body = (
        f"Hello {name},\n\n"
        f"Your password has been successfully {verb}.\n\n"
        "If you didn't make this change, please contact support immediately."
    )
    return EmailMessage(to=to, subject=subject, body=body)
