"""Account workflows: signup, OTP verification, login and password lifecycle.

Every operation validates its input in a fixed order and stops at the first
failure. Login, OTP and reset checks return deliberately generic messages so
callers cannot probe which accounts exist.
"""
from __future__ import annotations

import logging
import re
from datetime import datetime, timedelta
from typing import Callable

from fastapi import Depends

from storefront.models.base import as_utc, utcnow
from storefront.models.user import OtpChallenge
from storefront.repositories import UserRepository, get_user_repository
from storefront.services.auth import (
    create_session_token,
    generate_code,
    hash_password,
    verify_password,
)
from storefront.services.notifications import (
    EmailMessage,
    NotificationSender,
    get_notification_sender,
    password_changed_email,
    reset_token_email,
    verification_email,
)
from storefront.utils.base import (
    Conflict,
    DependencyFailure,
    NotFound,
    NotificationError,
    RateLimited,
    Unauthorized,
    ValidationError,
)
from storefront.utils.config import Settings, settings


logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PASSWORD_RE = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)(?=.*[@$!%*?&])[A-Za-z\d@$!%*?&]{8,}$")
PHONE_RE = re.compile(r"^\+?[1-9]\d{9,14}$")

MIN_PASSWORD_LENGTH = 8
CODE_LENGTH = 6

PASSWORD_POLICY = (
    "at least 8 characters long and contain at least one uppercase letter, "
    "one lowercase letter, one number, and one special character"
)
INVALID_CREDENTIALS = "Invalid credentials"
INVALID_RESET_TOKEN = "Invalid or expired reset token"


def is_valid_email(email: str | None) -> bool:
    return bool(email) and EMAIL_RE.match(email) is not None


def is_strong_password(password: str | None) -> bool:
    return bool(password) and PASSWORD_RE.match(password) is not None


def is_valid_phone(phone: str | None) -> bool:
    return bool(phone) and PHONE_RE.match(phone) is not None


def _require_email(email: str | None) -> str:
    if not is_valid_email(email):
        raise ValidationError("Please provide a valid email address")
    return email.lower()


class AuthService:
    def __init__(
        self,
        users: UserRepository,
        notifier: NotificationSender,
        config: Settings,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.users = users
        self.notifier = notifier
        self.config = config
        self.clock = clock

    def signup(
        self,
        name: str | None,
        email: str | None,
        password: str | None,
        confirm_password: str | None,
        phone: str | None,
    ) -> dict:
        if not name or len(name.strip()) < 2:
            raise ValidationError("Name must be at least 2 characters long")
        email = _require_email(email)
        if not is_strong_password(password):
            raise ValidationError(f"Password must be {PASSWORD_POLICY}")
        if password != confirm_password:
            raise ValidationError("Passwords do not match")
        if not is_valid_phone(phone):
            raise ValidationError("Please provide a valid phone number")

        existing = self.users.find_by_email_or_phone(email, phone)
        if existing:
            if existing.email == email:
                raise Conflict("Email already registered")
            raise Conflict("Phone number already registered")

        otp = self._new_otp()
        user = self.users.create(
            name=name.strip(),
            email=email,
            phone=phone,
            password=hash_password(password),
            otp=otp,
        )

        message = verification_email(user.email, user.name, otp.code, self.config.otp_expires_minutes)
        try:
            self.notifier.send(message)
        except NotificationError:
            logger.exception("Verification email failed for user %s; removing account", user.id)
            try:
                self.users.delete(user.id)
            except Exception:
                logger.exception("Could not remove user %s after failed verification email", user.id)
            raise DependencyFailure("Failed to send verification email. Please try again.")

        logger.info("User %s registered", user.id)
        return {"userId": str(user.id), "token": create_session_token(user.id, self.config)}

    def verify_otp(self, email: str | None, otp: str | None) -> None:
        email = _require_email(email)
        if not otp or len(otp) != CODE_LENGTH:
            raise ValidationError("Please provide a valid 6-digit OTP")

        user = self.users.get_by_email(email)
        if not user:
            raise NotFound("User not found")
        if user.is_verified:
            raise ValidationError("Email is already verified")
        if not user.otp or not user.otp.code:
            raise ValidationError("No OTP found. Please request a new OTP")
        if user.otp.code != otp:
            raise ValidationError("Invalid OTP")
        if self.clock() > as_utc(user.otp.expires_at):
            raise ValidationError("OTP has expired. Please request a new one")

        user.is_verified = True
        user.otp = None
        self.users.save(user)
        logger.info("User %s verified their email", user.id)

    def resend_otp(self, email: str | None) -> None:
        email = _require_email(email)
        user = self.users.get_by_email(email)
        if not user:
            raise NotFound("User not found")
        if user.is_verified:
            raise ValidationError("Email is already verified")

        if user.otp and user.otp.expires_at:
            remaining = as_utc(user.otp.expires_at) - self.clock()
            window = timedelta(minutes=self.config.otp_expires_minutes - self.config.otp_resend_cooldown_minutes)
            if remaining > window:
                raise RateLimited(
                    f"Please wait {self.config.otp_resend_cooldown_minutes} minute before requesting a new OTP"
                )

        user.otp = self._new_otp()
        self.users.save(user)
        self._deliver(
            verification_email(user.email, user.name, user.otp.code, self.config.otp_expires_minutes, resend=True),
            "An error occurred while sending new OTP. Please try again.",
        )

    def login(self, email: str | None, password: str | None) -> dict:
        email = _require_email(email)
        if not password or len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationError("Please provide a valid password")

        user = self.users.get_by_email(email)
        if not user:
            raise Unauthorized(INVALID_CREDENTIALS)
        if not user.is_verified:
            raise ValidationError("Please verify your email before logging in")
        if not verify_password(password, user.password):
            raise Unauthorized(INVALID_CREDENTIALS)

        user.last_login = self.clock()
        self.users.save(user)
        return {"user": user.to_public(), "token": create_session_token(user.id, self.config)}

    def forgot_password(self, email: str | None) -> None:
        email = _require_email(email)
        user = self.users.get_by_email(email)
        if not user:
            raise NotFound("No user found with this email address")
        if not user.is_verified:
            raise ValidationError("Please verify your email first")

        now = self.clock()
        if user.password_reset_expires and as_utc(user.password_reset_expires) > now:
            raise RateLimited("Please wait until your current reset token expires before requesting another")

        minutes = self.config.password_reset_expires_minutes
        user.password_reset_token = generate_code()
        user.password_reset_expires = now + timedelta(minutes=minutes)
        self.users.save(user)
        self._deliver(
            reset_token_email(user.email, user.name, user.password_reset_token, minutes),
            "An error occurred while processing your request. Please try again.",
        )

    def reset_password(self, email: str | None, token: str | None, new_password: str | None) -> None:
        email = _require_email(email)
        if not token or len(token) != CODE_LENGTH:
            raise ValidationError("Please provide a valid reset token")
        # Length only; the full complexity policy is applied on signup and change-password
        if not new_password or len(new_password) < MIN_PASSWORD_LENGTH:
            raise ValidationError("Password must be at least 8 characters long")

        user = self.users.consume_reset_token(email, token, self.clock(), hash_password(new_password))
        if not user:
            raise ValidationError(INVALID_RESET_TOKEN)

        logger.info("User %s reset their password", user.id)
        self._notify_quietly(password_changed_email(user.email, user.name, reset=True))

    def change_password(self, user_id: str, current_password: str | None, new_password: str | None) -> None:
        if not current_password or not new_password:
            raise ValidationError("Please provide both current and new password")
        if not is_strong_password(new_password):
            raise ValidationError(f"New password must be {PASSWORD_POLICY}")
        if current_password == new_password:
            raise ValidationError("New password must be different from current password")

        user = self.users.get_by_id(user_id, include_password=True)
        if not user:
            raise NotFound("User not found")
        if not verify_password(current_password, user.password):
            raise Unauthorized("Current password is incorrect")

        user.password = hash_password(new_password)
        self.users.save(user)
        logger.info("User %s changed their password", user.id)
        self._notify_quietly(password_changed_email(user.email, user.name))

    def _new_otp(self) -> OtpChallenge:
        return OtpChallenge(
            code=generate_code(),
            expires_at=self.clock() + timedelta(minutes=self.config.otp_expires_minutes),
        )

    def _deliver(self, message: EmailMessage, failure_message: str) -> None:
        try:
            self.notifier.send(message)
        except NotificationError:
            logger.exception("Failed to deliver %r to %s", message.subject, message.to)
            raise DependencyFailure(failure_message)

    def _notify_quietly(self, message: EmailMessage) -> None:
        # The change is already persisted; a lost confirmation email must not undo it
        try:
            self.notifier.send(message)
        except NotificationError:
            logger.exception("Failed to deliver %r to %s", message.subject, message.to)


def get_auth_service(
    users: UserRepository = Depends(get_user_repository),
    notifier: NotificationSender = Depends(get_notification_sender),
) -> AuthService:
    return AuthService(users, notifier, settings)
