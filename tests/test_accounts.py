"""
Tests for the account workflows in ``AuthService``.
"""

from datetime import timedelta

import pytest

from conftest import STRONG_PASSWORD, make_user
from storefront.services.auth import decode_session_token, verify_password
from storefront.utils.base import (
    Conflict,
    DependencyFailure,
    NotFound,
    RateLimited,
    Unauthorized,
    ValidationError,
)


def _signup(service, email="a@b.com", phone="+19995551234", password=STRONG_PASSWORD, confirm=None, name="Ann"):
    return service.signup(name, email, password, password if confirm is None else confirm, phone)


class TestSignup:
    def test_creates_unverified_user_with_otp(self, service, users, sender, clock):
        result = _signup(service, email="A@B.com", name="  Ann  ")
        user = users.get_by_id(result["userId"])
        assert user.email == "a@b.com"
        assert user.name == "Ann"
        assert not user.is_verified
        assert len(user.otp.code) == 6 and user.otp.code.isdigit()
        assert user.otp.expires_at == clock.now + timedelta(minutes=10)
        assert user.password != STRONG_PASSWORD
        assert decode_session_token(result["token"]) == result["userId"]
        assert sender.last.to == "a@b.com"
        assert user.otp.code in sender.last.body

    @pytest.mark.parametrize(
        "kwargs, message",
        [
            ({"name": " a "}, "Name must be at least 2 characters long"),
            ({"email": "not-an-email"}, "Please provide a valid email address"),
            ({"password": "abcdefgh", "confirm": "abcdefgh"}, "Password must be at least 8 characters"),
            ({"confirm": "Abcdef1?"}, "Passwords do not match"),
            ({"phone": "0123456789"}, "Please provide a valid phone number"),
            ({"phone": "+1234"}, "Please provide a valid phone number"),
        ],
    )
    def test_validation_order(self, service, users, kwargs, message):
        with pytest.raises(ValidationError, match=message):
            _signup(service, **kwargs)
        assert users.users == {}

    @pytest.mark.parametrize("email", ["a@b.c", "first..last@example.com", "x_y@my_host.com"])
    def test_loose_email_syntax_is_stored(self, service, users, email):
        result = _signup(service, email=email)
        assert users.get_by_id(result["userId"]).email == email

    def test_name_checked_before_email(self, service):
        with pytest.raises(ValidationError, match="Name"):
            service.signup("x", "bad", "weak", "other", "1")

    def test_duplicate_email_and_phone_are_distinguished(self, service):
        _signup(service)
        with pytest.raises(Conflict, match="Email already registered"):
            _signup(service, phone="+19995550000")
        with pytest.raises(Conflict, match="Phone number already registered"):
            _signup(service, email="other@b.com")

    def test_failed_email_removes_user(self, service, users, sender):
        sender.fail = True
        with pytest.raises(DependencyFailure, match="Failed to send verification email"):
            _signup(service)
        assert users.users == {}

    def test_failed_cleanup_still_reports_failure(self, service, users, sender, monkeypatch):
        sender.fail = True

        def broken_delete(user_id):
            raise RuntimeError("store down")

        monkeypatch.setattr(users, "delete", broken_delete)
        with pytest.raises(DependencyFailure):
            _signup(service)


class TestVerifyOtp:
    def test_success_clears_otp(self, service, users):
        user = users.get_by_id(_signup(service)["userId"])
        service.verify_otp("A@b.com", user.otp.code)
        assert user.is_verified
        assert user.otp is None

    def test_second_verification_reports_already_verified(self, service, users):
        user = users.get_by_id(_signup(service)["userId"])
        code = user.otp.code
        service.verify_otp("a@b.com", code)
        with pytest.raises(ValidationError, match="already verified"):
            service.verify_otp("a@b.com", code)

    def test_wrong_code(self, service, users):
        user = users.get_by_id(_signup(service)["userId"])
        wrong = "000000" if user.otp.code != "000000" else "111111"
        with pytest.raises(ValidationError, match="^Invalid OTP$"):
            service.verify_otp("a@b.com", wrong)
        assert not user.is_verified

    def test_valid_until_expiry_inclusive(self, service, users, clock):
        user = users.get_by_id(_signup(service)["userId"])
        clock.advance(minutes=10)
        service.verify_otp("a@b.com", user.otp.code)
        assert user.is_verified

    def test_expired_code(self, service, users, clock):
        user = users.get_by_id(_signup(service)["userId"])
        clock.advance(minutes=10, seconds=1)
        with pytest.raises(ValidationError, match="OTP has expired"):
            service.verify_otp("a@b.com", user.otp.code)

    def test_rejects_bad_input_and_unknown_user(self, service):
        with pytest.raises(ValidationError, match="6-digit OTP"):
            service.verify_otp("a@b.com", "123")
        with pytest.raises(NotFound):
            service.verify_otp("nobody@b.com", "123456")

    def test_missing_challenge(self, service, users):
        user = users.get_by_id(_signup(service)["userId"])
        user.otp = None
        with pytest.raises(ValidationError, match="No OTP found"):
            service.verify_otp("a@b.com", "123456")


class TestResendOtp:
    def test_cooldown_within_first_minute(self, service, clock):
        _signup(service)
        clock.advance(seconds=30)
        with pytest.raises(RateLimited, match="Please wait 1 minute"):
            service.resend_otp("a@b.com")

    def test_replaces_otp_after_cooldown(self, service, users, sender, clock):
        user = users.get_by_id(_signup(service)["userId"])
        clock.advance(seconds=61)
        service.resend_otp("a@b.com")
        assert user.otp.expires_at == clock.now + timedelta(minutes=10)
        assert sender.last.subject == "New Email Verification OTP"
        assert user.otp.code in sender.last.body

    def test_rejects_verified_and_unknown(self, service, users):
        make_user(users)
        with pytest.raises(ValidationError, match="already verified"):
            service.resend_otp("jane@example.com")
        with pytest.raises(NotFound):
            service.resend_otp("nobody@example.com")

    def test_send_failure_propagates(self, service, sender, clock):
        _signup(service)
        clock.advance(minutes=2)
        sender.fail = True
        with pytest.raises(DependencyFailure):
            service.resend_otp("a@b.com")


class TestLogin:
    def test_unverified_user_cannot_login(self, service):
        _signup(service)
        with pytest.raises(ValidationError, match="Please verify your email before logging in"):
            service.login("a@b.com", STRONG_PASSWORD)

    def test_success_updates_last_login(self, service, users, clock):
        user = make_user(users)
        result = service.login("JANE@example.com", STRONG_PASSWORD)
        assert user.last_login == clock.now
        assert result["user"] == {
            "_id": str(user.id),
            "name": "Jane Doe",
            "email": "jane@example.com",
            "role": "user",
            "phone": "+15550001111",
            "isVerified": True,
        }
        assert decode_session_token(result["token"]) == str(user.id)

    def test_wrong_password_and_unknown_user_look_the_same(self, service, users):
        make_user(users)
        with pytest.raises(Unauthorized) as wrong_password:
            service.login("jane@example.com", "Wrong123!")
        with pytest.raises(Unauthorized) as unknown:
            service.login("ghost@example.com", STRONG_PASSWORD)
        assert wrong_password.value.message == unknown.value.message == "Invalid credentials"

    def test_short_password_rejected_before_lookup(self, service):
        with pytest.raises(ValidationError, match="valid password"):
            service.login("jane@example.com", "short")


class TestPasswordReset:
    def test_forgot_issues_token(self, service, users, sender, clock):
        user = make_user(users)
        service.forgot_password("jane@example.com")
        assert len(user.password_reset_token) == 6
        assert user.password_reset_expires == clock.now + timedelta(minutes=30)
        assert user.password_reset_token in sender.last.body

    def test_forgot_cooldown_until_token_lapses(self, service, users, clock):
        make_user(users)
        service.forgot_password("jane@example.com")
        clock.advance(minutes=29)
        with pytest.raises(RateLimited):
            service.forgot_password("jane@example.com")
        clock.advance(minutes=2)
        service.forgot_password("jane@example.com")

    def test_forgot_requires_verified_known_user(self, service, users):
        make_user(users, verified=False)
        with pytest.raises(ValidationError, match="verify your email first"):
            service.forgot_password("jane@example.com")
        with pytest.raises(NotFound):
            service.forgot_password("ghost@example.com")

    def test_reset_is_single_use(self, service, users, sender):
        user = make_user(users)
        service.forgot_password("jane@example.com")
        token = user.password_reset_token

        service.reset_password("jane@example.com", token, "newpassword")
        assert verify_password("newpassword", user.password)
        assert user.password_reset_token is None
        assert sender.last.subject == "Password Reset Successful"

        with pytest.raises(ValidationError, match="Invalid or expired reset token"):
            service.reset_password("jane@example.com", token, "another-one")

    def test_reset_rejects_expired_token(self, service, users, clock):
        user = make_user(users)
        service.forgot_password("jane@example.com")
        clock.advance(minutes=31)
        with pytest.raises(ValidationError, match="Invalid or expired reset token"):
            service.reset_password("jane@example.com", user.password_reset_token, "newpassword")

    def test_reset_accepts_length_only_password(self, service, users):
        user = make_user(users)
        service.forgot_password("jane@example.com")
        service.reset_password("jane@example.com", user.password_reset_token, "alllowercase")
        assert service.login("jane@example.com", "alllowercase")["token"]

    def test_reset_notification_failure_does_not_fail_reset(self, service, users, sender):
        user = make_user(users)
        service.forgot_password("jane@example.com")
        sender.fail = True
        service.reset_password("jane@example.com", user.password_reset_token, "newpassword")
        assert verify_password("newpassword", user.password)


class TestChangePassword:
    def test_rejects_same_password(self, service, users):
        user = make_user(users)
        with pytest.raises(ValidationError, match="must be different"):
            service.change_password(str(user.id), STRONG_PASSWORD, STRONG_PASSWORD)

    def test_requires_full_policy(self, service, users):
        user = make_user(users)
        with pytest.raises(ValidationError, match="New password must be"):
            service.change_password(str(user.id), STRONG_PASSWORD, "alllowercase")

    def test_wrong_current_password(self, service, users):
        user = make_user(users)
        with pytest.raises(Unauthorized, match="Current password is incorrect"):
            service.change_password(str(user.id), "Wrong123!", "Brand9new!")

    def test_old_password_stops_working(self, service, users, sender):
        user = make_user(users)
        service.change_password(str(user.id), STRONG_PASSWORD, "Brand9new!")
        assert sender.last.subject == "Password Changed Successfully"
        with pytest.raises(Unauthorized):
            service.login("jane@example.com", STRONG_PASSWORD)
        assert service.login("jane@example.com", "Brand9new!")["token"]
