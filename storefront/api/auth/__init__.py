from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from storefront.models.user import User
from storefront.services.accounts import AuthService, get_auth_service
from storefront.services.auth import get_current_user
from storefront.utils.base import handle_errors


router = APIRouter()


def success(message: str | None = None, data: dict | None = None) -> dict:
    body: dict = {"status": "success"}
    if message:
        body["message"] = message
    if data is not None:
        body["data"] = data
    return body


# Bodies accept missing fields so the service can answer with its own messages
class SignupBody(BaseModel):
    name: str | None = None
    email: str | None = None
    password: str | None = None
    confirm_password: str | None = Field(default=None, alias="confirmPassword")
    phone: str | None = None

@router.post("/signup", status_code=201)
@handle_errors("An error occurred during registration. Please try again.")
def signup(body: SignupBody, service: AuthService = Depends(get_auth_service)) -> dict:
    data = service.signup(body.name, body.email, body.password, body.confirm_password, body.phone)
    return success("Registration successful! Please check your email for OTP verification.", data)


class VerifyOtpBody(BaseModel):
    email: str | None = None
    otp: str | None = None

@router.post("/verify-otp")
@handle_errors("An error occurred during verification. Please try again.")
def verify_otp(body: VerifyOtpBody, service: AuthService = Depends(get_auth_service)) -> dict:
    service.verify_otp(body.email, body.otp)
    return success("Email verified successfully")


class EmailBody(BaseModel):
    email: str | None = None

@router.post("/resend-otp")
@handle_errors("An error occurred while sending new OTP. Please try again.")
def resend_otp(body: EmailBody, service: AuthService = Depends(get_auth_service)) -> dict:
    service.resend_otp(body.email)
    return success("New OTP sent successfully")


class LoginBody(BaseModel):
    email: str | None = None
    password: str | None = None

@router.post("/login")
@handle_errors("An error occurred during login. Please try again.")
def login(body: LoginBody, service: AuthService = Depends(get_auth_service)) -> dict:
    return success(data=service.login(body.email, body.password))


@router.post("/forgot-password")
@handle_errors("An error occurred while processing your request. Please try again.")
def forgot_password(body: EmailBody, service: AuthService = Depends(get_auth_service)) -> dict:
    service.forgot_password(body.email)
    return success("Password reset token sent to your email")


class ResetPasswordBody(BaseModel):
    email: str | None = None
    token: str | None = None
    new_password: str | None = Field(default=None, alias="newPassword")

@router.post("/reset-password")
@handle_errors("An error occurred while resetting your password. Please try again.")
def reset_password(body: ResetPasswordBody, service: AuthService = Depends(get_auth_service)) -> dict:
    service.reset_password(body.email, body.token, body.new_password)
    return success("Password reset successful. You can now login with your new password.")


class ChangePasswordBody(BaseModel):
    current_password: str | None = Field(default=None, alias="currentPassword")
    new_password: str | None = Field(default=None, alias="newPassword")

@router.post("/change-password")
@handle_errors("An error occurred while changing your password. Please try again.")
def change_password(
    body: ChangePasswordBody,
    current_user: User = Depends(get_current_user),
    service: AuthService = Depends(get_auth_service),
) -> dict:
    """PROTECTED: Change the password of the signed-in user."""
    service.change_password(str(current_user.id), body.current_password, body.new_password)
    return success("Password changed successfully")


@router.post("/session")
@handle_errors("An error occurred while checking your session. Please try again.")
def session(current_user: User = Depends(get_current_user)) -> dict:
    """PROTECTED: Report the user bound to the presented token."""
    return {"ok": True, "user": current_user.to_public()}
