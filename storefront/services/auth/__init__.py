import logging
import secrets
from datetime import datetime, timedelta, timezone

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from passlib.context import CryptContext
from jose import jwt, JWTError

from storefront.models.user import User
from storefront.repositories import UserRepository, get_user_repository
from storefront.utils.base import Unauthorized
from storefront.utils.config import Settings, settings


logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=settings.bcrypt_rounds)
bearer_scheme = HTTPBearer(auto_error=False)

TOKEN_FAILED = "Not authorized, token failed"


def verify_password(plain: str, hashed: str) -> bool:
    """Verify plaintext password against a bcrypt hash."""
    try:
        return pwd_context.verify(plain, hashed)
    except (ValueError, TypeError):
        return False


def hash_password(plain: str) -> str:
    """Hash a plaintext password using bcrypt with a fresh salt."""
    return pwd_context.hash(plain)


def generate_code() -> str:
    """Six-digit numeric code used for both OTPs and reset tokens."""
    return str(100000 + secrets.randbelow(900000))


def create_session_token(user_id: str, config: Settings = settings) -> str:
    """Create a signed session JWT binding the user id, valid for N days."""
    now = datetime.now(timezone.utc)
    payload = {
        "id": str(user_id),
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(days=config.session_token_expires_days)).timestamp()),
    }
    return jwt.encode(payload, config.jwt_secret_key, algorithm=config.jwt_algorithm)


def decode_session_token(token: str, config: Settings = settings) -> str:
    """Return the user id bound to a session token.

    Bad signature, expiry and malformed payloads all raise the same
    ``Unauthorized`` so callers cannot tell them apart.
    """
    try:
        payload = jwt.decode(token, config.jwt_secret_key, algorithms=[config.jwt_algorithm])
    except JWTError:
        raise Unauthorized(TOKEN_FAILED)
    user_id = payload.get("id")
    if not user_id:
        raise Unauthorized(TOKEN_FAILED)
    return user_id


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    users: UserRepository = Depends(get_user_repository),
) -> User:
    """Auth dependency that validates a bearer token and returns the user.

    The user is loaded without the password hash.
    """
    if credentials is None or not credentials.credentials:
        raise Unauthorized("Access denied. No token provided")

    user_id = decode_session_token(credentials.credentials)
    try:
        user = users.get_by_id(user_id)
    except Exception:
        logger.exception("Failed to resolve user for session token")
        raise Unauthorized(TOKEN_FAILED)
    if not user:
        raise Unauthorized(TOKEN_FAILED)
    return user


def require_admin(current_user: User = Depends(get_current_user)) -> User:
    """Restrict a route to admins. Non-admins get 401, not 403."""
    if not current_user.is_admin:
        raise Unauthorized("Not authorized as admin")
    return current_user
