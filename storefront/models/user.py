from mongoengine import (
    BooleanField,
    DateTimeField,
    EmbeddedDocumentField,
    StringField,
)

from storefront.models.base import BaseDocument, BaseEmbeddedDocument
from storefront.utils.base import UserRole


class OtpChallenge(BaseEmbeddedDocument):
    """Embedded: the open email verification challenge.

    Fields:
    - code (str): 6-digit numeric code
    - expires_at (datetime): end of the verification window
    """
    code = StringField(required=True, null=False, min_length=6, max_length=6)
    expires_at = DateTimeField(required=True, null=False)


class User(BaseDocument):
    """User document.

    Fields:
    - name (str): Trimmed display name
    - email (str, unique): Lowercased login identifier
    - phone (str, unique): Contact number
    - password (str, hashed): Bcrypt hash, never serialized
    - role (str): "user" or "admin"
    - is_verified (bool): Set once the signup OTP is confirmed
    - otp (OtpChallenge|None): Present only while verification is pending
    - password_reset_token/password_reset_expires: Present only during a reset window
    - last_login (datetime|None): Updated on each successful login
    """
    name = StringField(required=True, null=False, min_length=2)
    # Syntax is checked by the account service; the store only enforces uniqueness
    email = StringField(required=True, null=False, unique=True)
    phone = StringField(required=True, null=False, unique=True)
    password = StringField(required=True, null=False)
    role = StringField(required=True, null=False, default=UserRole.USER.value, choices=UserRole.choices())
    is_verified = BooleanField(required=True, null=False, default=False)
    otp = EmbeddedDocumentField(OtpChallenge, required=False, null=True)
    password_reset_token = StringField(required=False, null=True)
    password_reset_expires = DateTimeField(required=False, null=True)
    last_login = DateTimeField(required=False, null=True)

    meta = {
        "collection": "users",
        "indexes": [
            {"fields": ["email"], "unique": True},
            {"fields": ["phone"], "unique": True},
        ],
    }

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value

    def to_public(self) -> dict:
        """Projection safe to return to clients."""
        return self.to_output(
            fields=["name", "email", "role", "phone", "is_verified"],
            aliases={"is_verified": "isVerified"},
        )
