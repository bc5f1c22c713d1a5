"""Data access for user documents.

Routes and services never call ``User.objects`` directly; they go through
this repository so the storage engine stays swappable (tests plug in an
in-memory implementation through FastAPI dependency overrides).
"""
from __future__ import annotations

from datetime import datetime

from bson.objectid import ObjectId
from mongoengine import NotUniqueError, Q

from storefront.models.user import User
from storefront.utils.base import Conflict


class UserRepository:
    def get_by_id(self, user_id: str, include_password: bool = False) -> User | None:
        if not ObjectId.is_valid(str(user_id)):
            return None
        query = User.objects(id=user_id)
        if not include_password:
            query = query.exclude("password")
        return query.first()

    def get_by_email(self, email: str) -> User | None:
        return User.objects(email=email).first()

    def find_by_email_or_phone(self, email: str, phone: str) -> User | None:
        return User.objects(Q(email=email) | Q(phone=phone)).first()

    def create(self, **fields) -> User:
        user = User(**fields)
        try:
            user.save(force_insert=True)
        except NotUniqueError:
            # Lost a race against a concurrent signup with the same email/phone
            raise Conflict("Email or phone number already registered")
        return user

    def save(self, user: User) -> User:
        user.save()
        return user

    def delete(self, user_id) -> None:
        User.objects(id=user_id).delete()

    def consume_reset_token(self, email: str, token: str, now: datetime, password_hash: str) -> User | None:
        """Atomically swap in a new password hash if the reset token is live.

        The match on email, token and expiry plus the update run as one
        findAndModify, so only one of several concurrent callers wins.
        """
        return User.objects(
            email=email,
            password_reset_token=token,
            password_reset_expires__gt=now,
        ).modify(
            new=True,
            set__password=password_hash,
            set__updated_at=now,
            unset__password_reset_token=True,
            unset__password_reset_expires=True,
        )


def get_user_repository() -> UserRepository:
    return UserRepository()
