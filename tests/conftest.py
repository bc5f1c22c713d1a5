from datetime import datetime, timedelta, timezone

import pytest
from bson.objectid import ObjectId
from fastapi.testclient import TestClient

from main import app
from storefront.models.base import as_utc
from storefront.models.product import Product
from storefront.models.user import User
from storefront.repositories import get_product_repository, get_user_repository
from storefront.services.accounts import AuthService
from storefront.services.auth import create_session_token, hash_password
from storefront.services.notifications import NotificationSender, get_notification_sender
from storefront.services.uploads import ImageStore, get_image_store
from storefront.utils.base import Conflict, NotificationError, UserRole
from storefront.utils.config import settings


STRONG_PASSWORD = "Abcdef1!"


class InMemoryUserRepository:
    def __init__(self):
        self.users: dict[str, User] = {}

    def get_by_id(self, user_id, include_password=False):
        return self.users.get(str(user_id))

    def get_by_email(self, email):
        return next((u for u in self.users.values() if u.email == email), None)

    def find_by_email_or_phone(self, email, phone):
        return next((u for u in self.users.values() if u.email == email or u.phone == phone), None)

    def create(self, **fields):
        if self.find_by_email_or_phone(fields.get("email"), fields.get("phone")):
            raise Conflict("Email or phone number already registered")
        user = User(**fields)
        user.validate()
        user.id = ObjectId()
        self.users[str(user.id)] = user
        return user

    def save(self, user):
        user.validate()
        self.users[str(user.id)] = user
        return user

    def delete(self, user_id):
        self.users.pop(str(user_id), None)

    def consume_reset_token(self, email, token, now, password_hash):
        user = self.get_by_email(email)
        if (
            not user
            or user.password_reset_token != token
            or not user.password_reset_expires
            or as_utc(user.password_reset_expires) <= now
        ):
            return None
        user.password = password_hash
        user.password_reset_token = None
        user.password_reset_expires = None
        return user


class InMemoryProductRepository:
    def __init__(self):
        self.products: dict[str, Product] = {}

    def list_all(self):
        return sorted(self.products.values(), key=lambda p: p.created_at, reverse=True)

    def get_by_id(self, product_id):
        return self.products.get(str(product_id))

    def save(self, product):
        product.validate()
        if product.id is None:
            product.id = ObjectId()
        self.products[str(product.id)] = product
        return product

    def delete(self, product):
        self.products.pop(str(product.id), None)


class RecordingSender(NotificationSender):
    def __init__(self):
        self.messages = []
        self.fail = False

    def send(self, message):
        if self.fail:
            raise NotificationError("smtp down")
        self.messages.append(message)

    @property
    def last(self):
        return self.messages[-1]


class FrozenClock:
    def __init__(self):
        self.now = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


@pytest.fixture
def users():
    return InMemoryUserRepository()


@pytest.fixture
def products():
    return InMemoryProductRepository()


@pytest.fixture
def sender():
    return RecordingSender()


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def service(users, sender, clock):
    return AuthService(users, sender, settings, clock=clock)


@pytest.fixture
def image_store(tmp_path):
    return ImageStore(tmp_path / "products")


@pytest.fixture
def client(users, products, sender, image_store):
    app.dependency_overrides[get_user_repository] = lambda: users
    app.dependency_overrides[get_product_repository] = lambda: products
    app.dependency_overrides[get_notification_sender] = lambda: sender
    app.dependency_overrides[get_image_store] = lambda: image_store
    yield TestClient(app)
    app.dependency_overrides.clear()


def make_user(users, email="jane@example.com", phone="+15550001111", role=UserRole.USER.value, verified=True,
              password=STRONG_PASSWORD):
    return users.create(
        name="Jane Doe",
        email=email,
        phone=phone,
        password=hash_password(password),
        role=role,
        is_verified=verified,
    )


def bearer(user) -> dict:
    return {"Authorization": f"Bearer {create_session_token(user.id)}"}
