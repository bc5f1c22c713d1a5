"""Create or promote an admin account.

No HTTP route grants the admin role, so operators run this once per admin:

    python -m storefront.scripts.create_admin --name "Store Admin" \
        --email admin@example.com --phone +15550000000 --password 'Secret123!'
"""
from __future__ import annotations

import argparse
import logging

from storefront.connections.mongo import close_mongo, init_mongo
from storefront.repositories import UserRepository
from storefront.services.accounts import is_strong_password, is_valid_email, is_valid_phone
from storefront.services.auth import hash_password
from storefront.utils.base import UserRole


logger = logging.getLogger(__name__)


def ensure_admin(users: UserRepository, name: str, email: str, phone: str, password: str) -> bool:
    """Return True when a new admin was created, False when an existing user was promoted."""
    email = email.lower()
    if not is_valid_email(email) or not is_valid_phone(phone):
        raise ValueError("A valid email address and phone number are required")

    user = users.find_by_email_or_phone(email, phone)
    if user:
        user.role = UserRole.ADMIN.value
        user.is_verified = True
        users.save(user)
        logger.info("Promoted %s to admin", user.email)
        return False

    if not is_strong_password(password):
        raise ValueError("Password does not meet the complexity policy")
    users.create(
        name=name.strip(),
        email=email,
        phone=phone,
        password=hash_password(password),
        role=UserRole.ADMIN.value,
        is_verified=True,
    )
    logger.info("Created admin %s", email)
    return True


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--name", required=True)
    parser.add_argument("--email", required=True)
    parser.add_argument("--phone", required=True)
    parser.add_argument("--password", required=True)
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO)
    init_mongo()
    try:
        ensure_admin(UserRepository(), args.name, args.email, args.phone, args.password)
    finally:
        close_mongo()


if __name__ == "__main__":
    main()
