"""Account registration and token issuing."""

from __future__ import annotations

import hashlib
import hmac
import logging
import secrets
from datetime import timedelta
from functools import lru_cache
from typing import Optional

import jwt

from app.schemas import UserRecord, utcnow
from datastore.users import UserStore, build_default_user_store
from errors import AuthError, ValidationError
from settings import get_settings

logger = logging.getLogger(__name__)

_HASH_ALGORITHM = "pbkdf2_sha256"
_HASH_ITERATIONS = 260_000
TOKEN_ALGORITHM = "HS256"


def hash_password(password: str, salt: Optional[str] = None) -> str:
    salt = salt or secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac(
        "sha256", password.encode("utf-8"), salt.encode("utf-8"), _HASH_ITERATIONS
    )
    return f"{_HASH_ALGORITHM}${_HASH_ITERATIONS}${salt}${digest.hex()}"


def verify_password(password: str, encoded: str) -> bool:
    try:
        algorithm, iterations, salt, expected = encoded.split("$", 3)
    except ValueError:
        return False
    if algorithm != _HASH_ALGORITHM:
        return False
    digest = hashlib.pbkdf2_hmac(
        "sha256", password.encode("utf-8"), salt.encode("utf-8"), int(iterations)
    )
    return hmac.compare_digest(digest.hex(), expected)


class AuthService:
    def __init__(
        self,
        users: UserStore,
        secret: str,
        token_ttl: timedelta = timedelta(hours=1),
    ) -> None:
        self.users = users
        self.secret = secret
        self.token_ttl = token_ttl

    def register(
        self,
        username: str,
        email: str,
        phone_number: str,
        password: str,
        role: str,
    ) -> UserRecord:
        fields = (username, email, phone_number, password, role)
        if not all(value and value.strip() for value in fields):
            raise ValidationError("All fields are required.")

        user = UserRecord(
            username=username.strip().lower(),
            email=email.strip(),
            phone_number=phone_number.strip(),
            role=role.strip(),
            password_hash=hash_password(password),
        )
        created = self.users.insert(user)
        logger.info("User registered", extra={"username": created.username})
        return created

    def authenticate(self, username: str, password: str) -> UserRecord:
        if not username or not password:
            raise ValidationError("Username and password are required.")

        normalized = username.strip().lower()
        user = self.users.find(normalized)
        if user is None:
            logger.info("Login rejected", extra={"username": normalized, "reason": "unknown user"})
            raise AuthError("Invalid credentials.")
        if not user.is_active:
            logger.info("Login rejected", extra={"username": normalized, "reason": "deactivated"})
            raise AuthError("User account is deactivated.")
        if not verify_password(password, user.password_hash):
            logger.info(
                "Login rejected", extra={"username": normalized, "reason": "password mismatch"}
            )
            raise AuthError("Invalid credentials.")
        return user

    def issue_token(self, user: UserRecord) -> str:
        issued_at = utcnow()
        claims = {
            "sub": user.username,
            "role": user.role,
            "iat": issued_at,
            "exp": issued_at + self.token_ttl,
        }
        return jwt.encode(claims, self.secret, algorithm=TOKEN_ALGORITHM)

    def login(self, username: str, password: str) -> tuple[UserRecord, str]:
        user = self.authenticate(username, password)
        logger.info("Login successful", extra={"username": user.username})
        return user, self.issue_token(user)

    def seed_default_admin(self) -> bool:
        """Create the ``admin`` account when no users exist yet."""
        if self.users.count():
            return False
        self.register(
            username="admin",
            email="admin@smartwaste.com",
            phone_number="1234567890",
            password="admin123",
            role="administrator",
        )
        return True


@lru_cache
def build_default_auth_service() -> AuthService:
    settings = get_settings()
    return AuthService(
        users=build_default_user_store(),
        secret=settings.jwt_secret,
        token_ttl=timedelta(seconds=settings.token_ttl_seconds),
    )
