from __future__ import annotations

from datetime import timedelta

import jwt
import pytest
from fastapi.testclient import TestClient

from datastore.users import UserStore
from errors import AuthError, ConflictError, ValidationError
from services.auth import AuthService, hash_password, verify_password
from settings import get_settings

SECRET = "unit-test-secret-with-enough-bytes-for-hs256"


def _service() -> AuthService:
    return AuthService(UserStore(name="users"), secret=SECRET, token_ttl=timedelta(hours=1))


def _register(service: AuthService, **overrides) -> None:
    fields = {
        "username": "Operator",
        "email": "operator@example.com",
        "phone_number": "555-0100",
        "password": "s3cret",
        "role": "operator",
    }
    fields.update(overrides)
    service.register(**fields)


def test_password_hash_round_trip() -> None:
    encoded = hash_password("s3cret")

    assert encoded.startswith("pbkdf2_sha256$")
    assert "s3cret" not in encoded
    assert verify_password("s3cret", encoded)
    assert not verify_password("wrong", encoded)
    assert not verify_password("s3cret", "garbage")


def test_register_normalises_username_and_hides_password() -> None:
    service = _service()
    _register(service)

    stored = service.users.find("operator")
    assert stored is not None
    assert stored.password_hash != "s3cret"
    assert stored.is_active


def test_register_requires_every_field() -> None:
    service = _service()

    with pytest.raises(ValidationError, match="All fields are required."):
        _register(service, phone_number=" ")


def test_register_rejects_duplicate_username_or_email() -> None:
    service = _service()
    _register(service)

    with pytest.raises(ConflictError):
        _register(service, email="other@example.com")
    with pytest.raises(ConflictError):
        _register(service, username="someone-else")


def test_login_issues_token_with_one_hour_expiry() -> None:
    service = _service()
    _register(service)

    user, token = service.login("OPERATOR", "s3cret")

    claims = jwt.decode(token, SECRET, algorithms=["HS256"])
    with pytest.raises(jwt.InvalidSignatureError):
        jwt.decode(token, "another-secret-that-is-also-long-enough", algorithms=["HS256"])
    assert user.username == "operator"
    assert claims["sub"] == "operator"
    assert claims["role"] == "operator"
    assert claims["exp"] - claims["iat"] == 3600


def test_login_failures() -> None:
    service = _service()
    _register(service)

    with pytest.raises(ValidationError):
        service.login("operator", "")
    with pytest.raises(AuthError, match="Invalid credentials."):
        service.login("operator", "wrong")
    with pytest.raises(AuthError, match="Invalid credentials."):
        service.login("nobody", "s3cret")


def test_deactivated_account_cannot_login() -> None:
    service = _service()
    _register(service)
    user = service.users.find("operator")
    service.users.put_item(user.model_copy(update={"is_active": False}))

    with pytest.raises(AuthError, match="User account is deactivated."):
        service.login("operator", "s3cret")


def test_seed_default_admin_only_once() -> None:
    service = _service()

    assert service.seed_default_admin() is True
    assert service.seed_default_admin() is False
    user, _ = service.login("admin", "admin123")
    assert user.role == "administrator"


def test_register_and_login_over_http(api_client: TestClient) -> None:
    payload = {
        "username": "Dispatcher",
        "email": "dispatch@example.com",
        "phoneNumber": "555-0199",
        "password": "pa55word",
        "role": "dispatcher",
    }

    created = api_client.post("/register", json=payload)
    duplicate = api_client.post("/register", json=payload)
    login = api_client.post("/login", json={"username": "dispatcher", "password": "pa55word"})

    assert created.status_code == 201
    assert created.json() == {
        "message": "User registered successfully",
        "user": {"username": "dispatcher", "email": "dispatch@example.com", "role": "dispatcher"},
    }
    assert duplicate.status_code == 400
    assert login.status_code == 200
    body = login.json()
    assert body["message"] == "Login successful"
    claims = jwt.decode(body["token"], get_settings().jwt_secret, algorithms=["HS256"])
    assert claims["exp"] - claims["iat"] == 3600


def test_http_login_errors(api_client: TestClient) -> None:
    missing = api_client.post("/register", json={"username": "x", "email": "", "phoneNumber": "1", "password": "p", "role": "r"})
    blank = api_client.post("/login", json={"username": "admin", "password": ""})
    wrong = api_client.post("/login", json={"username": "admin", "password": "nope"})

    assert missing.status_code == 400
    assert missing.json()["detail"] == "All fields are required."
    assert blank.status_code == 400
    assert wrong.status_code == 401
    assert "token" not in wrong.json()


def test_default_admin_can_login_over_http(api_client: TestClient) -> None:
    response = api_client.post("/login", json={"username": "admin", "password": "admin123"})

    assert response.status_code == 200
    assert response.json()["user"]["role"] == "administrator"
