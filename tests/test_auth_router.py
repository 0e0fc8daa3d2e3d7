from datetime import timedelta

import pytest

from flashquiz.core.dependencies import get_user_repository
from flashquiz.core.security import TokenRevocationStore, create_access_token, get_revocation_store, hash_password
from flashquiz.main import app

STRONG_PASSWORD = "Str0ng!pass"


@pytest.fixture
def auth_client(client, user_repo, fake_redis):
    app.dependency_overrides[get_user_repository] = lambda: user_repo
    app.dependency_overrides[get_revocation_store] = lambda: TokenRevocationStore(fake_redis)
    return client


def register(client, **overrides):
    payload = {
        "username": "alice",
        "email": "Alice@Example.com",
        "password": STRONG_PASSWORD,
        "confirm_password": STRONG_PASSWORD,
        **overrides,
    }
    return client.post("/auth/register", json=payload)


def login(client, email="alice@example.com", password=STRONG_PASSWORD):
    return client.post("/auth/login", json={"email": email, "password": password})


def test_register_creates_user(auth_client, user_repo):
    response = register(auth_client)

    assert response.status_code == 201
    data = response.json()["data"]
    assert data["email"] == "alice@example.com"
    assert data["role"] == "user"
    assert "hashed_password" not in data

    stored = next(iter(user_repo.users.values()))
    assert stored["hashed_password"] != STRONG_PASSWORD


def test_register_duplicate_email(auth_client):
    register(auth_client)
    response = register(auth_client, username="alice2", email="alice@example.com")

    assert response.status_code == 409
    assert response.json()["details"]["kind"] == "conflict"


@pytest.mark.parametrize("password", [
    "Sh0rt!",          # короткий
    "nouppercase1!",   # без заглавной
    "NOLOWERCASE1!",   # без строчной
    "NoDigitsHere!",   # без цифры
    "NoSpecial123",    # без спецсимвола
])
def test_register_password_policy(auth_client, password):
    response = register(auth_client, password=password, confirm_password=password)
    assert response.status_code == 422


def test_register_password_mismatch(auth_client):
    response = register(auth_client, confirm_password="Other!pass1")
    assert response.status_code == 422


def test_register_bad_email(auth_client):
    response = register(auth_client, email="not-an-email")
    assert response.status_code == 422
    assert response.json()["details"]["errors"][0]["field"] == "email"


def test_login_returns_token_and_cookie(auth_client, user_repo):
    register(auth_client)

    response = login(auth_client)

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["token_type"] == "bearer"
    assert data["access_token"]
    assert data["user"]["email"] == "alice@example.com"
    assert "access_token" in response.headers.get("set-cookie", "")
    assert user_repo.touched


def test_login_wrong_password(auth_client):
    register(auth_client)
    response = login(auth_client, password="Wr0ng!pass")
    assert response.status_code == 401
    assert response.json()["details"]["kind"] == "unauthorized"


def test_login_unknown_email(auth_client):
    response = login(auth_client, email="ghost@example.com")
    assert response.status_code == 401


def test_me_with_bearer_token(auth_client):
    register(auth_client)
    token = login(auth_client).json()["data"]["access_token"]

    response = auth_client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 200
    assert response.json()["data"]["email"] == "alice@example.com"


def test_me_without_token(auth_client):
    response = auth_client.get("/auth/me")
    assert response.status_code == 401


def test_me_with_garbage_token(auth_client):
    response = auth_client.get("/auth/me", headers={"Authorization": "Bearer not.a.jwt"})
    assert response.status_code == 401


def test_me_with_expired_token(auth_client, user_repo):
    user = user_repo.add({"email": "old@example.com", "hashed_password": hash_password(STRONG_PASSWORD)})
    token, _, _ = create_access_token({"sub": str(user["_id"]), "role": "user"}, timedelta(minutes=-5))

    response = auth_client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401


def test_logout_revokes_token(auth_client, fake_redis):
    register(auth_client)
    token = login(auth_client).json()["data"]["access_token"]
    headers = {"Authorization": f"Bearer {token}"}

    response = auth_client.post("/auth/logout", headers=headers)
    assert response.status_code == 200
    assert len(fake_redis.data) == 1

    again = auth_client.get("/auth/me", headers=headers)
    assert again.status_code == 401
