from datetime import datetime, timedelta
from unittest.mock import MagicMock

import jwt
import pytest
from bson import ObjectId

from flashquiz.core.config import settings
from flashquiz.core.errors import Forbidden
from flashquiz.core.security import (
    TokenRevocationStore,
    create_access_token,
    decode_token,
    ensure_self_or_admin,
    extract_token,
    hash_password,
    verify_password,
)


def test_password_hash_roundtrip():
    hashed = hash_password("Str0ng!pass")
    assert hashed != "Str0ng!pass"
    assert verify_password("Str0ng!pass", hashed)
    assert not verify_password("wrong", hashed)


def test_token_carries_sub_role_jti_exp():
    token, expires_at, jti = create_access_token({"sub": "abc", "role": "admin"})

    payload = decode_token(token)

    assert payload["sub"] == "abc"
    assert payload["role"] == "admin"
    assert payload["jti"] == jti
    assert expires_at > datetime.utcnow()
    assert expires_at <= datetime.utcnow() + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES, seconds=5)


def test_each_token_has_unique_jti():
    _, _, first = create_access_token({"sub": "abc", "role": "user"})
    _, _, second = create_access_token({"sub": "abc", "role": "user"})
    assert first != second


def test_token_signed_with_other_key_is_rejected():
    token = jwt.encode(
        {"sub": "abc", "jti": "x", "exp": datetime.utcnow() + timedelta(minutes=5)},
        "another-secret-key-that-is-long-enough-for-hs256",
        algorithm="HS256"
    )
    with pytest.raises(jwt.InvalidSignatureError):
        decode_token(token)


def test_token_without_jti_is_rejected():
    token = jwt.encode(
        {"sub": "abc", "exp": datetime.utcnow() + timedelta(minutes=5)},
        settings.SECRET_KEY,
        algorithm=settings.ALGORITHM
    )
    with pytest.raises(jwt.MissingRequiredClaimError):
        decode_token(token)


def _request(headers=None, cookies=None):
    request = MagicMock()
    request.headers = headers or {}
    request.cookies = cookies or {}
    return request


def test_extract_token_prefers_bearer_header():
    request = _request({"Authorization": "Bearer header-token"}, {"access_token": "cookie-token"})
    assert extract_token(request) == "header-token"


def test_extract_token_falls_back_to_cookie():
    assert extract_token(_request(cookies={"access_token": "cookie-token"})) == "cookie-token"
    assert extract_token(_request({"Authorization": "Basic abc"}, {"access_token": "c"})) == "c"
    assert extract_token(_request()) is None


class TestTokenRevocationStore:
    async def test_revoke_sets_ttl_to_remaining_lifetime(self, fake_redis):
        store = TokenRevocationStore(fake_redis)

        await store.revoke("jti-1", datetime.utcnow() + timedelta(minutes=10))

        value, ttl = fake_redis.data["revoked_jti:jti-1"]
        assert 590 <= ttl <= 600
        assert await store.is_revoked("jti-1")
        assert not await store.is_revoked("jti-2")

    async def test_already_expired_token_is_not_stored(self, fake_redis):
        store = TokenRevocationStore(fake_redis)
        await store.revoke("old", datetime.utcnow() - timedelta(seconds=1))
        assert fake_redis.data == {}


def test_ensure_self_or_admin():
    me = ObjectId()
    ensure_self_or_admin({"id": me, "role": "user"}, str(me))
    ensure_self_or_admin({"id": ObjectId(), "role": "admin"}, str(me))
    with pytest.raises(Forbidden):
        ensure_self_or_admin({"id": ObjectId(), "role": "user"}, str(me))
