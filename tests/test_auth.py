import asyncio
import time

import httpx
import jwt
import pytest
from cryptography.hazmat.primitives.asymmetric import rsa
from fastapi import HTTPException
from starlette.requests import Request

from config.settings import Settings
from services.auth_service import (
    AuthContext,
    ClerkAuth,
    ClerkClient,
    UserFound,
    UserNotFound,
    UserUnauthenticated,
    resolve_user,
)


class StaticSigningKey:
    def __init__(self, key):
        self.key = key


class StaticJWKS:
    def __init__(self, public_key):
        self._key = StaticSigningKey(public_key)

    def get_signing_key_from_jwt(self, token):
        return self._key


@pytest.fixture(scope="module")
def private_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture
def settings():
    settings = Settings()
    settings.clerk_authorized_parties = []
    return settings


def _auth(settings, private_key, auto_error=True):
    auth = ClerkAuth(settings=settings, auto_error=auto_error)
    auth._jwks_client = StaticJWKS(private_key.public_key())
    return auth


def _token(private_key, **claims):
    now = int(time.time())
    payload = {"sub": "user_123", "sid": "sess_1", "iat": now, "exp": now + 60}
    payload.update(claims)
    return jwt.encode(payload, private_key, algorithm="RS256")


def _request(headers=None, cookies=None):
    raw_headers = [(name.lower().encode(), value.encode()) for name, value in (headers or {}).items()]
    if cookies:
        raw_headers.append((b"cookie", "; ".join(f"{k}={v}" for k, v in cookies.items()).encode()))
    return Request({"type": "http", "method": "GET", "path": "/", "headers": raw_headers})


def test_verify_accepts_valid_token(settings, private_key):
    context = _auth(settings, private_key).verify(_token(private_key))

    assert context == AuthContext(user_id="user_123", session_id="sess_1")


def test_verify_rejects_expired_token(settings, private_key):
    token = _token(private_key, exp=int(time.time()) - 60)

    assert _auth(settings, private_key).verify(token) is None


def test_verify_rejects_token_signed_by_another_key(settings, private_key):
    other_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)

    assert _auth(settings, private_key).verify(_token(other_key)) is None


def test_verify_checks_authorized_party(settings, private_key):
    settings.clerk_authorized_parties = ["https://app.example.com"]
    auth = _auth(settings, private_key)

    assert auth.verify(_token(private_key, azp="https://evil.example.com")) is None
    assert auth.verify(_token(private_key, azp="https://app.example.com")) is not None


def test_dependency_reads_session_cookie(settings, private_key):
    auth = _auth(settings, private_key)
    request = _request(cookies={"__session": _token(private_key)})

    context = asyncio.run(auth(request))

    assert context.user_id == "user_123"


def test_dependency_raises_401_without_token(settings, private_key):
    with pytest.raises(HTTPException) as excinfo:
        asyncio.run(_auth(settings, private_key)(_request()))

    assert excinfo.value.status_code == 401


def test_optional_dependency_returns_none_for_bad_token(settings, private_key):
    auth = _auth(settings, private_key, auto_error=False)

    assert asyncio.run(auth(_request(headers={"Authorization": "Bearer garbage"}))) is None


def test_clerk_client_prefers_primary_email(settings):
    def handler(request):
        assert request.url.path.endswith("/users/user_123")
        return httpx.Response(200, json={
            "primary_email_address_id": "idn_2",
            "email_addresses": [
                {"id": "idn_1", "email_address": "old@example.com"},
                {"id": "idn_2", "email_address": "ada@example.com"},
            ],
        })

    client = ClerkClient(settings=settings, transport=httpx.MockTransport(handler))

    assert client.get_primary_email("user_123") == "ada@example.com"


def test_clerk_client_without_addresses(settings):
    transport = httpx.MockTransport(lambda request: httpx.Response(200, json={"email_addresses": []}))

    assert ClerkClient(settings=settings, transport=transport).get_primary_email("user_123") is None


def test_clerk_client_raises_on_api_error(settings):
    transport = httpx.MockTransport(lambda request: httpx.Response(404, json={"errors": []}))

    with pytest.raises(httpx.HTTPStatusError):
        ClerkClient(settings=settings, transport=transport).get_primary_email("user_123")


class DictUserStore:
    def __init__(self, rows):
        self.rows = rows

    def get_by_clerk_id(self, clerk_user_id):
        return self.rows.get(clerk_user_id)


def test_resolve_user_outcomes():
    store = DictUserStore({"user_123": {"id": "u-1", "clerk_user_id": "user_123"}})

    assert resolve_user(store, None) == UserUnauthenticated()
    assert resolve_user(store, AuthContext(user_id="user_999")) == UserNotFound(clerk_user_id="user_999")
    assert resolve_user(store, AuthContext(user_id="user_123")) == UserFound(
        user={"id": "u-1", "clerk_user_id": "user_123"}
    )
