import time

import jwt
import pytest
from fastapi import HTTPException
from fastapi.security import HTTPAuthorizationCredentials

from huddle.core.dependencies import verify_token

SECRET = "test-secret"
SUPABASE_URL = "https://example.supabase.co"


@pytest.fixture(autouse=True)
def jwt_env(monkeypatch):
    monkeypatch.setenv("SUPABASE_JWT_SECRET", SECRET)
    monkeypatch.setenv("PUBLIC_SUPABASE_URL", SUPABASE_URL)


def bearer(token):
    return HTTPAuthorizationCredentials(scheme="Bearer", credentials=token)


def make_token(**overrides):
    claims = {
        "sub": "user-1",
        "email": "user@example.com",
        "iss": f"{SUPABASE_URL}/auth/v1",
        "exp": int(time.time()) + 3600,
    }
    claims.update(overrides)
    return jwt.encode(claims, SECRET, algorithm="HS256")


def test_valid_token_returns_payload():
    payload = verify_token(bearer(make_token()))
    assert payload["sub"] == "user-1"


def test_expired_token():
    with pytest.raises(HTTPException) as exc:
        verify_token(bearer(make_token(exp=int(time.time()) - 3600)))
    assert exc.value.status_code == 401
    assert exc.value.detail == "Token expired"


def test_wrong_issuer_is_invalid():
    with pytest.raises(HTTPException) as exc:
        verify_token(bearer(make_token(iss="https://elsewhere/auth/v1")))
    assert exc.value.detail == "Invalid token"


def test_missing_credentials():
    with pytest.raises(HTTPException) as exc:
        verify_token(None)
    assert exc.value.status_code == 401


def test_protected_route_resolves_profile(client, login, alice):
    login(alice)
    resp = client.get("/protected")
    assert resp.status_code == 200
    assert "alice" in resp.json()["message"]


def test_token_without_subject_is_unauthorized(client, auth_state):
    auth_state["payload"] = {"email": "x@example.com"}
    resp = client.get("/protected")
    assert resp.status_code == 401


def test_request_id_header(client, login, alice):
    login(alice)
    resp = client.get("/protected", headers={"X-Request-ID": "abc"})
    assert resp.headers["X-Request-ID"] == "abc"
    assert client.get("/health").headers["X-Request-ID"]
