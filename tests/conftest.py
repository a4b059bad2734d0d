import uuid

import pytest
from fastapi import HTTPException
from fastapi.testclient import TestClient

from huddle.main import app
from huddle.core.supabase_client import get_supabase
from huddle.core.dependencies import verify_token
from huddle.friendship.usernames import normalize_username

from fakes import FakeSupabase


@pytest.fixture
def db():
    return FakeSupabase()


@pytest.fixture
def auth_state():
    """Payload returned by the overridden verify_token; None means unauthenticated."""
    return {"payload": None}


@pytest.fixture
def client(db, auth_state):
    def fake_verify_token():
        if auth_state["payload"] is None:
            raise HTTPException(status_code=401, detail="Unauthorized")
        return auth_state["payload"]

    app.dependency_overrides[get_supabase] = lambda: db
    app.dependency_overrides[verify_token] = fake_verify_token

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db):
    def _make_user(username, email=None):
        profile = {
            "id": str(uuid.uuid4()),
            "username": username,
            "username_normalized": normalize_username(username),
            "email": email or f"{normalize_username(username)}@example.com",
            "image_url": None,
        }
        return db.table("profiles").insert(profile).execute().data[0]

    return _make_user


@pytest.fixture
def login(auth_state):
    """Make subsequent requests on ``client`` come from ``user``."""

    def _login(user):
        auth_state["payload"] = {"sub": user["id"], "email": user["email"]}

    return _login


@pytest.fixture
def alice(make_user):
    return make_user("alice")


@pytest.fixture
def bob(make_user):
    return make_user("bob")


@pytest.fixture
def carol(make_user):
    return make_user("carol")
