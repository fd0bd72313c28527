"""
tests/conftest.py -- shared fixtures.

APP_ENV must be "test" before `models` is imported so DBStorage binds to the
shared in-memory SQLite database instead of a file. Every test gets a fresh
schema via storage.reset().
"""
from __future__ import annotations

import os

os.environ["APP_ENV"] = "test"
os.environ.pop("DATABASE_URL", None)

from datetime import timedelta

import pytest

from api import create_app
from models import storage
from utils.tokens import TokenSettings

PASSWORD = "Secret123!"


@pytest.fixture
def app(tmp_path):
    app = create_app(
        "test",
        overrides={
            "MEDIA_ROOT": str(tmp_path / "media"),
            "MEDIA_BASE_URL": "http://media.test/",
            "UPLOAD_TMP_DIR": str(tmp_path / "tmp"),
        },
    )
    storage.reset()
    yield app
    storage.close()


@pytest.fixture
def client(app):
    # Cookies are passed explicitly so body-vs-cookie precedence stays under test control
    return app.test_client(use_cookies=False)


@pytest.fixture
def sessions(app):
    return app.extensions["session_manager"]


@pytest.fixture
def settings() -> TokenSettings:
    return TokenSettings(
        access_secret="unit-access-secret",
        refresh_secret="unit-refresh-secret",
        access_ttl=timedelta(minutes=15),
        refresh_ttl=timedelta(days=10),
    )


@pytest.fixture
def alice(sessions):
    return sessions.register("alice", "alice@x.com", PASSWORD, fullname="Alice Liddell")


@pytest.fixture
def alice_tokens(client, alice):
    """Log alice in over HTTP and return the response body's data block."""
    resp = client.post("/api/v1/users/login", json={"username": "alice", "password": PASSWORD})
    assert resp.status_code == 200, resp.get_json()
    return resp.get_json()["data"]


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}
