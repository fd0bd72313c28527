from __future__ import annotations

from datetime import timedelta

import pytest

from api import create_app
from api.config import (
    DEV_ACCESS_SECRET,
    DevelopmentConfig,
    ProductionConfig,
    TestingConfig,
    check_secrets,
    get_config,
)


@pytest.mark.parametrize(
    "name,expected",
    [("prod", ProductionConfig), ("Production", ProductionConfig), ("test", TestingConfig), ("dev", DevelopmentConfig)],
)
def test_get_config_by_name(name, expected):
    assert get_config(name) is expected


def test_get_config_from_env(monkeypatch):
    monkeypatch.setenv("APP_ENV", "prod")
    assert get_config(None) is ProductionConfig


def test_production_refuses_dev_secrets():
    config = {"ENFORCE_SECRETS": True, "ACCESS_TOKEN_SECRET": DEV_ACCESS_SECRET, "REFRESH_TOKEN_SECRET": "real"}
    with pytest.raises(RuntimeError):
        check_secrets(config)


def test_production_accepts_real_secrets():
    check_secrets({"ENFORCE_SECRETS": True, "ACCESS_TOKEN_SECRET": "a" * 40, "REFRESH_TOKEN_SECRET": "b" * 40})


def test_create_app_rejects_shared_secret():
    with pytest.raises(ValueError):
        create_app("test", overrides={"REFRESH_TOKEN_SECRET": TestingConfig.ACCESS_TOKEN_SECRET})


def test_create_app_rejects_inverted_lifetimes():
    with pytest.raises(ValueError):
        create_app("test", overrides={"ACCESS_TOKEN_EXPIRES": timedelta(days=30)})


def test_cookie_flags_configurable(app, client, alice):
    app.config["AUTH_COOKIE_SECURE"] = False
    resp = client.post("/api/v1/users/login", json={"username": "alice", "password": "Secret123!"})
    headers = resp.headers.getlist("Set-Cookie")
    assert headers and all("HttpOnly" in h for h in headers)
    assert not any("Secure" in h for h in headers)
