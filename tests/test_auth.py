"""Tests for login, session cookie, health and startup config checks."""
import asyncio
import os
import sys
from unittest.mock import MagicMock

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config import Settings, missing_settings
from errors import ConfigurationError


def test_login_sets_cookie(client, admin_user):
    resp = client.post("/auth/login", json={"username": "test-admin", "password": "testpass"})

    assert resp.status_code == 200
    assert resp.json()["role"] == "admin"
    assert "access_token" in resp.cookies


def test_login_wrong_password(client, admin_user):
    resp = client.post("/auth/login", json={"username": "test-admin", "password": "nope"})
    assert resp.status_code == 401


def test_me_with_cookie(admin_client):
    resp = admin_client.get("/auth/me")

    assert resp.status_code == 200
    assert resp.json()["username"] == "test-admin"


def test_me_without_cookie(client):
    assert client.get("/auth/me").status_code == 401


def test_garbage_token_rejected(client):
    client.cookies.set("access_token", "not-a-jwt")
    assert client.get("/auth/me").status_code == 401


def test_health(client):
    resp = client.get("/health")

    assert resp.status_code == 200
    assert resp.json()["status"] == "healthy"
    assert resp.json()["ai_configured"] is True


def test_missing_settings_reports_empty_key():
    assert "AI_GATEWAY_API_KEY" in missing_settings(Settings(AI_GATEWAY_API_KEY=""))
    assert "AI_GATEWAY_API_KEY" not in missing_settings(Settings(AI_GATEWAY_API_KEY="k"))


class TestStartup:

    def test_fail_fast_on_missing_key(self, monkeypatch):
        import main

        monkeypatch.setattr(main.settings, "AI_GATEWAY_API_KEY", "")
        monkeypatch.setattr(main.settings, "FAIL_FAST_CONFIG", True)
        storage_factory = MagicMock()
        monkeypatch.setattr(main, "get_minio_client", storage_factory)

        with pytest.raises(ConfigurationError, match="AI_GATEWAY_API_KEY"):
            asyncio.run(main.startup_event())
        storage_factory.assert_not_called()

    def test_missing_key_only_logged_without_fail_fast(self, monkeypatch, db_engine, mock_minio):
        import main

        monkeypatch.setattr(main.settings, "AI_GATEWAY_API_KEY", "")
        monkeypatch.setattr(main.settings, "FAIL_FAST_CONFIG", False)
        monkeypatch.setattr(main.settings, "ADMIN_USERNAME", "")
        monkeypatch.setattr(main, "get_minio_client", lambda: mock_minio)

        asyncio.run(main.startup_event())

        assert mock_minio.bucket_exists.call_count == 2
