"""
Shared fixtures.

Every test gets a fresh SQLite file under pytest's tmp_path, so tests never
share state and never touch the real data directory.
"""

from datetime import datetime, timezone

import pytest

from fleetledger import create_app

FIXED_NOW = datetime(2024, 5, 20, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def app(tmp_path):
    app = create_app({
        "TESTING": True,
        "DB_PATH": str(tmp_path / "fleetledger-test.db"),
        "JWT_SECRET_KEY": "test-secret-key-that-is-long-enough-for-hs256",
    })
    yield app


@pytest.fixture
def client(app):
    return app.test_client()


def register(client, email="owner@example.com", name="Owner", password="secret123"):
    return client.post("/auth/register", json={"name": name, "email": email, "password": password})


def bearer(token):
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers(client):
    token = register(client).get_json()["data"]["token"]
    return bearer(token)


@pytest.fixture
def other_headers(client):
    token = register(client, email="intruder@example.com", name="Intruder").get_json()["data"]["token"]
    return bearer(token)


@pytest.fixture
def frozen_clock(monkeypatch):
    """Pin the request clock used by the record blueprints to FIXED_NOW."""
    monkeypatch.setattr("fleetledger.transactions.utcnow", lambda: FIXED_NOW)
    monkeypatch.setattr("fleetledger.debtors.utcnow", lambda: FIXED_NOW)
    return FIXED_NOW
