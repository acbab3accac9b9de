"""
Tests for the FastAPI surface (health check and Telegram webhook).
"""

import pytest
from fastapi.testclient import TestClient

import endpoints_bot.main as main
from endpoints_bot.config import Settings


@pytest.fixture
def received(monkeypatch) -> list[dict]:
    updates: list[dict] = []

    async def fake_handle(update_data: dict) -> None:
        updates.append(update_data)

    monkeypatch.setattr(main, "handle_telegram_update", fake_handle)
    return updates


@pytest.fixture
def secured(monkeypatch) -> None:
    settings = Settings(telegram_bot_token="123456:test-token", telegram_webhook_secret="s3cret")
    monkeypatch.setattr(main, "get_settings", lambda: settings)


@pytest.fixture
def client() -> TestClient:
    # No context manager: lifespan would contact Telegram
    return TestClient(main.app)


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_webhook_accepts_update(client, received):
    response = client.post("/telegram/webhook", json={"update_id": 1})
    assert response.status_code == 200
    assert response.json() == {"ok": True}


def test_webhook_rejects_wrong_secret(client, received, secured):
    response = client.post(
        "/telegram/webhook",
        json={"update_id": 1},
        headers={"X-Telegram-Bot-Api-Secret-Token": "wrong"},
    )
    assert response.status_code == 403
    assert received == []


def test_webhook_accepts_right_secret(client, received, secured):
    response = client.post(
        "/telegram/webhook",
        json={"update_id": 1},
        headers={"X-Telegram-Bot-Api-Secret-Token": "s3cret"},
    )
    assert response.status_code == 200
