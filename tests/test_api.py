import asyncio
import json

import pytest
from fastapi.testclient import TestClient

from api import main as api_main
from api.main import app, get_services
from tests.conftest import FakeChatClient, FakeSender, make_services, make_store

HEADERS = {"X-User-Id": "100"}


@pytest.fixture
def client(tmp_path):
    store = asyncio.run(make_store(tmp_path / "api.db"))
    services = make_services(store, chat_client=FakeChatClient(json.dumps({"type": "idea"})), sender=FakeSender())
    app.dependency_overrides[get_services] = lambda: services
    # startup не запускается: TestClient без контекстного менеджера
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_submit_and_read_back_keeps_sign_and_project(client):
    response = client.post(
        "/api/submit",
        json={"type": "transaction", "amount": "-500", "project": "Cars", "description": "бензин"},
        headers=HEADERS,
    )
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["record"]["telegram_chat_id"] == "100"

    rows = client.get("/api/records", params={"kind": "transaction"}, headers=HEADERS).json()
    assert len(rows) == 1
    assert rows[0]["amount"] == "-500"
    assert rows[0]["project"] == "Cars"

    # чужие записи не видны
    assert client.get("/api/records", params={"kind": "transaction"}, headers={"X-User-Id": "7"}).json() == []


def test_submit_rejects_unknown_type(client):
    response = client.post("/api/submit", json={"type": "note"}, headers=HEADERS)
    assert response.status_code == 400


def test_user_header_required(client):
    assert client.get("/api/recent").status_code == 401


def test_recent_and_analytics(client):
    for payload in (
        {"type": "transaction", "amount": "+2000", "project": "GO", "description": "аренда"},
        {"type": "transaction", "amount": "-700", "project": "GO", "description": "дрова"},
        {"type": "task", "project": "GO", "description": "покосить траву"},
    ):
        assert client.post("/api/submit", json=payload, headers=HEADERS).json()["success"]

    recent = client.get("/api/recent", headers=HEADERS).json()
    assert len(recent) == 3
    assert recent[0]["kind"] == "task"

    stats = client.get("/api/analytics", params={"project": "GO", "period": "month"}, headers=HEADERS).json()
    assert stats["counts"]["transaction"] == 2
    assert stats["finance"]["income"] == 2000.0
    assert stats["finance"]["expense"] == 700.0

    assert client.get("/api/analytics", params={"period": "decade"}, headers=HEADERS).status_code == 400


def test_settings_round_trip(client):
    response = client.post(
        "/api/settings",
        json={"project": "Family", "notify_personal": False, "chats": {"task": ["200"]}, "channels": {"idea": ["@ideas"]}},
        headers=HEADERS,
    )
    assert response.status_code == 200

    setting = client.get("/api/settings", params={"project": "Family"}, headers=HEADERS).json()
    assert setting["notify_personal"] is False
    assert setting["chats"]["task"] == ["200"]
    assert setting["channels"]["idea"] == ["@ideas"]

    assert len(client.get("/api/settings", headers=HEADERS).json()) == 1


def test_settings_reject_unknown_kind(client):
    response = client.post(
        "/api/settings",
        json={"project": "Family", "chats": {"reminder": ["1"]}},
        headers=HEADERS,
    )
    assert response.status_code == 400


def test_webhook_always_ok_without_bot(client):
    assert client.post("/webhook", json={"update_id": 1}).json() == {"ok": True}


def test_webhook_swallows_dispatcher_errors(client, monkeypatch):
    class BrokenDispatcher:
        async def feed_update(self, bot, update):
            raise RuntimeError("handler crashed")

    monkeypatch.setattr(api_main.state, "bot", object())
    monkeypatch.setattr(api_main.state, "dp", BrokenDispatcher())

    response = client.post("/webhook", json={"update_id": 1})
    assert response.status_code == 200
    assert response.json() == {"ok": True}

    # мусор вместо обновления тоже не роняет вебхук
    assert client.post("/webhook", json={"foo": "bar"}).json() == {"ok": True}


def test_analytics_only_counts_own_records(client):
    client.post(
        "/api/submit",
        json={"type": "transaction", "amount": "+9999", "project": "GO", "description": "секрет соседа"},
        headers=HEADERS,
    )

    stats = client.get("/api/analytics", params={"period": "week"}, headers={"X-User-Id": "7"}).json()
    assert stats["finance"]["count"] == 0
    assert stats["finance"]["income"] == 0.0
    assert stats["items"]["transaction"] == []

    own = client.get("/api/analytics", params={"period": "week"}, headers=HEADERS).json()
    assert own["finance"]["income"] == 9999.0


def test_idea_file_reads_back_under_same_key(client):
    body = client.post(
        "/api/submit",
        json={"type": "idea", "project": "Family", "description": "баня у озера", "file": "plan.pdf"},
        headers=HEADERS,
    ).json()
    assert body["record"]["file"] == "plan.pdf"

    [row] = client.get("/api/records", params={"kind": "idea"}, headers=HEADERS).json()
    assert row["file"] == "plan.pdf"
    assert "file_name" not in row
