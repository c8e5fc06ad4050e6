import pytest
from fastapi.testclient import TestClient

from integrations.state import PersistenceError
from server import create_app


@pytest.fixture
def client(ctx):
    with TestClient(create_app(ctx, start_loops=False)) as test_client:
        yield test_client


def test_ping_and_health(client):
    response = client.get("/ping")
    assert response.status_code == 200
    assert response.text == "alive"

    health = client.get("/health").json()
    assert health["ok"] is True
    assert health["loop_running"] is False
    assert health["cursor"] == 0


def test_task_lifecycle(client, ctx):
    created = client.post("/api/tasks", json={"text": "Rig character", "isDaily": True})
    assert created.status_code == 201
    task = created.json()
    assert task["text"] == "Rig character"
    assert task["isDaily"] is True
    assert task["completed"] is False

    toggled = client.post(f"/api/tasks/{task['id']}/toggle").json()
    assert toggled["completed"] is True
    assert ctx.registry.get_task(task["id"]).completed is True

    assert client.get("/api/tasks").json() == [toggled]
    assert client.delete(f"/api/tasks/{task['id']}").json() == {"deleted": True}
    assert client.get("/api/tasks").json() == []


def test_empty_task_is_rejected(client):
    assert client.post("/api/tasks", json={"text": "   "}).status_code == 422


def test_toggle_unknown_task_is_404(client):
    assert client.post("/api/tasks/nope/toggle").status_code == 404


def test_notes(client):
    note = client.post("/api/notes", json={"text": "Use rim light"}).json()
    assert client.get("/api/notes").json() == [note]
    assert client.delete(f"/api/notes/{note['id']}").json() == {"deleted": True}
    assert client.delete(f"/api/notes/{note['id']}").json() == {"deleted": False}


def test_settings_update_and_validation(client):
    updated = client.put("/api/settings", json={"dailyReminderTime": "08:15", "autoMonitor": True})
    assert updated.status_code == 200
    assert updated.json()["dailyReminderTime"] == "08:15"
    assert client.get("/api/settings").json()["autoMonitor"] is True

    assert client.put("/api/settings", json={"llmSource": "Carrier Pigeon"}).status_code == 422
    assert client.put("/api/settings", json={"dailyReminderTime": "whenever"}).status_code == 422


def test_storage_failure_maps_to_503(client, ctx, monkeypatch):
    def broken_save(name, data):
        raise PersistenceError("disk full")

    monkeypatch.setattr(ctx.store, "save", broken_save)
    assert client.post("/api/tasks", json={"text": "Lost"}).status_code == 503
    assert client.get("/api/tasks").json() == []


def test_sync_endpoint_runs_a_tick(client, ctx, channel):
    channel.push(12, "/task From the phone")

    response = client.post("/api/sync").json()

    assert response == {"ran": True, "cursor": 12}
    assert [t["text"] for t in client.get("/api/tasks").json()] == ["From the phone"]


def test_trend_scan_replaces_cache(client, backend):
    backend.reply = '[{"platform": "TikTok", "trendName": "Low poly pets"}]'

    scanned = client.post("/api/trends/scan", json={"category": "Video Formats"})

    assert scanned.status_code == 200
    assert scanned.json()[0]["trendName"] == "Low poly pets"
    assert scanned.json()[0]["category"] == "Video Formats"
    assert client.get("/api/trends").json() == scanned.json()


def test_trend_scan_failure_is_502(client, backend):
    backend.fail = True
    response = client.post("/api/trends/scan", json={})
    assert response.status_code == 502
    assert "backend offline" in response.json()["detail"]


def test_bare_hour_reminder_time_is_422(client):
    assert client.put("/api/settings", json={"dailyReminderTime": "9"}).status_code == 422
    assert client.get("/api/settings").json()["dailyReminderTime"] == "09:00"
