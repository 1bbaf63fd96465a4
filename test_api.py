import pytest
from fastapi.testclient import TestClient

from cron_manager.dependencies import get_store, get_trigger_registry
from main import app

CRON_BODY = {
    "name": "Ping service",
    "description": "health ping",
    "schedule": {"type": "cron", "expression": "cron(*/5 * * * ? *)"},
    "action": {"type": "fetch", "url": "https://example.com/hook", "method": "GET"},
}


@pytest.fixture
def client(store, triggers):
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_trigger_registry] = lambda: triggers
    yield TestClient(app)
    app.dependency_overrides.clear()


def _register(client, email="ada@example.com", name="Ada"):
    resp = client.post("/v1/auth/register", json={"name": name, "email": email, "password": "pw-123"})
    assert resp.status_code == 201
    return {"Authorization": f"Bearer {resp.json()['data']['token']}"}


def _workspace(client, headers, name="Team"):
    resp = client.post("/v1/workspace", json={"name": name}, headers=headers)
    assert resp.status_code == 201
    return resp.json()["data"]["id"]


def test_health(client):
    resp = client.get("/api/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


def test_login_and_profile(client):
    _register(client)
    resp = client.post("/v1/auth", json={"type": "email", "email": "ada@example.com", "password": "pw-123"})
    assert resp.status_code == 200
    headers = {"Authorization": f"Bearer {resp.json()['data']['token']}"}
    workspace_id = _workspace(client, headers)

    me = client.get("/v1/me", headers=headers).json()["data"]
    assert me["name"] == "Ada"
    assert me["workspaces"] == [{"id": workspace_id, "name": "Team", "role": "owner"}]


def test_bad_credentials(client):
    _register(client)
    resp = client.post("/v1/auth", json={"type": "email", "email": "ada@example.com", "password": "nope"})
    assert resp.status_code == 401
    assert resp.json() == {"error": "unauthorized", "detail": "Invalid credentials"}


def test_duplicate_registration(client):
    _register(client)
    resp = client.post(
        "/v1/auth/register", json={"name": "Ada", "email": "ada@example.com", "password": "x"}
    )
    assert resp.status_code == 409


@pytest.mark.parametrize("authorization", [None, "Bearer", "Basic abc", "Bearer uz_1.nope"])
def test_requests_without_valid_session(client, authorization):
    headers = {"Authorization": authorization} if authorization else {}
    resp = client.get("/v1/me", headers=headers)
    assert resp.status_code == 401
    assert resp.json()["error"] == "unauthorized"


def test_cron_lifecycle(client, triggers):
    headers = _register(client)
    workspace_id = _workspace(client, headers)
    base = f"/v1/workspace/{workspace_id}/cron"

    resp = client.post(base, json=CRON_BODY, headers=headers)
    assert resp.status_code == 201
    cron_id = resp.json()["data"]["id"]

    listed = client.get(base, headers=headers).json()["data"]
    assert [job["id"] for job in listed] == [cron_id]
    assert listed[0]["status"] == "ENABLED"
    assert listed[0]["failed_count"] == 0

    updated = {**CRON_BODY, "name": "Renamed ping"}
    assert client.post(f"{base}/{cron_id}", json=updated, headers=headers).status_code == 200
    assert client.get(f"{base}/{cron_id}", headers=headers).json()["data"]["name"] == "Renamed ping"

    logs = client.get(f"{base}/{cron_id}/logs", headers=headers).json()["data"]
    assert logs == {"logs": [], "cursor": None}
    assert client.get(f"{base}/{cron_id}/logs/missing", headers=headers).status_code == 404

    assert client.delete(f"{base}/{cron_id}", headers=headers).status_code == 204
    assert client.get(f"{base}/{cron_id}", headers=headers).status_code == 404
    assert triggers.triggers == {}


def test_invalid_cron_is_rejected(client):
    headers = _register(client)
    workspace_id = _workspace(client, headers)
    body = {**CRON_BODY, "action": {**CRON_BODY["action"], "method": "TRACE"}}

    resp = client.post(f"/v1/workspace/{workspace_id}/cron", json=body, headers=headers)

    assert resp.status_code == 400
    assert resp.json() == {"error": "validation_error", "detail": "Invalid method"}


def test_workspace_isolation(client):
    ada = _register(client)
    bob = _register(client, email="bob@example.com", name="Bob")
    ada_ws = _workspace(client, ada)
    bob_ws = _workspace(client, bob)

    cron_id = client.post(f"/v1/workspace/{ada_ws}/cron", json=CRON_BODY, headers=ada).json()["data"]["id"]

    # not a member
    assert client.get(f"/v1/workspace/{ada_ws}/cron", headers=bob).status_code == 401
    # member of the path workspace, but the job lives elsewhere
    resp = client.get(f"/v1/workspace/{bob_ws}/cron/{cron_id}", headers=bob)
    assert resp.status_code == 403
    assert client.delete(f"/v1/workspace/{bob_ws}/cron/{cron_id}", headers=bob).status_code == 403


def test_session_list_and_revoke(client):
    headers = _register(client)
    login = client.post("/v1/auth", json={"type": "email", "email": "ada@example.com", "password": "pw-123"})
    second_token = login.json()["data"]["token"]

    sessions = client.get("/v1/auth/sessions", headers=headers).json()["data"]
    assert len(sessions) == 2
    assert all(len(s["session_suffix"]) == 9 for s in sessions)
    assert second_token[-9:] in {s["session_suffix"] for s in sessions}

    resp = client.post("/v1/auth/revoke", json={"session_suffix": second_token[-9:]}, headers=headers)
    assert resp.json()["data"]["revoked"] == 1
    assert client.get("/v1/me", headers={"Authorization": f"Bearer {second_token}"}).status_code == 401


def test_cannot_revoke_foreign_session(client):
    ada = _register(client)
    bob = _register(client, email="bob@example.com", name="Bob")
    bob_token = bob["Authorization"].split(" ", 1)[1]

    resp = client.post("/v1/auth/revoke", json={"session_id": bob_token}, headers=ada)

    assert resp.status_code == 403
    assert client.get("/v1/me", headers=bob).status_code == 200


def test_revoke_requires_target(client):
    headers = _register(client)
    assert client.post("/v1/auth/revoke", json={}, headers=headers).status_code == 400


def test_statistics(client):
    headers = _register(client)
    assert client.get("/v1/stats/cron").status_code == 401

    resp = client.get("/v1/stats/cron", headers=headers)
    assert resp.status_code == 200
    assert resp.json()["data"] == []

    resp = client.get(
        "/v1/stats/cron", params={"start_date": "2024-03-01", "end_date": "bad"}, headers=headers
    )
    assert resp.status_code == 400

    for params in ({"start_date": "2024-03-01"}, {"end_date": "2024-03-31"}):
        resp = client.get("/v1/stats/cron", params=params, headers=headers)
        assert resp.status_code == 400


def test_workspace_members(client):
    headers = _register(client)
    workspace_id = _workspace(client, headers)
    members = client.get(f"/v1/workspace/{workspace_id}/users", headers=headers).json()["data"]
    assert [m["name"] for m in members] == ["Ada"]
