from __future__ import annotations

from iceslide.api.models import Difficulty


def _create(client, **body):  # type: ignore[no-untyped-def]
    resp = client.post("/sessions", json={"wait": True, **body})
    assert resp.status_code == 201
    return resp.json()


def test_healthcheck_and_difficulties(client_and_registry) -> None:
    client, _ = client_and_registry

    assert client.get("/healthcheck").json() == {"status": "ok"}
    assert client.get("/difficulties").json() == {"difficulties": ["easy", "medium", "hard", "extreme"]}


def test_create_session_loads_first_level(client_and_registry) -> None:
    client, registry = client_and_registry

    data = _create(client)

    assert data["state"] == "ready"
    assert data["difficulty"] == "easy"
    assert data["board"]["rows"] == 9
    assert data["board"]["tiles"][1][1] == "start"
    assert data["board"]["tiles"][7][7] == "end"
    assert data["board"]["tiles"][0][0] == "wall"
    assert data["player"] == {"col": 1, "row": 1}
    assert data["win_count"] == 0
    assert registry.get_session(data["session_id"]) is not None


def test_create_session_with_difficulty(client_and_registry) -> None:
    client, registry = client_and_registry

    data = _create(client, difficulty="hard")

    assert data["difficulty"] == "hard"
    assert registry.provider.calls[-1].difficulty == Difficulty.hard


def test_unknown_session_is_404(client_and_registry) -> None:
    client, _ = client_and_registry

    resp = client.get("/sessions/nope")
    assert resp.status_code == 404
    assert resp.json()["detail"] == "Session not found"


def test_move_to_goal_and_play_again(client_and_registry) -> None:
    client, _ = client_and_registry
    sid = _create(client)["session_id"]

    r1 = client.post(f"/sessions/{sid}/move", json={"direction": "right"})
    assert r1.status_code == 200
    assert r1.json()["player"] == {"col": 7, "row": 1}

    r2 = client.post(f"/sessions/{sid}/move", json={"direction": "down"}).json()
    assert r2["player"] == {"col": 7, "row": 7}
    assert r2["won"] is True
    assert r2["state"] == "won"
    assert r2["win_count"] == 1

    # Moves after the win are ignored, not errors.
    r3 = client.post(f"/sessions/{sid}/move", json={"direction": "up"})
    assert r3.status_code == 200
    assert r3.json()["player"] == {"col": 7, "row": 7}

    again = client.post(f"/sessions/{sid}/reset", params={"wait": True}).json()
    assert again["state"] == "ready"
    assert again["won"] is False
    assert again["win_count"] == 1
    assert again["request_id"] == 2
    assert again["player"] == {"col": 1, "row": 1}


def test_bad_direction_is_422(client_and_registry) -> None:
    client, _ = client_and_registry
    sid = _create(client)["session_id"]

    resp = client.post(f"/sessions/{sid}/move", json={"direction": "sideways"})
    assert resp.status_code == 422
    assert "Unknown direction" in resp.json()["detail"]


def test_change_difficulty_route(client_and_registry) -> None:
    client, _ = client_and_registry
    sid = _create(client)["session_id"]

    data = client.post(f"/sessions/{sid}/difficulty", json={"difficulty": "extreme", "wait": True}).json()
    assert data["difficulty"] == "extreme"
    assert data["state"] == "ready"
    assert data["board"]["level_id"] == "extreme-2"

    bad = client.post(f"/sessions/{sid}/difficulty", json={"difficulty": "impossible"})
    assert bad.status_code == 422


def test_generic_command_endpoint(client_and_registry) -> None:
    client, _ = client_and_registry
    sid = _create(client)["session_id"]

    moved = client.post(f"/sessions/{sid}/commands/move", json={"direction": "right"})
    assert moved.status_code == 200
    assert moved.json()["player"] == {"col": 7, "row": 1}

    reset = client.post(f"/sessions/{sid}/commands/reset", json={})
    assert reset.json()["player"] == {"col": 1, "row": 1}

    changed = client.post(f"/sessions/{sid}/commands/difficulty", json={"difficulty": "medium", "wait": True})
    assert changed.json()["difficulty"] == "medium"
    assert changed.json()["state"] == "ready"

    unknown = client.post(f"/sessions/{sid}/commands/teleport", json={})
    assert unknown.status_code == 422
    assert "Unknown command" in unknown.json()["detail"]

    missing = client.post(f"/sessions/{sid}/commands/move", json={})
    assert missing.status_code == 422


def test_list_sessions(client_and_registry) -> None:
    client, _ = client_and_registry
    a = _create(client)["session_id"]
    b = _create(client)["session_id"]

    ids = {s["session_id"] for s in client.get("/sessions").json()["sessions"]}
    assert {a, b} <= ids


def test_ws_session_updates_broadcast(client_and_registry) -> None:
    client, _ = client_and_registry
    sid = _create(client)["session_id"]

    with client.websocket_connect(f"/ws/sessions/{sid}") as ws:
        res = client.post(f"/sessions/{sid}/move", json={"direction": "right"})
        assert res.status_code == 200

        msg = ws.receive_json()
        assert msg["type"] == "session_updated"
        assert msg["snapshot"]["session_id"] == sid
        assert msg["snapshot"]["player"] == {"col": 7, "row": 1}


def test_commands_endpoint_accepts_missing_body(client_and_registry) -> None:
    client, _ = client_and_registry
    sid = _create(client)["session_id"]
    client.post(f"/sessions/{sid}/commands/move", json={"direction": "right"})

    reset = client.post(f"/sessions/{sid}/commands/reset")

    assert reset.status_code == 200
    assert reset.json()["player"] == {"col": 1, "row": 1}


def test_delete_session(client_and_registry) -> None:
    client, registry = client_and_registry
    sid = _create(client)["session_id"]
    session = registry.require_session(sid)
    assert session._listeners

    resp = client.delete(f"/sessions/{sid}")

    assert resp.status_code == 204
    assert registry.get_session(sid) is None
    # The WebSocket publisher is detached along with the session.
    assert session._listeners == []
    assert client.get(f"/sessions/{sid}").status_code == 404
    assert sid not in {s["session_id"] for s in client.get("/sessions").json()["sessions"]}

    again = client.delete(f"/sessions/{sid}")
    assert again.status_code == 404
    assert again.json()["detail"] == "Session not found"
