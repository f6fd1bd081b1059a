from typing import Iterator

import pytest
from fastapi.testclient import TestClient

from echoterm.main import app
from echoterm.services.tmux import TmuxController


@pytest.fixture
def client() -> Iterator[TestClient]:
    with TestClient(app) as test_client:
        yield test_client


def _create(client: TestClient) -> str:
    response = client.post("/terminals", json={"width": 40, "height": 5})
    assert response.status_code == 200
    return response.json()["id"]


def test_create_and_fetch_terminal(client: TestClient) -> None:
    session_id = _create(client)
    body = client.get(f"/terminals/{session_id}").json()
    assert body["width"] == 40
    assert body["height"] == 5
    assert body["transport"] == "detached"
    assert body["pending_echo"] == ""
    assert body["paused"] is False
    assert session_id in [item["id"] for item in client.get("/terminals").json()]


def test_input_then_output_reconciles_on_screen(client: TestClient) -> None:
    session_id = _create(client)
    for ch in "ab":
        client.post(f"/terminals/{session_id}/input", json={"text": ch})
    assert client.get(f"/terminals/{session_id}").json()["pending_echo"] == "ab"

    body = client.post(f"/terminals/{session_id}/output", json={"text": "abc"}).json()
    assert body["pending_echo"] == ""
    screen = client.get(f"/terminals/{session_id}/screen").json()
    assert screen["lines"] == ["abc"]
    assert screen["written"] == "abc"
    assert screen["cursor_x"] == 3


def test_diagnostics_report_and_reset(client: TestClient) -> None:
    session_id = _create(client)
    client.post(f"/terminals/{session_id}/input", json={"text": "x"})
    client.post(f"/terminals/{session_id}/output", json={"text": "y"})
    body = client.get(f"/terminals/{session_id}/diagnostics").json()
    assert body["entries"] == ["Received: 'y' Had: 'x'"]
    assert body["log"] == "Received: 'y' Had: 'x'\n"

    assert client.delete(f"/terminals/{session_id}/diagnostics").json()["entries"] == []
    assert client.get(f"/terminals/{session_id}/diagnostics").json()["entries"] == []


def test_pause_suppresses_echo(client: TestClient) -> None:
    session_id = _create(client)
    client.post(f"/terminals/{session_id}/input", json={"text": "a"})
    body = client.post(f"/terminals/{session_id}/pause", json={"duration_ms": 60000}).json()
    assert body["paused"] is True
    assert body["pending_echo"] == ""
    assert body["pause_remaining_ms"] > 0
    body = client.post(f"/terminals/{session_id}/input", json={"text": "b"}).json()
    assert body["pending_echo"] == ""


def test_clear_discards_pending_echo(client: TestClient) -> None:
    session_id = _create(client)
    client.post(f"/terminals/{session_id}/input", json={"text": "a"})
    assert client.post(f"/terminals/{session_id}/clear").json()["pending_echo"] == ""


def test_unknown_terminal_returns_404(client: TestClient) -> None:
    assert client.get("/terminals/nope").status_code == 404
    assert client.post("/terminals/nope/input", json={"text": "a"}).status_code == 404
    assert client.delete("/terminals/nope").status_code == 404


def test_close_terminal(client: TestClient) -> None:
    session_id = _create(client)
    assert client.delete(f"/terminals/{session_id}").status_code == 204
    assert client.get(f"/terminals/{session_id}").status_code == 404


def test_invalid_dimensions_rejected(client: TestClient) -> None:
    assert client.post("/terminals", json={"width": 0}).status_code == 422


def test_missing_tmux_session_returns_502(client: TestClient, monkeypatch) -> None:
    monkeypatch.setattr(TmuxController, "has_session", lambda self: False)
    response = client.post("/terminals", json={"tmux_session": "missing"})
    assert response.status_code == 502


def test_pane_requires_tmux_transport(client: TestClient) -> None:
    session_id = _create(client)
    assert client.get(f"/terminals/{session_id}/pane").status_code == 409
