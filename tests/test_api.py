from __future__ import annotations

import json
from dataclasses import replace
from pathlib import Path

import allure
import pytest
from fastapi.testclient import TestClient

from agent_relay import __version__
from agent_relay.api import API_PREFIX, create_app
from agent_relay.config import CliSettings, Settings

pytestmark = [
    allure.epic("HTTP API"),
    allure.feature("Query & Session Endpoints"),
]


@pytest.fixture()
def client(relay_settings: Settings):
    with TestClient(create_app(relay_settings)) as test_client:
        yield test_client


def _sse_payloads(body: str) -> list[dict]:
    return [
        json.loads(line[len("data: ") :])
        for line in body.splitlines()
        if line.startswith("data: ")
    ]


def test_health_reports_ok(client: TestClient) -> None:
    response = client.get(f"{API_PREFIX}/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert body["timestamp"]


def test_info_reports_version_cli_and_config(client: TestClient, relay_settings: Settings) -> None:
    response = client.get(f"{API_PREFIX}/info")

    assert response.status_code == 200
    body = response.json()
    assert body["version"] == __version__
    assert body["cli"] == {"available": True, "version": "echo-agent 1.0.0", "error": None}
    assert body["config"]["dbPath"] == str(relay_settings.db_path)
    assert body["config"]["port"] == relay_settings.server.port
    assert body["activeSessions"] == 0


def test_query_returns_camel_case_result(client: TestClient) -> None:
    response = client.post(f"{API_PREFIX}/query", json={"prompt": "What is 2+2?"})

    assert response.status_code == 200
    body = response.json()
    assert body["kind"] == "success"
    assert body["text"] == "What is 2+2?"
    assert body["totalCostUsd"] == pytest.approx(0.0015)
    assert body["numTurns"] == 1
    assert set(body["usage"]) >= {"inputTokens", "outputTokens"}


def test_query_accepts_snake_and_camel_case_fields(client: TestClient) -> None:
    snake = client.post(f"{API_PREFIX}/query", json={"prompt": "a", "allowed_tools": ["Read"]})
    camel = client.post(f"{API_PREFIX}/query", json={"prompt": "b", "allowedTools": ["Read"]})

    assert snake.status_code == 200
    assert camel.status_code == 200


@pytest.mark.parametrize(
    "payload",
    [{}, {"prompt": ""}, {"prompt": 5}, {"prompt": "x", "maxBudgetUsd": -1}],
)
def test_query_rejects_invalid_body(client: TestClient, payload: dict) -> None:
    response = client.post(f"{API_PREFIX}/query", json=payload)

    assert response.status_code == 400
    error = response.json()["error"]
    assert error["code"] == "INVALID_REQUEST"
    assert error["details"]["errors"]


def test_query_stream_sends_events_as_sse(client: TestClient) -> None:
    response = client.post(f"{API_PREFIX}/query/stream", json={"prompt": "stream it"})

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/event-stream")
    payloads = _sse_payloads(response.text)
    assert [payload["type"] for payload in payloads] == ["system", "assistant", "result"]
    assert payloads[-1]["result"] == "stream it"


def test_session_lifecycle(client: TestClient) -> None:
    created = client.post(
        f"{API_PREFIX}/sessions",
        json={"id": "conv-1", "metadata": {"topic": "math"}},
    )
    assert created.status_code == 201
    assert created.json()["id"] == "conv-1"
    assert created.json()["messageCount"] == 0

    duplicate = client.post(f"{API_PREFIX}/sessions", json={"id": "conv-1"})
    assert duplicate.status_code == 409
    assert duplicate.json()["error"]["code"] == "SESSION_EXISTS"

    fetched = client.get(f"{API_PREFIX}/sessions/conv-1")
    assert fetched.status_code == 200
    assert fetched.json()["metadata"] == {"topic": "math"}

    listed = client.get(f"{API_PREFIX}/sessions")
    assert [session["id"] for session in listed.json()] == ["conv-1"]

    deleted = client.delete(f"{API_PREFIX}/sessions/conv-1")
    assert deleted.status_code == 204

    missing = client.get(f"{API_PREFIX}/sessions/conv-1")
    assert missing.status_code == 404
    assert missing.json()["error"]["code"] == "SESSION_NOT_FOUND"
    assert client.delete(f"{API_PREFIX}/sessions/conv-1").status_code == 404


def test_create_session_without_body_assigns_id(client: TestClient) -> None:
    response = client.post(f"{API_PREFIX}/sessions")

    assert response.status_code == 201
    assert response.json()["id"]


def test_session_messages_update_accounting(client: TestClient) -> None:
    client.post(f"{API_PREFIX}/sessions", json={"id": "conv-2"})

    first = client.post(f"{API_PREFIX}/sessions/conv-2/messages", json={"prompt": "one"})
    second = client.post(
        f"{API_PREFIX}/sessions/conv-2/messages",
        json={"prompt": "two", "model": "haiku"},
    )

    assert first.status_code == 200
    assert first.json()["sessionId"] == "conv-2"
    assert second.json()["text"] == "two"
    session = client.get(f"{API_PREFIX}/sessions/conv-2").json()
    assert session["messageCount"] == 2
    assert session["totalCostUsd"] == pytest.approx(0.003)
    assert session["lastModel"] == "haiku"


def test_session_message_stream(client: TestClient) -> None:
    client.post(f"{API_PREFIX}/sessions", json={"id": "conv-3"})

    response = client.post(f"{API_PREFIX}/sessions/conv-3/messages/stream", json={"prompt": "s"})

    assert response.status_code == 200
    payloads = _sse_payloads(response.text)
    assert payloads[0]["session_id"] == "conv-3"
    assert payloads[-1]["type"] == "result"
    assert client.get(f"{API_PREFIX}/sessions/conv-3").json()["messageCount"] == 1


def test_messages_to_unknown_session_return_404(client: TestClient) -> None:
    blocking = client.post(f"{API_PREFIX}/sessions/ghost/messages", json={"prompt": "x"})
    streaming = client.post(f"{API_PREFIX}/sessions/ghost/messages/stream", json={"prompt": "x"})

    assert blocking.status_code == 404
    assert streaming.status_code == 404
    assert streaming.json()["error"]["code"] == "SESSION_NOT_FOUND"


def test_fork_and_queue_endpoints(client: TestClient) -> None:
    client.post(f"{API_PREFIX}/sessions", json={"id": "origin", "metadata": {"a": 1}})

    fork = client.post(f"{API_PREFIX}/sessions/origin/fork", json={"id": "branch"})
    queue = client.get(f"{API_PREFIX}/sessions/origin/queue")

    assert fork.status_code == 201
    assert fork.json()["id"] == "branch"
    assert fork.json()["metadata"] == {"a": 1, "forked_from": "origin"}
    assert queue.json() == {"sessionId": "origin", "depth": 0}
    assert client.get(f"{API_PREFIX}/sessions/ghost/queue").status_code == 404


def test_missing_cli_maps_to_503(relay_settings: Settings, tmp_path: Path) -> None:
    settings = replace(relay_settings, cli=CliSettings(command=(str(tmp_path / "nope"),)))

    with TestClient(create_app(settings)) as client:
        blocking = client.post(f"{API_PREFIX}/query", json={"prompt": "x"})
        streaming = client.post(f"{API_PREFIX}/query/stream", json={"prompt": "x"})
        info = client.get(f"{API_PREFIX}/info")

    assert blocking.status_code == 503
    assert blocking.json()["error"]["code"] == "CLI_NOT_FOUND"
    assert streaming.status_code == 200
    assert _sse_payloads(streaming.text) == [
        {"type": "error", "error": blocking.json()["error"]["message"], "code": "CLI_NOT_FOUND"},
    ]
    assert info.json()["cli"]["available"] is False


def test_timeout_maps_to_504(relay_settings: Settings, fake_cli) -> None:
    command = fake_cli("import time\ntime.sleep(30)\n")
    settings = replace(relay_settings, cli=CliSettings(command=command, timeout_seconds=0.2))

    with TestClient(create_app(settings)) as client:
        response = client.post(f"{API_PREFIX}/query", json={"prompt": "slow"})

    assert response.status_code == 504
    assert response.json()["error"]["code"] == "TIMEOUT"


def test_cli_failure_maps_to_502(relay_settings: Settings, fake_cli) -> None:
    command = fake_cli("import sys\nsys.stderr.write('bad auth')\nsys.exit(1)\n")
    settings = replace(relay_settings, cli=CliSettings(command=command))

    with TestClient(create_app(settings)) as client:
        response = client.post(f"{API_PREFIX}/query", json={"prompt": "x"})

    assert response.status_code == 502
    error = response.json()["error"]
    assert error["code"] == "CLI_ERROR"
    assert "bad auth" in error["message"]


def test_cors_allows_configured_origin(client: TestClient) -> None:
    response = client.options(
        f"{API_PREFIX}/health",
        headers={
            "Origin": "http://localhost:3000",
            "Access-Control-Request-Method": "GET",
        },
    )

    assert response.headers["access-control-allow-origin"] == "http://localhost:3000"
