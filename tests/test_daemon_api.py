"""Tests for the daemon HTTP surface."""

import socket
import time

import pytest

from bastion.cancellation import CancellationToken
from bastion.daemon.disconnect import cancel_on_disconnect


@pytest.fixture
def daemon_client(daemon_app):
    return daemon_app.test_client()


class TestExecEndpoint:
    def test_runs_script(self, daemon_client):
        response = daemon_client.post("/api/v1/exec", json={"script": "echo hi", "timeout_seconds": 5})

        assert response.status_code == 200
        body = response.get_json()
        assert body["stdout"] == "hi\n"
        assert body["stderr"] == ""
        assert body["exit_code"] == 0
        assert isinstance(body["duration_ms"], int)

    def test_script_failure_is_still_200(self, daemon_client):
        response = daemon_client.post("/api/v1/exec", json={"script": "exit 4", "timeout_seconds": 5})

        assert response.status_code == 200
        assert response.get_json()["exit_code"] == 4

    def test_empty_script(self, daemon_client):
        response = daemon_client.post("/api/v1/exec", json={"script": "  ", "timeout_seconds": 5})

        assert response.status_code == 200
        assert response.get_json() == {"stdout": "", "stderr": "empty script", "exit_code": 1, "duration_ms": 0}

    def test_working_dir(self, daemon_client, tmp_path):
        response = daemon_client.post(
            "/api/v1/exec", json={"script": "pwd", "timeout_seconds": 5, "working_dir": str(tmp_path)}
        )

        assert response.get_json()["stdout"].strip() == str(tmp_path)

    def test_missing_timeout_is_allowed(self, daemon_client):
        response = daemon_client.post("/api/v1/exec", json={"script": "true"})

        assert response.status_code == 200
        assert response.get_json()["exit_code"] == 0

    @pytest.mark.parametrize("payload", [
        None,
        {"timeout_seconds": 5},
        {"script": 42},
        {"script": "true", "timeout_seconds": "soon"},
        ["echo", "hi"],
    ])
    def test_invalid_payload(self, daemon_client, payload):
        if payload is None:
            response = daemon_client.post("/api/v1/exec", data="{not json", content_type="application/json")
        else:
            response = daemon_client.post("/api/v1/exec", json=payload)

        assert response.status_code == 400
        assert response.get_json()["message"] == "invalid payload"

    def test_get_not_allowed(self, daemon_client):
        assert daemon_client.get("/api/v1/exec").status_code == 405


class TestDaemonHealth:
    def test_healthz(self, daemon_client):
        response = daemon_client.get("/healthz")

        assert response.status_code == 200
        assert response.data == b"ok"


class TestCancelOnDisconnect:
    def test_peer_hang_up_cancels_the_token(self):
        server_side, client_side = socket.socketpair()
        try:
            with cancel_on_disconnect(server_side, CancellationToken()) as token:
                client_side.close()
                deadline = time.monotonic() + 2
                while not token.cancelled and time.monotonic() < deadline:
                    time.sleep(0.05)

            assert token.cancelled
            assert token.describe() == "client disconnected"
        finally:
            server_side.close()

    def test_open_connection_leaves_the_token_alone(self):
        server_side, client_side = socket.socketpair()
        try:
            with cancel_on_disconnect(server_side, CancellationToken()) as token:
                time.sleep(0.3)

            assert not token.cancelled
        finally:
            server_side.close()
            client_side.close()

    def test_without_socket_nothing_is_watched(self):
        with cancel_on_disconnect(None, CancellationToken()) as token:
            pass

        assert not token.cancelled
