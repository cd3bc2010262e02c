"""Tests for the HTTP front-end."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from azure.core.exceptions import HttpResponseError
from fastapi.testclient import TestClient

import api.agent_service as agent_service
from agents.models import SessionConfig
from orchestrator.agent_session import AgentSession
from orchestrator.session_pool import AgentSessionPool, ImageUpload
from utils.errors import (
    AgentConnectionError,
    InvalidArgumentError,
    RunExecutionError,
    RunTimeoutError,
)


@pytest.fixture
def pool(monkeypatch):
    fake = AsyncMock()
    fake.invoke_async.return_value = "hello\nworld\n"
    monkeypatch.setattr(agent_service, "session_pool", fake)
    return fake


@pytest.fixture
def http():
    return TestClient(agent_service.app)


class TestInvokeText:

    def test_returns_transcript(self, http, pool):
        resp = http.post("/agents/asst_1/invoke", json={"text": "hello"})

        assert resp.status_code == 200
        assert resp.json() == {"agent_id": "asst_1", "output": "hello\nworld\n"}
        pool.invoke_async.assert_awaited_once_with("asst_1", "hello", None)

    def test_invalid_json(self, http, pool):
        resp = http.post("/agents/asst_1/invoke", content=b"{not json", headers={"content-type": "application/json"})

        assert resp.status_code == 400
        assert resp.json() == {"error": {"message": "Invalid JSON"}}
        pool.invoke_async.assert_not_called()

    def test_text_must_be_string(self, http, pool):
        resp = http.post("/agents/asst_1/invoke", json={"text": 42})

        assert resp.status_code == 400
        pool.invoke_async.assert_not_called()

    @pytest.mark.parametrize(
        "exc,status_code",
        [
            (InvalidArgumentError("text"), 400),
            (AgentConnectionError("refused"), 503),
            (RunExecutionError("failed", "X"), 502),
            (RunTimeoutError("slow"), 504),
            (HttpResponseError(message="500 Server Error"), 502),
        ],
    )
    def test_errors_map_to_status_codes(self, http, pool, exc, status_code):
        pool.invoke_async.side_effect = exc

        resp = http.post("/agents/asst_1/invoke", json={"text": "hello"})

        assert resp.status_code == status_code
        assert "message" in resp.json()["error"]

    def test_run_error_detail_is_returned(self, http, pool):
        pool.invoke_async.side_effect = RunExecutionError("failed", "quota exceeded")

        resp = http.post("/agents/asst_1/invoke", json={"text": "hello"})

        assert "quota exceeded" in resp.json()["error"]["message"]


class TestInvokeImage:

    def test_forwards_upload(self, http, pool):
        resp = http.post(
            "/agents/asst_1/invoke/image",
            data={"text": "read this"},
            files={"image": ("scan.png", b"\x89PNG", "image/png")},
        )

        assert resp.status_code == 200
        pool.invoke_async.assert_awaited_once_with(
            "asst_1", "read this", ImageUpload(b"\x89PNG", "scan.png", "image/png")
        )

    def test_missing_image_is_rejected(self, http, pool):
        resp = http.post("/agents/asst_1/invoke/image", data={"text": "read this"})

        assert resp.status_code == 422
        pool.invoke_async.assert_not_called()


def test_health(http):
    assert http.get("/health").json() == {"status": "ok"}


class TestServiceConfiguration:

    def test_missing_endpoint_is_service_unavailable(self, http, monkeypatch, credential):
        pool = AgentSessionPool(
            lambda: AgentSession(credential=credential, config=SessionConfig(endpoint=""))
        )
        monkeypatch.setattr(agent_service, "session_pool", pool)

        resp = http.post("/agents/asst_1/invoke", json={"text": "hi"})

        assert resp.status_code == 503
        assert "AGENT_SERVICE_ENDPOINT" in resp.json()["error"]["message"]
        credential.get_token.assert_not_called()

    def test_shutdown_closes_pool(self, monkeypatch):
        pool = MagicMock()
        monkeypatch.setattr(agent_service, "session_pool", pool)

        with TestClient(agent_service.app) as client:
            assert client.get("/health").status_code == 200
            pool.shutdown.assert_not_called()

        pool.shutdown.assert_called_once_with()
