"""Shared fixtures: a mocked AgentsClient and SDK-shaped builders."""

import sys
from datetime import datetime, timezone
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

PROJECT_ROOT = Path(__file__).parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from azure.ai.agents.models import (  # noqa: E402
    MessageImageFileContent,
    MessageImageFileDetails,
    MessageTextContent,
    MessageTextDetails,
    RunStatus,
)

from agents.models import SessionConfig  # noqa: E402


def text_part(value):
    return MessageTextContent(text=MessageTextDetails(value=value, annotations=[]))


def image_part(file_id):
    return MessageImageFileContent(image_file=MessageImageFileDetails(file_id=file_id))


def sdk_message(msg_id, role, *parts, created_at=0):
    return SimpleNamespace(
        id=msg_id,
        role=role,
        created_at=datetime.fromtimestamp(created_at, tz=timezone.utc),
        content=list(parts),
    )


def sdk_run(status, error_message=None, run_id="run_1"):
    last_error = {"code": "server_error", "message": error_message} if error_message else None
    return SimpleNamespace(id=run_id, thread_id="thread_1", status=RunStatus(status), last_error=last_error)


@pytest.fixture
def config():
    return SessionConfig(
        endpoint="https://example.services.ai.azure.com/api/projects/demo",
        api_version=None,
        token_scope="https://ai.azure.com/.default",
        poll_interval=0.5,
        poll_timeout=None,
        max_poll_attempts=None,
        delete_thread_on_completion=False,
        verify_connection=False,
    )


@pytest.fixture
def fake_client():
    """An AgentsClient stand-in whose run completes on the first status check."""
    client = MagicMock()
    client.get_agent.return_value = SimpleNamespace(id="asst_1", name="extractor")
    client.threads.create.return_value = SimpleNamespace(id="thread_1")
    client.messages.create.return_value = SimpleNamespace(id="msg_1")
    client.runs.create.return_value = sdk_run("queued")
    client.runs.get.return_value = sdk_run("completed")
    client.files.upload.return_value = SimpleNamespace(id="file_1", filename="scan.png")
    client.messages.list.return_value = [sdk_message("msg_2", "assistant", text_part("done"))]
    return client


@pytest.fixture
def credential():
    cred = MagicMock()
    cred.get_token.return_value = SimpleNamespace(token="tok", expires_on=10**10)
    return cred


@pytest.fixture
def no_sleep(monkeypatch):
    """Record poll sleeps instead of waiting."""
    sleeps = []
    monkeypatch.setattr("orchestrator.agent_session.time.sleep", sleeps.append)
    return sleeps
