from __future__ import annotations

import logging
import time
from collections.abc import Mapping
from typing import Any, BinaryIO, Dict, Iterable, List, Optional, Union

from azure.ai.agents import AgentsClient
from azure.ai.agents.models import (
    FilePurpose,
    ListSortOrder,
    MessageAttachment,
    MessageRole,
    RunStatus,
    ThreadRun,
)
from azure.core.credentials import TokenCredential
from azure.core.exceptions import (
    AzureError,
    ClientAuthenticationError,
    HttpResponseError,
    ServiceRequestError,
    ServiceResponseError,
)
from azure.identity import DefaultAzureCredential

from agents.models import ImageFileContent, Message, SessionConfig, TextContent
from config import ENABLE_DEBUG
from utils.errors import (
    AgentConnectionError,
    AuthenticationError,
    ConfigurationError,
    InvalidArgumentError,
    RunExecutionError,
    RunTimeoutError,
)

_logger = logging.getLogger(__name__)
if ENABLE_DEBUG and not logging.getLogger().handlers:
    logging.basicConfig(level=logging.DEBUG, format="%(levelname)s | %(message)s")

ImageSource = Union[bytes, bytearray, BinaryIO]

_PENDING_STATUSES = (RunStatus.QUEUED, RunStatus.IN_PROGRESS)


# ──────────────────────────────────────────────────────────────
# Helpers
# ──────────────────────────────────────────────────────────────


def _require(name: str, value: Optional[str]) -> None:
    if not value:
        raise InvalidArgumentError(name)


def _read_image(image_data: Optional[ImageSource]) -> bytes:
    """Return the remaining bytes of *image_data*, rejecting unusable sources."""
    if image_data is None:
        raise InvalidArgumentError("image_data", "'image_data' must not be None")

    if isinstance(image_data, (bytes, bytearray)):
        payload = bytes(image_data)
    else:
        try:
            readable = image_data.readable()
            payload = image_data.read() if readable else b""
        except (AttributeError, ValueError, OSError) as exc:
            raise InvalidArgumentError("image_data", f"Image stream must be readable: {exc}") from exc
        if not readable:
            raise InvalidArgumentError("image_data", "Image stream must be readable")
        if not isinstance(payload, (bytes, bytearray)):
            raise InvalidArgumentError("image_data", "Image stream must be opened in binary mode")

    if not payload:
        raise InvalidArgumentError("image_data", "Image stream is empty")
    return bytes(payload)


def _status_name(status: Any) -> str:
    return str(getattr(status, "value", status))


def _error_field(error: Any, name: str) -> Optional[str]:
    if error is None:
        return None
    if isinstance(error, Mapping):
        return error.get(name)
    return getattr(error, name, None)


def flatten_messages(messages: Iterable[Message]) -> str:
    """
    Reduce *messages* to one transcript string.

    Text parts become one line each, image files become ``<image: {file_id}>``
    lines; every other content kind is dropped.  Message order and the order
    of parts within a message are preserved.
    """
    lines: List[str] = []
    for msg in messages:
        for item in msg.content:
            if isinstance(item, TextContent):
                lines.append(f"{item.text}\n")
            elif isinstance(item, ImageFileContent):
                lines.append(f"<image: {item.file_id}>\n")
    return "".join(lines)


# ──────────────────────────────────────────────────────────────
# Session
# ──────────────────────────────────────────────────────────────


class AgentSession:
    """
    Forwards text (optionally with one image) to a remote agent, waits for the
    run to finish and returns the whole thread as a flat transcript.

    Every invocation creates exactly one thread and one run.  Only the
    :class:`AgentsClient` and explicitly preloaded agents are shared between
    calls, so both entry points may be used from several threads at once.
    """

    def __init__(
            self,
            endpoint: Optional[str] = None,
            credential: Optional[TokenCredential] = None,
            config: Optional[SessionConfig] = None,
            client: Optional[AgentsClient] = None,
    ) -> None:
        self.cfg = config or SessionConfig()
        self._agents: Dict[str, Any] = {}
        self._client = client or self._connect(endpoint or self.cfg.endpoint, credential)

    # ──────────────────────────────────────────────────────────
    # public API
    # ──────────────────────────────────────────────────────────

    def invoke_with_text(self, agent_id: str, text: str) -> str:
        """Send *text* to *agent_id* and return the flattened thread."""
        _require("agent_id", agent_id)
        _require("text", text)
        return self._invoke(agent_id, text)

    def invoke_with_image(
            self,
            agent_id: str,
            text: str,
            image_data: ImageSource,
            image_filename: str,
            image_content_type: str,
    ) -> str:
        """
        Upload *image_data* and send it together with *text* to *agent_id*.

        The image is attached for reference only (no tool bindings).
        """
        _require("agent_id", agent_id)
        _require("text", text)
        _require("image_filename", image_filename)
        _require("image_content_type", image_content_type)
        payload = _read_image(image_data)
        return self._invoke(agent_id, text, (payload, image_filename, image_content_type))

    def preload_agent(self, agent_id: str):
        """Resolve *agent_id* once; later invocations reuse the handle."""
        _require("agent_id", agent_id)
        agent = self._client.get_agent(agent_id)
        self._agents[agent_id] = agent
        return agent

    def close(self) -> None:
        self._client.close()

    # —— context manager support ——————————————————————————

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    # ──────────────────────────────────────────────────────────
    # internal flow
    # ──────────────────────────────────────────────────────────

    def _connect(self, endpoint: Optional[str], credential: Optional[TokenCredential]) -> AgentsClient:
        if not endpoint:
            raise ConfigurationError("No agent service endpoint configured (AGENT_SERVICE_ENDPOINT)")

        credential = credential or DefaultAzureCredential()
        try:
            credential.get_token(self.cfg.token_scope)
        except ClientAuthenticationError as exc:
            raise AuthenticationError(
                f"Could not acquire a token for scope {self.cfg.token_scope}: {exc.message}"
            ) from exc

        options: Dict[str, Any] = {"read_timeout": self.cfg.request_timeout}
        if self.cfg.api_version:
            options["api_version"] = self.cfg.api_version
        client = AgentsClient(endpoint=endpoint, credential=credential, **options)
        if not self.cfg.verify_connection:
            return client

        try:
            next(iter(client.list_agents(limit=1)), None)
        except ClientAuthenticationError as exc:
            client.close()
            raise AuthenticationError(f"Agent service rejected the credentials: {exc.message}") from exc
        except (ServiceRequestError, ServiceResponseError) as exc:
            client.close()
            raise AgentConnectionError(f"Agent service at {endpoint} is unreachable: {exc.message}") from exc
        except HttpResponseError as exc:
            client.close()
            if exc.status_code == 403:
                raise AuthenticationError(f"Agent service rejected the credentials (403): {exc.message}") from exc
            raise
        return client

    def _invoke(self, agent_id: str, text: str, image: Optional[tuple] = None) -> str:
        agent = self._agents.get(agent_id) or self._client.get_agent(agent_id)
        thread = self._client.threads.create()
        if ENABLE_DEBUG:
            _logger.debug("Agent %s → thread %s", agent.id, thread.id)

        try:
            attachments = None
            if image is not None:
                data, filename, content_type = image
                uploaded = self._client.files.upload(
                    file=(filename, data, content_type),
                    purpose=FilePurpose.AGENTS,
                    filename=filename,
                )
                if ENABLE_DEBUG:
                    _logger.debug("Uploaded %s as file %s (%d bytes)", filename, uploaded.id, len(data))
                attachments = [MessageAttachment(file_id=uploaded.id, tools=[])]

            self._client.messages.create(
                thread_id=thread.id,
                role=MessageRole.USER,
                content=text,
                attachments=attachments,
            )

            run = self._client.runs.create(thread_id=thread.id, agent_id=agent.id)
            self._poll_run_completion(thread.id, run.id)

            messages = self._client.messages.list(thread_id=thread.id, order=ListSortOrder.ASCENDING)
            return flatten_messages(Message.from_sdk(msg) for msg in messages)
        finally:
            if self.cfg.delete_thread_on_completion:
                self._delete_thread(thread.id)

    def _poll_run_completion(self, thread_id: str, run_id: str) -> ThreadRun:
        """
        Block until run *run_id* leaves ``queued``/``in_progress``.

        Sleeps *poll_interval* before every status check.  Without
        ``poll_timeout`` or ``max_poll_attempts`` the loop never gives up.
        """
        deadline = None
        if self.cfg.poll_timeout is not None:
            deadline = time.monotonic() + self.cfg.poll_timeout
        attempts = 0

        while True:
            time.sleep(self.cfg.poll_interval)
            run = self._client.runs.get(thread_id=thread_id, run_id=run_id)
            attempts += 1
            status = _status_name(run.status)

            if ENABLE_DEBUG:
                _logger.debug("Run %s → status=%s (check %d)", run_id, status, attempts)

            if run.status not in _PENDING_STATUSES:
                break

            if self.cfg.max_poll_attempts is not None and attempts >= self.cfg.max_poll_attempts:
                raise RunTimeoutError(f"Run {run_id} still {status} after {attempts} status checks")
            if deadline is not None and time.monotonic() >= deadline:
                raise RunTimeoutError(f"Run {run_id} still {status} after {self.cfg.poll_timeout}s")

        if run.status != RunStatus.COMPLETED:
            message = _error_field(run.last_error, "message")
            _logger.warning("Run %s ended as %s: %s", run_id, status, message)
            raise RunExecutionError(status, message, _error_field(run.last_error, "code"))
        return run

    def _delete_thread(self, thread_id: str) -> None:
        try:
            self._client.threads.delete(thread_id)
        except AzureError as exc:
            _logger.warning("Could not delete thread %s: %s", thread_id, exc)
