from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional, Tuple, Union

from azure.ai.agents.models import MessageImageFileContent, MessageTextContent

from config import env

# ──────────────────────────────────────────────────────────────
# Message content variants
# ──────────────────────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class TextContent:
    text: str


@dataclass(frozen=True, slots=True)
class ImageFileContent:
    file_id: str


@dataclass(frozen=True, slots=True)
class OtherContent:
    """Any content kind the transcript does not render (e.g. ``image_url``)."""

    kind: str


ContentItem = Union[TextContent, ImageFileContent, OtherContent]


def parse_content_item(item: Any) -> ContentItem:
    """
    Convert one SDK content part into its tagged variant.

    :class:`MessageTextContent` and :class:`MessageImageFileContent` are
    recognised; everything else is kept as :class:`OtherContent`.
    """
    if isinstance(item, MessageTextContent):
        return TextContent(text=(item.text.value if item.text else None) or "")
    if isinstance(item, MessageImageFileContent):
        return ImageFileContent(file_id=(item.image_file.file_id if item.image_file else None) or "")
    return OtherContent(kind=str(getattr(item, "type", None) or "unknown"))


def _epoch(value: Any) -> int:
    if isinstance(value, datetime):
        return int(value.timestamp())
    return int(value or 0)


@dataclass(frozen=True, slots=True)
class Message:
    """Local, immutable view of a thread message."""

    id: str
    role: str
    created_at: int = 0
    content: Tuple[ContentItem, ...] = ()

    @classmethod
    def from_sdk(cls, msg: Any) -> "Message":
        role = getattr(msg.role, "value", msg.role)
        return cls(
            id=msg.id,
            role=str(role or ""),
            created_at=_epoch(getattr(msg, "created_at", None)),
            content=tuple(parse_content_item(part) for part in msg.content or []),
        )


# ──────────────────────────────────────────────────────────────
# Typed configuration container
# ──────────────────────────────────────────────────────────────


@dataclass(slots=True)
class SessionConfig:
    """
    Runtime settings for :class:`~orchestrator.agent_session.AgentSession`.

    Defaults are pulled from environment variables so they remain centrally
    configurable via *config.py*.  ``poll_timeout`` and ``max_poll_attempts``
    are unbounded when unset; an unset ``api_version`` leaves the SDK default.
    """

    endpoint: str = env("AGENT_SERVICE_ENDPOINT", "")
    api_version: Optional[str] = env("AGENT_SERVICE_API_VERSION", None)
    token_scope: str = env("AGENT_SERVICE_SCOPE", "https://ai.azure.com/.default")
    poll_interval: float = env("AGENT_POLL_INTERVAL", 0.5, cast=float)
    poll_timeout: Optional[float] = env("AGENT_POLL_TIMEOUT", None, cast=float)
    max_poll_attempts: Optional[int] = env("AGENT_MAX_POLL_ATTEMPTS", None, cast=int)
    delete_thread_on_completion: bool = env("AGENT_DELETE_THREADS", False, cast=bool)
    verify_connection: bool = env("AGENT_VERIFY_CONNECTION", True, cast=bool)
    request_timeout: float = env("AGENT_REQUEST_TIMEOUT", 30.0, cast=float)
