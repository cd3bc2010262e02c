from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Callable, Optional

from anyio import to_thread

from orchestrator.agent_session import AgentSession


@dataclass(frozen=True, slots=True)
class ImageUpload:
    data: bytes
    filename: str
    content_type: str


class AgentSessionPool:
    """
    Shares **one** AgentSession between all incoming requests.

    The first call creates the session (acquiring credentials and checking
    the endpoint); every subsequent call re-uses its connection.  Calls are
    not serialised because each invocation works on its own thread and run.
    """

    def __init__(self, factory: Callable[[], AgentSession] = AgentSession) -> None:
        self._factory = factory
        self._session: AgentSession | None = None
        self._create_lock = threading.Lock()

    # ──────────────────────────────────────────────────────────
    # internal helpers
    # ──────────────────────────────────────────────────────────

    def _ensure_session(self) -> AgentSession:
        """
        Lazily create the shared AgentSession, protecting against the race
        where multiple requests arrive before the first one finishes
        connecting.
        """
        if self._session is None:
            with self._create_lock:
                if self._session is None:  # double-checked locking
                    self._session = self._factory()
        return self._session

    # ──────────────────────────────────────────────────────────
    # public API
    # ──────────────────────────────────────────────────────────

    def invoke(self, agent_id: str, text: str, image: Optional[ImageUpload] = None) -> str:
        session = self._ensure_session()
        if image is None:
            return session.invoke_with_text(agent_id, text)
        return session.invoke_with_image(agent_id, text, image.data, image.filename, image.content_type)

    async def invoke_async(self, agent_id: str, text: str, image: Optional[ImageUpload] = None) -> str:
        # The poll loop cannot be interrupted, so the worker thread always runs to completion.
        return await to_thread.run_sync(self.invoke, agent_id, text, image)

    def shutdown(self) -> None:
        with self._create_lock:
            if self._session is not None:
                self._session.close()
                self._session = None
