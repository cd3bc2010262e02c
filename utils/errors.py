"""
Error taxonomy for agent invocations.

Argument problems are detected before any remote call is made; construction
failures are fatal to the session; run failures carry whatever detail the
remote service reported.  Transport faults raised by :mod:`azure.core` are *not*
wrapped and reach the caller unchanged.
"""

from __future__ import annotations

from typing import Optional


class AgentError(Exception):
    """Base class for every error raised by this package."""


class InvalidArgumentError(AgentError, ValueError):
    """A required parameter was missing, empty or unreadable."""

    def __init__(self, name: str, message: Optional[str] = None) -> None:
        self.name = name
        super().__init__(message or f"'{name}' must not be empty")


class ConfigurationError(AgentError):
    """The session cannot be built from the current settings (e.g. no endpoint)."""


class AuthenticationError(AgentError):
    """Credentials could not be resolved or were rejected by the service."""


class AgentConnectionError(AgentError, ConnectionError):
    """The agent service endpoint could not be reached."""


class RunExecutionError(AgentError, RuntimeError):
    """
    A run reached a terminal status other than ``completed``.

    *error_message* is the remote-provided detail and may be ``None``.
    """

    def __init__(
            self,
            status: str,
            error_message: Optional[str] = None,
            error_code: Optional[str] = None,
    ) -> None:
        self.status = status
        self.error_message = error_message
        self.error_code = error_code
        super().__init__(f"Run failed or was canceled: {error_message or ''}".rstrip())


class RunTimeoutError(AgentError, TimeoutError):
    """The configured polling bound elapsed before the run finished."""


__all__ = [
    "AgentError",
    "InvalidArgumentError",
    "ConfigurationError",
    "AuthenticationError",
    "AgentConnectionError",
    "RunExecutionError",
    "RunTimeoutError",
]
