"""Error taxonomy shared by the gateway, the tools and the agent loop."""

from __future__ import annotations


class QueryaError(Exception):
    """Base class for all Querya errors."""


class ConfigurationError(QueryaError):
    """No provider or credential is configured."""


class GatewayError(QueryaError):
    """Both the primary and the fallback endpoint calls failed.

    ``status_code`` and the message describe the *primary* failure; the
    fallback failure is kept in ``fallback_message`` for the logs.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        hint: str | None = None,
        fallback_message: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.hint = hint
        self.fallback_message = fallback_message

    def __str__(self) -> str:
        if self.hint:
            return f"{self.message} {self.hint}"
        return self.message


class ParseError(QueryaError):
    """A model response or tool argument payload could not be parsed."""


class ToolExecutionError(QueryaError):
    """A tool executor raised or timed out."""


class UnknownToolError(QueryaError):
    """The model asked for a tool that is not registered."""


class SessionBusyError(QueryaError):
    """A conversation edit was attempted while the agent loop is running."""
