"""The seam between the agent loop and model providers."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Sequence

    from querya.config import Settings
    from querya.conversations.models import Message
    from querya.llm.models import ModelResponse


@runtime_checkable
class ModelGateway(Protocol):
    """Capability set every provider implementation must offer."""

    async def complete(self, messages: Sequence[Message], settings: Settings) -> ModelResponse:
        """Send the conversation to the model and return its normalized reply.

        Raises GatewayError when the provider cannot be reached.
        """
        ...

    async def list_models(self, settings: Settings) -> list[str]:
        """Model identifiers available to the configured credential."""
        ...
