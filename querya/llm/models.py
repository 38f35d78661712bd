"""Provider-neutral model response."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from querya.conversations.models import ToolCallRequest


@dataclass(frozen=True)
class ModelResponse:
    """What the agent loop sees of one model call, whatever the provider.

    Attributes:
        content: Text of the reply, or None when the model only asked for tools.
        tool_calls: Tool invocations requested by the model, in order.
        shape: Which upstream shape was recognised
            ("chat_completion", "candidates", "text", "unrecognized" or "demo").
    """

    content: str | None = None
    tool_calls: list[ToolCallRequest] = field(default_factory=list)
    shape: str = "chat_completion"

    @property
    def has_tool_calls(self) -> bool:
        return bool(self.tool_calls)
