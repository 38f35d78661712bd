"""Conversation, Message and ToolCallRequest data models."""

from __future__ import annotations

import json
import uuid
from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, Field, model_validator

Role = Literal["user", "assistant", "system", "tool"]

DEFAULT_TITLE = "New Conversation"


def _now() -> datetime:
    return datetime.now(UTC)


def new_message_id() -> str:
    return f"msg_{uuid.uuid4().hex[:12]}"


def new_conversation_id() -> str:
    return f"conv_{uuid.uuid4().hex[:12]}"


class ToolCallRequest(BaseModel):
    """A tool invocation requested by the model.

    ``arguments`` is kept exactly as the model sent it (usually a JSON
    string); it is parsed only when the call is dispatched.
    """

    id: str
    name: str
    arguments: str | dict[str, Any] = ""

    @model_validator(mode="before")
    @classmethod
    def _unwrap_function(cls, data: Any) -> Any:
        """Accept the wire shape ``{"id", "type", "function": {"name", "arguments"}}``."""
        if isinstance(data, dict) and isinstance(data.get("function"), dict):
            function = data["function"]
            return {
                "id": data.get("id"),
                "name": function.get("name"),
                "arguments": function.get("arguments") or "",
            }
        return data

    def to_wire(self) -> dict[str, Any]:
        """Chat-completion ``tool_calls`` entry."""
        args = self.arguments
        if not isinstance(args, str):
            args = json.dumps(args)
        return {"id": self.id, "type": "function", "function": {"name": self.name, "arguments": args}}


class Message(BaseModel):
    """A single conversation turn.

    Attributes:
        id: Unique message identifier.
        role: user, assistant, system or tool.
        content: Text, or None for an assistant turn that only carries tool calls.
        tool_calls: Tool invocations requested by an assistant turn.
        tool_call_id: For tool-role messages, the request this result answers.
        name: For tool-role messages, the tool that produced the result.
        bookmarked: User-toggled flag, ignored by the agent loop.
    """

    id: str = Field(default_factory=new_message_id)
    role: Role
    content: str | None = None
    tool_calls: list[ToolCallRequest] | None = None
    tool_call_id: str | None = None
    name: str | None = None
    timestamp: datetime = Field(default_factory=_now)
    bookmarked: bool = False

    @property
    def has_tool_calls(self) -> bool:
        return bool(self.tool_calls)


class Conversation(BaseModel):
    """An ordered message log plus the display fields kept in sync with it."""

    id: str = Field(default_factory=new_conversation_id)
    title: str = DEFAULT_TITLE
    preview: str = "..."
    messages: list[Message] = Field(default_factory=list)
    created_at: datetime = Field(
        default_factory=_now, validation_alias=AliasChoices("created_at", "createdAt")
    )
    updated_at: datetime = Field(
        default_factory=_now, validation_alias=AliasChoices("updated_at", "updatedAt")
    )

    def find(self, message_id: str) -> Message | None:
        for message in self.messages:
            if message.id == message_id:
                return message
        return None

    def tool_call_turn(self, tool_call_id: str) -> Message | None:
        """The assistant turn that requested *tool_call_id*, if any."""
        for message in self.messages:
            if message.role == "assistant" and message.tool_calls:
                if any(call.id == tool_call_id for call in message.tool_calls):
                    return message
        return None

    def requested_tool_call_ids(self) -> set[str]:
        """IDs of every tool call requested by an assistant turn so far."""
        return {
            call.id
            for message in self.messages
            if message.role == "assistant" and message.tool_calls
            for call in message.tool_calls
        }
