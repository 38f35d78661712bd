"""Conversation history → chat-completion request messages."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any, Literal

if TYPE_CHECKING:
    from collections.abc import Iterable

    from querya.conversations.models import Message

ToolRoleMode = Literal["native", "flatten"]


def _text(content: Any) -> str | None:
    if content is None or isinstance(content, str):
        return content
    return json.dumps(content)


def _flatten(messages: Iterable[Message]) -> list[dict[str, Any]]:
    """Lossy shaping for endpoints without a tool role.

    Tool results become system messages and messages without text (the
    assistant turns that only carried tool calls) are dropped, so the model
    never sees its own tool-call bookkeeping.
    """
    shaped: list[dict[str, Any]] = []
    for message in messages:
        role = "system" if message.role == "tool" else message.role
        content = _text(message.content)
        if content:
            shaped.append({"role": role, "content": content})
    return shaped


def _native(messages: Iterable[Message]) -> list[dict[str, Any]]:
    """Shaping that keeps assistant tool_calls paired with their tool results.

    Only complete pairs go on the wire: tool results that answer no earlier
    request are dropped, as are requests that never got a result.
    """
    messages = list(messages)
    answered = {m.tool_call_id for m in messages if m.role == "tool" and m.tool_call_id}
    requested: set[str] = set()
    shaped: list[dict[str, Any]] = []
    for message in messages:
        content = _text(message.content)
        calls = [call for call in message.tool_calls or [] if call.id in answered]
        if message.role == "assistant" and calls:
            requested.update(call.id for call in calls)
            shaped.append({
                "role": "assistant",
                "content": content,
                "tool_calls": [call.to_wire() for call in calls],
            })
        elif message.role == "tool":
            if message.tool_call_id not in requested:
                continue
            shaped.append({
                "role": "tool",
                "tool_call_id": message.tool_call_id,
                "content": content or "",
            })
        elif content:
            shaped.append({"role": message.role, "content": content})
    return shaped


def shape_messages(messages: Iterable[Message], mode: ToolRoleMode = "native") -> list[dict[str, Any]]:
    """Build the ``messages`` array of a chat-completion request, preserving order."""
    if mode == "flatten":
        return _flatten(messages)
    return _native(messages)
