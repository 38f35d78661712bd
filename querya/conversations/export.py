"""Markdown export of a single conversation."""

from __future__ import annotations

import json
import re
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from querya.conversations.models import Conversation, Message


def _render_content(message: Message) -> str:
    if isinstance(message.content, str):
        return message.content
    if message.tool_calls:
        return json.dumps([call.to_wire() for call in message.tool_calls])
    return json.dumps(message.content)


def export_markdown(conversation: Conversation) -> str:
    """Render ``# title`` followed by one ``**Role**: content`` paragraph per message."""
    content = f"# {conversation.title}\n\n"
    for message in conversation.messages:
        sender = (message.role or "unknown").capitalize()
        content += f"**{sender}**: {_render_content(message)}\n\n"
    return content


def export_filename(conversation: Conversation) -> str:
    return re.sub(r"\s+", "_", conversation.title or "conversation") + ".md"
