"""Conversation models, the message store and its persistence."""

from querya.conversations.archive import ConversationArchive
from querya.conversations.export import export_filename, export_markdown
from querya.conversations.models import Conversation, Message, ToolCallRequest
from querya.conversations.store import MessageStore

__all__ = [
    "Conversation",
    "ConversationArchive",
    "Message",
    "MessageStore",
    "ToolCallRequest",
    "export_filename",
    "export_markdown",
]
