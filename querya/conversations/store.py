"""MessageStore — owner of every conversation and its append-only message log."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from querya.conversations.models import DEFAULT_TITLE, Conversation, Message
from querya.events import Event

if TYPE_CHECKING:
    from querya.events import EventBus

logger = logging.getLogger(__name__)

PREVIEW_LENGTH = 100
TITLE_LENGTH = 30


class MessageStore:
    """In-memory conversation store.

    Only the store mutates conversations. Callers hold conversation IDs and
    re-read through ``get`` so they always see the current message list.
    Every successful append publishes ``Event.MESSAGE_APPENDED`` when an
    event bus is attached.
    """

    def __init__(
        self,
        conversations: dict[str, Conversation] | None = None,
        events: EventBus | None = None,
    ) -> None:
        self._conversations: dict[str, Conversation] = dict(conversations or {})
        self._events = events

    # -- Conversations ---------------------------------------------------------

    def create(self) -> Conversation:
        conversation = Conversation()
        self._conversations[conversation.id] = conversation
        logger.info("Created conversation %s", conversation.id)
        return conversation

    def get(self, conversation_id: str) -> Conversation | None:
        return self._conversations.get(conversation_id)

    def require(self, conversation_id: str) -> Conversation:
        """Like ``get`` but raises KeyError for an unknown ID."""
        conversation = self._conversations.get(conversation_id)
        if conversation is None:
            msg = f"Unknown conversation: {conversation_id}"
            raise KeyError(msg)
        return conversation

    def list_conversations(self) -> list[Conversation]:
        """All conversations, most recently updated first."""
        return sorted(self._conversations.values(), key=lambda c: c.updated_at, reverse=True)

    def most_recent(self) -> Conversation | None:
        conversations = self.list_conversations()
        return conversations[0] if conversations else None

    def snapshot(self) -> dict[str, Conversation]:
        """Mapping of ID to conversation, for persistence."""
        return dict(self._conversations)

    def __len__(self) -> int:
        return len(self._conversations)

    def __contains__(self, conversation_id: object) -> bool:
        return conversation_id in self._conversations

    # -- Messages --------------------------------------------------------------

    def append(self, conversation_id: str, message: Message) -> Message:
        """Append *message* to the conversation and refresh its display fields.

        Raises ValueError if a tool-role message does not answer a tool call
        requested earlier in the same conversation.
        """
        conversation = self.require(conversation_id)

        if message.role == "tool":
            if not message.tool_call_id:
                msg = "Tool message is missing tool_call_id"
                raise ValueError(msg)
            if message.tool_call_id not in conversation.requested_tool_call_ids():
                msg = f"Tool message references unknown tool call '{message.tool_call_id}'"
                raise ValueError(msg)

        conversation.messages.append(message)

        if message.role != "system" and isinstance(message.content, str):
            conversation.preview = message.content[:PREVIEW_LENGTH]
            if not conversation.title or conversation.title == DEFAULT_TITLE:
                conversation.title = message.content[:TITLE_LENGTH] or "Conversation"
            conversation.updated_at = datetime.now(UTC)

        if self._events is not None:
            self._events.publish(
                Event.MESSAGE_APPENDED, conversation_id=conversation_id, message=message
            )
        return message

    def add(self, conversation_id: str, role: str, content: str | None, **fields) -> Message:
        """Shortcut: build a Message and append it."""
        return self.append(conversation_id, Message(role=role, content=content, **fields))

    def delete_message(self, conversation_id: str, message_id: str) -> bool:
        """Remove one message. Returns False if it was not found.

        An assistant turn that requested tool calls is removed together with
        the tool results answering it, whichever of them is targeted.
        """
        conversation = self.require(conversation_id)
        target = conversation.find(message_id)
        if target is None:
            return False

        removed = {target.id}
        group = target if target.has_tool_calls else None
        if target.role == "tool" and target.tool_call_id:
            group = conversation.tool_call_turn(target.tool_call_id)
        if group is not None:
            call_ids = {call.id for call in group.tool_calls}
            removed.add(group.id)
            removed.update(
                m.id for m in conversation.messages if m.role == "tool" and m.tool_call_id in call_ids
            )

        conversation.messages = [m for m in conversation.messages if m.id not in removed]
        if len(removed) > 1:
            logger.info("Deleted tool-call group of %d message(s) from %s", len(removed), conversation_id)
        return True

    def toggle_bookmark(self, conversation_id: str, message_id: str) -> bool | None:
        """Flip a message's bookmark flag. Returns the new value, or None if not found."""
        message = self.require(conversation_id).find(message_id)
        if message is None:
            return None
        message.bookmarked = not message.bookmarked
        return message.bookmarked

    def clear(self, conversation_id: str) -> int:
        """Drop every message. Returns the count of cleared messages."""
        conversation = self.require(conversation_id)
        count = len(conversation.messages)
        conversation.messages = []
        conversation.preview = "Cleared"
        conversation.updated_at = datetime.now(UTC)
        return count
