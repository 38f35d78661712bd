"""Tests for MessageStore and the conversation models."""

import pytest

from querya.conversations.models import DEFAULT_TITLE, Conversation, Message, ToolCallRequest
from querya.conversations.store import MessageStore
from querya.events import Event, EventBus

# -- Conversations -----------------------------------------------------------


def test_create_and_get(store: MessageStore) -> None:
    conv = store.create()
    assert conv.id.startswith("conv_")
    assert conv.title == DEFAULT_TITLE
    assert store.get(conv.id) is conv
    assert conv.id in store
    assert len(store) == 1


def test_get_unknown_returns_none(store: MessageStore) -> None:
    assert store.get("conv_missing") is None


def test_require_unknown_raises(store: MessageStore) -> None:
    with pytest.raises(KeyError, match="Unknown conversation"):
        store.require("conv_missing")


def test_list_most_recent_first(store: MessageStore) -> None:
    first = store.create()
    second = store.create()
    store.add(first.id, "user", "bump")

    assert [c.id for c in store.list_conversations()] == [first.id, second.id]
    assert store.most_recent() is first


def test_most_recent_empty(store: MessageStore) -> None:
    assert store.most_recent() is None


def test_initial_mapping() -> None:
    conv = Conversation(title="Loaded")
    store = MessageStore({conv.id: conv})
    assert store.require(conv.id).title == "Loaded"
    assert store.snapshot() == {conv.id: conv}


# -- Appending ---------------------------------------------------------------


def test_append_preserves_order(store: MessageStore) -> None:
    conv = store.create()
    for text in ("one", "two", "three"):
        store.add(conv.id, "user", text)
    assert [m.content for m in store.require(conv.id).messages] == ["one", "two", "three"]


def test_first_user_message_sets_title_and_preview(store: MessageStore) -> None:
    conv = store.create()
    text = "What is the current stock price of IBM and how has it moved this week?"
    store.add(conv.id, "user", text)

    assert conv.title == text[:30]
    assert conv.preview == text[:100]


def test_title_is_set_only_once(store: MessageStore) -> None:
    conv = store.create()
    store.add(conv.id, "user", "First question")
    store.add(conv.id, "assistant", "An answer")
    assert conv.title == "First question"
    assert conv.preview == "An answer"


def test_system_message_does_not_touch_display_fields(store: MessageStore) -> None:
    conv = store.create()
    before = conv.updated_at
    store.add(conv.id, "system", "Model request failed")
    assert conv.title == DEFAULT_TITLE
    assert conv.preview == "..."
    assert conv.updated_at == before


def test_append_publishes_event(events: EventBus, store: MessageStore) -> None:
    seen: list[tuple[str, str]] = []

    def on_append(conversation_id: str, message: Message) -> None:
        seen.append((conversation_id, message.content))

    events.subscribe(Event.MESSAGE_APPENDED, on_append)
    conv = store.create()
    store.add(conv.id, "user", "hello")
    assert seen == [(conv.id, "hello")]


def test_append_to_unknown_conversation(store: MessageStore) -> None:
    with pytest.raises(KeyError):
        store.add("conv_missing", "user", "hello")


# -- Tool back-references ----------------------------------------------------


def test_tool_message_must_reference_requested_call(store: MessageStore) -> None:
    conv = store.create()
    with pytest.raises(ValueError, match="unknown tool call"):
        store.add(conv.id, "tool", "{}", tool_call_id="call_1", name="web_search")
    assert conv.messages == []


def test_tool_message_requires_tool_call_id(store: MessageStore) -> None:
    conv = store.create()
    with pytest.raises(ValueError, match="missing tool_call_id"):
        store.add(conv.id, "tool", "{}")


def test_tool_message_after_request(store: MessageStore) -> None:
    conv = store.create()
    call = ToolCallRequest(id="call_1", name="web_search", arguments='{"query": "IBM"}')
    store.add(conv.id, "assistant", None, tool_calls=[call])
    store.add(conv.id, "tool", '{"items": []}', tool_call_id="call_1", name="web_search")

    assert [m.role for m in conv.messages] == ["assistant", "tool"]
    assert conv.requested_tool_call_ids() == {"call_1"}


def test_tool_call_only_message_keeps_display_fields(store: MessageStore) -> None:
    conv = store.create()
    store.add(conv.id, "user", "hi")
    store.add(conv.id, "assistant", None, tool_calls=[ToolCallRequest(id="c", name="x")])
    assert conv.preview == "hi"


# -- Edits -------------------------------------------------------------------


def test_delete_message(store: MessageStore) -> None:
    conv = store.create()
    keep = store.add(conv.id, "user", "keep")
    drop = store.add(conv.id, "user", "drop")

    assert store.delete_message(conv.id, drop.id) is True
    assert store.delete_message(conv.id, drop.id) is False
    assert conv.messages == [keep]


def _tool_round(store: MessageStore) -> tuple[Conversation, Message]:
    conv = store.create()
    store.add(conv.id, "user", "IBM price?")
    calls = [
        ToolCallRequest(id="c1", name="web_search", arguments="{}"),
        ToolCallRequest(id="c2", name="execute_code", arguments="{}"),
    ]
    request = store.add(conv.id, "assistant", None, tool_calls=calls)
    store.add(conv.id, "tool", "{}", tool_call_id="c1", name="web_search")
    store.add(conv.id, "tool", "{}", tool_call_id="c2", name="execute_code")
    store.add(conv.id, "assistant", "No data.")
    return conv, request


def test_delete_tool_call_turn_removes_its_results(store: MessageStore) -> None:
    conv, request = _tool_round(store)

    assert store.delete_message(conv.id, request.id) is True

    assert [(m.role, m.content) for m in conv.messages] == [
        ("user", "IBM price?"),
        ("assistant", "No data."),
    ]


def test_delete_tool_result_removes_whole_group(store: MessageStore) -> None:
    conv, _ = _tool_round(store)
    result = conv.messages[3]

    assert store.delete_message(conv.id, result.id) is True

    assert [m.role for m in conv.messages] == ["user", "assistant"]
    assert conv.requested_tool_call_ids() == set()


def test_delete_leaves_other_tool_rounds(store: MessageStore) -> None:
    conv, request = _tool_round(store)
    later = ToolCallRequest(id="c3", name="web_search", arguments="{}")
    store.add(conv.id, "assistant", None, tool_calls=[later])
    store.add(conv.id, "tool", "{}", tool_call_id="c3", name="web_search")

    store.delete_message(conv.id, request.id)

    assert [m.role for m in conv.messages] == ["user", "assistant", "assistant", "tool"]
    assert conv.messages[-1].tool_call_id == "c3"


def test_toggle_bookmark(store: MessageStore) -> None:
    conv = store.create()
    msg = store.add(conv.id, "assistant", "useful")

    assert store.toggle_bookmark(conv.id, msg.id) is True
    assert store.toggle_bookmark(conv.id, msg.id) is False
    assert store.toggle_bookmark(conv.id, "msg_missing") is None


def test_clear(store: MessageStore) -> None:
    conv = store.create()
    store.add(conv.id, "user", "a")
    store.add(conv.id, "assistant", "b")

    assert store.clear(conv.id) == 2
    assert conv.messages == []
    assert conv.preview == "Cleared"


# -- Models ------------------------------------------------------------------


def test_message_ids_are_unique() -> None:
    ids = {Message(role="user", content="x").id for _ in range(50)}
    assert len(ids) == 50


def test_tool_call_to_wire_encodes_dict_arguments() -> None:
    call = ToolCallRequest(id="c1", name="web_search", arguments={"query": "IBM"})
    assert call.to_wire() == {
        "id": "c1",
        "type": "function",
        "function": {"name": "web_search", "arguments": '{"query": "IBM"}'},
    }


def test_tool_call_to_wire_keeps_string_arguments() -> None:
    call = ToolCallRequest(id="c1", name="web_search", arguments='{"query":"IBM"}')
    assert call.to_wire()["function"]["arguments"] == '{"query":"IBM"}'
