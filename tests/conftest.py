"""Shared test fixtures."""

from collections.abc import Sequence

import pytest

from querya.config import Settings
from querya.conversations.models import Message, ToolCallRequest
from querya.conversations.store import MessageStore
from querya.errors import GatewayError
from querya.events import EventBus
from querya.llm.models import ModelResponse


class FakeGateway:
    """ModelGateway that replays scripted responses and records each call."""

    def __init__(self, *responses: ModelResponse | Exception) -> None:
        self._responses = list(responses)
        self.calls: list[list[Message]] = []

    async def complete(self, messages: Sequence[Message], settings: Settings) -> ModelResponse:
        self.calls.append(list(messages))
        if not self._responses:
            msg = "FakeGateway ran out of responses"
            raise GatewayError(msg)
        response = self._responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    async def list_models(self, settings: Settings) -> list[str]:
        return ["fake/model"]


class LoopingGateway(FakeGateway):
    """Always asks for the same tool, so the loop never finishes on its own."""

    def __init__(self, tool_name: str = "echo") -> None:
        super().__init__()
        self._tool_name = tool_name

    async def complete(self, messages: Sequence[Message], settings: Settings) -> ModelResponse:
        self.calls.append(list(messages))
        call = ToolCallRequest(id=f"call_{len(self.calls)}", name=self._tool_name, arguments="{}")
        return ModelResponse(content=None, tool_calls=[call])


def text_reply(content: str) -> ModelResponse:
    return ModelResponse(content=content)


def tool_reply(*calls: tuple[str, str, str], content: str | None = None) -> ModelResponse:
    """ModelResponse asking for tools given as (id, name, arguments) triples."""
    return ModelResponse(
        content=content,
        tool_calls=[ToolCallRequest(id=i, name=n, arguments=a) for i, n, a in calls],
    )


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Settings with a token and a throwaway data directory."""
    return Settings(api_key="aipipe-test-token", data_dir=tmp_path / "data")


@pytest.fixture
def events() -> EventBus:
    return EventBus()


@pytest.fixture
def store(events: EventBus) -> MessageStore:
    return MessageStore(events=events)
