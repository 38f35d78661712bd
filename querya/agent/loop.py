"""Agent loop — alternates model calls and tool execution until a final answer."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

from querya.errors import GatewayError
from querya.events import Event

if TYPE_CHECKING:
    from querya.config import Settings
    from querya.conversations.models import ToolCallRequest
    from querya.conversations.store import MessageStore
    from querya.events import EventBus
    from querya.llm.gateway import ModelGateway
    from querya.llm.models import ModelResponse
    from querya.tools.dispatch import ToolDispatcher

logger = logging.getLogger(__name__)


class LoopState(StrEnum):
    AWAIT_MODEL = "await_model"
    DISPATCH_TOOLS = "dispatch_tools"
    TERMINATED = "terminated"


class StopReason(StrEnum):
    COMPLETED = "completed"
    TURN_BUDGET = "turn_budget"
    ERROR = "error"


@dataclass
class LoopOutcome:
    """Summary of one ``AgentLoop.run`` invocation.

    The conversation itself is the real result; this only reports how the
    run ended. ``turns`` counts model calls.
    """

    reason: StopReason
    turns: int
    error: str | None = None
    last_response_ms: int | None = None

    @property
    def ok(self) -> bool:
        return self.reason is not StopReason.ERROR


class AgentLoop:
    """State machine over one conversation.

    AWAIT_MODEL sends the conversation to the gateway. A reply with tool
    calls is stored as an assistant turn and moves to DISPATCH_TOOLS; a
    plain reply is stored and ends the run. DISPATCH_TOOLS runs every call,
    stores one tool message per result in request order, and returns to
    AWAIT_MODEL. At most ``settings.max_turns`` model calls are made per run.

    Collaborators are injected; the loop keeps only the conversation ID
    and re-reads the conversation from the store on every turn.
    """

    def __init__(
        self,
        store: MessageStore,
        gateway: ModelGateway,
        dispatcher: ToolDispatcher,
        settings: Settings,
        events: EventBus | None = None,
    ) -> None:
        self._store = store
        self._gateway = gateway
        self._dispatcher = dispatcher
        self._settings = settings
        self._events = events

    async def run(self, conversation_id: str) -> LoopOutcome:
        max_turns = self._settings.max_turns
        turns = 0
        last_ms: int | None = None
        state = LoopState.AWAIT_MODEL
        pending: list[ToolCallRequest] = []

        try:
            while state is not LoopState.TERMINATED:
                if state is LoopState.AWAIT_MODEL:
                    if turns >= max_turns:
                        logger.warning("Hit max turns (%d) for %s", max_turns, conversation_id)
                        return self._finish(conversation_id, StopReason.TURN_BUDGET, turns, last_ms)

                    turns += 1
                    logger.debug("Turn %d/%d for %s", turns, max_turns, conversation_id)
                    self._publish(Event.TURN_STARTED, conversation_id=conversation_id, turn=turns)

                    t0 = time.monotonic()
                    try:
                        response = await self._call_model(conversation_id)
                    except GatewayError as exc:
                        logger.error("Model call failed for %s: %s", conversation_id, exc)
                        self._store.add(conversation_id, "system", f"Model request failed: {exc}")
                        return self._fail(conversation_id, str(exc), turns, last_ms)
                    last_ms = round((time.monotonic() - t0) * 1000)

                    if response.has_tool_calls:
                        pending = self._unique_calls(conversation_id, response.tool_calls)
                        logger.info(
                            "Turn %d: %d tool call(s): %s",
                            turns,
                            len(response.tool_calls),
                            ", ".join(call.name for call in response.tool_calls),
                        )
                        self._store.add(
                            conversation_id,
                            "assistant",
                            response.content,
                            tool_calls=pending,
                        )
                        state = LoopState.DISPATCH_TOOLS
                    else:
                        self._store.add(conversation_id, "assistant", response.content or "")
                        state = LoopState.TERMINATED

                else:
                    for call in pending:
                        self._publish(
                            Event.TOOL_EXECUTING,
                            conversation_id=conversation_id,
                            tool_call_id=call.id,
                            name=call.name,
                        )
                    results = await self._dispatcher.dispatch_all(pending)
                    for result in results:
                        self._store.add(
                            conversation_id,
                            "tool",
                            result.to_content(),
                            tool_call_id=result.tool_call_id,
                            name=result.name,
                        )
                    pending = []
                    state = LoopState.AWAIT_MODEL

        except Exception as exc:
            logger.exception("Agent loop aborted for %s", conversation_id)
            self._record_diagnostic(conversation_id, f"Agent iteration error: {exc}")
            return self._fail(conversation_id, str(exc), turns, last_ms)

        logger.info("Agent loop completed in %d turn(s) for %s", turns, conversation_id)
        return self._finish(conversation_id, StopReason.COMPLETED, turns, last_ms)

    async def _call_model(self, conversation_id: str) -> ModelResponse:
        conversation = self._store.require(conversation_id)
        # Two endpoint attempts at most, each bounded by the request timeout.
        deadline = self._settings.request_timeout * 2
        try:
            return await asyncio.wait_for(
                self._gateway.complete(list(conversation.messages), self._settings),
                timeout=deadline,
            )
        except TimeoutError as exc:
            msg = f"Model request timed out after {deadline:g}s"
            raise GatewayError(msg) from exc

    def _unique_calls(
        self, conversation_id: str, calls: list[ToolCallRequest]
    ) -> list[ToolCallRequest]:
        """Re-key calls whose ID is already taken in the conversation."""
        taken = self._store.require(conversation_id).requested_tool_call_ids()
        unique: list[ToolCallRequest] = []
        for call in calls:
            call_id, n = call.id, 1
            while call_id in taken:
                n += 1
                call_id = f"{call.id}_{n}"
            taken.add(call_id)
            unique.append(call if call_id == call.id else call.model_copy(update={"id": call_id}))
        return unique

    def _record_diagnostic(self, conversation_id: str, text: str) -> None:
        try:
            self._store.add(conversation_id, "system", text)
        except (KeyError, ValueError):
            logger.exception("Could not record diagnostic for %s", conversation_id)

    def _fail(
        self, conversation_id: str, error: str, turns: int, last_ms: int | None
    ) -> LoopOutcome:
        self._publish(Event.ERROR, conversation_id=conversation_id, error=error)
        return self._finish(conversation_id, StopReason.ERROR, turns, last_ms, error=error)

    def _finish(
        self,
        conversation_id: str,
        reason: StopReason,
        turns: int,
        last_ms: int | None,
        *,
        error: str | None = None,
    ) -> LoopOutcome:
        outcome = LoopOutcome(reason=reason, turns=turns, error=error, last_response_ms=last_ms)
        self._publish(
            Event.TERMINATED, conversation_id=conversation_id, reason=reason, turns=turns
        )
        return outcome

    def _publish(self, event: Event, **data) -> None:
        if self._events is not None:
            self._events.publish(event, **data)
