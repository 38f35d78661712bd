"""Runs the model's tool calls against the registry."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import TYPE_CHECKING, Any

from querya.errors import ParseError
from querya.tools.base import ToolResult

if TYPE_CHECKING:
    from querya.conversations.models import ToolCallRequest
    from querya.tools.registry import ToolRegistry

logger = logging.getLogger(__name__)

DEFAULT_TOOL_TIMEOUT = 30.0


def parse_arguments(raw: str | dict[str, Any] | None) -> dict[str, Any]:
    """Parse a tool-call argument payload into a dict.

    Raises ParseError when the payload is not a JSON object.
    """
    if raw is None or raw == "":
        return {}
    if isinstance(raw, dict):
        return dict(raw)
    try:
        parsed = json.loads(raw)
    except (TypeError, json.JSONDecodeError) as exc:
        msg = f"Tool arguments are not valid JSON: {raw!r:.80}"
        raise ParseError(msg) from exc
    if not isinstance(parsed, dict):
        msg = f"Tool arguments must be a JSON object, got {type(parsed).__name__}"
        raise ParseError(msg)
    return parsed


class ToolDispatcher:
    """Executes a batch of tool calls concurrently.

    ``dispatch_all`` returns exactly one ToolResult per request, in request
    order, whatever order the executors finish in. It never raises for a
    single failing call; each failure becomes an error payload.
    """

    def __init__(
        self,
        registry: ToolRegistry,
        *,
        timeout: float = DEFAULT_TOOL_TIMEOUT,
    ) -> None:
        self._registry = registry
        self._timeout = timeout

    @property
    def registry(self) -> ToolRegistry:
        return self._registry

    async def dispatch_all(self, requests: list[ToolCallRequest]) -> list[ToolResult]:
        if not requests:
            return []
        logger.info(
            "Dispatching %d tool call(s): %s",
            len(requests),
            ", ".join(r.name for r in requests),
        )
        # gather preserves argument order in its result list.
        return list(await asyncio.gather(*(self._dispatch_one(r) for r in requests)))

    async def _dispatch_one(self, request: ToolCallRequest) -> ToolResult:
        try:
            arguments = parse_arguments(request.arguments)
        except ParseError as exc:
            logger.warning("Call %s to '%s': %s; using empty arguments", request.id, request.name, exc)
            arguments = {}

        try:
            payload = await asyncio.wait_for(
                self._registry.execute(request.name, arguments), timeout=self._timeout
            )
        except TimeoutError:
            logger.error("Tool '%s' timed out after %.1fs", request.name, self._timeout)
            payload = {"error": f"Tool '{request.name}' timed out after {self._timeout:g}s"}
        except Exception as exc:
            logger.exception("Dispatch of '%s' failed", request.name)
            payload = {"error": f"Tool '{request.name}' failed: {exc}"}

        return ToolResult(
            tool_call_id=request.id,
            name=request.name,
            payload=payload,
            arguments=arguments,
        )
