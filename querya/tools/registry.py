"""Tool registry — central catalog of callable tools."""

from __future__ import annotations

import inspect
import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from querya.errors import ToolExecutionError, UnknownToolError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from querya.tools.base import ToolParams

logger = logging.getLogger(__name__)


@dataclass
class ToolDef:
    """Internal representation of a registered tool."""

    name: str
    description: str
    handler: Callable[..., Awaitable[dict[str, Any]]]
    params_model: type[ToolParams] | None = None


class ToolRegistry:
    """Mapping of tool name to description, parameter schema and executor.

    Tools are registered once at import time with the decorator::

        @registry.tool(
            name="my_tool",
            description="Does a thing",
            params_model=MyToolParams,
        )
        async def my_tool(query: str) -> dict:
            return {"ok": True}

    After startup the registry is only read: the dispatcher executes from
    it and the gateway advertises its schemas to the model.
    """

    def __init__(self) -> None:
        self._tools: dict[str, ToolDef] = {}

    def tool(
        self,
        *,
        name: str,
        description: str,
        params_model: type[ToolParams] | None = None,
    ) -> Callable:
        """Decorator to register an async function as a tool."""

        def decorator(fn: Callable[..., Awaitable[dict[str, Any]]]) -> Callable:
            if not inspect.iscoroutinefunction(fn):
                msg = f"Tool handler '{name}' must be an async function"
                raise TypeError(msg)
            if name in self._tools:
                msg = f"Tool '{name}' is already registered"
                raise ValueError(msg)

            self._tools[name] = ToolDef(
                name=name,
                description=description,
                handler=fn,
                params_model=params_model,
            )
            return fn

        return decorator

    def get(self, name: str) -> ToolDef | None:
        """Look up a tool by name."""
        return self._tools.get(name)

    @property
    def tool_names(self) -> list[str]:
        return list(self._tools.keys())

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def get_schemas(self) -> list[dict[str, Any]]:
        """Chat-completion ``tools`` entries for every registered tool."""
        return [self._tool_schema(t) for t in self._tools.values()]

    async def execute(self, name: str, arguments: dict[str, Any]) -> dict[str, Any]:
        """Execute a tool by name and return its result payload.

        Never raises: an unknown tool, invalid arguments or a failing
        handler all come back as ``{"error": "..."}``.
        """
        try:
            return await self._run(name, arguments)
        except (UnknownToolError, ToolExecutionError) as exc:
            return {"error": str(exc)}

    async def _run(self, name: str, arguments: dict[str, Any]) -> dict[str, Any]:
        tool_def = self._tools.get(name)
        if tool_def is None:
            logger.warning("Unknown tool requested: %s", name)
            msg = f"Unknown tool: {name}"
            raise UnknownToolError(msg)

        logger.info("Tool '%s' called with %s", name, arguments)
        t0 = time.monotonic()

        if tool_def.params_model is not None:
            try:
                params = tool_def.params_model.model_validate(arguments)
            except ValidationError as exc:
                logger.warning("Tool '%s' got invalid arguments: %s", name, exc)
                msg = f"Invalid arguments for '{name}': {exc.error_count()} validation error(s)"
                raise ToolExecutionError(msg) from exc
            kwargs = params.model_dump()
        else:
            kwargs = dict(arguments)

        try:
            result = await tool_def.handler(**kwargs)
        except Exception as exc:
            elapsed = time.monotonic() - t0
            logger.exception("Tool '%s' failed in %.2fs", name, elapsed)
            msg = f"Tool '{name}' failed: {exc}"
            raise ToolExecutionError(msg) from exc

        elapsed = time.monotonic() - t0
        if not isinstance(result, dict):
            result = {"result": result}
        if "error" in result:
            logger.warning("Tool '%s' returned error in %.2fs: %s", name, elapsed, result["error"])
        else:
            logger.info("Tool '%s' succeeded in %.2fs", name, elapsed)
        return result

    @staticmethod
    def _tool_schema(tool_def: ToolDef) -> dict[str, Any]:
        """Build a single chat-completion tool schema dict."""
        if tool_def.params_model is not None:
            parameters = tool_def.params_model.model_json_schema(by_alias=True)
            parameters.pop("title", None)
        else:
            parameters = {"type": "object", "properties": {}}

        return {
            "type": "function",
            "function": {
                "name": tool_def.name,
                "description": tool_def.description,
                "parameters": parameters,
            },
        }


# Default registry. The built-in tools register themselves here on import.
registry = ToolRegistry()
