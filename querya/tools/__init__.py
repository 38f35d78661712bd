"""Tool framework — import tool modules here to register them."""

# Importing builtin runs its @registry.tool() decorators.
from querya.tools import builtin  # noqa: F401
from querya.tools.base import ToolParams, ToolResult
from querya.tools.dispatch import ToolDispatcher, parse_arguments
from querya.tools.registry import ToolRegistry, registry

__all__ = [
    "ToolDispatcher",
    "ToolParams",
    "ToolRegistry",
    "ToolResult",
    "parse_arguments",
    "registry",
]
