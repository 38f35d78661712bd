"""Tests for the tool registry and the built-in tools."""

import pytest
from pydantic import Field

from querya.tools import registry as default_registry
from querya.tools.base import ToolParams, ToolResult
from querya.tools.builtin import create_visualization, execute_code, process_file, web_search
from querya.tools.registry import ToolRegistry

# -- Fixtures ----------------------------------------------------------------


@pytest.fixture
def reg() -> ToolRegistry:
    """Fresh registry for each test."""
    return ToolRegistry()


class SearchParams(ToolParams):
    query: str = Field(description="Search query")
    limit: int = Field(default=3, description="Max results")


# -- Decorator registration --------------------------------------------------


def test_register_via_decorator(reg: ToolRegistry) -> None:
    @reg.tool(name="ping", description="Ping")
    async def ping() -> dict:
        return {"pong": True}

    assert "ping" in reg
    assert reg.tool_names == ["ping"]
    assert reg.get("ping").description == "Ping"
    assert len(reg) == 1


def test_decorator_rejects_sync_function(reg: ToolRegistry) -> None:
    with pytest.raises(TypeError, match="must be an async function"):

        @reg.tool(name="bad", description="Bad")
        def bad() -> dict:
            return {}


def test_decorator_rejects_duplicate_name(reg: ToolRegistry) -> None:
    @reg.tool(name="dup", description="First")
    async def first() -> dict:
        return {}

    with pytest.raises(ValueError, match="already registered"):

        @reg.tool(name="dup", description="Second")
        async def second() -> dict:
            return {}


# -- Schema generation -------------------------------------------------------


def test_get_schemas_no_params(reg: ToolRegistry) -> None:
    @reg.tool(name="simple", description="Simple tool")
    async def simple() -> dict:
        return {}

    assert reg.get_schemas() == [
        {
            "type": "function",
            "function": {
                "name": "simple",
                "description": "Simple tool",
                "parameters": {"type": "object", "properties": {}},
            },
        }
    ]


def test_get_schemas_with_params(reg: ToolRegistry) -> None:
    @reg.tool(name="search", description="Search", params_model=SearchParams)
    async def search(query: str, limit: int = 3) -> dict:
        return {}

    params = reg.get_schemas()[0]["function"]["parameters"]
    assert "title" not in params
    assert params["type"] == "object"
    assert set(params["properties"]) == {"query", "limit"}
    assert params["required"] == ["query"]


def test_schema_uses_aliases() -> None:
    schema = default_registry.get("process_file").params_model.model_json_schema(by_alias=True)
    assert "fileId" in schema["properties"]


# -- Execution ---------------------------------------------------------------


async def test_execute_validates_and_calls(reg: ToolRegistry) -> None:
    @reg.tool(name="search", description="Search", params_model=SearchParams)
    async def search(query: str, limit: int = 3) -> dict:
        return {"query": query, "limit": limit}

    assert await reg.execute("search", {"query": "IBM"}) == {"query": "IBM", "limit": 3}


async def test_execute_unknown_tool(reg: ToolRegistry) -> None:
    assert await reg.execute("nope", {}) == {"error": "Unknown tool: nope"}


async def test_execute_invalid_arguments(reg: ToolRegistry) -> None:
    @reg.tool(name="search", description="Search", params_model=SearchParams)
    async def search(query: str, limit: int = 3) -> dict:
        return {}

    result = await reg.execute("search", {"limit": "many"})
    assert result["error"].startswith("Invalid arguments for 'search': 2 validation error")


async def test_execute_handler_exception(reg: ToolRegistry) -> None:
    @reg.tool(name="boom", description="Boom")
    async def boom() -> dict:
        raise RuntimeError("kaput")

    assert await reg.execute("boom", {}) == {"error": "Tool 'boom' failed: kaput"}


async def test_execute_wraps_non_dict_result(reg: ToolRegistry) -> None:
    @reg.tool(name="answer", description="Answer")
    async def answer() -> int:
        return 42

    assert await reg.execute("answer", {}) == {"result": 42}


async def test_execute_without_params_model_passes_arguments(reg: ToolRegistry) -> None:
    @reg.tool(name="echo", description="Echo")
    async def echo(**kwargs) -> dict:
        return kwargs

    assert await reg.execute("echo", {"a": 1}) == {"a": 1}


# -- ToolResult --------------------------------------------------------------


def test_tool_result_success_flag() -> None:
    assert ToolResult("c1", "x", {"ok": True}).success is True
    assert ToolResult("c1", "x", {"error": "nope"}).success is False


def test_tool_result_to_content() -> None:
    assert ToolResult("c1", "x", {"items": []}).to_content() == '{"items": []}'


# -- Built-in tools ----------------------------------------------------------


def test_builtin_tools_registered() -> None:
    assert set(default_registry.tool_names) >= {
        "web_search",
        "execute_code",
        "process_file",
        "create_visualization",
    }


async def test_web_search_stub() -> None:
    assert await web_search("IBM stock price") == {
        "status": "Simulated search for: IBM stock price",
        "items": [],
    }


async def test_execute_code_stub() -> None:
    assert await execute_code("print(1)") == {"output": "Simulated execution of: print(1)"}


async def test_process_file_via_registry_alias() -> None:
    result = await default_registry.execute("process_file", {"fileId": "f-42"})
    assert result == {"result": "Simulated analyze on file f-42"}


async def test_process_file_stub() -> None:
    assert await process_file("f-1", "summarize") == {"result": "Simulated summarize on file f-1"}


async def test_create_visualization_stub() -> None:
    result = await create_visualization("1,2,3", type="bar", title="Sales")
    assert result == {"chartUrl": 'Simulated bar chart titled "Sales"'}


async def test_create_visualization_without_title() -> None:
    result = await default_registry.execute("create_visualization", {"data": "1,2"})
    assert result == {"chartUrl": 'Simulated line chart titled "None"'}
