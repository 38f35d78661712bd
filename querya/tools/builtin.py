"""Built-in tools.

These are simulated executors: each echoes its arguments back in the
result shape the real back-end will use. Real implementations replace the
handler bodies and keep the names, parameters and result keys.
"""

from pydantic import Field

from querya.tools.base import ToolParams
from querya.tools.registry import registry

# ---------------------------------------------------------------------------
# web_search
# ---------------------------------------------------------------------------


class WebSearchParams(ToolParams):
    query: str = Field(description="Search query string")
    results: int = Field(default=5, description="Number of results to return")


@registry.tool(
    name="web_search",
    description="Search the web for current information",
    params_model=WebSearchParams,
)
async def web_search(query: str, results: int = 5) -> dict:
    return {"status": f"Simulated search for: {query}", "items": []}


# ---------------------------------------------------------------------------
# execute_code
# ---------------------------------------------------------------------------


class ExecuteCodeParams(ToolParams):
    code: str = Field(description="Source code to run")


@registry.tool(
    name="execute_code",
    description="Execute code in a sandbox and return its output",
    params_model=ExecuteCodeParams,
)
async def execute_code(code: str) -> dict:
    return {"output": f"Simulated execution of: {code}"}


# ---------------------------------------------------------------------------
# process_file
# ---------------------------------------------------------------------------


class ProcessFileParams(ToolParams):
    file_id: str = Field(alias="fileId", description="Identifier of an uploaded file")
    operation: str = Field(default="analyze", description="What to do with the file")


@registry.tool(
    name="process_file",
    description="Process and analyze uploaded files",
    params_model=ProcessFileParams,
)
async def process_file(file_id: str, operation: str = "analyze") -> dict:
    return {"result": f"Simulated {operation} on file {file_id}"}


# ---------------------------------------------------------------------------
# create_visualization
# ---------------------------------------------------------------------------


class CreateVisualizationParams(ToolParams):
    data: str = Field(description="Data to plot, as CSV or JSON text")
    type: str = Field(default="line", description="Chart type (line, bar, pie, ...)")
    title: str | None = Field(default=None, description="Chart title")


@registry.tool(
    name="create_visualization",
    description="Create data visualizations",
    params_model=CreateVisualizationParams,
)
async def create_visualization(data: str, type: str = "line", title: str | None = None) -> dict:  # noqa: A002
    return {"chartUrl": f'Simulated {type} chart titled "{title}"'}
