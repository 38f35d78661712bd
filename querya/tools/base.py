"""Base types for the tool-calling framework."""

import json
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, ConfigDict


@dataclass
class ToolResult:
    """Outcome of one dispatched tool call.

    Always produced, one per request. A failed call carries an ``error``
    key in ``payload`` instead of raising, so the loop can feed it back to
    the model.
    """

    tool_call_id: str
    name: str
    payload: dict[str, Any]
    arguments: dict[str, Any] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return "error" not in self.payload

    def to_content(self) -> str:
        """Serialize the payload for a tool-role message."""
        return json.dumps(self.payload, default=str)


class ToolParams(BaseModel):
    """Base class for tool parameter models.

    Subclass with Field() definitions. The JSON schema is auto-generated
    via model_json_schema() for the tool advertisement sent to the model.
    """

    model_config = ConfigDict(populate_by_name=True)
