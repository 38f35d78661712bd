"""Normalization of upstream response bodies into ModelResponse.

This is the only place that looks at raw provider shapes. Two shapes are
recognised::

    {"choices": [{"message": {"content": ..., "tool_calls": [...]}}]}
    {"candidates": [{"content": {"parts": [{"text": ...}]}}]}

Anything else becomes a text dump so the loop always has something to show.
"""

from __future__ import annotations

import hashlib
import json
import logging
from typing import Any

from querya.conversations.models import ToolCallRequest
from querya.errors import ParseError
from querya.llm.models import ModelResponse

logger = logging.getLogger(__name__)

UNRECOGNIZED_PREFIX = "Received an unrecognized response format: "


def _id_prefix(payload: Any) -> str:
    """Short digest of the calls payload, so generated IDs differ between turns."""
    dump = json.dumps(payload, sort_keys=True, default=str)
    return hashlib.sha256(dump.encode()).hexdigest()[:8]


def _call_id(raw_id: Any, prefix: str, index: int) -> str:
    # Same payload, same IDs.
    return str(raw_id) if raw_id else f"call_{prefix}_{index}"


def _from_choices(data: dict[str, Any]) -> ModelResponse:
    choice = data["choices"][0]
    if not isinstance(choice, dict):
        msg = "choices[0] is not an object"
        raise ParseError(msg)

    message = choice.get("message") or {}
    content = message.get("content")
    if content is None:
        content = choice.get("text")
    if isinstance(content, list):
        content = "".join(
            part.get("text", "") if isinstance(part, dict) else str(part) for part in content
        )

    raw_calls = message.get("tool_calls") or []
    prefix = _id_prefix(raw_calls)
    tool_calls: list[ToolCallRequest] = []
    for index, raw in enumerate(raw_calls):
        if not isinstance(raw, dict):
            continue
        function = raw.get("function") or {}
        tool_calls.append(
            ToolCallRequest(
                id=_call_id(raw.get("id"), prefix, index),
                name=function.get("name") or "unknown",
                arguments=function.get("arguments") or "",
            )
        )

    if content is None and not tool_calls:
        content = ""
    return ModelResponse(content=content, tool_calls=tool_calls, shape="chat_completion")


def _from_candidates(data: dict[str, Any]) -> ModelResponse:
    candidate = data["candidates"][0]
    if not isinstance(candidate, dict):
        msg = "candidates[0] is not an object"
        raise ParseError(msg)

    content = candidate.get("content")
    parts = content.get("parts", []) if isinstance(content, dict) else content or []
    if isinstance(parts, str):
        return ModelResponse(content=parts, shape="candidates")

    prefix = _id_prefix(parts)
    texts: list[str] = []
    tool_calls: list[ToolCallRequest] = []
    for part in parts:
        if not isinstance(part, dict):
            texts.append(str(part))
            continue
        if "functionCall" in part:
            call = part["functionCall"] or {}
            tool_calls.append(
                ToolCallRequest(
                    id=_call_id(call.get("id"), prefix, len(tool_calls)),
                    name=call.get("name") or "unknown",
                    arguments=call.get("args") or {},
                )
            )
        elif "text" in part:
            texts.append(str(part["text"]))

    text = "".join(texts)
    return ModelResponse(
        content=text if text or not tool_calls else None,
        tool_calls=tool_calls,
        shape="candidates",
    )


def _extract(data: Any) -> ModelResponse:
    """Map a recognised shape to a ModelResponse. Raises ParseError otherwise."""
    if isinstance(data, dict):
        if isinstance(data.get("choices"), list) and data["choices"]:
            return _from_choices(data)
        if isinstance(data.get("candidates"), list) and data["candidates"]:
            return _from_candidates(data)
    msg = f"Unrecognized response shape: {type(data).__name__}"
    raise ParseError(msg)


def normalize_response(data: Any) -> ModelResponse:
    """Convert an upstream body (already JSON-decoded, or raw text) to a ModelResponse.

    Never raises. Unknown shapes normalize to a text dump of the body.
    """
    if isinstance(data, str):
        return ModelResponse(content=data, shape="text")
    try:
        return _extract(data)
    except (ParseError, KeyError, IndexError, TypeError, AttributeError) as exc:
        logger.warning("Falling back to text dump of model response: %s", exc)
        try:
            dump = json.dumps(data, sort_keys=True, default=str)
        except (TypeError, ValueError):
            dump = repr(data)
        return ModelResponse(content=UNRECOGNIZED_PREFIX + dump, shape="unrecognized")
