"""Chat completions through AI Pipe: OpenRouter path first, OpenAI path as fallback."""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING, Any

import httpx

from querya.errors import ConfigurationError, GatewayError
from querya.llm.models import ModelResponse
from querya.llm.normalize import normalize_response
from querya.llm.shaping import shape_messages

if TYPE_CHECKING:
    from collections.abc import Sequence

    from querya.config import Settings
    from querya.conversations.models import Message
    from querya.tools.registry import ToolRegistry

logger = logging.getLogger(__name__)

PRIMARY_PATH = "/openrouter/v1/chat/completions"
FALLBACK_PATH = "/openai/v1/chat/completions"
MODEL_LIST_PATHS = ("/openrouter/v1/models", "/openai/v1/models")

DEMO_RESPONSE = "💡 Demo response: add your AI Pipe token in Settings to query real models."

FALLBACK_MODELS = (
    "openai/gpt-4o-mini",
    "openai/gpt-4o",
    "openai/gpt-4.1",
    "openai/gpt-3.5-turbo",
)

# Status codes that usually mean a bad token or a model the token cannot use.
_CREDENTIAL_STATUSES = frozenset({401, 403, 404})

_OPENAI_KEY_RE = re.compile(r"^sk-[a-zA-Z0-9]{20,}")


def looks_like_openai_key(token: str) -> bool:
    """True when *token* looks like an OpenAI secret key rather than an AI Pipe token."""
    return bool(_OPENAI_KEY_RE.match(token or ""))


class _EndpointFailure(Exception):
    """One endpoint attempt failed; carries what the diagnostics need."""

    def __init__(self, url: str, status_code: int | None, detail: str) -> None:
        super().__init__(detail)
        self.url = url
        self.status_code = status_code
        self.detail = detail


def _error_detail(resp: httpx.Response) -> str:
    """Best-effort ``error.message`` from an error body."""
    try:
        body = resp.json()
    except ValueError:
        return f"{resp.status_code} {resp.reason_phrase}".strip()
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if isinstance(error, str) and error:
            return error
    return str(body)


def _unique(names: list[str]) -> list[str]:
    return list(dict.fromkeys(n for n in names if n))


class AIPipeGateway:
    """ModelGateway implementation for the AI Pipe proxy.

    Every request goes to the OpenRouter-compatible path first. If that
    returns a non-2xx status or the network call fails, the same payload is
    sent once to the OpenAI-compatible path. Model listings are cached per
    (token, base URL) for the life of the gateway.
    """

    def __init__(self, registry: ToolRegistry | None = None) -> None:
        self._registry = registry
        self._model_cache: dict[tuple[str, str], list[str]] = {}

    # -- Completion ------------------------------------------------------------

    async def complete(self, messages: Sequence[Message], settings: Settings) -> ModelResponse:
        try:
            self._require_credentials(settings)
        except ConfigurationError as exc:
            logger.info("Demo mode: %s", exc)
            return ModelResponse(content=DEMO_RESPONSE, shape="demo")

        if settings.provider != "aipipe":
            msg = f"Only AI Pipe is supported in this build (provider is '{settings.provider}')."
            raise GatewayError(msg)

        body = self.build_request_body(messages, settings)
        headers = self._headers(settings.api_key)
        primary_url = settings.api_root + PRIMARY_PATH
        fallback_url = settings.api_root + FALLBACK_PATH

        async with httpx.AsyncClient(timeout=settings.request_timeout) as client:
            try:
                data = await self._post(client, primary_url, headers, body)
            except _EndpointFailure as primary:
                logger.warning(
                    "Primary endpoint failed (%s): %s; retrying via %s",
                    primary.status_code or "network",
                    primary.detail,
                    fallback_url,
                )
                try:
                    data = await self._post(client, fallback_url, headers, body)
                except _EndpointFailure as fallback:
                    logger.error(
                        "Fallback endpoint failed (%s): %s",
                        fallback.status_code or "network",
                        fallback.detail,
                    )
                    raise self._gateway_error(primary, fallback, body["model"]) from fallback

        return normalize_response(data)

    def build_request_body(self, messages: Sequence[Message], settings: Settings) -> dict[str, Any]:
        body: dict[str, Any] = {
            "model": settings.model,
            "messages": shape_messages(messages, settings.tool_role_mode),
            "max_tokens": settings.max_tokens,
            "temperature": settings.temperature,
        }
        if self._registry is not None and len(self._registry):
            body["tools"] = self._registry.get_schemas()
        return body

    async def _post(
        self,
        client: httpx.AsyncClient,
        url: str,
        headers: dict[str, str],
        body: dict[str, Any],
    ) -> Any:
        try:
            resp = await client.post(url, headers=headers, json=body)
        except httpx.HTTPError as exc:
            raise _EndpointFailure(url, None, f"Network error: {exc}") from exc

        if not resp.is_success:
            raise _EndpointFailure(url, resp.status_code, _error_detail(resp))

        try:
            return resp.json()
        except ValueError:
            # Not JSON; the normalizer turns raw text into content.
            return resp.text

    @staticmethod
    def _gateway_error(
        primary: _EndpointFailure, fallback: _EndpointFailure, model: str
    ) -> GatewayError:
        if primary.status_code is not None:
            message = f"AI Pipe error ({primary.status_code}): {primary.detail}"
        else:
            message = f"AI Pipe request failed: {primary.detail}"

        hint = None
        statuses = {primary.status_code, fallback.status_code}
        if statuses & _CREDENTIAL_STATUSES:
            hint = (
                f"Tip: check that your AI Pipe token is valid and has access to **{model}**, "
                "or pick a listed model in Settings."
            )
        return GatewayError(
            message,
            status_code=primary.status_code,
            hint=hint,
            fallback_message=f"{fallback.status_code or 'network'}: {fallback.detail}",
        )

    # -- Model listing ---------------------------------------------------------

    async def list_models(self, settings: Settings) -> list[str]:
        """Merged, de-duplicated model IDs from both listing endpoints.

        The curated list is always appended after the upstream entries.
        """
        self._require_credentials(settings)
        cache_key = (settings.api_key, settings.api_root)
        if cache_key in self._model_cache:
            return list(self._model_cache[cache_key])

        headers = self._headers(settings.api_key)
        names: list[str] = []
        async with httpx.AsyncClient(timeout=settings.request_timeout) as client:
            for path in MODEL_LIST_PATHS:
                names.extend(await self._fetch_model_names(client, settings.api_root + path, headers))

        if not names:
            logger.warning("No models returned upstream, offering the curated list only")
        models = _unique([*names, *FALLBACK_MODELS])

        self._model_cache[cache_key] = models
        return list(models)

    async def _fetch_model_names(
        self, client: httpx.AsyncClient, url: str, headers: dict[str, str]
    ) -> list[str]:
        try:
            resp = await client.get(url, headers=headers)
        except httpx.HTTPError as exc:
            logger.warning("Model listing %s failed: %s", url, exc)
            return []
        if not resp.is_success:
            logger.warning("Model listing %s returned %d", url, resp.status_code)
            return []
        try:
            body = resp.json()
        except ValueError:
            logger.warning("Model listing %s returned a non-JSON body", url)
            return []

        if isinstance(body, dict):
            entries = body.get("models") or body.get("data") or []
        elif isinstance(body, list):
            entries = body
        else:
            entries = []

        names: list[str] = []
        for entry in entries:
            if isinstance(entry, dict):
                names.append(entry.get("id") or entry.get("name") or "")
            elif isinstance(entry, str):
                names.append(entry)
        return names

    def clear_model_cache(self) -> None:
        self._model_cache.clear()

    # -- Helpers ---------------------------------------------------------------

    @staticmethod
    def _require_credentials(settings: Settings) -> None:
        if not settings.provider:
            msg = "No LLM provider configured."
            raise ConfigurationError(msg)
        if not settings.api_key:
            msg = "AI Pipe token required."
            raise ConfigurationError(msg)

    @staticmethod
    def _headers(token: str) -> dict[str, str]:
        return {"Content-Type": "application/json", "Authorization": f"Bearer {token}"}
