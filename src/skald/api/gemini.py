"""
Gemini REST client implementation.

Streams ``streamGenerateContent`` responses as server-sent events and
normalizes them into ``StreamChunk`` objects. Authentication is a plain API
key header.
"""

from __future__ import annotations

import json as _json
import logging as _logging
import typing as _typing

import httpx as _httpx

import skald.api.base as base
import skald.api.types as types
import skald.constants as _constants
import skald.errors as errors

_logger = _logging.getLogger(__name__)


def build_request_body(options: types.StreamOptions) -> dict[str, _typing.Any]:
    """
    Build the JSON body for a generate call.

    Keys with no value are omitted entirely, so a call without a cache
    handle carries no ``cachedContent`` field at all.
    """
    body: dict[str, _typing.Any] = {"contents": options.contents}

    if options.system_instruction:
        body["systemInstruction"] = {"parts": [{"text": options.system_instruction}]}

    if options.tools:
        body["tools"] = options.tools

    if options.cached_content:
        body["cachedContent"] = options.cached_content

    return body


def parse_chunk(data: dict[str, _typing.Any]) -> types.StreamChunk | None:
    """
    Convert one decoded SSE payload into a StreamChunk.

    Returns None when the payload carries nothing the engine uses.
    """
    text_parts: list[str] = []
    calls: list[types.FunctionCall] = []
    raw_parts: list[types.RawPart] = []

    candidates = data.get("candidates") or []
    parts = ((candidates[0].get("content") or {}).get("parts") or []) if candidates else []
    for part in parts:
        if part.get("thought"):
            # Reasoning summaries are not user-facing text
            continue
        if part.get("text"):
            text_parts.append(part["text"])
        function_call = part.get("functionCall")
        if function_call:
            name = function_call.get("name", "")
            calls.append(types.FunctionCall(name=name, args=function_call.get("args") or {}))
            raw_parts.append(types.RawPart(name=name, payload=part))

    usage: types.UsageMetadata | None = None
    usage_data = data.get("usageMetadata")
    if usage_data:
        usage = types.UsageMetadata(
            prompt_tokens=usage_data.get("promptTokenCount"),
            response_tokens=usage_data.get("candidatesTokenCount"),
            total_tokens=usage_data.get("totalTokenCount"),
        )

    if not text_parts and not calls and usage is None:
        return None

    return types.StreamChunk(
        text="".join(text_parts) or None,
        function_calls=calls,
        raw_parts=raw_parts,
        usage=usage,
    )


class GeminiRestClient(base.StreamingClient):
    """
    Gemini API client over ``httpx``.

    A 404 for the requested model is retried once with the fallback model.
    """

    def __init__(
        self,
        api_key: str | None,
        *,
        base_url: str = _constants.DEFAULT_GEMINI_BASE_URL,
        fallback_model: str = _constants.FALLBACK_MODEL,
        timeout: float = 300.0,
        transport: _httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Initialize the client.

        Args:
            api_key: Gemini API key. None makes the client unavailable.
            base_url: API base URL (version path included).
            fallback_model: Model retried once on HTTP 404.
            timeout: Request timeout in seconds.
            transport: Optional transport (tests use ``httpx.MockTransport``).
        """
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._fallback_model = fallback_model

        headers: dict[str, str] = {
            "Content-Type": "application/json",
            "User-Agent": "Skald/1.0",
        }
        if api_key:
            headers["x-goog-api-key"] = api_key

        self._client = _httpx.AsyncClient(
            base_url=self._base_url,
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    @property
    def name(self) -> str:
        return "gemini"

    def is_available(self) -> bool:
        return bool(self._api_key)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def stream(
        self,
        options: types.StreamOptions,
    ) -> _typing.AsyncIterator[types.StreamChunk]:
        """Stream one generate call and yield chunks."""
        if not self.is_available():
            raise errors.ClientUnavailableError("Gemini API client not available")

        body = build_request_body(options)
        model = options.model

        for attempt_model in self._models_to_try(model):
            path = f"/models/{attempt_model}:streamGenerateContent"
            async with self._client.stream(
                "POST", path, params={"alt": "sse"}, json=body
            ) as response:
                if response.status_code == 404 and attempt_model != self._fallback_model:
                    _logger.warning(
                        "Model %s not found, retrying with fallback %s",
                        attempt_model,
                        self._fallback_model,
                    )
                    continue

                if response.status_code >= 400:
                    error_text = (await response.aread()).decode("utf-8", errors="replace")
                    raise errors.GeminiAPIError(response.status_code, error_text)

                async for line in response.aiter_lines():
                    chunk = self._parse_line(line)
                    if chunk is not None:
                        yield chunk
                return

    async def create_cached_content(self, model: str, content: str, ttl_seconds: int) -> str:
        """
        Create a provider-side context cache holding ``content`` as system instruction.

        Matches the ``CacheCreator`` signature so it can back a ``FingerprintCache``.

        Returns:
            The cache handle (``cachedContents/...``).

        Raises:
            ClientUnavailableError: If no API key is configured.
            GeminiAPIError: If the API rejects the request.
        """
        if not self.is_available():
            raise errors.ClientUnavailableError("Gemini API client not available")

        body = {
            "model": f"models/{model}",
            "systemInstruction": {"parts": [{"text": content}]},
            "ttl": f"{ttl_seconds}s",
        }
        response = await self._client.post("/cachedContents", json=body)
        if response.status_code >= 400:
            raise errors.GeminiAPIError(response.status_code, response.text)
        name = response.json().get("name")
        if not name:
            raise errors.GeminiAPIError(response.status_code, "cache response carried no name")
        return str(name)

    def _models_to_try(self, model: str) -> list[str]:
        if model == self._fallback_model:
            return [model]
        return [model, self._fallback_model]

    def _parse_line(self, line: str) -> types.StreamChunk | None:
        if not line.startswith("data: "):
            return None

        data_str = line[6:].strip()  # Remove "data: " prefix
        if not data_str or data_str == "[DONE]":
            return None

        try:
            data = _json.loads(data_str)
        except _json.JSONDecodeError:
            _logger.debug("Skipping malformed stream line: %s", data_str[:100])
            return None

        return parse_chunk(data)
