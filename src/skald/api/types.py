"""
Type definitions for model API interactions.

Contents are kept in the provider's wire shape (``{"role", "parts"}`` dicts)
so they can be replayed without translation between rounds.
"""

from __future__ import annotations

import dataclasses as _dataclasses
import typing as _typing

Content = dict[str, _typing.Any]
"""A single conversation turn: ``{"role": "user" | "model", "parts": [...]}``."""


@_dataclasses.dataclass(frozen=True)
class UsageMetadata:
    """Token counts reported by the provider."""

    prompt_tokens: int | None = None
    response_tokens: int | None = None
    total_tokens: int | None = None


@_dataclasses.dataclass(frozen=True)
class FunctionCall:
    """A function call requested by the model."""

    name: str
    args: dict[str, _typing.Any] = _dataclasses.field(default_factory=dict)

    def to_part(self) -> dict[str, _typing.Any]:
        """Build a call part from name and arguments alone."""
        return {"functionCall": {"name": self.name, "args": dict(self.args)}}


@_dataclasses.dataclass(frozen=True)
class RawPart:
    """
    Opaque provider part attached to a function call.

    The payload carries provider continuity state (thought signatures) and is
    replayed exactly as received. Only ``name`` is known to the engine; it is
    extracted once by the streaming client so raw parts can be matched to
    calls without looking inside the payload.
    """

    name: str
    payload: _typing.Any


@_dataclasses.dataclass
class StreamChunk:
    """One incremental piece of a streamed model response."""

    text: str | None = None
    function_calls: list[FunctionCall] = _dataclasses.field(default_factory=list)
    raw_parts: list[RawPart] = _dataclasses.field(default_factory=list)
    usage: UsageMetadata | None = None


@_dataclasses.dataclass
class StreamOptions:
    """
    Everything a streaming client needs for one model call.

    Exactly one of ``system_instruction`` and ``cached_content`` is normally
    set: when a cache handle exists the static prefix lives provider-side.
    """

    model: str
    contents: list[Content]
    system_instruction: str | None = None
    cached_content: str | None = None
    tools: list[dict[str, _typing.Any]] | None = None


def text_content(role: _typing.Literal["user", "model"], text: str) -> Content:
    """Build a single-text-part content entry."""
    return {"role": role, "parts": [{"text": text}]}
