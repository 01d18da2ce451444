"""
Core data types for Skald.

These are data transfer objects used across the engine. They carry no
behaviour beyond small conveniences.
"""

from __future__ import annotations

import dataclasses as _dataclasses
import typing as _typing

Role = _typing.Literal["user", "model"]
TurnStatus = _typing.Literal["success", "error"]
ProgressType = _typing.Literal["message", "tool_use"]


@_dataclasses.dataclass(frozen=True)
class Group:
    """A registered conversation group."""

    name: str
    folder: str
    """Stable group identifier (used for cache keys and knowledge lookup)."""

    model: str | None = None
    """Model override. None or "auto" selects the configured default."""

    enable_fast_path: bool | None = None
    """Explicit opt-out when False. None means enabled."""

    enable_follow_up: bool | None = None
    """Follow-up suggestions are requested unless this is False."""


@_dataclasses.dataclass(frozen=True)
class HistoryMessage:
    """One prior conversation message."""

    role: Role
    text: str


@_dataclasses.dataclass
class AgentTurnRequest:
    """Input for a single turn."""

    prompt: str
    group_id: str
    chat_id: str
    is_main: bool = False
    system_prompt: str | None = None
    memory_context: str | None = None
    web_search_enabled: bool = True
    function_calling_disabled: bool = False
    conversation_history: list[HistoryMessage] = _dataclasses.field(default_factory=list)


@_dataclasses.dataclass
class AgentTurnResult:
    """Outcome of a turn. Always well-formed, never partial."""

    status: TurnStatus
    result: str | None = None
    prompt_tokens: int | None = None
    response_tokens: int | None = None
    error: str | None = None

    @classmethod
    def failed(cls, error: str) -> AgentTurnResult:
        return cls(status="error", result=None, error=error)

    def to_dict(self) -> dict[str, _typing.Any]:
        """Serialize, leaving out unset optional fields."""
        data: dict[str, _typing.Any] = {"status": self.status, "result": self.result}
        if self.prompt_tokens is not None:
            data["prompt_tokens"] = self.prompt_tokens
        if self.response_tokens is not None:
            data["response_tokens"] = self.response_tokens
        if self.error is not None:
            data["error"] = self.error
        return data


@_dataclasses.dataclass(frozen=True)
class ProgressEvent:
    """Partial-result notification delivered to the caller."""

    type: ProgressType
    content: str = ""
    """Short preview of the text so far."""

    content_delta: str = ""
    content_snapshot: str = ""
    is_complete: bool = False
    tool_name: str | None = None
