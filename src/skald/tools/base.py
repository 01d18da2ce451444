"""
Base classes for the tool system.

Tools are the model's way of acting on the outside world: each one has a
name, a description, a parameter schema, a safety classification and an
execute method.
"""

from __future__ import annotations

import abc as _abc
import dataclasses as _dataclasses
import typing as _typing

DangerLevel = _typing.Literal["safe", "moderate", "destructive"]


@_dataclasses.dataclass(frozen=True)
class ToolSafety:
    """
    Self-describing safety classification for a tool.

    ``read_only`` tools may run on any query; everything else is treated as
    mutating and must only run on explicit user intent.
    """

    read_only: bool
    danger_level: DangerLevel = "moderate"


READ_ONLY = ToolSafety(read_only=True, danger_level="safe")
MUTATING = ToolSafety(read_only=False, danger_level="moderate")
DESTRUCTIVE = ToolSafety(read_only=False, danger_level="destructive")


@_dataclasses.dataclass
class FunctionCallResult:
    """
    Result of executing a function call.

    ``response`` always contains ``success``; failures carry ``error``.
    """

    name: str
    response: dict[str, _typing.Any]

    @property
    def success(self) -> bool:
        return bool(self.response.get("success"))

    @property
    def error(self) -> str | None:
        error = self.response.get("error")
        return str(error) if error is not None else None

    @classmethod
    def ok(cls, name: str, **fields: _typing.Any) -> FunctionCallResult:
        """Build a successful result."""
        return cls(name=name, response={"success": True, **fields})

    @classmethod
    def failure(cls, name: str, error: str, **fields: _typing.Any) -> FunctionCallResult:
        """Build a failed result."""
        return cls(name=name, response={"success": False, "error": error, **fields})

    def to_part(self) -> dict[str, _typing.Any]:
        """Format as a function-response part for the next model call."""
        return {"functionResponse": {"name": self.name, "response": self.response}}


@_dataclasses.dataclass
class ToolCallContext:
    """Per-call context handed to tool handlers."""

    execution_context: _typing.Any
    """Opaque caller-supplied context (bot handle, registrars, db, ...)."""

    group_id: str
    chat_id: str
    is_main: bool = False


class ToolHandler(_abc.ABC):
    """
    Abstract base class for tool handlers.

    Subclasses implement ``execute`` and describe themselves through the
    abstract properties. Handlers report failures through the returned
    result; the registry also guards against handlers that raise.
    """

    @property
    @_abc.abstractmethod
    def name(self) -> str:
        """Function name as declared to the model."""
        ...

    @property
    @_abc.abstractmethod
    def description(self) -> str:
        """Description shown to the model."""
        ...

    @property
    def parameters(self) -> dict[str, _typing.Any]:
        """JSON schema for the arguments. Defaults to no arguments."""
        return {"type": "OBJECT", "properties": {}}

    @property
    def safety(self) -> ToolSafety:
        """Safety classification. Defaults to mutating."""
        return MUTATING

    @property
    def main_only(self) -> bool:
        """Whether only the main group may use this tool."""
        return False

    @_abc.abstractmethod
    async def execute(
        self,
        args: dict[str, _typing.Any],
        context: ToolCallContext,
    ) -> FunctionCallResult:
        """
        Execute the tool.

        Args:
            args: Arguments supplied by the model.
            context: Group, chat and caller context.

        Returns:
            FunctionCallResult with ``success`` set.
        """
        ...

    def to_declaration(self) -> dict[str, _typing.Any]:
        """Convert to a function declaration."""
        return {
            "name": self.name,
            "description": self.description,
            "parameters": self.parameters,
        }
