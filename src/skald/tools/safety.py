"""
Tool safety classification.

A static registry of tool names split into two disjoint sets: read-only and
mutating. Lookups are by name only. A name that was never registered is
treated as mutating, the safer assumption.
"""

from __future__ import annotations

import typing as _typing

import skald.tools.base as base

# Built-in tools of the assistant. remember_fact is an idempotent upsert the
# model may call on any query, so it sits with the read-only tools.
BUILTIN_TOOL_SAFETY: dict[str, base.ToolSafety] = {
    "list_tasks": base.READ_ONLY,
    "remember_fact": base.READ_ONLY,
    "search_knowledge": base.READ_ONLY,
    "schedule_task": base.MUTATING,
    "pause_task": base.MUTATING,
    "resume_task": base.MUTATING,
    "cancel_task": base.DESTRUCTIVE,
    "generate_image": base.MUTATING,
    "set_preference": base.MUTATING,
    "register_group": base.MUTATING,
}


class ToolSafetyClassifier:
    """
    Registry distinguishing read-only from mutating tool names.
    """

    def __init__(
        self,
        initial: _typing.Mapping[str, base.ToolSafety] | None = None,
    ) -> None:
        self._safety: dict[str, base.ToolSafety] = {}
        for name, safety in (BUILTIN_TOOL_SAFETY if initial is None else initial).items():
            self.register(name, safety)

    def register(self, name: str, safety: base.ToolSafety) -> None:
        """
        Record the safety classification of a tool.

        Re-registering a name with the same read-only flag is allowed (a
        handler may restate its built-in classification); flipping it is not.

        Raises:
            ValueError: If the name is already classified the other way.
        """
        existing = self._safety.get(name)
        if existing is not None and existing.read_only != safety.read_only:
            raise ValueError(
                f"Tool '{name}' is already classified as "
                f"{'read-only' if existing.read_only else 'mutating'}"
            )
        self._safety[name] = safety

    def get(self, name: str) -> base.ToolSafety | None:
        return self._safety.get(name)

    def is_read_only(self, name: str) -> bool:
        """Whether ``name`` is a known read-only tool. Unknown names are mutating."""
        safety = self._safety.get(name)
        return safety is not None and safety.read_only

    def is_mutating(self, name: str) -> bool:
        return not self.is_read_only(name)

    @property
    def read_only_names(self) -> frozenset[str]:
        return frozenset(n for n, s in self._safety.items() if s.read_only)

    @property
    def mutating_names(self) -> frozenset[str]:
        return frozenset(n for n, s in self._safety.items() if not s.read_only)

    def __contains__(self, name: str) -> bool:
        return name in self._safety
