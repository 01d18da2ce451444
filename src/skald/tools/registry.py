"""
Tool registry for managing available tools.

The registry is the single place where a function name from the model is
resolved to a handler. It also builds the declarations offered to the model
and executes calls without ever raising.
"""

from __future__ import annotations

import logging as _logging
import time as _time
import typing as _typing

import skald.tools.base as base
import skald.tools.safety as safety

_logger = _logging.getLogger(__name__)


class ToolRegistry:
    """
    Registry for tool handlers.

    Handlers are registered by name and looked up for execution. Registering
    a handler records its safety classification in the shared classifier.
    """

    def __init__(
        self,
        classifier: safety.ToolSafetyClassifier | None = None,
    ) -> None:
        self._tools: dict[str, base.ToolHandler] = {}
        self._classifier = classifier or safety.ToolSafetyClassifier()
        self._declaration_cache: dict[bool, list[dict[str, _typing.Any]]] = {}

    @property
    def classifier(self) -> safety.ToolSafetyClassifier:
        return self._classifier

    def register(self, tool: base.ToolHandler) -> None:
        """
        Register a tool handler.

        Args:
            tool: Handler instance to register

        Raises:
            ValueError: If a tool with the same name is already registered,
                or its safety conflicts with the classifier.
        """
        if tool.name in self._tools:
            raise ValueError(f"Tool '{tool.name}' is already registered")
        self._classifier.register(tool.name, tool.safety)
        self._tools[tool.name] = tool
        self._declaration_cache.clear()

    def get(self, name: str) -> base.ToolHandler | None:
        """
        Get a tool by name.

        Args:
            name: Tool name (case-sensitive)

        Returns:
            Handler or None if not found
        """
        return self._tools.get(name)

    def list_tools(self) -> list[base.ToolHandler]:
        """
        List all registered tools.

        Returns:
            List of handlers, sorted by name
        """
        return sorted(self._tools.values(), key=lambda t: t.name)

    def list_names(self) -> list[str]:
        return sorted(self._tools.keys())

    def build_declarations(self, is_main: bool) -> list[dict[str, _typing.Any]]:
        """
        Build function declarations for a permission level.

        Main groups see every tool; other groups do not see main-only tools.
        Results are cached until the next registration.
        """
        cached = self._declaration_cache.get(is_main)
        if cached is not None:
            return cached

        declarations = [
            tool.to_declaration()
            for tool in self.list_tools()
            if is_main or not tool.main_only
        ]
        self._declaration_cache[is_main] = declarations
        return declarations

    async def execute(
        self,
        name: str,
        args: dict[str, _typing.Any],
        context: base.ToolCallContext,
    ) -> base.FunctionCallResult:
        """
        Execute a function call by name.

        Never raises: unknown tools, permission problems and handler
        exceptions all come back as ``success: False`` results.
        """
        _logger.info("Executing function call %s for group %s", name, context.group_id)

        tool = self._tools.get(name)
        if tool is None:
            return base.FunctionCallResult.failure(
                name,
                f"Unknown function: {name}. This function is not available. "
                "Respond with text directly.",
            )

        if tool.main_only and not context.is_main:
            return base.FunctionCallResult.failure(name, "Permission denied")

        start_time = _time.perf_counter()
        try:
            result = await tool.execute(args, context)
        except Exception as e:
            _logger.error("Function call %s raised: %s", name, e)
            return base.FunctionCallResult.failure(name, "Function execution failed")

        duration_ms = (_time.perf_counter() - start_time) * 1000
        _logger.debug(
            "Function call %s finished in %.1fms (success=%s)",
            name,
            duration_ms,
            result.success,
        )
        return result

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, name: str) -> bool:
        return name in self._tools

    def __iter__(self) -> _typing.Iterator[base.ToolHandler]:
        return iter(self.list_tools())
