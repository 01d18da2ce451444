"""
Tests for the tool system.

These tests verify registry, safety classification and result types in
isolation.
"""

import pytest as _pytest

import skald.tools as tools

# =============================================================================
# Safety Classifier Tests
# =============================================================================


class TestToolSafetyClassifier:
    """Tests for ToolSafetyClassifier."""

    def test_builtin_read_only(self) -> None:
        classifier = tools.ToolSafetyClassifier()
        for name in ("list_tasks", "remember_fact", "search_knowledge"):
            assert classifier.is_read_only(name)

    def test_builtin_mutating(self) -> None:
        classifier = tools.ToolSafetyClassifier()
        for name in ("schedule_task", "pause_task", "resume_task", "cancel_task",
                     "generate_image", "set_preference", "register_group"):
            assert classifier.is_mutating(name)

    def test_unknown_is_mutating(self) -> None:
        classifier = tools.ToolSafetyClassifier()
        assert "send_message" not in classifier
        assert classifier.is_mutating("send_message")
        assert not classifier.is_read_only("send_message")

    def test_sets_disjoint(self) -> None:
        classifier = tools.ToolSafetyClassifier()
        assert not classifier.read_only_names & classifier.mutating_names

    def test_cancel_is_destructive(self) -> None:
        safety = tools.ToolSafetyClassifier().get("cancel_task")
        assert safety is not None
        assert safety.danger_level == "destructive"

    def test_empty_initial(self) -> None:
        classifier = tools.ToolSafetyClassifier(initial={})
        assert classifier.read_only_names == frozenset()
        assert classifier.is_mutating("list_tasks")

    def test_flip_raises(self) -> None:
        classifier = tools.ToolSafetyClassifier()
        with _pytest.raises(ValueError, match="already classified"):
            classifier.register("cancel_task", tools.READ_ONLY)

    def test_restating_allowed(self) -> None:
        classifier = tools.ToolSafetyClassifier()
        classifier.register("pause_task", tools.DESTRUCTIVE)
        assert classifier.get("pause_task") == tools.DESTRUCTIVE


# =============================================================================
# Result Tests
# =============================================================================


class TestFunctionCallResult:
    """Tests for FunctionCallResult."""

    def test_ok(self) -> None:
        result = tools.FunctionCallResult.ok("pause_task", task_id="1")
        assert result.success
        assert result.error is None
        assert result.response == {"success": True, "task_id": "1"}

    def test_failure(self) -> None:
        result = tools.FunctionCallResult.failure("pause_task", "Task not found")
        assert not result.success
        assert result.error == "Task not found"

    def test_to_part(self) -> None:
        result = tools.FunctionCallResult.ok("list_tasks", tasks=[])
        assert result.to_part() == {
            "functionResponse": {
                "name": "list_tasks",
                "response": {"success": True, "tasks": []},
            }
        }


# =============================================================================
# Registry Tests
# =============================================================================


def _context(is_main: bool = False) -> tools.ToolCallContext:
    return tools.ToolCallContext(
        execution_context=object(), group_id="family", chat_id="c1", is_main=is_main
    )


class TestToolRegistry:
    """Tests for ToolRegistry."""

    def test_create_empty_registry(self) -> None:
        """New registry should be empty."""
        registry = tools.ToolRegistry()
        assert len(registry) == 0
        assert registry.list_names() == []

    def test_register_tool(self, make_tool) -> None:
        registry = tools.ToolRegistry()
        tool = make_tool("pause_task")
        registry.register(tool)

        assert "pause_task" in registry
        assert len(registry) == 1
        assert registry.get("pause_task") is tool

    def test_register_duplicate_raises(self, make_tool) -> None:
        registry = tools.ToolRegistry()
        registry.register(make_tool("pause_task"))

        with _pytest.raises(ValueError, match="already registered"):
            registry.register(make_tool("pause_task"))

    def test_register_conflicting_safety_raises(self, make_tool) -> None:
        registry = tools.ToolRegistry()
        with _pytest.raises(ValueError, match="already classified"):
            registry.register(make_tool("list_tasks", safety=tools.MUTATING))
        assert "list_tasks" not in registry

    def test_register_records_safety(self, make_tool) -> None:
        registry = tools.ToolRegistry()
        registry.register(make_tool("lookup_weather", safety=tools.READ_ONLY))
        assert registry.classifier.is_read_only("lookup_weather")

    def test_list_tools_sorted(self, make_tool) -> None:
        registry = tools.ToolRegistry()
        for name in ("set_preference", "list_tasks", "pause_task"):
            registry.register(
                make_tool(name, safety=tools.READ_ONLY if name == "list_tasks" else tools.MUTATING)
            )
        assert [t.name for t in registry.list_tools()] == [
            "list_tasks",
            "pause_task",
            "set_preference",
        ]
        assert [t.name for t in registry] == registry.list_names()

    def test_declarations_filter_main_only(self, make_tool) -> None:
        registry = tools.ToolRegistry()
        registry.register(make_tool("register_group", main_only=True))
        registry.register(make_tool("pause_task"))

        assert {d["name"] for d in registry.build_declarations(True)} == {
            "register_group",
            "pause_task",
        }
        assert {d["name"] for d in registry.build_declarations(False)} == {"pause_task"}

    def test_declaration_shape(self, make_tool) -> None:
        registry = tools.ToolRegistry()
        registry.register(make_tool("pause_task"))
        assert registry.build_declarations(False) == [
            {
                "name": "pause_task",
                "description": "Fake pause_task",
                "parameters": {"type": "OBJECT", "properties": {}},
            }
        ]

    def test_declarations_refresh_after_register(self, make_tool) -> None:
        registry = tools.ToolRegistry()
        registry.register(make_tool("pause_task"))
        assert len(registry.build_declarations(False)) == 1
        registry.register(make_tool("resume_task"))
        assert len(registry.build_declarations(False)) == 2

    @_pytest.mark.asyncio
    async def test_execute(self, make_tool) -> None:
        registry = tools.ToolRegistry()
        tool = make_tool("pause_task", response={"task_id": "t1"})
        registry.register(tool)

        result = await registry.execute("pause_task", {"task_id": "t1"}, _context())

        assert result.success
        assert result.response["task_id"] == "t1"
        assert tool.calls == [{"task_id": "t1"}]

    @_pytest.mark.asyncio
    async def test_execute_unknown(self) -> None:
        result = await tools.ToolRegistry().execute("send_message", {}, _context())
        assert not result.success
        assert result.error == (
            "Unknown function: send_message. This function is not available. "
            "Respond with text directly."
        )

    @_pytest.mark.asyncio
    async def test_execute_main_only_from_other_group(self, make_tool) -> None:
        registry = tools.ToolRegistry()
        tool = make_tool("register_group", main_only=True)
        registry.register(tool)

        denied = await registry.execute("register_group", {}, _context(is_main=False))
        allowed = await registry.execute("register_group", {}, _context(is_main=True))

        assert denied.error == "Permission denied"
        assert allowed.success
        assert len(tool.calls) == 1

    @_pytest.mark.asyncio
    async def test_execute_handler_exception(self, make_tool) -> None:
        registry = tools.ToolRegistry()
        registry.register(make_tool("generate_image", raises=RuntimeError("quota")))

        result = await registry.execute("generate_image", {}, _context())

        assert not result.success
        assert result.error == "Function execution failed"
