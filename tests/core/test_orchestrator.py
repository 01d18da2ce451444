"""Tests for core/orchestrator.py."""

import pytest as _pytest

import skald.api.types as api_types
import skald.config.types as config_types
import skald.core.orchestrator as orchestrator
import skald.core.progress as progress
import skald.tools.base as tools_base

DECLARATIONS = [{"name": "list_tasks", "description": "List", "parameters": {}}]


def _context() -> tools_base.ToolCallContext:
    return tools_base.ToolCallContext(execution_context=None, group_id="g", chat_id="c")


class TestBuildTools:
    """Tests for the tools field."""

    def test_declarations(self) -> None:
        tools = orchestrator.build_tools(DECLARATIONS, web_search_enabled=True)
        assert tools == [{"functionDeclarations": DECLARATIONS}]

    def test_declarations_omitted_on_final_round(self) -> None:
        tools = orchestrator.build_tools(
            DECLARATIONS, web_search_enabled=True, include_declarations=False
        )
        assert tools is None

    def test_search_only_without_declarations(self) -> None:
        assert orchestrator.build_tools([], web_search_enabled=True) == [{"googleSearch": {}}]
        assert orchestrator.build_tools(
            [], web_search_enabled=True, include_declarations=False
        ) == [{"googleSearch": {}}]

    def test_nothing(self) -> None:
        assert orchestrator.build_tools([], web_search_enabled=False) is None


class TestSkippedResult:
    def test_shape(self) -> None:
        result = orchestrator.skipped_result(api_types.FunctionCall("cancel_task", {"id": "x"}))
        assert result.name == "cancel_task"
        assert result.response["success"] is False
        assert result.response["skipped"] is True
        assert result.error == orchestrator.SKIPPED_CALL_ERROR


class TestFunctionCallOrchestrator:
    """Tests for the round loop run directly."""

    @_pytest.mark.asyncio
    async def test_bookkeeping(self, make_client, chunks, registry) -> None:
        client = make_client([
            [
                chunks.calls(
                    ("list_tasks", {}),
                    ("search_knowledge", {}),
                    ("cancel_task", {"id": "x"}),
                )
            ],
            [chunks.text("Here you go.")],
        ])
        config = config_types.FastPathConfig(max_calls_per_turn=1)
        loop = orchestrator.FunctionCallOrchestrator(client, registry, config)

        result = await loop.run(
            model="m",
            contents=[{"role": "user", "parts": [{"text": "hi"}]}],
            system_instruction="sys",
            cached_content=None,
            declarations=registry.build_declarations(False),
            web_search_enabled=False,
            context=_context(),
            emitter=progress.ProgressEmitter(None),
        )

        assert result.rounds == 2
        assert result.text == "Here you go."
        assert [r.name for r in result.executed] == ["list_tasks"]
        assert [c.name for c in result.dropped] == ["cancel_task"]
        assert [c.name for c in result.truncated] == ["search_knowledge"]
        assert result.ignored == []

    @_pytest.mark.asyncio
    async def test_contents_not_modified(self, make_client, chunks, registry) -> None:
        client = make_client([[chunks.calls(("list_tasks", {}))], [chunks.text("ok")]])
        contents = [{"role": "user", "parts": [{"text": "hi"}]}]
        loop = orchestrator.FunctionCallOrchestrator(
            client, registry, config_types.FastPathConfig()
        )

        await loop.run(
            model="m",
            contents=contents,
            system_instruction="sys",
            cached_content=None,
            declarations=registry.build_declarations(False),
            web_search_enabled=False,
            context=_context(),
            emitter=progress.ProgressEmitter(None),
        )

        assert len(contents) == 1
        assert len(client.calls[0].contents) == 1
        assert len(client.calls[1].contents) == 3

    @_pytest.mark.asyncio
    async def test_cached_content_suppresses_instruction(self, make_client, chunks, registry) -> None:
        client = make_client([[chunks.text("ok")]])
        loop = orchestrator.FunctionCallOrchestrator(
            client, registry, config_types.FastPathConfig()
        )

        await loop.run(
            model="m",
            contents=[{"role": "user", "parts": [{"text": "hi"}]}],
            system_instruction="sys",
            cached_content="cachedContents/1",
            declarations=[],
            web_search_enabled=False,
            context=_context(),
            emitter=progress.ProgressEmitter(None),
        )

        assert client.calls[0].system_instruction is None
        assert client.calls[0].cached_content == "cachedContents/1"

    @_pytest.mark.asyncio
    async def test_final_round_calls_ignored(self, make_client, chunks, registry, task_tools) -> None:
        client = make_client([
            [chunks.calls(("list_tasks", {}))],
            [chunks.calls(("pause_task", {"id": "1"}))],
        ])
        loop = orchestrator.FunctionCallOrchestrator(
            client, registry, config_types.FastPathConfig(max_tool_rounds=2)
        )

        result = await loop.run(
            model="m",
            contents=[{"role": "user", "parts": [{"text": "hi"}]}],
            system_instruction="sys",
            cached_content=None,
            declarations=registry.build_declarations(False),
            web_search_enabled=False,
            context=_context(),
            emitter=progress.ProgressEmitter(None),
        )

        assert [c.name for c in result.ignored] == ["pause_task"]
        assert task_tools["pause_task"].calls == []
        # list_tasks ran, so the fallback text is its confirmation
        assert result.text == "✅ list_tasks done"

    @_pytest.mark.asyncio
    async def test_answer_ends_loop(self, make_client, chunks, registry, task_tools) -> None:
        client = make_client([
            [chunks.calls(("list_tasks", {}))],
            [chunks.text("Pausing it."), chunks.calls(("pause_task", {"id": "1"}))],
            [chunks.text("Paused.")],
        ])
        loop = orchestrator.FunctionCallOrchestrator(
            client, registry, config_types.FastPathConfig()
        )

        result = await loop.run(
            model="m",
            contents=[{"role": "user", "parts": [{"text": "hi"}]}],
            system_instruction="sys",
            cached_content=None,
            declarations=registry.build_declarations(False),
            web_search_enabled=False,
            context=_context(),
            emitter=progress.ProgressEmitter(None),
        )

        assert result.rounds == 2
        assert [c.name for c in result.ignored] == ["pause_task"]
        assert [r.name for r in result.executed] == ["list_tasks"]
        assert task_tools["pause_task"].calls == []
        assert result.text == "Pausing it."

    @_pytest.mark.asyncio
    async def test_dropped_calls_logged_with_danger_level(
        self, make_client, chunks, registry, caplog
    ) -> None:
        client = make_client([
            [chunks.calls(("list_tasks", {}), ("cancel_task", {"id": "x"}), ("send_message", {}))],
            [chunks.text("ok")],
        ])
        loop = orchestrator.FunctionCallOrchestrator(
            client, registry, config_types.FastPathConfig()
        )

        with caplog.at_level("WARNING", logger="skald.core.orchestrator"):
            await loop.run(
                model="m",
                contents=[{"role": "user", "parts": [{"text": "hi"}]}],
                system_instruction="sys",
                cached_content=None,
                declarations=registry.build_declarations(False),
                web_search_enabled=False,
                context=_context(),
                emitter=progress.ProgressEmitter(None),
            )

        assert "cancel_task [destructive]" in caplog.text
        assert "send_message [unclassified]" in caplog.text
