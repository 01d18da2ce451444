"""
Shared pytest fixtures for Skald tests.

This file is automatically loaded by pytest. Fixtures defined here are
available to all test files without explicit imports.
"""

import asyncio as _asyncio
import os as _os
import typing as _typing
import unittest.mock as _mock

import pytest as _pytest

import skald.api.base as api_base
import skald.api.types as api_types
import skald.config as config
import skald.config.types as config_types
import skald.core.engine as engine
import skald.tools.base as tools_base
import skald.tools.registry as tools_registry

# Environment keys that should be cleared for isolated tests
ENV_KEYS_TO_CLEAR = [
    "GEMINI_API_KEY",
    "GOOGLE_API_KEY",
    "SKALD_ENV_FILE",
    "SKALD_CONFIG_DIR",
    "SKALD_MODELS__DEFAULT",
    "SKALD_FAST_PATH__ENABLED",
    "SKALD_FAST_PATH__TIMEOUT_MS",
    "SKALD_FAST_PATH__MAX_TOOL_ROUNDS",
    "SKALD_FAST_PATH__MAX_CALLS_PER_TURN",
    "SKALD_LOGGING__ENABLED",
]


# =============================================================================
# Test doubles
# =============================================================================


class ScriptedClient(api_base.StreamingClient):
    """
    Streaming client that replays scripted rounds.

    Each call to ``stream`` consumes the next round (a list of chunks).
    Once the script runs out, streams are empty. Every ``StreamOptions``
    received is recorded in ``calls``.
    """

    def __init__(
        self,
        rounds: list[list[api_types.StreamChunk]] | None = None,
        *,
        available: bool = True,
        chunk_delay: float = 0.0,
        error: Exception | None = None,
    ) -> None:
        self._rounds = list(rounds or [])
        self._available = available
        self._chunk_delay = chunk_delay
        self._error = error
        self.calls: list[api_types.StreamOptions] = []

    @property
    def name(self) -> str:
        return "scripted"

    def is_available(self) -> bool:
        return self._available

    async def stream(
        self,
        options: api_types.StreamOptions,
    ) -> _typing.AsyncIterator[api_types.StreamChunk]:
        self.calls.append(options)
        if self._error is not None:
            raise self._error
        chunks = self._rounds.pop(0) if self._rounds else []
        for chunk in chunks:
            if self._chunk_delay:
                await _asyncio.sleep(self._chunk_delay)
            yield chunk


class FakeTool(tools_base.ToolHandler):
    """Tool handler returning a canned response and recording its calls."""

    def __init__(
        self,
        name: str,
        *,
        safety: tools_base.ToolSafety = tools_base.MUTATING,
        response: dict[str, _typing.Any] | None = None,
        error: str | None = None,
        raises: Exception | None = None,
        main_only: bool = False,
    ) -> None:
        self._name = name
        self._safety = safety
        self._response = response or {}
        self._error = error
        self._raises = raises
        self._main_only = main_only
        self.calls: list[dict[str, _typing.Any]] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def description(self) -> str:
        return f"Fake {self._name}"

    @property
    def safety(self) -> tools_base.ToolSafety:
        return self._safety

    @property
    def main_only(self) -> bool:
        return self._main_only

    async def execute(
        self,
        args: dict[str, _typing.Any],
        context: tools_base.ToolCallContext,  # noqa: ARG002
    ) -> tools_base.FunctionCallResult:
        self.calls.append(dict(args))
        if self._raises is not None:
            raise self._raises
        if self._error is not None:
            return tools_base.FunctionCallResult.failure(self._name, self._error)
        return tools_base.FunctionCallResult.ok(self._name, **self._response)


def text_chunk(text: str) -> api_types.StreamChunk:
    return api_types.StreamChunk(text=text)


def call_chunk(*calls: tuple[str, dict[str, _typing.Any]]) -> api_types.StreamChunk:
    function_calls = [api_types.FunctionCall(name=n, args=a) for n, a in calls]
    raw_parts = [
        api_types.RawPart(
            name=fc.name,
            payload={**fc.to_part(), "thoughtSignature": f"sig-{fc.name}-{i}"},
        )
        for i, fc in enumerate(function_calls)
    ]
    return api_types.StreamChunk(function_calls=function_calls, raw_parts=raw_parts)


def usage_chunk(prompt: int, response: int) -> api_types.StreamChunk:
    return api_types.StreamChunk(
        usage=api_types.UsageMetadata(
            prompt_tokens=prompt, response_tokens=response, total_tokens=prompt + response
        )
    )


# =============================================================================
# Fixtures
# =============================================================================


@_pytest.fixture
def clean_env() -> dict[str, str]:
    """
    Return environment dict with test-related keys removed.

    Use with mock.patch.dict to isolate tests from the actual environment.
    """
    return {k: v for k, v in _os.environ.items() if k not in ENV_KEYS_TO_CLEAR}


@_pytest.fixture
def isolated_env(clean_env: dict[str, str]):
    """
    Context manager that isolates tests from environment variables.

    Usage:
        def test_something(isolated_env):
            with isolated_env:
                settings = config.Settings.construct_without_dotenv()
    """
    return _mock.patch.dict(_os.environ, clean_env, clear=True)


@_pytest.fixture
def clean_settings(isolated_env, tmp_path, monkeypatch) -> config.Settings:
    """
    Settings instance isolated from environment, .env and YAML files.
    """
    monkeypatch.chdir(tmp_path)
    with isolated_env:
        _os.environ["SKALD_CONFIG_DIR"] = str(tmp_path / "user-config")
        return config.Settings.construct_without_dotenv()


@_pytest.fixture
def fast_path_config() -> config_types.FastPathConfig:
    """Default turn limits."""
    return config_types.FastPathConfig()


@_pytest.fixture
def chunks() -> _typing.Any:
    """Chunk builders: ``chunks.text``, ``chunks.calls``, ``chunks.usage``."""
    return _mock.Mock(text=text_chunk, calls=call_chunk, usage=usage_chunk)


@_pytest.fixture
def make_client() -> _typing.Callable[..., ScriptedClient]:
    """Factory for scripted streaming clients."""
    return ScriptedClient


@_pytest.fixture
def make_tool() -> _typing.Callable[..., FakeTool]:
    """Factory for fake tool handlers."""
    return FakeTool


@_pytest.fixture
def task_tools() -> dict[str, FakeTool]:
    """Fake versions of the built-in task tools."""
    return {
        "list_tasks": FakeTool(
            "list_tasks",
            safety=tools_base.READ_ONLY,
            response={"tasks": [{"id": "a"}, {"id": "b"}, {"id": "c"}]},
        ),
        "search_knowledge": FakeTool(
            "search_knowledge", safety=tools_base.READ_ONLY, response={"results": []}
        ),
        "schedule_task": FakeTool("schedule_task", response={"task_id": "t-1"}),
        "pause_task": FakeTool("pause_task", response={"task_id": "t-1"}),
        "cancel_task": FakeTool(
            "cancel_task", safety=tools_base.DESTRUCTIVE, response={"task_id": "x"}
        ),
        "set_preference": FakeTool("set_preference", response={"key": "language"}),
    }


@_pytest.fixture
def registry(task_tools: dict[str, FakeTool]) -> tools_registry.ToolRegistry:
    """Registry holding the fake task tools."""
    reg = tools_registry.ToolRegistry()
    for tool in task_tools.values():
        reg.register(tool)
    return reg


@_pytest.fixture
def make_engine(
    fast_path_config: config_types.FastPathConfig,
    registry: tools_registry.ToolRegistry,
) -> _typing.Callable[..., engine.TurnEngine]:
    """Factory building an engine around a client, with overridable limits."""

    def _make(
        client: api_base.StreamingClient,
        *,
        tool_registry: tools_registry.ToolRegistry | None = None,
        **kwargs: _typing.Any,
    ) -> engine.TurnEngine:
        config_overrides = {
            k: kwargs.pop(k)
            for k in list(kwargs)
            if k in config_types.FastPathConfig.model_fields
        }
        cfg = fast_path_config.model_copy(update=config_overrides)
        return engine.TurnEngine(
            cfg,
            client,
            tool_registry if tool_registry is not None else registry,
            **kwargs,
        )

    return _make
