"""
Turn engine: the public entry point.

``TurnEngine.run_turn`` assembles the prompt, runs the round loop and
returns an ``AgentTurnResult``. The whole turn runs under a deadline and
every failure is converted into an error result: ``run_turn`` never raises.
"""

from __future__ import annotations

import asyncio as _asyncio
import logging as _logging
import time as _time
import typing as _typing

import skald.api.base as api_base
import skald.cache.base as cache_base
import skald.config.types as config_types
import skald.constants as _constants
import skald.core.eligibility as eligibility
import skald.core.knowledge as knowledge
import skald.core.orchestrator as orchestrator
import skald.core.progress as progress
import skald.core.prompts as prompts
import skald.core.types as types
import skald.errors as errors
import skald.logging.turn_logger as turn_logger
import skald.tools.base as tools_base
import skald.tools.registry as tools_registry

_logger = _logging.getLogger(__name__)

ERROR_PREFIX = "Fast path error: "

_T = _typing.TypeVar("_T")


async def run_with_deadline(coro: _typing.Awaitable[_T], timeout_ms: int) -> _T:
    """
    Await ``coro`` with a deadline, cancelling it when the deadline passes.

    Raises:
        TurnTimeoutError: If ``coro`` did not finish within ``timeout_ms``.
    """
    try:
        return await _asyncio.wait_for(coro, timeout=timeout_ms / 1000)
    except _asyncio.TimeoutError as e:
        raise errors.TurnTimeoutError(timeout_ms) from e


class TurnEngine:
    """
    Runs single conversational turns against a streaming model client.

    All collaborators are injected. The engine holds no per-turn state, so
    one instance can serve concurrent turns.
    """

    def __init__(
        self,
        config: config_types.FastPathConfig,
        client: api_base.StreamingClient,
        tool_registry: tools_registry.ToolRegistry,
        *,
        cache: cache_base.ContextCache | None = None,
        knowledge_source: knowledge.KnowledgeSource | None = None,
        logger: _logging.Logger | None = None,
        turn_log: turn_logger.TurnLogger | None = None,
        clock: _typing.Callable[[], float] = _time.monotonic,
        default_model: str = _constants.DEFAULT_MODEL,
    ) -> None:
        """
        Initialize the engine.

        Args:
            config: Turn limits (frozen).
            client: Streaming model client.
            tool_registry: Tools offered to and executed for the model.
            cache: Context cache. Defaults to no caching.
            knowledge_source: Per-query knowledge lookup. Defaults to none.
            logger: Logger for engine messages.
            turn_log: Optional JSONL turn log.
            clock: Monotonic clock for progress throttling.
            default_model: Model used when the group does not pin one.
        """
        self._config = config
        self._client = client
        self._registry = tool_registry
        self._cache = cache or cache_base.NullContextCache()
        self._knowledge = knowledge_source
        self._logger = logger or _logger
        self._turn_log = turn_log
        self._clock = clock
        self._default_model = default_model

    @property
    def config(self) -> config_types.FastPathConfig:
        return self._config

    def is_eligible(self, group: types.Group, has_media: bool) -> bool:
        """Whether this engine should handle a request for ``group``."""
        return eligibility.is_eligible(
            group,
            has_media,
            enabled=self._config.enabled,
            client_available=self._client.is_available(),
        )

    def resolve_model(self, group: types.Group) -> str:
        if not group.model or group.model == "auto":
            return self._default_model
        return group.model

    async def run_turn(
        self,
        group: types.Group,
        request: types.AgentTurnRequest,
        execution_context: _typing.Any,
        on_progress: progress.ProgressSink | None = None,
    ) -> types.AgentTurnResult:
        """
        Run one turn.

        Args:
            group: Group the request belongs to.
            request: The turn input.
            execution_context: Opaque context handed to tool handlers.
            on_progress: Optional sink for progress events (e.g. ``ProgressChannel.send``).

        Returns:
            AgentTurnResult. Timeouts and exceptions give ``status="error"``.
        """
        start_time = _time.perf_counter()
        model = self.resolve_model(group)
        if self._turn_log:
            self._turn_log.log_turn_start(
                group=group.name,
                chat_id=request.chat_id,
                model=model,
                is_main=request.is_main,
                prompt=request.prompt,
            )
        self._logger.info(
            "Starting turn for group %s (model=%s, main=%s)", group.name, model, request.is_main
        )

        try:
            result = await run_with_deadline(
                self._run(group, request, execution_context, on_progress, model),
                self._config.timeout_ms,
            )
        except Exception as e:
            result = self._error_result(group, str(e) or type(e).__name__)

        duration_ms = (_time.perf_counter() - start_time) * 1000
        if self._turn_log:
            self._turn_log.log_turn_end(
                result.status,
                duration_ms=duration_ms,
                result_chars=len(result.result or ""),
                error=result.error,
            )
        self._logger.info(
            "Turn for group %s finished with %s in %.0fms", group.name, result.status, duration_ms
        )
        return result

    def _error_result(self, group: types.Group, message: str) -> types.AgentTurnResult:
        self._logger.error("Turn for group %s failed: %s", group.name, message)
        if self._turn_log:
            self._turn_log.log_error(message, context="run_turn")
        return types.AgentTurnResult.failed(ERROR_PREFIX + message)

    async def _run(
        self,
        group: types.Group,
        request: types.AgentTurnRequest,
        execution_context: _typing.Any,
        on_progress: progress.ProgressSink | None,
        model: str,
    ) -> types.AgentTurnResult:
        system_instruction = prompts.build_system_instruction(
            request.system_prompt,
            follow_up_enabled=group.enable_follow_up is not False,
            function_calling_disabled=request.function_calling_disabled,
        )

        knowledge_text = await self._fetch_knowledge(request)

        # Only static content is cached. Knowledge varies per query.
        cached_content = await self._get_cache_handle(request, model, system_instruction)
        if cached_content is None:
            system_instruction = prompts.append_memory_context(
                system_instruction, request.memory_context
            )

        history = prompts.sanitize_history(
            request.conversation_history,
            max_messages=self._config.max_history_messages,
        )
        contents = prompts.build_contents(
            history,
            request.prompt,
            prompts.wrap_knowledge(knowledge_text, self._config.knowledge_max_chars),
        )

        declarations = (
            [] if request.function_calling_disabled else self._registry.build_declarations(request.is_main)
        )

        emitter = progress.ProgressEmitter(
            on_progress,
            interval_ms=self._config.streaming_interval_ms,
            clock=self._clock,
            logger=self._logger,
        )
        loop = orchestrator.FunctionCallOrchestrator(
            self._client,
            self._registry,
            self._config,
            logger=self._logger,
            turn_log=self._turn_log,
        )
        outcome = await loop.run(
            model=model,
            contents=contents,
            system_instruction=system_instruction,
            cached_content=cached_content,
            declarations=declarations,
            web_search_enabled=request.web_search_enabled,
            context=tools_base.ToolCallContext(
                execution_context=execution_context,
                group_id=request.group_id,
                chat_id=request.chat_id,
                is_main=request.is_main,
            ),
            emitter=emitter,
        )

        await emitter.complete(outcome.text)

        return types.AgentTurnResult(
            status="success",
            result=outcome.text or None,
            prompt_tokens=outcome.prompt_tokens,
            response_tokens=outcome.response_tokens,
        )

    async def _fetch_knowledge(self, request: types.AgentTurnRequest) -> str:
        """Best-effort knowledge lookup. Any failure gives ""."""
        if self._knowledge is None:
            return ""
        try:
            return await self._knowledge.get_relevant_knowledge(
                prompts.build_query_text(request.prompt), request.group_id
            ) or ""
        except Exception as e:
            self._logger.debug("Knowledge lookup failed for %s: %s", request.group_id, e)
            return ""

    async def _get_cache_handle(
        self,
        request: types.AgentTurnRequest,
        model: str,
        system_instruction: str,
    ) -> str | None:
        try:
            return await self._cache.get_or_create(
                request.group_id, model, system_instruction, request.memory_context
            )
        except Exception as e:
            self._logger.warning("Context cache lookup failed for %s: %s", request.group_id, e)
            return None
