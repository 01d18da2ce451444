"""
Multi-round function-call orchestration.

One round is one model call: the stream is drained, the requested calls are
filtered and truncated, executed in order, and their results are sent back
on the next round. The last permitted round offers no function
declarations, which forces a text answer.
"""

from __future__ import annotations

import dataclasses as _dataclasses
import logging as _logging
import time as _time
import typing as _typing

import skald.api.base as api_base
import skald.api.types as api_types
import skald.config.types as config_types
import skald.core.batching as batching
import skald.core.progress as progress
import skald.core.summaries as summaries
import skald.logging.turn_logger as turn_logger
import skald.tools.base as tools_base
import skald.tools.registry as tools_registry

_logger = _logging.getLogger(__name__)

SKIPPED_CALL_ERROR = (
    "Not executed: this action was requested in the same batch as read-only "
    "lookups whose results you had not seen yet. Review those results and "
    "re-issue the action only if the user's current message still asks for it."
)


def build_tools(
    declarations: _typing.Sequence[dict[str, _typing.Any]],
    *,
    web_search_enabled: bool,
    include_declarations: bool = True,
) -> list[dict[str, _typing.Any]] | None:
    """
    Build the ``tools`` field for a model call.

    Function declarations and Google Search cannot be combined. Search is
    offered only when there are no declarations at all, so dropping the
    declarations on the final round does not switch search on.
    """
    if declarations:
        if include_declarations:
            return [{"functionDeclarations": list(declarations)}]
        return None
    if web_search_enabled:
        return [{"googleSearch": {}}]
    return None


def skipped_result(call: api_types.FunctionCall) -> tools_base.FunctionCallResult:
    """Synthetic response for a call dropped from a mixed batch."""
    return tools_base.FunctionCallResult.failure(call.name, SKIPPED_CALL_ERROR, skipped=True)


@_dataclasses.dataclass
class RoundOutput:
    """What one drained stream produced."""

    text: str = ""
    function_calls: list[api_types.FunctionCall] = _dataclasses.field(default_factory=list)
    raw_parts: list[api_types.RawPart] = _dataclasses.field(default_factory=list)
    usage: api_types.UsageMetadata | None = None


@_dataclasses.dataclass
class OrchestrationResult:
    """Result of the round loop."""

    text: str
    """Final text (model text, or the fallback confirmations)."""

    prompt_tokens: int | None
    response_tokens: int | None
    rounds: int

    executed: list[tools_base.FunctionCallResult] = _dataclasses.field(default_factory=list)
    """Results of calls that actually ran, in execution order."""

    dropped: list[api_types.FunctionCall] = _dataclasses.field(default_factory=list)
    """Mutating calls removed from mixed batches."""

    truncated: list[api_types.FunctionCall] = _dataclasses.field(default_factory=list)
    """Calls beyond the per-round limit."""

    ignored: list[api_types.FunctionCall] = _dataclasses.field(default_factory=list)
    """Calls left unexecuted because the turn stopped: final round, or text already answered."""


class FunctionCallOrchestrator:
    """
    Drives the stream/execute loop for one turn.

    Stream consumption and tool execution are strictly sequential: one
    stream is fully drained before any call runs, and calls run one at a
    time in batch order.
    """

    def __init__(
        self,
        client: api_base.StreamingClient,
        registry: tools_registry.ToolRegistry,
        config: config_types.FastPathConfig,
        *,
        logger: _logging.Logger | None = None,
        turn_log: turn_logger.TurnLogger | None = None,
    ) -> None:
        self._client = client
        self._registry = registry
        self._config = config
        self._logger = logger or _logger
        self._turn_log = turn_log

    async def run(
        self,
        *,
        model: str,
        contents: list[api_types.Content],
        system_instruction: str | None,
        cached_content: str | None,
        declarations: _typing.Sequence[dict[str, _typing.Any]],
        web_search_enabled: bool,
        context: tools_base.ToolCallContext,
        emitter: progress.ProgressEmitter,
    ) -> OrchestrationResult:
        """
        Run rounds until the model answers in text, stops calling functions,
        or the budget ends.

        Text and calls together in the first round still execute the calls:
        the text is usually a preamble ("Let me check..."). From the second
        round on, text means the model has answered, and any calls issued
        alongside it are ignored rather than run.

        Args:
            model: Model name.
            contents: Initial contents (history plus the user turn). Not modified.
            system_instruction: Inline instruction, or None when cached.
            cached_content: Cache handle, or None.
            declarations: Function declarations offered to the model.
            web_search_enabled: Offer Google Search when there are no declarations.
            context: Passed through to every tool call.
            emitter: Progress emitter for text and tool-start events.

        Returns:
            OrchestrationResult with text, token totals and call bookkeeping.
        """
        working = list(contents)
        text_parts: list[str] = []
        prompt_total: int | None = None
        response_total: int | None = None
        result = OrchestrationResult(text="", prompt_tokens=None, response_tokens=None, rounds=0)
        max_rounds = self._config.max_tool_rounds

        while result.rounds < max_rounds:
            result.rounds += 1
            round_num = result.rounds
            final_round = round_num == max_rounds

            tools = build_tools(
                declarations,
                web_search_enabled=web_search_enabled,
                include_declarations=not final_round,
            )
            if self._turn_log:
                self._turn_log.log_round_start(
                    round_num,
                    final_round=final_round,
                    cached=cached_content is not None,
                    tool_count=len(declarations) if tools and not final_round else 0,
                )

            output = await self._drain(
                api_types.StreamOptions(
                    model=model,
                    contents=list(working),
                    system_instruction=None if cached_content else system_instruction,
                    cached_content=cached_content,
                    tools=tools,
                ),
                text_parts,
                emitter,
            )

            if output.usage is not None:
                prompt_total = (prompt_total or 0) + (output.usage.prompt_tokens or 0)
                response_total = (response_total or 0) + (output.usage.response_tokens or 0)
                if self._turn_log:
                    self._turn_log.log_usage(
                        output.usage.prompt_tokens, output.usage.response_tokens
                    )

            calls = output.function_calls
            if not calls:
                break

            if final_round:
                # No declarations were offered, so these are not executed.
                self._logger.warning(
                    "Ignoring %d function call(s) on final round %d: %s",
                    len(calls),
                    round_num,
                    [c.name for c in calls],
                )
                result.ignored.extend(calls)
                break

            if round_num > 1 and output.text.strip():
                ignored_names = [c.name for c in calls]
                self._logger.warning(
                    "Model answered in round %d, ignoring function call(s): %s",
                    round_num,
                    ignored_names,
                )
                result.ignored.extend(calls)
                if self._turn_log:
                    self._turn_log.log_tool_dropped(ignored_names, reason="answered")
                break

            executed_calls, results, skipped = await self._execute_batch(calls, context, result)

            answered = executed_calls + skipped
            responses = [r.to_part() for r in results]
            responses.extend(skipped_result(c).to_part() for c in skipped)

            working.append(
                {"role": "model", "parts": batching.model_turn_parts(answered, output.raw_parts)}
            )
            working.append({"role": "user", "parts": responses})

        result.prompt_tokens = prompt_total
        result.response_tokens = response_total
        result.text = self._final_text("".join(text_parts), result.executed)
        return result

    async def _drain(
        self,
        options: api_types.StreamOptions,
        text_parts: list[str],
        emitter: progress.ProgressEmitter,
    ) -> RoundOutput:
        """Consume one stream to the end."""
        output = RoundOutput()
        round_text: list[str] = []
        stream = self._client.stream(options)
        try:
            async for chunk in stream:
                if chunk.text:
                    round_text.append(chunk.text)
                    text_parts.append(chunk.text)
                    await emitter.text(chunk.text, "".join(text_parts))

                for call in chunk.function_calls:
                    output.function_calls.append(call)
                    await emitter.tool_use(call.name)
                output.raw_parts.extend(chunk.raw_parts)

                if chunk.usage is not None:
                    output.usage = chunk.usage
        finally:
            aclose = getattr(stream, "aclose", None)
            if aclose is not None:
                await aclose()

        output.text = "".join(round_text)
        return output

    async def _execute_batch(
        self,
        calls: list[api_types.FunctionCall],
        context: tools_base.ToolCallContext,
        result: OrchestrationResult,
    ) -> tuple[
        list[api_types.FunctionCall],
        list[tools_base.FunctionCallResult],
        list[api_types.FunctionCall],
    ]:
        """
        Filter, truncate and execute one batch.

        Returns:
            (executed calls, their results, calls to answer as skipped)
        """
        classifier = self._registry.classifier

        split = batching.filter_mixed_batch(calls, classifier)
        if split.removed:
            dropped_names = [c.name for c in split.removed]
            self._logger.warning(
                "Dropped mutating call(s) from mixed batch: %s (kept: %s)",
                [f"{name} [{self._danger_level(name)}]" for name in dropped_names],
                [c.name for c in split.kept],
            )
            result.dropped.extend(split.removed)
            if self._turn_log:
                self._turn_log.log_tool_dropped(dropped_names, reason="mixed_batch")

        truncated = batching.truncate_batch(split.kept, classifier, self._config.max_calls_per_turn)
        if truncated.removed:
            truncated_names = [c.name for c in truncated.removed]
            self._logger.warning(
                "Truncated batch to %d call(s), removed: %s",
                self._config.max_calls_per_turn,
                truncated_names,
            )
            result.truncated.extend(truncated.removed)
            if self._turn_log:
                self._turn_log.log_tool_dropped(truncated_names, reason="truncated")

        results: list[tools_base.FunctionCallResult] = []
        for call in truncated.kept:
            if self._turn_log:
                self._turn_log.log_tool_call(call.name, call.args)
            start_time = _time.perf_counter()
            call_result = await self._registry.execute(call.name, call.args, context)
            duration_ms = (_time.perf_counter() - start_time) * 1000
            if self._turn_log:
                self._turn_log.log_tool_result(
                    call.name,
                    call_result.success,
                    error=call_result.error,
                    duration_ms=duration_ms,
                )
            results.append(call_result)

        result.executed.extend(results)
        skipped = list(split.removed) if self._config.notify_dropped_calls else []
        return list(truncated.kept), results, skipped

    def _danger_level(self, name: str) -> str:
        safety = self._registry.classifier.get(name)
        return safety.danger_level if safety is not None else "unclassified"

    def _final_text(
        self,
        model_text: str,
        executed: list[tools_base.FunctionCallResult],
    ) -> str:
        """
        Choose the text returned to the user.

        Without model text, every executed call gets a confirmation line.
        With model text, failures the model did not mention are appended so
        they are never hidden behind an apparently successful answer.
        """
        if not model_text.strip():
            if executed:
                self._logger.info("No model text after %d call(s), using fallback", len(executed))
                return summaries.build_fallback_text(executed)
            return model_text

        unreported = [
            r for r in executed if not r.success and (r.error or "") not in model_text
        ]
        if unreported:
            return model_text.rstrip() + "\n\n" + summaries.build_fallback_text(unreported)
        return model_text
