"""
Main CLI entry point for Skald.

Provides the command-line interface using Click: ``skald run`` executes one
turn against the Gemini REST API, ``skald check`` reports eligibility and the
effective configuration.
"""

import asyncio as _asyncio
import json as _json
import logging as _logging
import sys as _sys
import typing as _typing

import click as _click
import rich.console as _rich_console

import skald
import skald.api as api
import skald.cache as cache
import skald.config as config
import skald.core as core
import skald.logging as turn_logging
import skald.tools as tools

CONTEXT_SETTINGS: dict[str, _typing.Any] = {
    "help_option_names": ["-h", "--help"],
    "max_content_width": 100,
}


def _run_async(coro: _typing.Coroutine[_typing.Any, _typing.Any, _typing.Any]) -> _typing.Any:
    """Run an async coroutine synchronously."""
    return _asyncio.run(coro)


def _configure_logging(settings: config.Settings, verbose: bool) -> None:
    level = _logging.DEBUG if verbose else getattr(
        _logging, settings.logging.level.upper(), _logging.INFO
    )
    if not verbose and not settings.logging.enabled:
        level = _logging.WARNING
    _logging.basicConfig(
        level=level,
        stream=_sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@_click.group(context_settings=CONTEXT_SETTINGS)
@_click.version_option(skald.__version__, "-v", "--version", prog_name="skald")
@_click.option("--verbose", is_flag=True, help="Enable debug logging on stderr")
@_click.pass_context
def cli(ctx: _click.Context, verbose: bool) -> None:
    """
    Skald - single-turn conversational agent engine.

    \b
    Examples:
        skald run "What tasks do I have?"          # One turn, streamed
        skald run --json "Summarize today"         # JSON result
        skald run --group family --main "hello"    # Main group
        skald check                                # Eligibility and config
    """
    try:
        settings = config.Settings()
    except config.ConfigFileError as e:
        _click.echo(f"Error: {e}", err=True)
        raise SystemExit(1) from None

    _configure_logging(settings, verbose)

    ctx.ensure_object(dict)
    ctx.obj["settings"] = settings


def _build_engine(
    settings: config.Settings,
    client: api.GeminiRestClient,
    *,
    use_cache: bool,
    turn_log: turn_logging.TurnLogger | None,
) -> core.TurnEngine:
    context_cache: cache.ContextCache
    if use_cache:
        context_cache = cache.FingerprintCache(
            client.create_cached_content,
            ttl_seconds=settings.cache.ttl_seconds,
            min_cache_chars=settings.cache.min_cache_chars,
        )
    else:
        context_cache = cache.NullContextCache()

    return core.TurnEngine(
        settings.fast_path,
        client,
        tools.ToolRegistry(),
        cache=context_cache,
        turn_log=turn_log,
        default_model=settings.models.default,
    )


def _create_client(settings: config.Settings) -> api.GeminiRestClient:
    return api.GeminiRestClient(
        settings.get_api_key(),
        base_url=settings.gemini_base_url,
        fallback_model=settings.models.fallback,
    )


async def _print_progress(
    channel: core.ProgressChannel,
    out: _rich_console.Console,
    err: _rich_console.Console,
) -> str:
    """Print streamed text as it arrives. Returns the text printed."""
    printed = ""
    async for event in channel:
        if event.type == "tool_use":
            err.print(f"[dim]→ {event.tool_name}[/dim]")
            continue
        snapshot = event.content_snapshot
        if not snapshot:
            continue
        if snapshot.startswith(printed):
            out.print(snapshot[len(printed):], end="", markup=False, highlight=False)
        else:
            # Fallback confirmations replace the streamed text
            out.print("\n" + snapshot, end="", markup=False, highlight=False)
        printed = snapshot
    return printed


async def _run_turn(
    engine: core.TurnEngine,
    client: api.GeminiRestClient,
    group: core.Group,
    request: core.AgentTurnRequest,
    *,
    stream_output: bool,
) -> tuple[core.AgentTurnResult, str]:
    out = _rich_console.Console()
    err = _rich_console.Console(stderr=True)
    channel = core.ProgressChannel()
    consumer = (
        _asyncio.create_task(_print_progress(channel, out, err)) if stream_output else None
    )
    try:
        result = await engine.run_turn(
            group,
            request,
            execution_context=None,
            on_progress=channel.send if stream_output else None,
        )
    finally:
        channel.close()
        await client.aclose()

    printed = await consumer if consumer is not None else ""
    return result, printed


@cli.command()
@_click.argument("prompt", nargs=-1, required=True)
@_click.option("--group", "group_name", default="cli", show_default=True, help="Group name")
@_click.option("--model", type=str, default=None, help="Model override for this turn")
@_click.option("--main", "is_main", is_flag=True, help="Run as the main group")
@_click.option("--no-tools", is_flag=True, help="Disable function calling")
@_click.option("--no-search", is_flag=True, help="Disable Google Search grounding")
@_click.option("--no-follow-up", is_flag=True, help="Do not ask for follow-up suggestions")
@_click.option("--no-cache", is_flag=True, help="Never create a context cache")
@_click.option("--json", "json_output", is_flag=True, help="Output the result as JSON")
@_click.option("--system", "system_prompt", type=str, default=None, help="Base system prompt")
@_click.option("--memory", "memory_context", type=str, default=None, help="Memory summary")
@_click.pass_context
def run(
    ctx: _click.Context,
    prompt: tuple[str, ...],
    group_name: str,
    model: str | None,
    is_main: bool,
    no_tools: bool,
    no_search: bool,
    no_follow_up: bool,
    no_cache: bool,
    json_output: bool,
    system_prompt: str | None,
    memory_context: str | None,
) -> None:
    """Run one conversational turn.

    Examples:
        skald run "What's the weather like on Mars?"
        skald run --no-search --json "Say hi"
    """
    settings: config.Settings = ctx.obj["settings"]
    prompt_text = " ".join(prompt)

    group = core.Group(
        name=group_name,
        folder=group_name,
        model=model,
        enable_follow_up=False if no_follow_up else None,
    )

    turn_log = (
        turn_logging.TurnLogger(
            log_dir=settings.get_log_dir(),
            private_mode=settings.logging.private,
        )
        if settings.logging.enabled
        else None
    )

    client = _create_client(settings)
    engine = _build_engine(settings, client, use_cache=not no_cache, turn_log=turn_log)

    if not engine.is_eligible(group, has_media=False):
        _run_async(client.aclose())
        reason = (
            "fast path is disabled" if not settings.fast_path.enabled
            else "GEMINI_API_KEY is not set"
        )
        if json_output:
            _click.echo(_json.dumps({"status": "error", "result": None, "error": reason}))
        else:
            _click.echo(f"Error: {reason}", err=True)
        raise SystemExit(1)

    request = core.AgentTurnRequest(
        prompt=prompt_text,
        group_id=group.folder,
        chat_id=group_name,
        is_main=is_main,
        system_prompt=system_prompt,
        memory_context=memory_context,
        web_search_enabled=not no_search,
        function_calling_disabled=no_tools,
    )

    try:
        result, printed = _run_async(
            _run_turn(engine, client, group, request, stream_output=not json_output)
        )
    finally:
        if turn_log:
            turn_log.close()

    if json_output:
        _click.echo(_json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
    elif result.status == "success":
        if printed:
            _click.echo()
        elif result.result:
            _click.echo(result.result)
        else:
            _click.echo("(no response)", err=True)
        if result.prompt_tokens is not None:
            _click.echo(
                f"tokens: {result.prompt_tokens} in / {result.response_tokens or 0} out",
                err=True,
            )
    else:
        _click.echo(f"Error: {result.error}", err=True)

    if result.status != "success":
        raise SystemExit(1)


@cli.command()
@_click.option("--group", "group_name", default="cli", show_default=True, help="Group name")
@_click.option("--media", "has_media", is_flag=True, help="Pretend the request carries media")
@_click.option("--json", "json_output", is_flag=True, help="JSON output")
@_click.pass_context
def check(ctx: _click.Context, group_name: str, has_media: bool, json_output: bool) -> None:
    """Report whether a request would take the fast path."""
    settings: config.Settings = ctx.obj["settings"]
    client = _create_client(settings)
    engine = _build_engine(settings, client, use_cache=False, turn_log=None)
    group = core.Group(name=group_name, folder=group_name)
    eligible = engine.is_eligible(group, has_media)
    _run_async(client.aclose())

    fast_path = settings.fast_path
    report = {
        "eligible": eligible,
        "enabled": fast_path.enabled,
        "api_key_configured": client.is_available(),
        "has_media": has_media,
        "model": settings.models.default,
        "fallback_model": settings.models.fallback,
        "timeout_ms": fast_path.timeout_ms,
        "streaming_interval_ms": fast_path.streaming_interval_ms,
        "max_calls_per_turn": fast_path.max_calls_per_turn,
        "max_tool_rounds": fast_path.max_tool_rounds,
        "max_history_messages": fast_path.max_history_messages,
    }

    if json_output:
        _click.echo(_json.dumps(report, indent=2))
    else:
        status = "✓" if eligible else "✗"
        _click.echo(f"{status} Fast path {'eligible' if eligible else 'not eligible'}")
        for key, value in report.items():
            if key != "eligible":
                _click.echo(f"  {key}: {value}")


def main() -> None:
    """Main entry point with correct program name."""
    cli(prog_name="skald")


if __name__ == "__main__":
    main()
