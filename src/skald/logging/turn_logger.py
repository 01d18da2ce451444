"""
Turn logger for Skald.

Logs engine events to JSONL files for debugging and analysis.
"""

import datetime as _datetime
import json as _json
import os as _os
import pathlib as _pathlib
import typing as _typing


class TurnLogger:
    """
    Logs turn events to a JSONL file.

    Each line in the file is a JSON object representing an event:
    - log_start: Logger metadata
    - turn_start: Group, chat and model for a turn
    - round_start: One model call within a turn
    - tool_call: Function call about to be executed
    - tool_result: Result of a function call
    - tool_dropped: Calls not executed (mixed batch, truncation, or answered)
    - usage: Token counts for a round
    - turn_end: Final status of a turn
    - error: Error events
    - log_end: Logger closed

    Usage:
        turn_log = TurnLogger(log_dir="/tmp/skald-logs")
        engine = TurnEngine(config, client, registry, turn_log=turn_log)
        ...
        turn_log.close()
    """

    def __init__(
        self,
        *,
        log_dir: _pathlib.Path | str | None = None,
        log_file: _pathlib.Path | str | None = None,
        private_mode: bool = True,
        enabled: bool = True,
    ) -> None:
        """
        Initialize the turn logger.

        Args:
            log_dir: Directory for log files (default: /tmp/skald-logs).
            log_file: Explicit log file path (overrides log_dir + auto name).
            private_mode: If True, set log directory to drwx------ (0o700).
            enabled: Whether logging is enabled.
        """
        self._enabled = enabled
        self._file: _typing.TextIO | None = None
        self._file_path: _pathlib.Path | None = None
        self._session_id = _datetime.datetime.now().strftime("%Y%m%d_%H%M%S")
        self._event_count = 0
        self._turn_count = 0

        if not enabled:
            return

        if log_file:
            self._file_path = _pathlib.Path(log_file)
            self._file_path.parent.mkdir(parents=True, exist_ok=True)
        else:
            base_dir = _pathlib.Path(log_dir) if log_dir else _pathlib.Path("/tmp/skald-logs")
            base_dir.mkdir(parents=True, exist_ok=True)
            if private_mode:
                _os.chmod(base_dir, 0o700)
            self._file_path = base_dir / f"skald_{self._session_id}_{_os.getpid()}.jsonl"

        # Held as instance state, closed in close()
        self._file = open(self._file_path, "a", encoding="utf-8")  # noqa: SIM115

        self._write_event("log_start", {"session_id": self._session_id})

    def _write_event(
        self,
        event_type: str,
        data: dict[str, _typing.Any],
    ) -> None:
        """Write an event to the log file."""
        if not self._enabled or not self._file:
            return

        self._event_count += 1
        event = {
            "timestamp": _datetime.datetime.now().isoformat(),
            "event_number": self._event_count,
            "event_type": event_type,
            **data,
        }

        try:
            self._file.write(_json.dumps(event, default=str, ensure_ascii=False) + "\n")
            self._file.flush()
        except (OSError, ValueError):
            # Logging must never break a turn
            pass

    def log_turn_start(
        self,
        *,
        group: str,
        chat_id: str,
        model: str,
        is_main: bool,
        prompt: str,
    ) -> None:
        """Log the start of a turn."""
        self._turn_count += 1
        self._write_event(
            "turn_start",
            {
                "turn": self._turn_count,
                "group": group,
                "chat_id": chat_id,
                "model": model,
                "is_main": is_main,
                "prompt": prompt,
            },
        )

    def log_round_start(
        self,
        round_num: int,
        *,
        final_round: bool,
        cached: bool,
        tool_count: int,
    ) -> None:
        """Log one model call within the current turn."""
        self._write_event(
            "round_start",
            {
                "turn": self._turn_count,
                "round": round_num,
                "final_round": final_round,
                "cached": cached,
                "tool_count": tool_count,
            },
        )

    def log_tool_call(self, tool_name: str, tool_input: dict[str, _typing.Any]) -> None:
        """Log a function call about to be executed."""
        self._write_event(
            "tool_call",
            {"turn": self._turn_count, "tool_name": tool_name, "tool_input": tool_input},
        )

    def log_tool_result(
        self,
        tool_name: str,
        success: bool,
        error: str | None = None,
        duration_ms: float | None = None,
    ) -> None:
        """Log a function call result."""
        data: dict[str, _typing.Any] = {
            "turn": self._turn_count,
            "tool_name": tool_name,
            "success": success,
            "error": error,
        }
        if duration_ms is not None:
            data["duration_ms"] = round(duration_ms, 2)
        self._write_event("tool_result", data)

    def log_tool_dropped(self, tool_names: list[str], reason: str) -> None:
        """Log calls removed from a batch before execution."""
        self._write_event(
            "tool_dropped",
            {"turn": self._turn_count, "tool_names": tool_names, "reason": reason},
        )

    def log_usage(self, prompt_tokens: int | None, response_tokens: int | None) -> None:
        """Log token usage for one round."""
        self._write_event(
            "usage",
            {
                "turn": self._turn_count,
                "prompt_tokens": prompt_tokens,
                "response_tokens": response_tokens,
            },
        )

    def log_turn_end(
        self,
        status: str,
        *,
        duration_ms: float,
        result_chars: int = 0,
        error: str | None = None,
    ) -> None:
        """Log the end of a turn."""
        data: dict[str, _typing.Any] = {
            "turn": self._turn_count,
            "status": status,
            "duration_ms": round(duration_ms, 2),
            "result_chars": result_chars,
        }
        if error is not None:
            data["error"] = error
        self._write_event("turn_end", data)

    def log_error(self, error: str, context: str | None = None) -> None:
        """Log an error event."""
        self._write_event(
            "error",
            {"turn": self._turn_count, "error": error, "context": context},
        )

    def log_event(self, event_type: str, **kwargs: _typing.Any) -> None:
        """Log a generic event with arbitrary data."""
        self._write_event(event_type, dict(kwargs))

    @property
    def file_path(self) -> _pathlib.Path | None:
        """Get the log file path."""
        return self._file_path

    @property
    def enabled(self) -> bool:
        """Check if logging is enabled."""
        return self._enabled

    def close(self) -> None:
        """Close the log file."""
        if not self._enabled or not self._file:
            return

        self._write_event("log_end", {"total_events": self._event_count, "turns": self._turn_count})

        try:
            self._file.close()
        except OSError:
            pass
        self._file = None

    def __enter__(self) -> "TurnLogger":
        """Context manager entry."""
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: _typing.Any,
    ) -> None:
        """Context manager exit."""
        if exc_type:
            self.log_error(str(exc_val), context=f"Exception: {exc_type.__name__}")
        self.close()
