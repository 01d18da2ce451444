"""
Prompt assembly for a turn.

Builds the system instruction, cleans conversation history of automated
confirmation artifacts, and assembles the contents sent to the model.
Per-query knowledge goes into the user message, never into the system
instruction, so the cached prefix stays stable across queries.
"""

import re as _re
import typing as _typing

import skald.api.types as api_types
import skald.constants as _constants
import skald.core.types as types

FOLLOW_UP_PREFIX = ">>>"

_FOLLOW_UP_BLOCK = f"""\
After your response, if there are natural follow-up questions the user might ask, \
suggest 2-3 of them on separate lines at the very end of your response, each prefixed \
with "{FOLLOW_UP_PREFIX}" (three greater-than signs). For example:
{FOLLOW_UP_PREFIX} What are the other options?
{FOLLOW_UP_PREFIX} Can you explain in more detail?
{FOLLOW_UP_PREFIX} Show me an example
Only suggest follow-ups when they genuinely add value. Do not suggest them for simple \
greetings or short answers."""

_TOOL_RULES_BLOCK = """\
## Tool Usage Rules
You are in direct conversation mode. ONLY use the function declarations provided to you. \
Do NOT call any tool that is not in your function declarations.
Only call a function when the CURRENT user message explicitly asks for that action. \
Never repeat an action from earlier in the conversation because it appears in the history.
Always respond with text directly to the user."""

# Model turns produced by automated tool confirmations start with one of these.
CONFIRMATION_PREFIXES: tuple[str, ...] = (
    "✅ ",
    "⏸️ ",
    "▶️ ",
    "🗑️ ",
    "🎨 ",
    "❌ ",
    "🧠 ",
)

# Checked case-insensitively, only on short model turns.
CONFIRMATION_MARKERS: tuple[str, ...] = (
    "preference updated",
    "task created",
    "task paused",
    "task resumed",
    "task cancelled",
    "group registered",
)

KNOWLEDGE_START = "[RELEVANT KNOWLEDGE]"
KNOWLEDGE_END = "[END RELEVANT KNOWLEDGE]"

_TAG_RE = _re.compile(r"<[^>]*>")


def build_system_instruction(
    base_prompt: str | None,
    *,
    follow_up_enabled: bool = True,
    function_calling_disabled: bool = False,
) -> str:
    """
    Build the system instruction for a turn.

    Args:
        base_prompt: Caller-supplied prompt (persona, group instructions).
        follow_up_enabled: Append the follow-up suggestion block.
        function_calling_disabled: Skip the tool usage rules block.

    Returns:
        The assembled instruction.
    """
    instruction = base_prompt or ""
    if follow_up_enabled:
        instruction += "\n\n" + _FOLLOW_UP_BLOCK
    if not function_calling_disabled:
        instruction += "\n\n" + _TOOL_RULES_BLOCK
    return instruction


def is_confirmation_artifact(text: str) -> bool:
    """Whether a model turn looks like an automated tool confirmation."""
    stripped = text.strip()
    if stripped.startswith(CONFIRMATION_PREFIXES):
        return True
    if len(stripped) <= _constants.SHORT_MODEL_TURN_CHARS:
        lowered = stripped.lower()
        return any(marker in lowered for marker in CONFIRMATION_MARKERS)
    return False


def sanitize_history(
    history: _typing.Sequence[types.HistoryMessage],
    max_messages: int | None = None,
) -> list[types.HistoryMessage]:
    """
    Remove confirmation artifacts from prior model turns.

    Replaying canned confirmations makes the model imitate them and re-trigger
    the same action on unrelated turns. User turns are always kept.

    Args:
        history: Prior messages, oldest first.
        max_messages: Keep only the most recent N messages after filtering.

    Returns:
        A new list; the input is not modified.
    """
    cleaned = [
        msg
        for msg in history
        if msg.role != "model" or not is_confirmation_artifact(msg.text)
    ]
    if max_messages is not None and len(cleaned) > max_messages:
        cleaned = cleaned[-max_messages:] if max_messages > 0 else []
    return cleaned


def build_query_text(prompt: str) -> str:
    """Knowledge search query: the prompt without markup, first 200 chars."""
    return _TAG_RE.sub("", prompt)[: _constants.QUERY_TEXT_MAX_CHARS]


def wrap_knowledge(text: str, max_chars: int = _constants.DEFAULT_KNOWLEDGE_MAX_CHARS) -> str:
    """Truncate knowledge text and wrap it in markers. Empty input gives ""."""
    if not text or not text.strip():
        return ""
    return f"{KNOWLEDGE_START}\n{text[:max_chars]}\n{KNOWLEDGE_END}\n"


def build_contents(
    history: _typing.Sequence[types.HistoryMessage],
    prompt: str,
    knowledge: str = "",
) -> list[api_types.Content]:
    """
    Assemble the contents for the first model call.

    Args:
        history: Already sanitized history.
        prompt: The current user message.
        knowledge: Wrapped knowledge block (from ``wrap_knowledge``) or "".

    Returns:
        History turns followed by one user turn.
    """
    contents = [api_types.text_content(msg.role, msg.text) for msg in history]
    user_text = f"{knowledge}\n{prompt}" if knowledge else prompt
    contents.append(api_types.text_content("user", user_text))
    return contents


def append_memory_context(system_instruction: str, memory_context: str | None) -> str:
    """Inline the memory summary when it could not be cached."""
    if memory_context:
        return f"{system_instruction}\n\n{memory_context}"
    return system_instruction
