"""
Fallback confirmations for turns where the model produced no text.

If tools ran but the model never answered, the user still gets one line per
tool. Failures are shown with their error text so they never pass for
successes.
"""

import typing as _typing

import skald.tools.base as tools_base

_TEMPLATES: dict[str, _typing.Callable[[dict[str, _typing.Any]], str]] = {
    "schedule_task": lambda r: f"✅ Task created (ID: {r.get('task_id')})",
    "pause_task": lambda r: f"⏸️ Task paused (ID: {r.get('task_id')})",
    "resume_task": lambda r: f"▶️ Task resumed (ID: {r.get('task_id')})",
    "cancel_task": lambda r: f"🗑️ Task cancelled (ID: {r.get('task_id')})",
    "generate_image": lambda r: "🎨 Image generated",
    "set_preference": lambda r: f"✅ Preference updated: {r.get('key')}",
    "register_group": lambda r: f"✅ Group registered (ID: {r.get('chat_id')})",
    "remember_fact": lambda r: "🧠 Fact remembered",
}


def summarize_function_result(result: tools_base.FunctionCallResult) -> str:
    """
    One-line confirmation for a single result.

    Successful results use a fixed template (``✅ <name> done`` for tools
    without one). Failed results give ``❌ <name>: <error>``.
    """
    if not result.success:
        return f"❌ {result.name}: {result.error or 'unknown error'}"
    template = _TEMPLATES.get(result.name)
    if template is None:
        return f"✅ {result.name} done"
    return template(result.response)


def build_fallback_text(results: _typing.Sequence[tools_base.FunctionCallResult]) -> str:
    """Join per-result confirmations, one per line. Empty input gives ""."""
    return "\n".join(summarize_function_result(r) for r in results)
