"""
Pure helpers that shape one round's batch of function calls.

Nothing here mutates its input: every function returns new lists, so the
round loop can keep the original batch around for logging.
"""

from __future__ import annotations

import collections as _collections
import dataclasses as _dataclasses
import typing as _typing

import skald.api.types as api_types
import skald.tools.safety as safety


@_dataclasses.dataclass(frozen=True)
class BatchSplit:
    """A batch split into the calls that go ahead and the ones that don't."""

    kept: list[api_types.FunctionCall]
    removed: list[api_types.FunctionCall]


def filter_mixed_batch(
    calls: _typing.Sequence[api_types.FunctionCall],
    classifier: safety.ToolSafetyClassifier,
) -> BatchSplit:
    """
    Drop mutating calls from a batch that also contains read-only calls.

    The model has not yet seen the results of the read-only calls in the
    same batch, so mutating arguments issued alongside them are presumed
    fabricated (e.g. cancelling a guessed task id before listing tasks).

    Args:
        calls: Calls from one round, in arrival order.
        classifier: Decides read-only vs mutating (unknown names are mutating).

    Returns:
        BatchSplit with ``removed`` holding the dropped mutating calls.
    """
    has_read_only = any(classifier.is_read_only(c.name) for c in calls)
    has_mutating = any(classifier.is_mutating(c.name) for c in calls)
    if not (has_read_only and has_mutating):
        return BatchSplit(kept=list(calls), removed=[])
    return BatchSplit(
        kept=[c for c in calls if classifier.is_read_only(c.name)],
        removed=[c for c in calls if classifier.is_mutating(c.name)],
    )


def truncate_batch(
    calls: _typing.Sequence[api_types.FunctionCall],
    classifier: safety.ToolSafetyClassifier,
    max_calls: int,
) -> BatchSplit:
    """
    Cap a batch at ``max_calls``, keeping read-only calls first.

    The sort is stable, so calls of the same class keep their order. A batch
    that already fits is returned in its original order.
    """
    if len(calls) <= max_calls:
        return BatchSplit(kept=list(calls), removed=[])
    ordered = sorted(calls, key=lambda c: 0 if classifier.is_read_only(c.name) else 1)
    return BatchSplit(kept=ordered[:max_calls], removed=ordered[max_calls:])


def sync_raw_parts(
    raw_parts: _typing.Sequence[api_types.RawPart],
    calls: _typing.Sequence[api_types.FunctionCall],
) -> list[api_types.RawPart]:
    """
    Keep only the raw parts that still belong to a call.

    Matching is by per-name multiplicity: if two ``list_tasks`` calls
    survive, at most two ``list_tasks`` raw parts are kept, in arrival order.
    """
    remaining = _collections.Counter(c.name for c in calls)
    kept: list[api_types.RawPart] = []
    for part in raw_parts:
        if remaining[part.name] > 0:
            remaining[part.name] -= 1
            kept.append(part)
    return kept


def model_turn_parts(
    calls: _typing.Sequence[api_types.FunctionCall],
    raw_parts: _typing.Sequence[api_types.RawPart],
) -> list[_typing.Any]:
    """
    Build the call parts of the model turn replayed on the next round.

    Parts follow the order of ``calls`` so function responses built in the
    same order pair up. Each call uses its raw provider part when one is
    left for that name, otherwise a part rebuilt from name and arguments.
    """
    queues: dict[str, _collections.deque[api_types.RawPart]] = _collections.defaultdict(
        _collections.deque
    )
    for part in sync_raw_parts(raw_parts, calls):
        queues[part.name].append(part)

    parts: list[_typing.Any] = []
    for call in calls:
        queue = queues.get(call.name)
        if queue:
            parts.append(queue.popleft().payload)
        else:
            parts.append(call.to_part())
    return parts
