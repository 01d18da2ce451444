"""
Skald - single-turn conversational agent engine

Drives a Gemini-style model through streamed text and function-call rounds
for one conversational turn.
Named after the Norse court poets who answered on the spot.
"""

import importlib.metadata as _metadata

# Version is defined in pyproject.toml - read it and parse into tuple (primary representation)
_raw_version = _metadata.version("skald")
__version_info__: tuple[int, int, int] = tuple(int(x) for x in _raw_version.split(".")[:3])  # type: ignore[assignment]
__version__: str = ".".join(str(x) for x in __version_info__)
__author__ = "Skald Contributors"

from skald.config import Settings  # noqa: E402
from skald.core import AgentTurnRequest, AgentTurnResult, Group, TurnEngine  # noqa: E402

__all__ = [
    "AgentTurnRequest",
    "AgentTurnResult",
    "Group",
    "Settings",
    "TurnEngine",
    "__version__",
    "__version_info__",
]
