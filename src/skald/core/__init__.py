"""
Core turn engine for Skald.

The engine runs one conversational turn: prompt assembly, the streaming
function-call loop, progress reporting and the timeout boundary.
"""

from skald.core.engine import TurnEngine
from skald.core.knowledge import KnowledgeSource, StaticKnowledgeSource
from skald.core.orchestrator import FunctionCallOrchestrator, OrchestrationResult
from skald.core.progress import ProgressChannel, ProgressEmitter
from skald.core.types import (
    AgentTurnRequest,
    AgentTurnResult,
    Group,
    HistoryMessage,
    ProgressEvent,
)

__all__ = [
    "AgentTurnRequest",
    "AgentTurnResult",
    "FunctionCallOrchestrator",
    "Group",
    "HistoryMessage",
    "KnowledgeSource",
    "OrchestrationResult",
    "ProgressChannel",
    "ProgressEmitter",
    "ProgressEvent",
    "StaticKnowledgeSource",
    "TurnEngine",
]
