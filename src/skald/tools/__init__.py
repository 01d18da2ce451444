"""
Tool system for Skald.

Tools are resolved by name through a closed registry. Each tool carries a
safety classification used to filter hallucinated mutating calls.
"""

from skald.tools.base import (
    DESTRUCTIVE,
    MUTATING,
    READ_ONLY,
    FunctionCallResult,
    ToolCallContext,
    ToolHandler,
    ToolSafety,
)
from skald.tools.registry import ToolRegistry
from skald.tools.safety import BUILTIN_TOOL_SAFETY, ToolSafetyClassifier

__all__ = [
    "BUILTIN_TOOL_SAFETY",
    "DESTRUCTIVE",
    "FunctionCallResult",
    "MUTATING",
    "READ_ONLY",
    "ToolCallContext",
    "ToolHandler",
    "ToolRegistry",
    "ToolSafety",
    "ToolSafetyClassifier",
]
