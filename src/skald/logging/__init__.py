"""
Turn logging for Skald.

Provides JSONL logging of engine events for debugging and analysis.
"""

from skald.logging.turn_logger import TurnLogger

__all__ = [
    "TurnLogger",
]
