"""
Shared constants for Skald.

This module provides a single source of truth for default values
that are used across multiple modules.
"""

# Model defaults
DEFAULT_MODEL = "gemini-2.5-flash"
"""Default Gemini model when a group does not pin one."""

FALLBACK_MODEL = "gemini-2.5-flash"
"""Model retried once when the requested model is not found (HTTP 404)."""

DEFAULT_GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
"""Base URL of the Gemini REST API."""

# Turn limits
DEFAULT_TIMEOUT_MS = 180_000
"""Deadline for a whole turn (3 minutes)."""

DEFAULT_STREAMING_INTERVAL_MS = 500
"""Minimum spacing between throttled progress events."""

DEFAULT_MAX_CALLS_PER_TURN = 5
"""Maximum function calls executed in a single round."""

DEFAULT_MAX_TOOL_ROUNDS = 3
"""Maximum model calls per turn. The last one never offers function declarations."""

DEFAULT_MAX_HISTORY_MESSAGES = 50
"""Maximum prior conversation messages sent with a turn."""

# Knowledge injection
DEFAULT_KNOWLEDGE_MAX_CHARS = 4000
"""Knowledge text longer than this is truncated before injection."""

QUERY_TEXT_MAX_CHARS = 200
"""Characters of the prompt used as the knowledge search query."""

# Context cache
DEFAULT_CACHE_TTL_SECONDS = 21_600
"""Lifetime of a provider-side context cache (6 hours)."""

DEFAULT_MIN_CACHE_CHARS = 100_000
"""Static content shorter than this is not worth caching."""

# Progress
PROGRESS_PREVIEW_CHARS = 100
"""Length of the preview carried by progress events."""

# History sanitation
SHORT_MODEL_TURN_CHARS = 200
"""Model turns up to this length are checked for confirmation markers."""
