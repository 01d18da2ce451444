"""
Fingerprinting context cache.

Keeps one handle per (group, model) and reuses it while the static content
fingerprint is unchanged and the handle has not expired. Creating the
provider-side cache is delegated to a caller-supplied coroutine.

Two turns for the same group and model may both miss and both create a
cache. That race only wastes a creation call (the later handle wins), so
no lock is taken.
"""

from __future__ import annotations

import dataclasses as _dataclasses
import hashlib as _hashlib
import logging as _logging
import time as _time
import typing as _typing

import skald.cache.base as base
import skald.constants as _constants

_logger = _logging.getLogger(__name__)

CacheCreator = _typing.Callable[[str, str, int], _typing.Awaitable[str]]
"""``(model, content, ttl_seconds) -> handle``; may raise on provider errors."""


def fingerprint(content: str) -> str:
    """Short stable fingerprint of static content."""
    return _hashlib.sha256(content.encode("utf-8")).hexdigest()[:16]


def static_content(system_instruction: str, memory_context: str | None) -> str:
    """The content that goes into the cache: instruction, then memory summary."""
    if memory_context:
        return f"{system_instruction}\n\n{memory_context}"
    return system_instruction


@_dataclasses.dataclass
class _CacheEntry:
    handle: str
    fingerprint: str
    expires_at: float


class FingerprintCache(base.ContextCache):
    """In-memory index of provider cache handles."""

    def __init__(
        self,
        creator: CacheCreator,
        *,
        ttl_seconds: int = _constants.DEFAULT_CACHE_TTL_SECONDS,
        min_cache_chars: int = _constants.DEFAULT_MIN_CACHE_CHARS,
        clock: _typing.Callable[[], float] = _time.monotonic,
    ) -> None:
        """
        Initialize the cache.

        Args:
            creator: Coroutine creating a provider cache and returning its handle.
            ttl_seconds: Lifetime requested for new caches.
            min_cache_chars: Content shorter than this is not cached.
            clock: Monotonic clock in seconds (injectable for tests).
        """
        self._creator = creator
        self._ttl_seconds = ttl_seconds
        self._min_cache_chars = min_cache_chars
        self._clock = clock
        self._entries: dict[tuple[str, str], _CacheEntry] = {}
        self.creations = 0

    async def get_or_create(
        self,
        group_id: str,
        model: str,
        system_instruction: str,
        memory_context: str | None = None,
    ) -> str | None:
        content = static_content(system_instruction, memory_context)
        if len(content) < self._min_cache_chars:
            return None

        key = (group_id, model)
        content_fp = fingerprint(content)
        now = self._clock()

        entry = self._entries.get(key)
        if entry is not None and entry.fingerprint == content_fp and entry.expires_at > now:
            return entry.handle

        try:
            handle = await self._creator(model, content, self._ttl_seconds)
        except Exception as e:
            _logger.warning("Context cache creation failed for %s/%s: %s", group_id, model, e)
            return None

        self.creations += 1
        self._entries[key] = _CacheEntry(
            handle=handle,
            fingerprint=content_fp,
            expires_at=now + self._ttl_seconds,
        )
        _logger.info("Created context cache %s for %s/%s", handle, group_id, model)
        return handle

    def invalidate(self, group_id: str, model: str | None = None) -> None:
        """Forget cached handles for a group (optionally one model only)."""
        for key in list(self._entries):
            if key[0] == group_id and (model is None or key[1] == model):
                del self._entries[key]
