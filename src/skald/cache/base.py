"""
Context cache interface.

A context cache holds the static prefix of a turn (system instruction plus
memory summary) provider-side and hands back a handle to reference it.
"""

from __future__ import annotations

import abc as _abc


class ContextCache(_abc.ABC):
    """
    Abstract context cache.

    Returning None is always acceptable: the engine then sends the full
    system instruction inline. Implementations must not raise.
    """

    @_abc.abstractmethod
    async def get_or_create(
        self,
        group_id: str,
        model: str,
        system_instruction: str,
        memory_context: str | None = None,
    ) -> str | None:
        """
        Return a cache handle for this group's static content, or None.

        Args:
            group_id: Group the content belongs to.
            model: Model the cache is created for (caches are model-bound).
            system_instruction: Static system instruction.
            memory_context: Optional memory summary, cached with the instruction.

        Returns:
            Provider handle (e.g. ``cachedContents/abc``) or None.
        """
        ...


class NullContextCache(ContextCache):
    """Cache that never caches."""

    async def get_or_create(
        self,
        group_id: str,  # noqa: ARG002
        model: str,  # noqa: ARG002
        system_instruction: str,  # noqa: ARG002
        memory_context: str | None = None,  # noqa: ARG002
    ) -> str | None:
        return None
