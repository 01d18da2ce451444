"""
Abstract base class for streaming model clients.

The engine consumes exactly this surface: an availability check and a
streaming call that yields ``StreamChunk`` objects.
"""

from __future__ import annotations

import abc as _abc
import typing as _typing

import skald.api.types as types


class StreamingClient(_abc.ABC):
    """
    Abstract base for model clients.

    Implementations handle the specifics of a provider's API while
    presenting a single streaming interface.
    """

    @property
    @_abc.abstractmethod
    def name(self) -> str:
        """Client name (e.g., 'gemini')."""
        ...

    @_abc.abstractmethod
    def is_available(self) -> bool:
        """Whether the client has what it needs to make calls (credentials etc.)."""
        ...

    @_abc.abstractmethod
    def stream(
        self,
        options: types.StreamOptions,
    ) -> _typing.AsyncIterator[types.StreamChunk]:
        """
        Perform one model call and yield chunks as they arrive.

        Note: This method is not async itself, but returns an async iterator.
        Implementations should use 'async def' which returns an async generator.

        Args:
            options: Model, contents, system instruction or cache handle, tools.

        Yields:
            StreamChunk objects. The sequence is finite and cannot be restarted.
        """
        ...

    async def aclose(self) -> None:  # noqa: B027
        """Release network resources held by the client."""
        pass
