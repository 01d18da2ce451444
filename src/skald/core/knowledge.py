"""
Knowledge source interface.

Knowledge is looked up per query and injected into the user message. It is
best-effort: a failing source never fails a turn.
"""

from __future__ import annotations

import abc as _abc


class KnowledgeSource(_abc.ABC):
    """Abstract provider of query-relevant knowledge text."""

    @_abc.abstractmethod
    async def get_relevant_knowledge(self, query_text: str, group_id: str) -> str:
        """
        Return knowledge relevant to a query, or "" when there is none.

        Args:
            query_text: Search text derived from the prompt.
            group_id: Group whose documents should be searched.
        """
        ...


class StaticKnowledgeSource(KnowledgeSource):
    """Returns the same text for every query. Useful for the CLI and tests."""

    def __init__(self, text: str = "") -> None:
        self._text = text

    async def get_relevant_knowledge(
        self,
        query_text: str,  # noqa: ARG002
        group_id: str,  # noqa: ARG002
    ) -> str:
        return self._text
