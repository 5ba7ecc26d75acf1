"""
Topic Router

Resolves a free-text question, plus an optional explicit hint, to one
tracked topic key. Resolution is driven entirely by the topic table:

1. A tracked hint (other than "auto") is returned unchanged
2. First alias, in table order, found in the lowercased question
3. First topic whose final key segment appears in the question
4. The table's default topic
"""

import logging
from typing import Optional, Tuple

from ..topics import TopicTable, get_topic_table

logger = logging.getLogger(__name__)

AUTO_HINT = "auto"


class TopicRouter:
    """Deterministic, table-driven question router."""

    def __init__(self, topic_table: Optional[TopicTable] = None):
        """
        Initialize the router.

        Args:
            topic_table: Topic table to route against (default: global table)
        """
        self.topic_table = topic_table or get_topic_table()

    def resolve_with_reason(
        self,
        question: Optional[str],
        hint: Optional[str] = None
    ) -> Tuple[str, str]:
        """
        Resolve a question to a topic key and explain which rule matched.

        Args:
            question: Free-text question (None is treated as empty)
            hint: Optional explicit topic key, or "auto"

        Returns:
            Tuple of (topic_key, reason) where reason is one of
            ``hint``, ``alias:<alias>``, ``keyword:<keyword>`` or ``default``
        """
        table = self.topic_table
        q = (question or '').lower()

        if hint and hint != AUTO_HINT and hint in table:
            return hint, 'hint'

        for topic_key in table.topic_keys:
            for alias in table.aliases.get(topic_key, ()):
                if alias in q:
                    return topic_key, f'alias:{alias}'

        for topic_key in table.topic_keys:
            keyword = topic_key.split('_')[-1].lower()
            if keyword and keyword in q:
                return topic_key, f'keyword:{keyword}'

        return table.default_topic, 'default'

    def resolve(self, question: Optional[str], hint: Optional[str] = None) -> str:
        """
        Resolve a question to a tracked topic key. Never raises.

        Args:
            question: Free-text question
            hint: Optional explicit topic key, or "auto"

        Returns:
            A member of the topic table
        """
        topic_key, reason = self.resolve_with_reason(question, hint)
        logger.debug(f"Routed question {question!r} -> {topic_key} ({reason})")
        return topic_key
