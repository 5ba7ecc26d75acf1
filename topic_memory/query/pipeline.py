"""
Query Pipeline

Loads a topic partition as context and asks the Answerer. The context
passed to the Answerer is returned alongside the answer so callers can
show provenance.
"""

import time
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..config import get_config
from ..models import KnowledgeEntry
from ..storage.partition_store import PartitionStore
from .answerer import OllamaAnswerer

logger = logging.getLogger(__name__)

ANSWER_UNAVAILABLE = "Sorry, I could not generate an answer right now."


@dataclass
class QueryResult:
    """Answer plus the exact context it was generated from."""
    answer: str
    context_used: List[KnowledgeEntry] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'answer': self.answer,
            'contextUsed': [entry.to_dict() for entry in self.context_used],
        }


class QueryPipeline:
    """Answers questions from one topic partition."""

    def __init__(
        self,
        store: PartitionStore,
        answerer: Optional[OllamaAnswerer] = None,
        context_window: Optional[int] = None
    ):
        """
        Initialize the query pipeline.

        Args:
            store: Partition store to read context from
            answerer: Answerer (default: OllamaAnswerer)
            context_window: Most recent entries used as context; 0 uses the
                whole partition (default: from configuration)
        """
        self.store = store
        self.answerer = answerer or OllamaAnswerer()
        self.context_window = (
            get_config().context_window if context_window is None else context_window
        )
        if self.context_window < 0:
            raise ValueError(f"context_window cannot be negative, got {self.context_window}")

    def select_context(self, entries: List[KnowledgeEntry]) -> List[KnowledgeEntry]:
        """Keep the most recent ``context_window`` entries, in arrival order."""
        if self.context_window and len(entries) > self.context_window:
            return entries[-self.context_window:]
        return entries

    def query(self, topic_key: str, question: str) -> QueryResult:
        """
        Answer a question from a topic's stored entries.

        An Answerer failure yields a fixed apology instead of an error.

        Args:
            topic_key: Partition to answer from
            question: User's question

        Returns:
            QueryResult with the answer and the context used

        Raises:
            PartitionStoreError: If the partition cannot be read
        """
        start_time = time.time()
        context = self.select_context(self.store.load(topic_key))

        try:
            answer = self.answerer.answer(question, context)
        except Exception as e:
            logger.error(f"Answer generation failed for {topic_key}: {e}")
            answer = ANSWER_UNAVAILABLE

        logger.info(
            f"Answered question on {topic_key} with {len(context)} context entries "
            f"in {time.time() - start_time:.2f}s"
        )
        return QueryResult(answer=answer, context_used=context)
