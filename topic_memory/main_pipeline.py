"""
Main Pipeline System

Wires all components into one service:
- Topic table and router
- Partition store
- Ingestion pipeline and scheduler
- Query pipeline
"""

import logging
from typing import Any, Dict, List, Optional, Sequence

from .config import Config, get_config
from .ingestion.news_source import SerperNewsSource
from .ingestion.pipeline import IngestionPipeline
from .ingestion.scheduler import IngestionScheduler
from .models import RawArticle
from .query.answerer import OllamaAnswerer
from .query.pipeline import QueryPipeline, QueryResult
from .routing.router import TopicRouter
from .storage.partition_store import PartitionStore
from .summarization.summarizer import OllamaSummarizer
from .topics import TopicTable, get_topic_table


class UnknownTopicError(KeyError):
    """Raised when an operation addresses a topic key that is not tracked."""
    pass


def setup_logging(level: str = 'INFO'):
    """Configure root logging once for the whole service."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )


class TopicMemorySystem:
    """
    Main system that integrates all components.

    Provides high-level methods for:
    - Routing and answering questions
    - Ingesting news per topic or for every topic
    - System statistics
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        topic_table: Optional[TopicTable] = None,
        store: Optional[PartitionStore] = None,
        news_source: Optional[SerperNewsSource] = None,
        summarizer: Optional[OllamaSummarizer] = None,
        answerer: Optional[OllamaAnswerer] = None,
        request_delay: Optional[float] = None
    ):
        """
        Initialize the topic memory system.

        Args:
            config: Configuration (default: global configuration)
            topic_table: Topic table (default: loaded from config.topics_file)
            store: PartitionStore instance (or None for default)
            news_source: News Source client (or None for default)
            summarizer: Summarizer (or None for default)
            answerer: Answerer (or None for default)
            request_delay: Override for the pause between News Source requests
        """
        self.logger = logging.getLogger(__name__)
        self.config = config or get_config()

        self.topic_table = topic_table or get_topic_table(self.config.topics_file or None)
        self.router = TopicRouter(self.topic_table)
        self.store = store or PartitionStore(self.config.partition_dir)

        self.ingestion = IngestionPipeline(
            store=self.store,
            news_source=news_source,
            summarizer=summarizer,
            topic_table=self.topic_table,
            max_articles=self.config.max_articles_per_topic
        )
        self.scheduler = IngestionScheduler(
            pipeline=self.ingestion,
            topic_table=self.topic_table,
            request_delay=request_delay,
            topic_timeout=self.config.topic_timeout
        )
        self.query_pipeline = QueryPipeline(
            store=self.store,
            answerer=answerer,
            context_window=self.config.context_window
        )

        self.logger.info(
            f"TopicMemorySystem initialized with {len(self.topic_table)} topics"
        )

    def _require_topic(self, topic_key: str) -> None:
        if topic_key not in self.topic_table:
            raise UnknownTopicError(topic_key)

    def ask(self, question: str, topic_hint: Optional[str] = None) -> Dict[str, Any]:
        """
        Route a question to a topic and answer it from that partition.

        Args:
            question: User's question
            topic_hint: Optional topic key or "auto"

        Returns:
            Dictionary with topicKey, reason, answer and contextUsed

        Raises:
            ValueError: If the question is empty
            PartitionStoreError: If the partition cannot be read
        """
        if not question or not question.strip():
            raise ValueError("Question cannot be empty")

        topic_key, reason = self.router.resolve_with_reason(question, topic_hint)
        self.logger.info(
            f"[Router] User asked: {question!r} -> topicKey={topic_key!r} (reason={reason})"
        )

        result = self.query_pipeline.query(topic_key, question)
        return {
            'topicKey': topic_key,
            'reason': reason,
            **result.to_dict(),
        }

    def query_topic(self, topic_key: str, question: str) -> QueryResult:
        """Answer a question from an explicitly addressed partition."""
        self._require_topic(topic_key)
        return self.query_pipeline.query(topic_key, question)

    def ingest_topic(self, topic_key: str) -> int:
        """Fetch, summarize and store news for one tracked topic."""
        self._require_topic(topic_key)
        return self.ingestion.ingest(topic_key)

    def update_topic(self, topic_key: str, articles: Sequence[RawArticle]) -> int:
        """Summarize and store already-fetched articles for one tracked topic."""
        self._require_topic(topic_key)
        return self.ingestion.ingest_articles(topic_key, articles)

    def refresh_all(
        self,
        topic_keys: Optional[List[str]] = None,
        show_progress: bool = False
    ) -> Dict[str, Any]:
        """
        Run one paced ingestion cycle over tracked topics.

        Args:
            topic_keys: Subset of topics (default: all tracked topics)
            show_progress: Show a progress bar

        Returns:
            Cycle results from the scheduler
        """
        if topic_keys:
            for topic_key in topic_keys:
                self._require_topic(topic_key)
        return self.scheduler.run_cycle(topic_keys, show_progress=show_progress)

    def start_scheduler(self, interval_seconds: Optional[float] = None) -> None:
        self.scheduler.start(interval_seconds or self.config.scheduler_interval)

    def stop_scheduler(self) -> None:
        self.scheduler.stop()

    def get_stats(self) -> Dict[str, Any]:
        """
        Get comprehensive system statistics.

        Returns:
            Dictionary with statistics
        """
        store_stats = self.store.get_stats()
        return {
            'tracked_topics': len(self.topic_table),
            'total_partitions': store_stats['total_partitions'],
            'total_entries': store_stats['total_entries'],
            'context_window': self.query_pipeline.context_window,
            'store_stats': store_stats,
            'last_cycle': self.scheduler.last_cycle,
        }
