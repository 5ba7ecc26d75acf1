"""
Ingestion Pipeline

Turns fetched news for one topic into knowledge entries:
fetch -> summarize each article -> build entries -> one atomic append.

Collaborator calls happen before the partition lock is taken, so a slow
News Source or Summarizer never holds a partition.
"""

import time
import logging
import threading
from typing import List, Optional, Sequence

from ..config import get_config
from ..models import KnowledgeEntry, RawArticle, utc_now_iso
from ..storage.partition_store import PartitionStore
from ..summarization.summarizer import OllamaSummarizer, SUMMARY_UNAVAILABLE
from ..topics import TopicTable, get_topic_table
from .news_source import NewsSourceError, SerperNewsSource

logger = logging.getLogger(__name__)


class IngestionPipeline:
    """Fetches, summarizes and stores news for one topic at a time."""

    def __init__(
        self,
        store: PartitionStore,
        news_source: Optional[SerperNewsSource] = None,
        summarizer: Optional[OllamaSummarizer] = None,
        topic_table: Optional[TopicTable] = None,
        max_articles: Optional[int] = None
    ):
        """
        Initialize the ingestion pipeline.

        Args:
            store: Partition store receiving new entries
            news_source: News Source client (default: SerperNewsSource)
            summarizer: Summarizer (default: OllamaSummarizer)
            topic_table: Topic table used to build search queries
            max_articles: Articles fetched per topic (default: from configuration)
        """
        self.store = store
        self.news_source = news_source or SerperNewsSource()
        self.summarizer = summarizer or OllamaSummarizer()
        self.topic_table = topic_table or get_topic_table()
        self.max_articles = (
            get_config().max_articles_per_topic if max_articles is None else max_articles
        )
        if self.max_articles < 1:
            raise ValueError(f"max_articles must be at least 1, got {self.max_articles}")

    def fetch_articles(self, topic_key: str) -> List[RawArticle]:
        """
        Fetch raw articles for a topic from the News Source.

        Raises:
            NewsSourceError: If the News Source request fails
        """
        query = self.topic_table.build_news_query(topic_key)
        articles = self.news_source.fetch(query, self.max_articles)
        return articles[:self.max_articles]

    def _summarize(self, article: RawArticle) -> str:
        try:
            return self.summarizer.summarize(article)
        except Exception as e:
            logger.warning(f"Summary failed for {article.url}: {e}")
            return SUMMARY_UNAVAILABLE

    def build_entries(
        self,
        topic_key: str,
        articles: Sequence[RawArticle],
        cancel_event: Optional[threading.Event] = None
    ) -> List[KnowledgeEntry]:
        """
        Summarize articles and build one entry per article, in order.

        A failed summary is replaced by SUMMARY_UNAVAILABLE; the other
        articles are unaffected. When ``cancel_event`` is set, no further
        articles are summarized and the entries built so far are returned.
        """
        scope = self.topic_table.scope_for(topic_key)
        entries = []
        for article in articles:
            if cancel_event is not None and cancel_event.is_set():
                logger.info(f"Entry building for {topic_key} cancelled")
                break
            summary = self._summarize(article)
            entries.append(KnowledgeEntry.create(
                topic_key=topic_key,
                summary=summary,
                source=article.url,
                timestamp=article.published_at,
                scope=scope,
                entry_type='news',
                created_at=utc_now_iso()
            ))
        return entries

    def ingest_articles(self, topic_key: str, articles: Sequence[RawArticle]) -> int:
        """
        Summarize and store already-fetched articles for a topic.

        Args:
            topic_key: Partition to write to
            articles: Raw articles to ingest

        Returns:
            Number of entries added

        Raises:
            PartitionStoreError: If the batch cannot be persisted
        """
        if not articles:
            logger.info(f"No articles to ingest for {topic_key}")
            return 0

        start_time = time.time()
        entries = self.build_entries(topic_key, articles)
        count = self.store_entries(topic_key, entries)

        logger.info(
            f"Ingested {count} entries into {topic_key} "
            f"in {time.time() - start_time:.2f}s"
        )
        return count

    def store_entries(self, topic_key: str, entries: Sequence[KnowledgeEntry]) -> int:
        """
        Append built entries to the topic's partition in one batch.

        Raises:
            PartitionStoreError: If the batch cannot be persisted
        """
        self.store.append(topic_key, entries)
        return len(entries)

    def ingest(self, topic_key: str) -> int:
        """
        Run one ingestion cycle for a topic.

        A News Source failure aborts this topic only: it is logged and
        zero is returned without touching the partition.

        Args:
            topic_key: Topic to refresh

        Returns:
            Number of entries added
        """
        try:
            articles = self.fetch_articles(topic_key)
        except NewsSourceError as e:
            logger.error(f"News fetch failed for {topic_key}: {e}")
            return 0

        if not articles:
            logger.info(f"No articles found for {topic_key}")
            return 0

        return self.ingest_articles(topic_key, articles)
