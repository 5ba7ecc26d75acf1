"""
Ingestion Scheduler

Refreshes every tracked topic, detached from any client request.

News Source requests are issued from the driver thread, one topic at a
time, with a minimum delay between consecutive requests. Summarizing each
topic's articles runs on a worker pool so a slow topic does not hold up
the fetches that follow it. A topic's batch is appended by the driver
thread only if its summaries finish within the per-topic timeout.
"""

import time
import logging
import threading
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeoutError
from typing import Any, Dict, Iterable, Optional

from tqdm import tqdm

from ..config import get_config
from ..topics import TopicTable, get_topic_table
from .news_source import NewsSourceError
from .pipeline import IngestionPipeline

logger = logging.getLogger(__name__)


class IngestionScheduler:
    """Paced, failure-isolated ingestion over many topics."""

    def __init__(
        self,
        pipeline: IngestionPipeline,
        topic_table: Optional[TopicTable] = None,
        request_delay: Optional[float] = None,
        topic_timeout: Optional[float] = None,
        max_workers: int = 4
    ):
        """
        Initialize the scheduler.

        Args:
            pipeline: Ingestion pipeline used for every topic
            topic_table: Topics refreshed by default (default: global table)
            request_delay: Minimum seconds between News Source requests
            topic_timeout: Seconds to wait for one topic's summaries
            max_workers: Worker threads for summarize + store
        """
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        if topic_timeout is not None and topic_timeout <= 0:
            raise ValueError(f"topic_timeout must be positive, got {topic_timeout}")

        config = get_config()
        self.pipeline = pipeline
        self.topic_table = topic_table or get_topic_table()
        self.request_delay = config.news_request_delay if request_delay is None else request_delay
        self.topic_timeout = config.topic_timeout if topic_timeout is None else topic_timeout
        self.max_workers = max_workers

        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self.last_cycle: Optional[Dict[str, Any]] = None

    def _pace(self, last_request: Optional[float]) -> bool:
        """
        Sleep until ``request_delay`` has passed since the last request.

        Returns:
            False if the scheduler was stopped while waiting
        """
        if last_request is None:
            return True
        remaining = self.request_delay - (time.monotonic() - last_request)
        if remaining > 0:
            return not self._stop_event.wait(remaining)
        return not self._stop_event.is_set()

    def run_cycle(
        self,
        topic_keys: Optional[Iterable[str]] = None,
        show_progress: bool = False
    ) -> Dict[str, Any]:
        """
        Run one ingestion cycle.

        Args:
            topic_keys: Topics to refresh (default: every tracked topic, in order)
            show_progress: Show a progress bar over topics

        Returns:
            Dictionary with cycle results:
                - total: int
                - updated: int
                - empty: int
                - failed: int
                - entries_added: int
                - processing_time: float
                - details: per-topic results
        """
        keys = list(topic_keys) if topic_keys is not None else list(self.topic_table.topic_keys)
        start_time = time.time()
        details: Dict[str, Dict[str, Any]] = {}
        pending = []

        logger.info(f"Starting ingestion cycle for {len(keys)} topics")

        executor = ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix='ingest')
        try:
            last_request = None
            iterator = tqdm(keys, desc="Fetching topics") if show_progress else keys

            for topic_key in iterator:
                if not self._pace(last_request):
                    logger.info("Ingestion cycle stopped before all topics were fetched")
                    break

                last_request = time.monotonic()
                try:
                    articles = self.pipeline.fetch_articles(topic_key)
                except NewsSourceError as e:
                    logger.error(f"News fetch failed for {topic_key}: {e}")
                    details[topic_key] = {'status': 'failed', 'count': 0, 'error': str(e)}
                    continue
                except Exception as e:
                    logger.error(f"Unexpected error fetching {topic_key}: {e}")
                    details[topic_key] = {'status': 'failed', 'count': 0, 'error': str(e)}
                    continue

                if not articles:
                    logger.info(f"No articles found for {topic_key}")
                    details[topic_key] = {'status': 'empty', 'count': 0}
                    continue

                cancel_event = threading.Event()
                future = executor.submit(
                    self.pipeline.build_entries, topic_key, articles, cancel_event
                )
                pending.append((topic_key, future, cancel_event, time.monotonic()))

            # Entries are stored from this thread, so a timed-out topic never writes
            for topic_key, future, cancel_event, submitted in pending:
                remaining = max(0.0, self.topic_timeout - (time.monotonic() - submitted))
                try:
                    entries = future.result(timeout=remaining)
                    count = self.pipeline.store_entries(topic_key, entries)
                    details[topic_key] = {'status': 'updated', 'count': count}
                except FutureTimeoutError:
                    cancel_event.set()
                    future.cancel()
                    logger.error(f"Ingestion for {topic_key} timed out after {self.topic_timeout}s")
                    details[topic_key] = {'status': 'failed', 'count': 0, 'error': 'timeout'}
                except Exception as e:
                    logger.error(f"Error processing {topic_key}: {e}")
                    details[topic_key] = {'status': 'failed', 'count': 0, 'error': str(e)}
        finally:
            for _, _, event, _ in pending:
                event.set()
            executor.shutdown(wait=False, cancel_futures=True)

        statuses = [d['status'] for d in details.values()]
        result = {
            'total': len(keys),
            'updated': statuses.count('updated'),
            'empty': statuses.count('empty'),
            'failed': statuses.count('failed'),
            'entries_added': sum(d['count'] for d in details.values()),
            'processing_time': time.time() - start_time,
            'details': details,
        }
        self.last_cycle = result

        logger.info(
            f"Ingestion cycle complete: {result['updated']} updated, "
            f"{result['empty']} empty, {result['failed']} failed, "
            f"{result['entries_added']} entries added in {result['processing_time']:.2f}s"
        )
        return result

    def _run_forever(self, interval_seconds: float) -> None:
        while not self._stop_event.is_set():
            try:
                self.run_cycle()
            except Exception as e:
                logger.error(f"Ingestion cycle crashed: {e}")
            self._stop_event.wait(interval_seconds)

    def start(self, interval_seconds: Optional[float] = None) -> None:
        """
        Start periodic ingestion on a daemon thread.

        Args:
            interval_seconds: Seconds between cycles (default: from configuration)
        """
        if self.is_running():
            logger.warning("Ingestion scheduler already running")
            return

        interval = interval_seconds or get_config().scheduler_interval
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run_forever,
            args=(interval,),
            name='ingestion-scheduler',
            daemon=True
        )
        self._thread.start()
        logger.info(f"Ingestion scheduler started (interval: {interval}s)")

    def stop(self, timeout: Optional[float] = None) -> None:
        """Signal the periodic thread to stop and wait for it."""
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout)
            if self._thread.is_alive():
                logger.warning("Ingestion scheduler did not stop within timeout")
                return
            self._thread = None
        self._stop_event.clear()
        logger.info("Ingestion scheduler stopped")

    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()
