"""
Tests for the Ingestion Scheduler

Tests cover:
- One cycle over every tracked topic
- Failure isolation between topics
- Pacing of News Source requests
- Per-topic timeouts
- Detached periodic execution
"""

import threading
import time

import pytest

from topic_memory.ingestion.news_source import NewsSourceError
from topic_memory.ingestion.pipeline import IngestionPipeline
from topic_memory.ingestion.scheduler import IngestionScheduler


@pytest.fixture
def pipeline(store, fake_news_source, fake_summarizer, small_table):
    return IngestionPipeline(
        store=store,
        news_source=fake_news_source,
        summarizer=fake_summarizer,
        topic_table=small_table,
        max_articles=10
    )


@pytest.fixture
def scheduler(pipeline, small_table):
    return IngestionScheduler(
        pipeline=pipeline,
        topic_table=small_table,
        request_delay=0.0,
        topic_timeout=5
    )


class TestRunCycle:
    """Test a single ingestion cycle."""

    def test_all_topics_in_declared_order(self, scheduler, fake_news_source, small_table):
        scheduler.run_cycle()

        queries = [c.args[0] for c in fake_news_source.fetch.call_args_list]
        assert queries == [small_table.build_news_query(k) for k in small_table.topic_keys]

    def test_cycle_results(self, scheduler, store, fake_news_source, article_factory):
        def fetch(query, count):
            if 'ferrari' in query:
                return [article_factory('A'), article_factory('B')]
            if 'monaco' in query:
                return [article_factory('M')]
            return []

        fake_news_source.fetch.side_effect = fetch

        result = scheduler.run_cycle()

        assert result['total'] == 4
        assert result['updated'] == 2
        assert result['empty'] == 2
        assert result['failed'] == 0
        assert result['entries_added'] == 3
        assert result['details']['team_ferrari'] == {'status': 'updated', 'count': 2}
        assert result['details']['season_2025'] == {'status': 'empty', 'count': 0}
        assert [e.summary for e in store.load('team_ferrari')] == ['S_A', 'S_B']
        assert store.load('season_2025') == []
        assert scheduler.last_cycle is result

    def test_subset_of_topics(self, scheduler, fake_news_source):
        result = scheduler.run_cycle(['driver_hamilton'])

        assert result['total'] == 1
        assert fake_news_source.fetch.call_count == 1

    def test_fetch_failure_is_isolated(self, scheduler, store, fake_news_source, article_factory):
        def fetch(query, count):
            if 'ferrari' in query:
                raise NewsSourceError('HTTP 500')
            return [article_factory('X')]

        fake_news_source.fetch.side_effect = fetch

        result = scheduler.run_cycle()

        assert result['failed'] == 1
        assert result['updated'] == 3
        assert result['details']['team_ferrari']['error'] == 'HTTP 500'
        assert store.load('team_ferrari') == []
        assert store.count('driver_hamilton') == 1

    def test_store_failure_is_isolated(self, scheduler, store, fake_news_source, article_factory):
        fake_news_source.fetch.return_value = [article_factory('X')]
        original_append = store.append

        def append(topic_key, entries):
            if topic_key == 'season_2025':
                raise OSError('disk full')
            original_append(topic_key, entries)

        store.append = append

        result = scheduler.run_cycle()

        assert result['details']['season_2025']['status'] == 'failed'
        assert result['updated'] == 3


    def test_unexpected_fetch_error_is_isolated(self, scheduler, store, fake_news_source, article_factory):
        def fetch(query, count):
            if 'ferrari' in query:
                raise RuntimeError('bad payload')
            return [article_factory('X')]

        fake_news_source.fetch.side_effect = fetch

        result = scheduler.run_cycle()

        assert result['details']['team_ferrari'] == {'status': 'failed', 'count': 0, 'error': 'bad payload'}
        assert result['updated'] == 3
        assert store.count('race_2025_r08_monaco') == 1

class TestPacing:
    """Test the minimum delay between News Source requests."""

    def test_requests_are_spaced(self, pipeline, small_table, fake_news_source):
        call_times = []
        fake_news_source.fetch.side_effect = lambda q, c: call_times.append(time.monotonic()) or []
        scheduler = IngestionScheduler(pipeline, small_table, request_delay=0.1, topic_timeout=5)

        scheduler.run_cycle()

        gaps = [b - a for a, b in zip(call_times, call_times[1:])]
        assert len(gaps) == 3
        assert all(gap >= 0.09 for gap in gaps)

    def test_slow_topic_does_not_stall_next_fetch(
        self, pipeline, small_table, fake_news_source, fake_summarizer, article_factory
    ):
        release = threading.Event()
        fetch_times = {}

        def fetch(query, count):
            fetch_times[query] = time.monotonic()
            return [article_factory('A')]

        def summarize(article):
            # Every topic's summary blocks until released
            release.wait(2)
            return 'S'

        fake_news_source.fetch.side_effect = fetch
        fake_summarizer.summarize.side_effect = summarize
        scheduler = IngestionScheduler(pipeline, small_table, request_delay=0.0, topic_timeout=5)

        timer = threading.Timer(0.3, release.set)
        timer.start()
        try:
            result = scheduler.run_cycle()
        finally:
            timer.cancel()

        times = sorted(fetch_times.values())
        # All fetches were issued before any summary finished
        assert times[-1] - times[0] < 0.25
        assert result['updated'] == 4


class TestTimeouts:
    """Test per-topic timeouts."""

    def test_hung_topic_times_out(self, pipeline, small_table, fake_news_source, fake_summarizer, article_factory):
        fake_news_source.fetch.return_value = [article_factory('A')]
        release = threading.Event()

        def summarize(article):
            if threading.current_thread().name.startswith('ingest') and 'hang' in article.title:
                release.wait(5)
            return 'S'

        def fetch(query, count):
            if 'ferrari' in query:
                return [article_factory('hang')]
            return [article_factory('A')]

        fake_news_source.fetch.side_effect = fetch
        fake_summarizer.summarize.side_effect = summarize
        scheduler = IngestionScheduler(pipeline, small_table, request_delay=0.0, topic_timeout=0.3)

        try:
            start = time.monotonic()
            result = scheduler.run_cycle()
            elapsed = time.monotonic() - start
        finally:
            release.set()

        assert elapsed < 2
        assert result['details']['team_ferrari'] == {'status': 'failed', 'count': 0, 'error': 'timeout'}
        assert result['updated'] == 3

    def test_timed_out_topic_never_writes(
        self, pipeline, store, small_table, fake_news_source, fake_summarizer, article_factory
    ):
        release = threading.Event()
        finished = threading.Event()

        def summarize(article):
            if 'hang' in article.title:
                release.wait(5)
                finished.set()
            return 'S'

        def fetch(query, count):
            if 'ferrari' in query:
                return [article_factory('hang')]
            return [article_factory('A')]

        fake_news_source.fetch.side_effect = fetch
        fake_summarizer.summarize.side_effect = summarize
        scheduler = IngestionScheduler(pipeline, small_table, request_delay=0.0, topic_timeout=0.2)

        try:
            result = scheduler.run_cycle()
        finally:
            release.set()
        assert finished.wait(2)
        time.sleep(0.1)

        assert result['details']['team_ferrari']['count'] == 0
        assert store.count('team_ferrari') == 0
        assert sum(store.count(k) for k in small_table.topic_keys) == result['entries_added']

    def test_explicit_zero_timeout_is_rejected(self, pipeline, small_table):
        with pytest.raises(ValueError, match="topic_timeout"):
            IngestionScheduler(pipeline, small_table, topic_timeout=0)

    def test_invalid_worker_count(self, pipeline, small_table):
        with pytest.raises(ValueError, match="max_workers"):
            IngestionScheduler(pipeline, small_table, max_workers=0)


class TestBackgroundScheduling:
    """Test detached periodic execution."""

    def test_start_and_stop(self, scheduler, fake_news_source):
        cycle_done = threading.Event()
        fake_news_source.fetch.side_effect = lambda q, c: cycle_done.set() or []

        scheduler.start(interval_seconds=60)
        try:
            assert scheduler.is_running()
            assert cycle_done.wait(2)
        finally:
            scheduler.stop(timeout=2)

        assert not scheduler.is_running()

    def test_manual_cycle_after_stop_runs_fully(self, scheduler, fake_news_source):
        scheduler.start(interval_seconds=60)
        scheduler.stop(timeout=2)
        fake_news_source.fetch.reset_mock()

        result = scheduler.run_cycle()

        assert result['total'] == 4
        assert fake_news_source.fetch.call_count == 4
