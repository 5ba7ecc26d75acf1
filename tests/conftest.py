"""
Shared fixtures: fresh singletons per test and in-process fakes for the
News Source, Summarizer and Answerer.
"""

import pytest
from unittest.mock import Mock

from topic_memory.config import reset_config
from topic_memory.models import RawArticle
from topic_memory.storage.partition_store import PartitionStore
from topic_memory.topics import TopicTable, reset_topic_table

CONFIG_ENV_KEYS = (
    'SERPER_API_KEY', 'SERPER_URL', 'NEWS_TIMEOUT', 'MAX_ARTICLES_PER_TOPIC',
    'NEWS_REQUEST_DELAY', 'TOPIC_TIMEOUT', 'OLLAMA_MODEL', 'OLLAMA_BASE_URL',
    'OLLAMA_TIMEOUT', 'SUMMARY_TEMPERATURE', 'ANSWER_TEMPERATURE', 'PARTITION_DIR',
    'CONTEXT_WINDOW', 'TOPICS_FILE', 'SCHEDULER_ENABLED', 'SCHEDULER_INTERVAL',
    'API_HOST', 'API_PORT', 'LOG_LEVEL',
)


@pytest.fixture(autouse=True)
def reset_singletons(monkeypatch):
    """Isolate tests from each other and from a developer's .env."""
    for key in CONFIG_ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    reset_config()
    reset_topic_table()
    yield
    reset_config()
    reset_topic_table()


@pytest.fixture
def small_table():
    """A compact topic table with the same shape as the shipped one."""
    return TopicTable.from_dict({
        'default_topic': 'season_2025',
        'topics': [
            {'key': 'season_2025', 'aliases': ['championship', 'standings']},
            {'key': 'team_ferrari', 'aliases': ['Ferrari', 'maranello']},
            {'key': 'driver_hamilton', 'aliases': ['hamilton', 'lewis']},
            {'key': 'race_2025_r08_monaco', 'aliases': ['monte carlo']},
        ],
        'query_templates': [
            {'prefix': 'team_', 'template': '{name} F1 2025 team news'},
            {'prefix': 'race_2025_', 'template': '{location} Grand Prix 2025'},
        ],
        'default_query': 'Formula 1 2025 season news',
        'scopes': [
            {'prefix': 'team_', 'scope': 'team'},
            {'prefix': 'driver_', 'scope': 'driver'},
            {'prefix': 'race_', 'scope': 'race'},
        ],
        'default_scope': 'season',
    })


@pytest.fixture
def store(tmp_path):
    return PartitionStore(str(tmp_path / 'partitions'))


def make_article(name: str, published_at: str = '2025-05-25T12:00:00Z') -> RawArticle:
    return RawArticle(
        title=f'Title {name}',
        content=f'Snippet {name}',
        url=f'https://example.com/{name}',
        published_at=published_at,
    )


@pytest.fixture
def article_factory():
    return make_article


@pytest.fixture
def fake_summarizer():
    """Summarizer returning 'S_<suffix of the article url>'."""
    summarizer = Mock()
    summarizer.summarize.side_effect = lambda article: f"S_{article.url.rsplit('/', 1)[-1]}"
    return summarizer


@pytest.fixture
def fake_answerer():
    answerer = Mock()
    answerer.answer.return_value = 'Ferrari scored a podium.'
    return answerer


@pytest.fixture
def fake_news_source():
    news_source = Mock()
    news_source.fetch.return_value = []
    return news_source
