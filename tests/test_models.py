"""
Tests for the data models
"""

import pytest
from dataclasses import FrozenInstanceError

from topic_memory.models import KnowledgeEntry, RawArticle


class TestRawArticle:
    """Test raw article handling."""

    def test_published_at_defaults_to_now(self):
        article = RawArticle(title='t', content='c', url='https://example.com')

        assert article.published_at

    def test_from_wire_format(self):
        article = RawArticle.from_dict({
            'title': 't', 'content': 'c', 'url': 'https://example.com', 'publishedAt': '2025-03-16'
        })

        assert article.published_at == '2025-03-16'

    def test_missing_published_at_from_wire(self):
        article = RawArticle.from_dict({'title': 't', 'content': 'c', 'url': 'https://example.com', 'publishedAt': None})

        assert article.published_at


class TestKnowledgeEntry:
    """Test knowledge entries."""

    def test_create_assigns_id_and_created_at(self):
        entry = KnowledgeEntry.create('team_ferrari', 'S_A', 'https://example.com/A', '2025-03-16')

        assert entry.id
        assert entry.created_at
        assert entry.scope == 'season'
        assert entry.type == 'news'

    def test_entries_are_immutable(self):
        entry = KnowledgeEntry.create('team_ferrari', 'S_A', 'https://example.com/A', '2025-03-16')

        with pytest.raises(FrozenInstanceError):
            entry.summary = 'changed'

    def test_serialization_round_trip(self):
        entry = KnowledgeEntry.create('team_ferrari', 'S_A', 'https://example.com/A', '2025-03-16', scope='team')
        data = entry.to_dict()

        assert data['topicKey'] == 'team_ferrari'
        assert 'topic_key' not in data
        assert KnowledgeEntry.from_dict(data) == entry

    @pytest.mark.parametrize('kwargs', [{'scope': 'galaxy'}, {'entry_type': 'rumour'}])
    def test_rejects_unknown_classification(self, kwargs):
        with pytest.raises(ValueError):
            KnowledgeEntry.create('team_ferrari', 'S', 'u', 't', **kwargs)
