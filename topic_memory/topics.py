"""
Topic Table

The static set of tracked topic keys, the human-language aliases used to
route questions to them, and the per-prefix search templates used when
fetching news for a topic. Loaded once per process and never mutated.
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple

logger = logging.getLogger(__name__)

DEFAULT_TOPICS_FILE = Path(__file__).parent / 'topics.json'


class TopicTableError(Exception):
    """Raised when the topic table file is missing or inconsistent."""
    pass


@dataclass(frozen=True)
class TopicTable:
    """
    Immutable topic configuration.

    Attributes:
        topic_keys: Tracked topic keys in declared order
        aliases: topic key -> lowercased aliases, in declared order
        default_topic: Key returned when nothing else matches
        query_templates: (prefix, template) pairs for News Source queries
        default_query: Query used when no template prefix matches
        scopes: (prefix, scope) pairs for entry classification
        default_scope: Scope used when no prefix matches
    """
    topic_keys: Tuple[str, ...]
    aliases: Mapping[str, Tuple[str, ...]]
    default_topic: str
    query_templates: Tuple[Tuple[str, str], ...] = ()
    default_query: str = ""
    scopes: Tuple[Tuple[str, str], ...] = ()
    default_scope: str = "season"

    def __contains__(self, topic_key: object) -> bool:
        return topic_key in self.topic_keys

    def __len__(self) -> int:
        return len(self.topic_keys)

    def build_news_query(self, topic_key: str) -> str:
        """
        Build the News Source search string for a topic.

        The first template whose prefix matches the key wins. ``{name}`` is
        the rest of the key with underscores turned into spaces and
        ``{location}`` is its final underscore-delimited segment.
        """
        for prefix, template in self.query_templates:
            if topic_key.startswith(prefix):
                name = topic_key[len(prefix):].replace('_', ' ')
                location = topic_key.split('_')[-1]
                return template.format(name=name, location=location)
        return self.default_query or topic_key.replace('_', ' ')

    def scope_for(self, topic_key: str) -> str:
        """Classify a topic key into an entry scope by prefix."""
        for prefix, scope in self.scopes:
            if topic_key.startswith(prefix):
                return scope
        return self.default_scope

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'TopicTable':
        """
        Build and validate a table from its JSON representation.

        Raises:
            TopicTableError: If required fields are missing or inconsistent
        """
        try:
            topics = data['topics']
            default_topic = data['default_topic']
        except KeyError as e:
            raise TopicTableError(f"Topic table is missing required field {e}")

        topic_keys = []
        aliases: Dict[str, Tuple[str, ...]] = {}
        for topic in topics:
            key = topic.get('key')
            if not key:
                raise TopicTableError(f"Topic without a key: {topic!r}")
            if key in aliases:
                raise TopicTableError(f"Duplicate topic key: {key}")
            topic_keys.append(key)
            aliases[key] = tuple(
                alias.lower() for alias in topic.get('aliases', []) if alias
            )

        if not topic_keys:
            raise TopicTableError("Topic table must declare at least one topic")

        if default_topic not in aliases:
            raise TopicTableError(
                f"Default topic '{default_topic}' is not a tracked topic"
            )

        query_templates = tuple(
            (item['prefix'], item['template'])
            for item in data.get('query_templates', [])
        )
        scopes = tuple(
            (item['prefix'], item['scope'])
            for item in data.get('scopes', [])
        )

        return cls(
            topic_keys=tuple(topic_keys),
            aliases=MappingProxyType(aliases),
            default_topic=default_topic,
            query_templates=query_templates,
            default_query=data.get('default_query', ''),
            scopes=scopes,
            default_scope=data.get('default_scope', 'season'),
        )


def load_topic_table(path: Optional[str] = None) -> TopicTable:
    """
    Load the topic table from a JSON file.

    Args:
        path: JSON file to load (default: the table shipped with the package)

    Returns:
        Validated, immutable TopicTable

    Raises:
        TopicTableError: If the file cannot be read or is invalid
    """
    table_path = Path(path) if path else DEFAULT_TOPICS_FILE

    try:
        with open(table_path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except FileNotFoundError:
        raise TopicTableError(f"Topic table not found: {table_path}")
    except json.JSONDecodeError as e:
        raise TopicTableError(f"Invalid JSON in topic table {table_path}: {e}")

    table = TopicTable.from_dict(data)
    logger.info(f"Loaded topic table with {len(table)} topics from {table_path}")
    return table


# Singleton instance
_table_instance: Optional[TopicTable] = None


def get_topic_table(path: Optional[str] = None) -> TopicTable:
    """
    Get the process-wide topic table, loading it on first use.

    Args:
        path: Table file used only on the first call

    Returns:
        TopicTable: Global topic table
    """
    global _table_instance
    if _table_instance is None:
        _table_instance = load_topic_table(path)
    return _table_instance


def reset_topic_table():
    """Reset the global topic table instance."""
    global _table_instance
    _table_instance = None
