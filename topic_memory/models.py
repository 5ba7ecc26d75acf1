"""
Data Models

Raw articles coming from the News Source and the knowledge entries
persisted per topic partition.
"""

import uuid
from dataclasses import dataclass, asdict
from datetime import datetime, timezone
from typing import Any, Dict, Optional

SCOPES = ('season', 'team', 'driver', 'race')
ENTRY_TYPES = ('result', 'news', 'technical', 'regulation', 'incident')


def utc_now_iso() -> str:
    """Current UTC time as an ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat()


@dataclass
class RawArticle:
    """A fetched news item, consumed immediately by ingestion."""
    title: str
    content: str
    url: str
    published_at: str = ""

    def __post_init__(self):
        if not self.published_at:
            self.published_at = utc_now_iso()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RawArticle':
        """Build from the wire format (``publishedAt``) or snake_case."""
        return cls(
            title=data.get('title') or '',
            content=data.get('content') or '',
            url=data.get('url') or '',
            published_at=data.get('publishedAt') or data.get('published_at') or '',
        )


@dataclass(frozen=True)
class KnowledgeEntry:
    """One summarized fact derived from one ingested article. Immutable."""
    id: str
    topic_key: str
    scope: str
    type: str
    summary: str
    source: str
    timestamp: str
    created_at: str

    @classmethod
    def create(
        cls,
        topic_key: str,
        summary: str,
        source: str,
        timestamp: str,
        scope: str = 'season',
        entry_type: str = 'news',
        created_at: Optional[str] = None
    ) -> 'KnowledgeEntry':
        """Create a new entry with a fresh id."""
        if scope not in SCOPES:
            raise ValueError(f"Unknown scope: {scope}")
        if entry_type not in ENTRY_TYPES:
            raise ValueError(f"Unknown entry type: {entry_type}")

        return cls(
            id=str(uuid.uuid4()),
            topic_key=topic_key,
            scope=scope,
            type=entry_type,
            summary=summary,
            source=source,
            timestamp=timestamp,
            created_at=created_at or utc_now_iso(),
        )

    def to_dict(self) -> Dict[str, str]:
        """Serialize with the camelCase keys used on disk and on the wire."""
        data = asdict(self)
        data['topicKey'] = data.pop('topic_key')
        data['createdAt'] = data.pop('created_at')
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'KnowledgeEntry':
        return cls(
            id=data['id'],
            topic_key=data['topicKey'],
            scope=data.get('scope', 'season'),
            type=data.get('type', 'news'),
            summary=data.get('summary', ''),
            source=data.get('source', ''),
            timestamp=data.get('timestamp', ''),
            created_at=data.get('createdAt', ''),
        )
