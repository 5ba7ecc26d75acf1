"""
News Source Client

Fetches topic news from the Serper news search API and maps the results
to RawArticle objects.
"""

import logging
from typing import Any, Dict, List, Optional

import requests

from ..config import get_config
from ..models import RawArticle

logger = logging.getLogger(__name__)


class NewsSourceError(Exception):
    """Raised when the news search request fails or returns bad data."""
    pass


class SerperNewsSource:
    """
    Client for the Serper news search endpoint.

    Every request is bounded by ``timeout`` seconds and returns at most
    ``count`` articles.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        url: Optional[str] = None,
        timeout: Optional[int] = None,
        session: Optional[requests.Session] = None
    ):
        """
        Initialize the news source client.

        Args:
            api_key: Serper API key (default: from configuration)
            url: Serper news endpoint (default: from configuration)
            timeout: Request timeout in seconds (default: from configuration)
            session: Optional requests session for connection pooling
        """
        config = get_config()
        self.api_key = api_key if api_key is not None else config.serper_api_key
        self.url = url or config.serper_url
        self.timeout = timeout or config.news_timeout
        self.session = session or requests.Session()

    @staticmethod
    def _to_article(item: Dict[str, Any]) -> Optional[RawArticle]:
        link = item.get('link')
        if not link:
            return None
        return RawArticle(
            title=item.get('title') or '',
            content=item.get('snippet') or item.get('description') or '',
            url=link,
            published_at=item.get('date') or '',
        )

    def fetch(self, query: str, count: int) -> List[RawArticle]:
        """
        Search news for a query.

        Args:
            query: Search query string
            count: Maximum number of articles to return

        Returns:
            Up to ``count`` articles, in the order ranked by the API

        Raises:
            NewsSourceError: On connection errors, timeouts, HTTP errors
                or an unexpected response body
        """
        if not self.api_key:
            raise NewsSourceError("SERPER_API_KEY is not configured")

        try:
            response = self.session.post(
                self.url,
                headers={
                    'X-API-KEY': self.api_key,
                    'Content-Type': 'application/json',
                },
                json={'q': query, 'num': count},
                timeout=self.timeout
            )
            response.raise_for_status()
            data = response.json()

        except requests.exceptions.ConnectionError:
            raise NewsSourceError(f"Unable to connect to news source at {self.url}")
        except requests.exceptions.Timeout:
            raise NewsSourceError(f"News request timed out after {self.timeout}s")
        except requests.exceptions.HTTPError as e:
            status = e.response.status_code if e.response is not None else 'unknown'
            raise NewsSourceError(f"News source returned HTTP {status}")
        except ValueError as e:
            raise NewsSourceError(f"Invalid JSON from news source: {e}")
        except requests.exceptions.RequestException as e:
            raise NewsSourceError(f"News request failed: {e}")

        news = data.get('news') if isinstance(data, dict) else None
        if news is None:
            news = []
        if not isinstance(news, list):
            raise NewsSourceError("Unexpected news source response format")

        articles = []
        for item in news[:count]:
            if not isinstance(item, dict):
                continue
            article = self._to_article(item)
            if article:
                articles.append(article)

        logger.info(f"Fetched {len(articles)} articles for query: {query!r}")
        return articles
