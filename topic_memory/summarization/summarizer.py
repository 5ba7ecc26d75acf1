"""
Article Summarizer

Condenses a raw news article (title + snippet) into a short factual
paragraph with an Ollama-hosted LLM.
"""

import logging
from typing import Any, Optional

from langchain_ollama import ChatOllama

from ..config import get_config
from ..models import RawArticle

logger = logging.getLogger(__name__)

# Stored in place of a summary when summarization fails for one article
SUMMARY_UNAVAILABLE = "Summary unavailable."

SUMMARY_PROMPT = """Summarize the following F1 2025 news article into a concise, factual paragraph.
Focus on key stats, race results, or technical updates.

Title: {title}
Snippet: {content}"""


class SummarizerError(Exception):
    """Raised when an article could not be summarized."""
    pass


class OllamaSummarizer:
    """Summarizes articles with a chat model served by Ollama."""

    def __init__(
        self,
        llm: Optional[Any] = None,
        model: Optional[str] = None,
        base_url: Optional[str] = None,
        temperature: Optional[float] = None,
        timeout: Optional[int] = None,
        max_tokens: int = 300
    ):
        """
        Initialize the summarizer.

        Args:
            llm: Pre-built chat model (anything with ``invoke``)
            model: Ollama model name (default: from configuration)
            base_url: Ollama base URL (default: from configuration)
            temperature: Sampling temperature (default: from configuration)
            timeout: Per-request timeout in seconds (default: from configuration)
            max_tokens: Maximum tokens in a summary
        """
        config = get_config()
        self.model = model or config.ollama_model
        self.timeout = timeout or config.ollama_timeout

        self.llm = llm or ChatOllama(
            model=self.model,
            base_url=base_url or config.ollama_base_url,
            temperature=config.summary_temperature if temperature is None else temperature,
            num_predict=max_tokens,
            client_kwargs={'timeout': self.timeout}
        )

    def summarize(self, article: RawArticle) -> str:
        """
        Summarize one article.

        Args:
            article: Article to summarize

        Returns:
            Summary text

        Raises:
            SummarizerError: If the model call fails or returns nothing
        """
        prompt = SUMMARY_PROMPT.format(title=article.title, content=article.content)

        try:
            response = self.llm.invoke(prompt)
        except Exception as e:
            raise SummarizerError(f"Error summarizing {article.url}: {e}")

        text = response.content if hasattr(response, 'content') else str(response)
        text = (text or '').strip()
        if not text:
            raise SummarizerError(f"Empty summary for {article.url}")

        return text
