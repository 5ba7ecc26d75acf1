"""
Answerer

Answers a question strictly from a list of knowledge entries using an
Ollama-hosted chat model.
"""

import logging
from typing import Any, List, Optional, Sequence

from langchain_ollama import ChatOllama

from ..config import get_config
from ..models import KnowledgeEntry

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """You are an expert F1 2025 Season Research Assistant.
Answer the user's question using ONLY the provided context entries below.
If the context does not contain the answer, explicitly state that you do not have that information in your database.
Do not hallucinate results that are not in the context.

CONTEXT DATABASE:
{context}"""

EMPTY_CONTEXT = "(no entries stored for this topic yet)"


class AnswererError(Exception):
    """Raised when the model fails to produce an answer."""
    pass


def format_context(context: Sequence[KnowledgeEntry]) -> str:
    """
    Render entries for the prompt, one block per entry in the given order.

    Args:
        context: Entries supplied as context

    Returns:
        Formatted context text
    """
    if not context:
        return EMPTY_CONTEXT

    return "\n\n".join(
        f"[{entry.timestamp}] Source: {entry.source}\nInfo: {entry.summary}"
        for entry in context
    )


class OllamaAnswerer:
    """Context-restricted question answering with a chat model."""

    def __init__(
        self,
        llm: Optional[Any] = None,
        model: Optional[str] = None,
        base_url: Optional[str] = None,
        temperature: Optional[float] = None,
        timeout: Optional[int] = None,
        max_tokens: int = 1000
    ):
        """
        Initialize the answerer.

        Args:
            llm: Pre-built chat model (anything with ``invoke``)
            model: Ollama model name (default: from configuration)
            base_url: Ollama base URL (default: from configuration)
            temperature: Sampling temperature (default: from configuration)
            timeout: Per-request timeout in seconds (default: from configuration)
            max_tokens: Maximum tokens in an answer
        """
        config = get_config()
        self.model = model or config.ollama_model
        self.timeout = timeout or config.ollama_timeout

        self.llm = llm or ChatOllama(
            model=self.model,
            base_url=base_url or config.ollama_base_url,
            temperature=config.answer_temperature if temperature is None else temperature,
            num_predict=max_tokens,
            client_kwargs={'timeout': self.timeout}
        )

    def build_messages(self, question: str, context: Sequence[KnowledgeEntry]) -> List[tuple]:
        """Build the system + user message pair sent to the model."""
        return [
            ('system', SYSTEM_PROMPT.format(context=format_context(context))),
            ('human', question),
        ]

    def answer(self, question: str, context: Sequence[KnowledgeEntry]) -> str:
        """
        Answer a question from the given context only.

        Args:
            question: User's question
            context: Entries the answer must be based on

        Returns:
            Answer text

        Raises:
            AnswererError: If the model call fails or returns nothing
        """
        try:
            response = self.llm.invoke(self.build_messages(question, context))
        except Exception as e:
            raise AnswererError(f"Error generating answer with LLM: {e}")

        text = response.content if hasattr(response, 'content') else str(response)
        text = (text or '').strip()
        if not text:
            raise AnswererError("LLM returned an empty answer")

        return text
