"""Article summarization."""
