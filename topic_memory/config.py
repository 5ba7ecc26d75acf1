"""
Centralized Configuration Module

Provides a single source of truth for all system configuration parameters.
Loads settings from environment variables with sensible defaults and validation.
"""

import os
from dataclasses import dataclass, field, asdict
from typing import Dict, Any, Optional
from urllib.parse import urlparse
from dotenv import load_dotenv

# Load environment variables
load_dotenv()


class ConfigValidationError(Exception):
    """Raised when configuration validation fails."""
    pass


@dataclass
class Config:
    """
    Centralized configuration for the topic memory service.

    All configuration parameters are loaded from environment variables
    with sensible defaults. Validation is performed on initialization.
    """

    # News Source (Serper) Settings
    serper_api_key: str = field(default="")
    serper_url: str = field(default="https://google.serper.dev/news")
    news_timeout: int = field(default=15)
    max_articles_per_topic: int = field(default=10)

    # Ingestion Pacing
    news_request_delay: float = field(default=2.0)
    topic_timeout: int = field(default=300)

    # Ollama Settings (Summarizer + Answerer)
    ollama_model: str = field(default="llama3.1:latest")
    ollama_base_url: str = field(default="http://localhost:11434")
    ollama_timeout: int = field(default=60)
    summary_temperature: float = field(default=0.2)
    answer_temperature: float = field(default=0.3)

    # Storage
    partition_dir: str = field(default="data/partitions")
    context_window: int = field(default=50)
    topics_file: str = field(default="")

    # Scheduler
    scheduler_enabled: bool = field(default=False)
    scheduler_interval: int = field(default=3600)

    # HTTP API
    api_host: str = field(default="127.0.0.1")
    api_port: int = field(default=8787)

    log_level: str = field(default="INFO")

    def __post_init__(self):
        """Load configuration from environment and validate."""
        self._load_from_environment()
        self._validate()

    def _load_from_environment(self):
        """Load configuration from environment variables."""
        # News Source
        self.serper_api_key = self._get_env_str('SERPER_API_KEY', self.serper_api_key)
        self.serper_url = self._get_env_str('SERPER_URL', self.serper_url)
        self.news_timeout = self._get_env_int('NEWS_TIMEOUT', self.news_timeout)
        self.max_articles_per_topic = self._get_env_int('MAX_ARTICLES_PER_TOPIC', self.max_articles_per_topic)

        # Ingestion Pacing
        self.news_request_delay = self._get_env_float('NEWS_REQUEST_DELAY', self.news_request_delay)
        self.topic_timeout = self._get_env_int('TOPIC_TIMEOUT', self.topic_timeout)

        # Ollama
        self.ollama_model = self._get_env_str('OLLAMA_MODEL', self.ollama_model)
        self.ollama_base_url = self._get_env_str('OLLAMA_BASE_URL', self.ollama_base_url)
        self.ollama_timeout = self._get_env_int('OLLAMA_TIMEOUT', self.ollama_timeout)
        self.summary_temperature = self._get_env_float('SUMMARY_TEMPERATURE', self.summary_temperature)
        self.answer_temperature = self._get_env_float('ANSWER_TEMPERATURE', self.answer_temperature)

        # Storage
        self.partition_dir = self._get_env_path('PARTITION_DIR', self.partition_dir)
        self.context_window = self._get_env_int('CONTEXT_WINDOW', self.context_window)
        self.topics_file = self._get_env_path('TOPICS_FILE', self.topics_file)

        # Scheduler
        self.scheduler_enabled = self._get_env_bool('SCHEDULER_ENABLED', self.scheduler_enabled)
        self.scheduler_interval = self._get_env_int('SCHEDULER_INTERVAL', self.scheduler_interval)

        # HTTP API
        self.api_host = self._get_env_str('API_HOST', self.api_host)
        self.api_port = self._get_env_int('API_PORT', self.api_port)

        self.log_level = self._get_env_str('LOG_LEVEL', self.log_level).upper()

    def _get_env_str(self, key: str, default: str) -> str:
        """Get string value from environment."""
        value = os.getenv(key, default)
        if isinstance(value, str):
            value = value.strip()
        return value

    def _get_env_int(self, key: str, default: int) -> int:
        """Get integer value from environment."""
        value = os.getenv(key)
        if value is None:
            return default

        try:
            return int(value)
        except ValueError:
            raise ConfigValidationError(
                f"Invalid integer value for {key}: '{value}'"
            )

    def _get_env_float(self, key: str, default: float) -> float:
        """Get float value from environment."""
        value = os.getenv(key)
        if value is None:
            return default

        try:
            return float(value)
        except ValueError:
            raise ConfigValidationError(
                f"Invalid float value for {key}: '{value}'"
            )

    def _get_env_bool(self, key: str, default: bool) -> bool:
        """Get boolean value from environment."""
        value = os.getenv(key)
        if value is None:
            return default

        value = value.lower().strip()
        if value in ('true', '1', 'yes', 'on'):
            return True
        elif value in ('false', '0', 'no', 'off'):
            return False
        else:
            return default

    def _get_env_path(self, key: str, default: str) -> str:
        """Get path value from environment with expansion."""
        value = os.getenv(key, default)
        if isinstance(value, str):
            value = value.strip()
            # Expand ~ to home directory
            value = os.path.expanduser(value)
        return value

    def _validate(self):
        """Validate configuration parameters."""
        if not self.ollama_model:
            raise ConfigValidationError("ollama_model cannot be empty")

        positive_int_fields = [
            ('max_articles_per_topic', self.max_articles_per_topic),
            ('scheduler_interval', self.scheduler_interval),
            ('api_port', self.api_port),
        ]

        for field_name, value in positive_int_fields:
            if value <= 0:
                raise ConfigValidationError(
                    f"{field_name} must be positive, got {value}"
                )

        # Timeouts (at least 1 second)
        for field_name, value in (
            ('news_timeout', self.news_timeout),
            ('ollama_timeout', self.ollama_timeout),
            ('topic_timeout', self.topic_timeout),
        ):
            if value < 1:
                raise ConfigValidationError(
                    f"{field_name} must be at least 1, got {value}"
                )

        if self.news_request_delay < 0:
            raise ConfigValidationError(
                f"news_request_delay cannot be negative, got {self.news_request_delay}"
            )

        # 0 disables the context window
        if self.context_window < 0:
            raise ConfigValidationError(
                f"context_window cannot be negative, got {self.context_window}"
            )

        for field_name, value in (
            ('summary_temperature', self.summary_temperature),
            ('answer_temperature', self.answer_temperature),
        ):
            if not 0.0 <= value <= 1.0:
                raise ConfigValidationError(
                    f"{field_name} must be between 0.0 and 1.0, got {value}"
                )

        if self.log_level not in ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'):
            raise ConfigValidationError(f"Invalid log_level: {self.log_level}")

        # Validate URL format
        for field_name, url in (
            ('ollama_base_url', self.ollama_base_url),
            ('serper_url', self.serper_url),
        ):
            parsed = urlparse(url)
            if not all([parsed.scheme, parsed.netloc]):
                raise ConfigValidationError(
                    f"Invalid URL for {field_name}: {url}"
                )

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return asdict(self)

    def __repr__(self) -> str:
        """String representation of configuration (API key masked)."""
        items = []
        for key, value in self.to_dict().items():
            if key == 'serper_api_key' and value:
                value = '***'
            items.append(f"{key}={value!r}")
        return f"Config({', '.join(items)})"


# Singleton instance
_config_instance: Optional[Config] = None


def get_config() -> Config:
    """
    Get the global configuration instance (singleton pattern).

    Returns:
        Config: Global configuration instance
    """
    global _config_instance
    if _config_instance is None:
        _config_instance = Config()
    return _config_instance


def reset_config():
    """Reset the global configuration instance."""
    global _config_instance
    _config_instance = None
