"""
Centralized Configuration Module

Single source of truth for provider, storage, ingestion and API settings.
Values come from environment variables (a local .env file is honoured) with
defaults suitable for a local Ollama setup, and are validated on creation.
"""

import os
from dataclasses import dataclass, field, asdict
from typing import Dict, Any, Optional
from urllib.parse import urlparse
from dotenv import load_dotenv

load_dotenv()


SUPPORTED_LLM_PROVIDERS = ('ollama', 'openai', 'mock')
SUPPORTED_VECTOR_BACKENDS = ('faiss', 'keyword')
SUPPORTED_LOG_LEVELS = ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')


class ConfigValidationError(Exception):
    """Raised when configuration validation fails."""
    pass


@dataclass
class Config:
    """
    Configuration for the Article Chat System.

    Every field can be overridden by the upper-cased environment variable of
    the same name (LLM_PROVIDER, DATABASE_PATH, ...). Validation runs on
    initialization and after every update().
    """

    # Generative provider
    llm_provider: str = field(default="ollama")
    llm_model: str = field(default="llama3.2")
    llm_temperature: float = field(default=0.2)
    llm_timeout: int = field(default=60)
    ollama_base_url: str = field(default="http://localhost:11434")
    openai_api_key: str = field(default="", repr=False)
    openai_model: str = field(default="gpt-4o-mini")

    # Embeddings and vector search
    embedding_model: str = field(default="nomic-embed-text")
    embedding_timeout: int = field(default=30)
    chunk_size: int = field(default=1000)
    chunk_overlap: int = field(default=200)
    vector_backend: str = field(default="faiss")
    faiss_index_path: str = field(default="data/embeddings/articles.index")

    # Storage
    database_path: str = field(default="data/articles.db")

    # Query pipeline
    planner_context_k: int = field(default=5)
    request_timeout: int = field(default=120)

    # Article ingestion
    article_timeout: int = field(default=30)
    article_min_text_length: int = field(default=100)
    seed_urls_file: str = field(default="data/seed_urls.txt")
    ingest_seed_on_startup: bool = field(default=True)

    # HTTP service
    api_host: str = field(default="127.0.0.1")
    api_port: int = field(default=8080)
    log_level: str = field(default="INFO")

    def __post_init__(self):
        """Load configuration from environment and validate."""
        self._load_from_environment()
        self._validate()

    def _load_from_environment(self):
        """Load configuration from environment variables."""
        self.llm_provider = self._get_env_str('LLM_PROVIDER', self.llm_provider).lower()
        self.llm_model = self._get_env_str('LLM_MODEL', self.llm_model)
        self.llm_temperature = self._get_env_float('LLM_TEMPERATURE', self.llm_temperature)
        self.llm_timeout = self._get_env_int('LLM_TIMEOUT', self.llm_timeout)
        self.ollama_base_url = self._get_env_str('OLLAMA_BASE_URL', self.ollama_base_url)
        self.openai_api_key = self._get_env_str('OPENAI_API_KEY', self.openai_api_key)
        self.openai_model = self._get_env_str('OPENAI_MODEL', self.openai_model)

        self.embedding_model = self._get_env_str('EMBEDDING_MODEL', self.embedding_model)
        self.embedding_timeout = self._get_env_int('EMBEDDING_TIMEOUT', self.embedding_timeout)
        self.chunk_size = self._get_env_int('CHUNK_SIZE', self.chunk_size)
        self.chunk_overlap = self._get_env_int('CHUNK_OVERLAP', self.chunk_overlap)
        self.vector_backend = self._get_env_str('VECTOR_BACKEND', self.vector_backend).lower()
        self.faiss_index_path = self._get_env_path('FAISS_INDEX_PATH', self.faiss_index_path)

        self.database_path = self._get_env_path('DATABASE_PATH', self.database_path)

        self.planner_context_k = self._get_env_int('PLANNER_CONTEXT_K', self.planner_context_k)
        self.request_timeout = self._get_env_int('REQUEST_TIMEOUT', self.request_timeout)

        self.article_timeout = self._get_env_int('ARTICLE_TIMEOUT', self.article_timeout)
        self.article_min_text_length = self._get_env_int('ARTICLE_MIN_TEXT_LENGTH', self.article_min_text_length)
        self.seed_urls_file = self._get_env_path('SEED_URLS_FILE', self.seed_urls_file)
        self.ingest_seed_on_startup = self._get_env_bool('INGEST_SEED_ON_STARTUP', self.ingest_seed_on_startup)

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
        """Get path value from environment with ~ expansion."""
        value = os.getenv(key, default)
        if isinstance(value, str):
            value = os.path.expanduser(value.strip())
        return value

    def _validate(self):
        """Validate configuration parameters."""
        if self.llm_provider not in SUPPORTED_LLM_PROVIDERS:
            raise ConfigValidationError(
                f"llm_provider must be one of {', '.join(SUPPORTED_LLM_PROVIDERS)}, "
                f"got '{self.llm_provider}'"
            )

        if self.vector_backend not in SUPPORTED_VECTOR_BACKENDS:
            raise ConfigValidationError(
                f"vector_backend must be one of {', '.join(SUPPORTED_VECTOR_BACKENDS)}, "
                f"got '{self.vector_backend}'"
            )

        if self.log_level not in SUPPORTED_LOG_LEVELS:
            raise ConfigValidationError(f"log_level is not a valid level: '{self.log_level}'")

        for field_name in ('llm_model', 'embedding_model', 'database_path'):
            if not getattr(self, field_name):
                raise ConfigValidationError(f"{field_name} cannot be empty")

        if self.llm_provider == 'openai' and not self.openai_api_key:
            raise ConfigValidationError("openai_api_key is required when llm_provider is 'openai'")

        positive_int_fields = [
            ('chunk_size', self.chunk_size),
            ('planner_context_k', self.planner_context_k),
            ('article_min_text_length', self.article_min_text_length),
        ]

        for field_name, value in positive_int_fields:
            if value <= 0:
                raise ConfigValidationError(
                    f"{field_name} must be positive, got {value}"
                )

        if self.chunk_overlap < 0:
            raise ConfigValidationError(
                f"chunk_overlap cannot be negative, got {self.chunk_overlap}"
            )

        if self.chunk_overlap >= self.chunk_size:
            raise ConfigValidationError(
                "chunk_overlap must be less than chunk_size"
            )

        # Timeouts are whole seconds, at least one
        for field_name in ('llm_timeout', 'embedding_timeout', 'article_timeout', 'request_timeout'):
            value = getattr(self, field_name)
            if value < 1:
                raise ConfigValidationError(
                    f"{field_name} must be at least 1, got {value}"
                )

        if not 0.0 <= self.llm_temperature <= 2.0:
            raise ConfigValidationError(
                f"llm_temperature must be between 0.0 and 2.0, got {self.llm_temperature}"
            )

        if not 0 < self.api_port < 65536:
            raise ConfigValidationError(f"api_port out of range: {self.api_port}")

        parsed = urlparse(self.ollama_base_url)
        if not all([parsed.scheme, parsed.netloc]):
            raise ConfigValidationError(
                f"Invalid URL for ollama_base_url: {self.ollama_base_url}"
            )

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary, masking the API key."""
        data = asdict(self)
        if data['openai_api_key']:
            data['openai_api_key'] = '***'
        return data

    def update(self, **kwargs):
        """
        Update configuration values with validation.

        Args:
            **kwargs: Configuration parameters to update

        Raises:
            ConfigValidationError: If a key is unknown or validation fails
        """
        original_values = {}

        try:
            for key, value in kwargs.items():
                if not hasattr(self, key):
                    raise ConfigValidationError(f"Unknown configuration parameter: {key}")
                original_values[key] = getattr(self, key)
                setattr(self, key, value)

            self._validate()

        except Exception:
            # Rollback on validation failure
            for key, value in original_values.items():
                setattr(self, key, value)
            raise

    def get_llm_config(self) -> Dict[str, Any]:
        """Get generative-provider configuration."""
        return {
            'provider': self.llm_provider,
            'model': self.openai_model if self.llm_provider == 'openai' else self.llm_model,
            'temperature': self.llm_temperature,
            'timeout': self.llm_timeout,
        }

    def get_storage_config(self) -> Dict[str, Any]:
        """Get storage-related configuration."""
        return {
            'database_path': self.database_path,
            'vector_backend': self.vector_backend,
            'faiss_index_path': self.faiss_index_path,
        }


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
