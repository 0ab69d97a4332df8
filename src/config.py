"""
Configuration management for the sales assistant.
Loads settings from environment variables with validation.
"""

from pathlib import Path
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Paths
    base_dir: Path = Path(__file__).parent.parent
    data_dir: Path = Path(__file__).parent.parent / "data"

    # Telegram (validated at startup, not at import)
    telegram_bot_token: Optional[str] = Field(
        default=None, description="Telegram Bot API token"
    )

    # LLM Provider
    llm_provider: Literal["gigachat"] = Field(
        default="gigachat", description="LLM provider to use"
    )

    # GigaChat
    gigachat_credentials: Optional[str] = Field(
        default=None, description="GigaChat API credentials"
    )
    gigachat_scope: str = Field(
        default="GIGACHAT_API_PERS", description="GigaChat API scope"
    )
    gigachat_model: str = Field(default="GigaChat", description="GigaChat model name")

    # Qdrant
    qdrant_host: str = Field(default="localhost", description="Qdrant host")
    qdrant_port: int = Field(default=6333, description="Qdrant port")
    qdrant_collection_name: str = Field(
        default="store_products", description="Qdrant collection name"
    )

    # Database
    database_url: Optional[str] = Field(
        default=None,
        description="Database connection URL",
    )
    tenant_id: str = Field(default="default", description="Tenant (shop) identifier")

    @property
    def db_url(self) -> str:
        """Get database URL with absolute path."""
        if self.database_url:
            return self.database_url
        return f"sqlite+aiosqlite:///{self.data_dir / 'assistant.db'}"

    # Embeddings
    embedding_model: str = Field(
        default="sentence-transformers/all-MiniLM-L6-v2",
        description="Sentence transformers model for text embeddings",
    )
    embedding_dimension: int = Field(
        default=384, description="Text embedding vector dimension"
    )
    image_embedding_model: str = Field(
        default="clip-ViT-B-32",
        description="Sentence transformers CLIP model for image embeddings",
    )
    image_embedding_dimension: int = Field(
        default=512, description="Image embedding vector dimension"
    )
    image_max_bytes: int = Field(
        default=5 * 1024 * 1024, description="Largest image accepted for search"
    )

    # Retrieval
    rag_match_count: int = Field(default=5, description="Results for narrow queries")
    rag_options_match_count: int = Field(
        default=10, description="Results for recommendation/options queries"
    )
    rag_min_similarity: float = Field(
        default=0.0, description="Similarity threshold for hybrid search"
    )
    rag_strict_similarity: float = Field(
        default=0.3, description="Similarity threshold for pure vector search"
    )
    rag_context_chars: int = Field(
        default=2000, description="Character budget for the product context block"
    )
    category_boost: float = Field(default=1.5, description="Score multiplier for category matches")
    category_penalty: float = Field(default=0.5, description="Lenient penalty for non-matches")
    category_strict_penalty: float = Field(default=0.1, description="Strict penalty for non-matches")
    display_min_similarity: float = Field(
        default=0.3, description="Minimum similarity for products shown to the user"
    )
    last_shown_limit: int = Field(default=5, description="Products remembered for confirmations")

    # Orders
    default_region: str = Field(
        default="KH", description="Region for phone numbers written without a country code"
    )

    # Rate limiting / replay
    rate_limit_window: float = Field(default=30.0, description="Rate limit window, seconds")
    rate_limit_max_events: int = Field(default=4, description="Events per user per window")
    global_rate_limit_max_events: int = Field(
        default=200, description="Events across all users per window"
    )
    replay_ttl: float = Field(default=15 * 60, description="Replay suppression TTL, seconds")
    max_event_age: float = Field(default=10 * 60, description="Oldest event accepted, seconds")

    # Event coalescing
    coalesce_wait: float = Field(default=2.0, description="Coalescing window, seconds")
    coalesce_settle: float = Field(default=0.5, description="Settle delay after a merge, seconds")

    # Reply generation
    response_cache_ttl: float = Field(default=5 * 60, description="Response cache TTL, seconds")
    breaker_threshold: int = Field(default=5, description="Failures before the breaker opens")
    breaker_reset_timeout: float = Field(default=60.0, description="Breaker open period, seconds")
    llm_timeout: float = Field(default=5.0, description="Hard timeout per LLM call, seconds")
    llm_max_retries: int = Field(default=2, description="Retries after the first LLM attempt")
    llm_retry_base_delay: float = Field(default=0.3, description="Base retry backoff, seconds")
    llm_retry_max_delay: float = Field(default=2.0, description="Maximum retry backoff, seconds")
    llm_retry_jitter: float = Field(default=0.1, description="Random jitter added to backoff, seconds")
    llm_max_tokens: int = Field(default=300, description="Output budget per reply")
    llm_temperature: float = Field(default=0.3, description="Sampling temperature")
    max_message_chars: int = Field(default=800, description="Inbound and outbound text clamp")
    history_limit: int = Field(default=8, description="Chat messages sent to the LLM")

    # Conversation summary
    summary_refresh_probability: float = Field(
        default=0.1, description="Chance of refreshing the summary per chat turn"
    )
    summary_min_messages: int = Field(default=20, description="Messages before summarizing")

    # Maintenance
    sweep_interval: float = Field(default=60.0, description="Cache/limiter sweep interval, seconds")

    # Debug
    debug: bool = Field(default=False, description="Debug mode")

    @property
    def sqlite_path(self) -> Path:
        """Path to SQLite database file."""
        return self.data_dir / "assistant.db"


# Global settings instance
settings = Settings()
