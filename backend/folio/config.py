from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    database_url: str = "sqlite:///./data/folio.db"
    secret_key: str = "dev-secret-key-change-in-production"

    # Redis configuration (debounced search build queue)
    redis_url: str = "redis://localhost:6379"

    # Celery configuration
    celery_broker_url: str = "redis://localhost:6379/0"
    celery_result_backend: str = "redis://localhost:6379/0"

    # Embedding provider: "openai" or "mock"
    embedding_provider: str = "openai"
    openai_api_key: str = ""
    embedding_model: str = "text-embedding-3-small"
    embedding_dimensions: int = 1536
    embedding_timeout_seconds: float = 30.0

    # Search index build settings
    search_build_delay_seconds: int = 30  # debounce window for rapid edits
    search_build_max_batch: int = 5
    search_build_page_size: int = 50
    search_build_retry_seconds: int = 60
    search_sweep_interval_minutes: int = 60

    # Query engine settings
    search_result_limit: int = 50
    search_candidate_cap: int = 100  # per sub-ranking in hybrid retrieval
    search_rrf_k: int = 60

    # Logging
    log_level: str = "INFO"
    log_format: str = "text"  # "text" or "json"

    class Config:
        env_file = ".env"

    @property
    def async_database_url(self) -> str:
        """Convert sqlite:/// to sqlite+aiosqlite:/// for the request path."""
        return self.database_url.replace("sqlite:///", "sqlite+aiosqlite:///")


@lru_cache
def get_settings() -> Settings:
    return Settings()
