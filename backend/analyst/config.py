from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    log_level: str = "INFO"

    # Completion service: "openai", "anthropic", "google" or "mock"
    completion_provider: str = "openai"
    openai_api_key: str = ""
    anthropic_api_key: str = ""
    google_api_key: str = ""

    # Provider defaults are used when these are empty
    embedding_model: str = ""
    completion_model: str = ""

    # Timeout applied to every completion-service call
    completion_timeout_seconds: float = 30.0

    # Cache configuration: "memory" or "redis"
    cache_backend: str = "memory"
    cache_results: bool = True
    redis_url: str = "redis://localhost:6379"

    # Query generation
    max_queries_per_source: int = 5
    use_semantic_enhancement: bool = True
    max_prompt_length: int = 4000

    # Relevance scoring
    enable_semantic_scoring: bool = True
    max_embedding_text_length: int = 8000
    scoring_batch_size: int = 10
    min_relevance_threshold: float = 0.3

    # Default scoring weights (normalised by their sum at aggregation time)
    weight_semantic: float = 0.35
    weight_keyword: float = 0.25
    weight_category: float = 0.20
    weight_location: float = 0.10
    weight_experience: float = 0.10
    weight_deadline: float = 0.05

    class Config:
        env_file = ".env"


@lru_cache
def get_settings() -> Settings:
    return Settings()
