"""Configuration management for the Specter engine."""

from functools import lru_cache

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load environment variables from .env file (only if accessible)
try:
    load_dotenv()
except (PermissionError, OSError):
    # In sandboxed environments, .env might not be accessible
    pass


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    # Environment
    SPECTER_ENV: str = Field(default="dev", description="Environment: dev, test, prod")

    # Generation collaborator (OpenAI-compatible endpoint)
    OPENAI_API_KEY: str = Field(default="", description="API key for the generation endpoint")
    OPENAI_BASE_URL: str = Field(
        default="http://localhost:8080/v1", description="OpenAI-compatible base URL"
    )
    GENERATION_MODEL: str = Field(default="webai-llm", description="Model for complaint drafting")
    GENERATION_STREAM: bool = Field(default=True, description="Request streamed completions")
    GENERATION_TEMPERATURE: float = Field(default=0.2, description="Sampling temperature")
    GENERATION_TIMEOUT: float = Field(default=120.0, description="Generation timeout in seconds")

    # Context-fetch collaborator (Firecrawl)
    FIRECRAWL_API_KEY: str | None = Field(default=None, description="Firecrawl API key")
    FIRECRAWL_BASE_URL: str = Field(
        default="https://api.firecrawl.dev/v1", description="Firecrawl API base URL"
    )
    FIRECRAWL_TIMEOUT: float = Field(default=60.0, description="Scrape timeout in seconds")
    FIRECRAWL_WAIT_FOR_MS: int = Field(
        default=5000, description="How long Firecrawl waits for dynamic content"
    )

    # Search collaborator (SerpApi)
    SERPAPI_API_KEY: str | None = Field(default=None, description="SerpApi API key")
    SERPAPI_URL: str = Field(
        default="https://serpapi.com/search.json", description="SerpApi search endpoint"
    )
    SEARCH_RESULT_LIMIT: int = Field(default=5, description="Max candidate matches per search")
    SEARCH_TIMEOUT: float = Field(default=20.0, description="Search timeout in seconds")

    # Enrichment cache
    ENRICHMENT_CACHE_PATH: str = Field(
        default=".specter/store.json", description="JSON file backing the key-value store"
    )
    ENRICHMENT_CACHE_KEY: str = Field(
        default="classActionEnrichmentCache", description="Store key holding the cache"
    )
    ENRICHMENT_MAX_CONCURRENCY: int = Field(
        default=0, description="Max concurrent context fetches (0 = unbounded)"
    )


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Returns:
        Settings instance
    """
    return Settings()
