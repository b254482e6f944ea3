"""Configuration management using Pydantic Settings."""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="SITESEARCH_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # CMS (Directus) configuration
    directus_url: str = Field(
        default="http://directus:8055",
        description="Base URL of the Directus content API",
    )
    directus_token: Optional[str] = Field(
        default=None,
        description="Static access token for Directus (public role if unset)",
    )

    # Search sources
    site_base_url: str = Field(
        default="http://localhost:8080",
        description="Public base URL the custom index and static index are fetched from",
    )
    search_index_path: str = Field(
        default="/js/search-index.json",
        description="Path of the generated custom search index",
    )
    static_index_path: str = Field(
        default="/static-search/",
        description="URL path prefix of the pre-built static page index",
    )
    static_index_dir: Optional[str] = Field(
        default=None,
        description="Local directory holding the static index, mounted at static_index_path",
    )
    http_timeout: float = Field(default=10.0, description="Outbound HTTP timeout in seconds")

    # Query behaviour
    debounce_seconds: float = Field(default=0.3, description="Trailing debounce for live input")
    min_query_length: int = Field(default=2, description="Shortest query that triggers a search")
    excerpt_length: int = Field(default=150, description="Fallback excerpt length")
    default_static_category: str = Field(
        default="Information",
        description="Category given to static pages without category metadata",
    )
    index_cache_seconds: int = Field(
        default=3600,
        description="Cache lifetime advertised for the generated search index",
    )

    # Application settings
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Logging level")
    host: str = Field(default="0.0.0.0", description="Host to bind to")
    port: int = Field(default=8080, description="Port to bind to")

    # Metrics
    enable_metrics: bool = Field(default=True, description="Enable Prometheus metrics")

    def model_post_init(self, __context) -> None:
        """Normalize path settings after initialization."""
        if not self.static_index_path.startswith("/"):
            self.static_index_path = "/" + self.static_index_path
        if not self.static_index_path.endswith("/"):
            self.static_index_path = self.static_index_path + "/"


# Global settings instance
settings = Settings()
