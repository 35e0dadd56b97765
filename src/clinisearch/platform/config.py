"""
CliniSearch Configuration Management

Uses Pydantic Settings for type-safe configuration from environment variables.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    # =========================================================================
    # APPLICATION
    # =========================================================================
    APP_NAME: str = "CliniSearch"
    APP_ENV: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "info"
    VERSION: str = "0.1.0"

    # =========================================================================
    # API SERVER
    # =========================================================================
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000
    CORS_ORIGINS: str = "http://localhost:4200"

    # =========================================================================
    # DOCUMENT STORE
    # =========================================================================
    # "memory" keeps records in-process, "postgres" uses PostgresConfig
    DOCUMENT_STORE_BACKEND: str = "memory"

    # =========================================================================
    # SEARCH ENGINE
    # =========================================================================
    SEARCH_PAGE_SIZE: int = 20
    SEARCH_CACHE_TTL_SECONDS: float = 300.0
    # Signed-in principals kept in memory; the least recently used is evicted
    SEARCH_MAX_CONTEXTS: int = 1000
    # Upper bound appended to a prefix to close the range query
    SEARCH_PREFIX_SENTINEL: str = "\uf8ff"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True
        extra = "ignore"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Singleton instance for easy import
settings = get_settings()
