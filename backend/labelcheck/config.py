"""Application configuration."""

from pydantic_settings import BaseSettings
from functools import lru_cache
from typing import Optional


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""
    
    # App settings
    app_name: str = "Label Verification API"
    debug: bool = False
    
    # CORS - Allow all origins for prototype (restrict in production)
    cors_origins: list[str] = ["*"]
    
    # Upload limits
    max_upload_size_mb: int = 10
    allowed_media_types: set[str] = {"image/jpeg", "image/png", "image/webp", "image/gif"}
    
    # Extraction service (Anthropic vision)
    anthropic_api_key: Optional[str] = None
    extraction_model: str = "claude-sonnet-4-5-20250929"
    extraction_max_tokens: int = 2048
    extraction_timeout_seconds: float = 60.0
    
    # Batch processing
    batch_concurrency: int = 5  # Items in flight per chunk
    max_batch_size: int = 100
    
    # History
    history_max_entries: int = 50
    
    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
