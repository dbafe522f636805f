"""
Application Configuration
Loads environment variables and provides typed configuration.
"""
from typing import Optional
from pydantic_settings import BaseSettings
from pydantic import Field
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # LLM backend (any OpenAI-compatible chat-completions server)
    llm_base_url: str = Field(default="http://localhost:11434/v1")
    llm_api_key: str = Field(default="ollama")
    llm_model: str = Field(default="gpt-oss:20b")
    llm_temperature: float = 0.1
    llm_max_tokens: int = 2000
    llm_timeout: float = 120.0
    # Defaults to <base url root>/api/version (Ollama)
    llm_health_url: Optional[str] = None

    # App Settings
    environment: str = Field(default="development")
    log_level: str = Field(default="INFO")
    max_chunk_size: int = Field(default=4000)
    chunk_overlap: int = Field(default=200)
    max_concurrency: int = Field(default=4)

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
