"""
Configuration management for the SEO editorial dashboard
"""
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache
from typing import Optional


class Settings(BaseSettings):
    """Application settings"""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    # Application
    app_name: str = "SEO Editorial Dashboard"
    environment: str = "development"
    debug: bool = False
    log_level: str = "INFO"
    log_dir: str = "logs"

    # API
    api_host: str = "0.0.0.0"
    api_port: int = 5000

    # Airtable (record store)
    airtable_api_key: Optional[str] = None
    airtable_base_id: Optional[str] = None
    airtable_api_url: str = "https://api.airtable.com/v0"
    airtable_content_table: str = "content"
    airtable_sites_table: str = "sites"
    airtable_prompts_table: str = "prompts"

    # Text generation (Claude)
    anthropic_api_key: Optional[str] = None
    llm_model: str = "claude-sonnet-4-20250514"
    llm_max_tokens: int = 2000
    generation_timeout_seconds: float = Field(120.0, ge=10.0, le=600.0)
    generation_max_retries: int = Field(2, ge=0, le=5)

    # Image generation (DALL-E)
    openai_api_key: Optional[str] = None
    image_model: str = "dall-e-3"
    image_size: str = "1024x1024"

    # n8n workflow webhooks
    seo_webhook_url: Optional[str] = None
    calendar_webhook_url: Optional[str] = None

    # Uploads
    upload_dir: str = "uploads"
    public_base_url: str = "http://localhost:5000"
    max_upload_bytes: int = 10 * 1024 * 1024

    # Outbound HTTP
    http_timeout_seconds: float = Field(30.0, ge=5.0, le=120.0)
    http_max_attempts: int = Field(3, ge=1, le=6)

    @property
    def airtable_configured(self) -> bool:
        return bool(self.airtable_api_key and self.airtable_base_id)


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
