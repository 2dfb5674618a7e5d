from pydantic_settings import BaseSettings
from functools import lru_cache
from typing import Optional
import os

class Settings(BaseSettings):
    # AI provider (Gemini through its OpenAI-compatible endpoint by default)
    ai_api_key: str = ""
    ai_base_url: str = "https://generativelanguage.googleapis.com/v1beta/openai/"
    ai_model: str = "gemini-2.0-flash-001"
    ai_timeout_seconds: float = 60.0
    ai_max_retries: int = 3
    ai_max_concurrent: int = 10

    # Database - Railway provides DATABASE_URL, fallback to SQLite for local
    database_url: Optional[str] = None

    # Redis (rate limiting + cache). Empty disables both.
    redis_url: str = ""

    # App Settings
    app_name: str = "CareerPilot"
    app_version: str = "1.0.0"
    debug: bool = False
    log_level: str = "INFO"
    allowed_origins: str = "http://localhost:3000"

    # Rate limiting: sliding window per client IP
    rate_limit_requests: int = 10
    rate_limit_window_seconds: int = 10

    # Cache TTLs (seconds)
    cache_ttl_seconds: int = 300
    user_cache_ttl_seconds: int = 60

    # Feature flags
    enable_technical_challenges: bool = False

    # Code execution sandbox
    code_execution_timeout: float = 10.0

    # API Settings
    backend_host: str = "0.0.0.0"
    backend_port: int = int(os.getenv("PORT", "8000"))

    class Config:
        env_file = ".env"

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        # Auto-detect database URL
        if self.database_url is None:
            self.database_url = "sqlite+aiosqlite:///./careerpilot.db"
        # Railway uses postgres:// or postgresql://, but SQLAlchemy async needs postgresql+asyncpg://
        if self.database_url.startswith("postgres://"):
            self.database_url = self.database_url.replace("postgres://", "postgresql+asyncpg://", 1)
        elif self.database_url.startswith("postgresql://"):
            self.database_url = self.database_url.replace("postgresql://", "postgresql+asyncpg://", 1)

@lru_cache()
def get_settings() -> Settings:
    return Settings()
