from __future__ import annotations

import os
from functools import lru_cache
from typing import List, Optional

from dotenv import load_dotenv


load_dotenv()


def _split_csv(raw: str) -> List[str]:
    return [item.strip() for item in raw.split(",") if item.strip()]


class Settings:
    """Application settings loaded from environment variables.

    Keep all credentials and config centralized here.
    """

    def __init__(self) -> None:
        self.app_env: str = os.getenv("APP_ENV", "development")
        self.port: int = int(os.getenv("PORT", "3001"))
        self.cors_origins: List[str] = _split_csv(os.getenv("CORS_ORIGINS", "http://localhost:3000"))

        self.database_url: Optional[str] = os.getenv("DATABASE_URL")
        self.db_pool_min: int = int(os.getenv("DB_POOL_MIN", "1"))
        self.db_pool_max: int = int(os.getenv("DB_POOL_MAX", "10"))
        # Seconds to wait for a free pooled connection before failing the request
        self.db_pool_timeout: float = float(os.getenv("DB_POOL_TIMEOUT", "30"))

        self.groq_api_key: Optional[str] = os.getenv("GROQ_API_KEY")
        self.assistant_model: str = os.getenv("ASSISTANT_MODEL", "openai/gpt-oss-120b")
        self.temperature: float = float(os.getenv("MODEL_TEMPERATURE", "0.7"))
        self.llm_timeout: float = float(os.getenv("LLM_TIMEOUT", "60"))
        # Empty means server-local time
        self.assistant_timezone: Optional[str] = os.getenv("ASSISTANT_TIMEZONE") or None

        self.clerk_secret_key: Optional[str] = os.getenv("CLERK_SECRET_KEY")
        self.clerk_api_url: str = os.getenv("CLERK_API_URL", "https://api.clerk.com/v1").rstrip("/")
        self.clerk_jwks_url: str = os.getenv("CLERK_JWKS_URL", f"{self.clerk_api_url}/jwks")
        self.clerk_authorized_parties: List[str] = _split_csv(os.getenv("CLERK_AUTHORIZED_PARTIES", ""))


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
