import os
from typing import List, Optional

from dotenv import load_dotenv

load_dotenv()


class Settings:
    """Runtime configuration read from the environment (and an optional .env file)"""

    def __init__(self):
        self.gemini_api_key: Optional[str] = os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY")
        self.gemini_model = os.getenv("GEMINI_MODEL", "models/gemini-flash-latest")
        self.gemini_temperature = float(os.getenv("GEMINI_TEMPERATURE", "0.7"))
        self.gemini_max_output_tokens = int(os.getenv("GEMINI_MAX_OUTPUT_TOKENS", "2048"))

        self.storage_backend = os.getenv("STORAGE_BACKEND", "memory").lower()
        self.redis_url = os.getenv("REDIS_URL", "redis://localhost:6379/0")

        self.database_url = os.getenv("DATABASE_URL", "sqlite:///./study_companion.db")

        origins = os.getenv("CORS_ORIGINS", "http://localhost:5173,http://localhost:3000")
        self.cors_origins: List[str] = [o.strip() for o in origins.split(",") if o.strip()]

        self.sentry_dsn: Optional[str] = os.getenv("SENTRY_DSN")
        self.environment = os.getenv("ENVIRONMENT", "development")
        self.log_level = os.getenv("LOG_LEVEL", "INFO").upper()


def get_settings() -> Settings:
    """Build a Settings snapshot from the current environment"""
    return Settings()
