"""
Application configuration.
All sensitive values loaded from environment variables.
"""
from typing import List, Optional
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    # Database
    DATABASE_URL: str = "postgresql+asyncpg://postgres:postgres@db:5432/wodlog"
    DATABASE_ECHO: bool = False

    # CORS
    CORS_ORIGINS: List[str] = ["http://localhost:5173", "http://127.0.0.1:5173"]

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "json"  # json or console

    # Whiteboard extraction service (AI vision endpoint)
    EXTRACTION_SERVICE_URL: Optional[str] = None
    EXTRACTION_API_KEY: str = ""
    EXTRACTION_TIMEOUT_SECONDS: float = 60.0

    # Extraction Debug Logging - logs request/response sizes and response body
    # WARNING: response bodies may contain user-written notes
    EXTRACTION_DEBUG_LOG: bool = False
    EXTRACTION_DEBUG_LOG_MAX_LENGTH: int = 2000

    # Score validation tolerances
    ROUND_TIME_TOLERANCE_SECONDS: int = 2
    AMRAP_TOLERANCE_REPS: int = 1

    # Movement analytics
    ANALYTICS_TOP_MOVEMENTS: int = 10
    ANALYTICS_TOP_VOLUME: int = 5

    # Fuzzy movement matching (0-100 similarity score)
    MOVEMENT_FUZZY_MATCH: bool = False
    MOVEMENT_FUZZY_THRESHOLD: float = 70.0

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
