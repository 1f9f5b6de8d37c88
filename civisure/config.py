"""
CiviSure - Configuration Settings
"""

from pathlib import Path
from pydantic_settings import BaseSettings
from pydantic import model_validator
from typing import Optional


DEFAULT_SECRET_KEY = "civisure-secret-key-change-in-production"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    APP_NAME: str = "CiviSure"
    APP_DESCRIPTION: str = "Public safety reporting, SOS alerts and legal assistance"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = True
    SQL_ECHO: bool = False

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 3000
    CORS_ORIGINS: list[str] = ["*"]

    # Security
    SECRET_KEY: str = DEFAULT_SECRET_KEY
    SESSION_EXPIRE_MINUTES: int = 60 * 24  # 24 hours
    PASSWORD_HASH_ITERATIONS: int = 100000
    PASSWORD_MIN_LENGTH: int = 8

    # Rate limiting (all /api traffic, per client IP)
    RATE_LIMIT_WINDOW_SECONDS: int = 15 * 60
    RATE_LIMIT_MAX_REQUESTS: int = 100

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./data/civisure.db"

    # Evidence uploads
    UPLOAD_DIR: Path = Path("./data/uploads")
    MAX_FILE_SIZE_MB: int = 10
    MAX_EVIDENCE_FILES: int = 5
    ALLOWED_EVIDENCE_EXTENSIONS: set[str] = {
        ".jpg", ".jpeg", ".png", ".gif", ".webp",
        ".pdf", ".mp4", ".mov", ".mp3", ".wav",
    }

    # Legal assistant (Anthropic Messages API)
    ANTHROPIC_API_KEY: Optional[str] = None
    CHATBOT_MODEL: str = "claude-sonnet-4-20250514"
    CHATBOT_MAX_TOKENS: int = 1000
    CHAT_HISTORY_WINDOW: Optional[int] = None  # None forwards the whole history

    # Bootstrap admin account, created at startup when both are set
    DEFAULT_ADMIN_EMAIL: Optional[str] = None
    DEFAULT_ADMIN_PASSWORD: Optional[str] = None
    DEFAULT_ADMIN_NAME: str = "Admin User"

    @model_validator(mode="after")
    def validate_secret_key(self):
        """Refuse to start with the default secret key in production."""
        if not self.DEBUG and self.SECRET_KEY == DEFAULT_SECRET_KEY:
            raise ValueError(
                "SECRET_KEY must be changed from the default value in production. "
                "Set a strong, unique SECRET_KEY in your .env file."
            )
        return self

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


# Create settings instance
settings = Settings()

# Ensure upload directory exists
settings.UPLOAD_DIR.mkdir(parents=True, exist_ok=True)

