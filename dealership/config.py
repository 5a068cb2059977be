"""
API configuration and settings management.
"""
import os
from typing import Optional

from dotenv import load_dotenv

# Load environment variables from .env for local development
load_dotenv()


class Config:
    """Application configuration."""

    # Database
    DB_PATH: str = os.getenv("DEALERSHIP_DB", "./data/db/dealership.db")

    # API settings
    API_TITLE: str = "Car Dealership API"
    API_VERSION: str = "1.0.0"
    API_DESCRIPTION: str = "Admin listing management and AI-assisted car search"

    # CORS settings
    CORS_ORIGINS: list = ["*"]
    CORS_ALLOW_CREDENTIALS: bool = True
    CORS_ALLOW_METHODS: list = ["*"]
    CORS_ALLOW_HEADERS: list = ["*"]

    # Identity: the auth gateway forwards the signed-in user's id in this header
    AUTH_USER_HEADER: str = os.getenv("AUTH_USER_HEADER", "X-Clerk-User-Id")

    # Generative AI
    GEMINI_API_KEY: str = os.getenv("GEMINI_API_KEY", "")
    GEMINI_MODEL: str = os.getenv("GEMINI_MODEL", "gemini-2.5-pro")
    MAX_IMAGE_BYTES: int = int(os.getenv("MAX_IMAGE_BYTES", str(5 * 1024 * 1024)))
    ALLOWED_IMAGE_TYPES: list = ["image/jpeg", "image/jpg", "image/png"]

    # Object storage
    SUPABASE_URL: str = os.getenv("SUPABASE_URL", "")
    SUPABASE_KEY: str = os.getenv("SUPABASE_KEY", "")
    STORAGE_BUCKET: str = os.getenv("STORAGE_BUCKET", "car-images")
    STORAGE_TIMEOUT: int = int(os.getenv("STORAGE_TIMEOUT", "30"))

    # View cache
    CACHE_TTL: int = int(os.getenv("CACHE_TTL", "300"))

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    LOG_FILE: Optional[str] = os.getenv("LOG_FILE") or None

    @classmethod
    def validate(cls) -> None:
        """Validate configuration on startup."""
        if not cls.DB_PATH:
            raise ValueError("Database path not configured")
        if cls.MAX_IMAGE_BYTES <= 0:
            raise ValueError("MAX_IMAGE_BYTES must be positive")
        if bool(cls.SUPABASE_URL) != bool(cls.SUPABASE_KEY):
            raise ValueError("SUPABASE_URL and SUPABASE_KEY must be set together")

    @classmethod
    def storage_enabled(cls) -> bool:
        return bool(cls.SUPABASE_URL and cls.SUPABASE_KEY)


# Global config instance
config = Config()
