"""
Settings & Feature Flags

Configuration for the assignment service.
All settings are loaded from environment variables (.env supported).
"""
import os
from typing import Optional

from dotenv import load_dotenv

load_dotenv()


def get_bool_env(key: str, default: bool = False) -> bool:
    """Get a boolean value from environment variable."""
    value = os.getenv(key, str(default)).lower()
    return value in ('true', '1', 'yes', 'on', 'enabled')


def get_int_env(key: str, default: Optional[int] = None) -> Optional[int]:
    """Get an integer value from environment variable, or default when unset/invalid."""
    value = os.getenv(key)
    if value is None or value.strip() == "":
        return default
    try:
        return int(value)
    except ValueError:
        return default


class Settings:
    """
    Application settings.

    To add a new setting:
    1. Add it here as a class property
    2. Load it from environment variable
    3. Use it in your code
    """

    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./hackhub.db")

    JWT_SECRET_KEY: str = os.getenv("JWT_SECRET_KEY", "dev-secret-key-change-in-production")
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = get_int_env("ACCESS_TOKEN_EXPIRE_MINUTES", 30)

    ALLOWED_ORIGINS: str = os.getenv("ALLOWED_ORIGINS", "")

    # Assignment engine
    ASSIGNMENT_RANDOM_SEED: Optional[int] = get_int_env("ASSIGNMENT_RANDOM_SEED")
    ASSIGN_ENROLLED_ONLY: bool = get_bool_env("ASSIGN_ENROLLED_ONLY", False)
    BATCH_ASSIGN_RATE_LIMIT: str = os.getenv("BATCH_ASSIGN_RATE_LIMIT", "10/minute")

    # Submissions
    FEATURE_ALLOW_LATE_SUBMISSION: bool = get_bool_env("FEATURE_ALLOW_LATE_SUBMISSION", True)

    # Notifications
    NOTIFY_WEBHOOK_URL: Optional[str] = os.getenv("NOTIFY_WEBHOOK_URL") or None
    NOTIFY_TIMEOUT_SECONDS: float = float(os.getenv("NOTIFY_TIMEOUT_SECONDS", "5"))

