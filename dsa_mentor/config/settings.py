"""
dsa_mentor/config/settings.py
Environment-driven settings

All settings are read from environment variables (after .env is loaded).
Settings are built once and cached; use get_settings() everywhere.
"""
import os
import logging
from functools import lru_cache
from typing import List, Optional

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

DEV_JWT_SECRET_KEY = "dev-secret-key-change-in-production"
PRODUCTION_ENVIRONMENTS = {"production", "staging"}

DEFAULT_ORIGINS = [
    "http://localhost:3000",
    "http://localhost:5173",
    "http://127.0.0.1:3000",
    "http://127.0.0.1:5173",
]


def get_bool_env(key: str, default: bool = False) -> bool:
    """Get a boolean value from environment variable."""
    value = os.getenv(key, str(default)).lower()
    return value in ('true', '1', 'yes', 'on', 'enabled')


def get_list_env(key: str) -> List[str]:
    """Comma separated environment variable as a list (empty items dropped)."""
    return [item.strip() for item in os.getenv(key, "").split(",") if item.strip()]


class Settings:
    """
    Application settings.

    To add a new setting:
    1. Read it from the environment in __init__
    2. Document it in the README
    3. Use it through get_settings()
    """

    def __init__(self):
        self.ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development").lower()
        self.DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./dsa_mentor.db")

        # Session tokens
        self.JWT_SECRET_KEY: Optional[str] = os.getenv("JWT_SECRET_KEY") or None
        self.JWT_ALGORITHM: str = "HS256"
        self.SESSION_TOKEN_EXPIRE_DAYS: int = 7

        # Second factor
        self.MFA_ISSUER: str = os.getenv("MFA_ISSUER", "DSA Mentor")

        # Auth rate limiting (per client IP)
        self.RATE_LIMIT_ENABLED: bool = get_bool_env("RATE_LIMIT_ENABLED", True)
        self.AUTH_RATE_LIMIT: str = os.getenv("AUTH_RATE_LIMIT", "5/minute")

        # Server-side day completion gate (off = trust the client)
        self.ENFORCE_COMPLETION_GATE: bool = get_bool_env("ENFORCE_COMPLETION_GATE", False)

        self.ALLOWED_ORIGINS: List[str] = DEFAULT_ORIGINS + get_list_env("ALLOWED_ORIGINS")

        self.HOST: str = os.getenv("HOST", "0.0.0.0")
        self.PORT: int = int(os.getenv("PORT", "8000"))

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT in PRODUCTION_ENVIRONMENTS

    def resolve_jwt_secret(self) -> str:
        """
        Return the session signing key.

        Raises:
            EnvironmentError: JWT_SECRET_KEY missing in a production-like environment
        """
        if self.JWT_SECRET_KEY:
            return self.JWT_SECRET_KEY

        if self.is_production:
            logger.error(f"JWT_SECRET_KEY is required when ENVIRONMENT={self.ENVIRONMENT}")
            raise EnvironmentError("Missing required environment variable: JWT_SECRET_KEY")

        logger.warning("⚠️ JWT_SECRET_KEY not set - using the DEVELOPMENT signing key")
        return DEV_JWT_SECRET_KEY


@lru_cache()
def get_settings() -> Settings:
    """Cached settings instance."""
    return Settings()
