"""
Runtime settings for the team CRM API.

Values come from the process environment (a local .env file is loaded
first). SUPABASE_URL and SUPABASE_PUBLISHABLE_KEY are required; everything
else has a default.
"""
import logging
import os
from typing import List, Tuple
from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)


def _csv(name: str) -> List[str]:
    return [item.strip() for item in os.getenv(name, "").split(",") if item.strip()]


class Settings:
    """Settings read once at import time."""

    # Supabase project
    SUPABASE_URL: str = os.getenv("SUPABASE_URL", "").rstrip("/")
    SUPABASE_PUBLISHABLE_KEY: str = os.getenv("SUPABASE_PUBLISHABLE_KEY", "")
    SUPABASE_TIMEOUT_SECONDS: int = int(os.getenv("SUPABASE_TIMEOUT_SECONDS", "10"))

    # Access tokens are ES256 JWTs minted by Supabase Auth for the
    # "authenticated" role
    JWT_ALGORITHMS: Tuple[str, ...] = ("ES256",)
    JWT_AUDIENCE: str = "authenticated"

    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    MIGRATIONS_OUTPUT_DIR: str = os.getenv("MIGRATIONS_OUTPUT_DIR", "supabase/migrations")

    # Production only; other environments allow every origin
    CORS_ALLOWED_ORIGINS: List[str] = _csv("CORS_ALLOWED_ORIGINS")

    @property
    def SUPABASE_JWKS_URL(self) -> str:
        if not self.SUPABASE_URL:
            return ""
        return f"{self.SUPABASE_URL}/auth/v1/.well-known/jwks.json"

    @property
    def SUPABASE_JWT_ISSUER(self) -> str:
        return f"{self.SUPABASE_URL}/auth/v1"

    def missing(self) -> List[str]:
        """Names of required settings that are empty."""
        required = {
            "SUPABASE_URL": self.SUPABASE_URL,
            "SUPABASE_PUBLISHABLE_KEY": self.SUPABASE_PUBLISHABLE_KEY,
        }
        return [name for name, value in required.items() if not value]

    def validate(self) -> None:
        """
        Raises:
            ValueError: If a required setting is missing.
        """
        missing = self.missing()
        if missing:
            raise ValueError(
                f"Missing required environment variables: {', '.join(missing)}. "
                "Set them in the environment or in .env."
            )

    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"

    def is_development(self) -> bool:
        return self.ENVIRONMENT.lower() == "development"


settings = Settings()

# Tests set VALIDATE_CONFIG=false before importing the app
if os.getenv("VALIDATE_CONFIG", "true").lower() == "true":
    try:
        settings.validate()
    except ValueError as e:
        if not settings.is_development():
            raise
        logger.warning(f"{e} The API will fail on the first database call.")
