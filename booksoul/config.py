"""
Configuration module for the BookSoul recommendation backend.

Loads environment variables and validates required settings.
"""
import os
from typing import List
from dotenv import load_dotenv

# Load .env file
load_dotenv()


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


def is_usable_api_key(api_key: str) -> bool:
    """True for a non-empty key that is not the .env.example placeholder."""
    key = (api_key or "").strip()
    return bool(key) and "your_google_api_key" not in key


class Settings:
    """Application settings loaded from environment variables."""

    # Google Gemini API (the only LLM provider)
    GOOGLE_API_KEY: str = os.getenv("GOOGLE_API_KEY", "")
    GEMINI_MODEL: str = os.getenv("GEMINI_MODEL", "gemini-2.5-flash")

    # Completion client behaviour
    LLM_MAX_ATTEMPTS: int = int(os.getenv("LLM_MAX_ATTEMPTS", "2"))
    LLM_RETRY_BASE_DELAY: float = float(os.getenv("LLM_RETRY_BASE_DELAY", "1.0"))
    LLM_TIMEOUT_SECONDS: int = int(os.getenv("LLM_TIMEOUT_SECONDS", "360"))

    # Supabase Configuration (survey_sessions table)
    # Missing values are not fatal: sessions fall back to in-memory storage
    SUPABASE_URL: str = os.getenv("SUPABASE_URL", "")
    SUPABASE_SERVICE_ROLE_KEY: str = os.getenv("SUPABASE_SERVICE_ROLE_KEY", "")

    # Recommendation cache
    # USE_OPTIMIZATIONS switches the pipeline to the "optimized" variant,
    # which is the same pipeline with a TTL on cached results.
    USE_OPTIMIZATIONS: bool = _env_bool("USE_OPTIMIZATIONS")
    CACHE_MAX_SIZE: int = int(os.getenv("CACHE_MAX_SIZE", "1000"))
    CACHE_TTL_SECONDS: int = int(os.getenv("CACHE_TTL_SECONDS", str(30 * 60)))

    # Application Settings
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # CORS Settings
    CORS_ALLOWED_ORIGINS: List[str] = [
        origin.strip()
        for origin in os.getenv("CORS_ALLOWED_ORIGINS", "").split(",")
        if origin.strip()
    ]

    @property
    def cache_ttl(self) -> float | None:
        """TTL applied to cached recommendations, None when caching never expires."""
        if self.USE_OPTIMIZATIONS and self.CACHE_TTL_SECONDS > 0:
            return float(self.CACHE_TTL_SECONDS)
        return None

    @classmethod
    def is_llm_configured(cls) -> bool:
        """Check whether a usable Gemini API key is configured."""
        return is_usable_api_key(cls.GOOGLE_API_KEY)

    @classmethod
    def is_supabase_configured(cls) -> bool:
        """Check whether Supabase credentials look real (not placeholders)."""
        url = cls.SUPABASE_URL.strip()
        key = cls.SUPABASE_SERVICE_ROLE_KEY.strip()
        if not url or not key:
            return False
        placeholders = (
            "placeholder",
            "your_supabase_url",
            "your_supabase_service_role_key",
        )
        return not any(p in url or p in key for p in placeholders)

    @classmethod
    def validate(cls) -> None:
        """
        Validate that all required settings are configured.

        Raises:
            ValueError: If any required setting is missing.
        """
        required_settings = {
            "GOOGLE_API_KEY": cls.GOOGLE_API_KEY,
        }

        missing = [key for key, value in required_settings.items() if not value]

        if missing:
            raise ValueError(
                f"Missing required environment variables: {', '.join(missing)}. "
                "Please check your .env file."
            )

    @classmethod
    def is_production(cls) -> bool:
        """Check if running in production environment."""
        return cls.ENVIRONMENT.lower() == "production"

    @classmethod
    def is_development(cls) -> bool:
        """Check if running in development environment."""
        return cls.ENVIRONMENT.lower() == "development"


# Create a singleton instance
settings = Settings()

# Validate settings on module import (will fail fast if misconfigured)
# Skip validation during tests or when importing for introspection
if os.getenv("VALIDATE_CONFIG", "true").lower() == "true":
    try:
        settings.validate()
    except ValueError as e:
        # In development, warn but don't crash
        if settings.is_development():
            print(f"⚠️  Warning: {e}")
            print("   Recommendations will return 503 until GOOGLE_API_KEY is set.")
        else:
            raise
