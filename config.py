import os
import logging

logger = logging.getLogger(__name__)

DEFAULT_ORIGINS = [
    "http://localhost:3000",
    "http://localhost:5173",
    "http://localhost:8080",
]

class Settings:
    """Application settings loaded from environment variables."""

    # AI gateway
    GEMINI_API_KEY: str = os.getenv("GEMINI_API_KEY", "")
    GEMINI_MODEL: str = os.getenv("GEMINI_MODEL", "gemini-1.5-flash")

    # Database
    DATABASE_URL: str = os.getenv("DATABASE_URL", "")

    # Server
    PORT: int = int(os.getenv("PORT", "8000"))
    HOST: str = os.getenv("HOST", "0.0.0.0")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # CORS
    ALLOWED_ORIGINS: list = (
        [o.strip() for o in os.getenv("ALLOWED_ORIGINS", "").split(",") if o.strip()]
        or DEFAULT_ORIGINS
    )

    @classmethod
    def validate(cls):
        """Warn about missing optional configuration."""
        if not cls.GEMINI_API_KEY:
            logger.warning("GEMINI_API_KEY not set. AI endpoints will be unavailable.")
        if not cls.DATABASE_URL:
            logger.warning("DATABASE_URL not set. Database features will be disabled.")

settings = Settings()

logging.basicConfig(level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
