"""
API configuration settings.
"""

from pydantic_settings import BaseSettings

DEFAULT_SECRET_KEY = "your-secret-key-change-in-production"


class APIConfig(BaseSettings):
    """API configuration settings."""

    # API Settings
    api_title: str = "Book Catalog"
    api_version: str = "1.0.0"
    api_description: str = "Members register books; owners edit them, owners and admins delete them"

    # Server Settings
    host: str = "0.0.0.0"
    port: int = 8000
    debug: bool = False

    # Session Settings
    secret_key: str = DEFAULT_SECRET_KEY
    session_cookie: str = "catalog_session"
    session_max_age: int = 14 * 24 * 3600  # seconds
    https_only: bool = False

    # Logging
    log_level: str = "INFO"

    model_config = {
        "env_file": ".env",
        "extra": "ignore"  # Ignore extra fields from .env
    }


# Global config instance
config = APIConfig()
