"""
Configuration management using environment variables.
Handles database, logging, seeding and password hashing settings.
"""

from typing import Optional
from pydantic import Field, validator
from pydantic_settings import BaseSettings
from pathlib import Path


class CatalogConfig(BaseSettings):
    """
    Configuration class for the book catalog.
    Uses pydantic BaseSettings for environment variable management.
    """

    # MongoDB Configuration
    mongodb_url: str = Field(default="mongodb://localhost:27017", env="MONGODB_URL")
    mongodb_database: str = Field(default="book_catalog", env="MONGODB_DATABASE")

    # Logging Configuration
    log_level: str = Field(default="INFO", env="LOG_LEVEL")
    log_format: str = Field(default="json", env="LOG_FORMAT")
    log_file: Optional[str] = Field(default=None, env="LOG_FILE")

    # Startup data
    seed_demo_data: bool = Field(default=False, env="SEED_DEMO_DATA")

    # Password hashing (argon2id)
    password_time_cost: int = Field(default=3, env="PASSWORD_TIME_COST")
    password_memory_cost: int = Field(default=65536, env="PASSWORD_MEMORY_COST")
    password_parallelism: int = Field(default=4, env="PASSWORD_PARALLELISM")

    # Development/Testing
    debug: bool = Field(default=False, env="DEBUG")
    test_mode: bool = Field(default=False, env="TEST_MODE")

    @validator('password_time_cost')
    def validate_time_cost(cls, v):
        """Ensure the argon2 iteration count is reasonable."""
        if v < 1 or v > 20:
            raise ValueError('password_time_cost must be between 1 and 20')
        return v

    @validator('password_memory_cost')
    def validate_memory_cost(cls, v):
        """Ensure the argon2 memory cost (KiB) is reasonable."""
        if v < 8 or v > 1048576:
            raise ValueError('password_memory_cost must be between 8 and 1048576 KiB')
        return v

    @validator('password_parallelism')
    def validate_parallelism(cls, v):
        """Ensure the argon2 lane count is reasonable."""
        if v < 1 or v > 16:
            raise ValueError('password_parallelism must be between 1 and 16')
        return v

    @validator('log_level')
    def validate_log_level(cls, v):
        """Ensure log level is valid."""
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if v.upper() not in valid_levels:
            raise ValueError(f'log_level must be one of: {valid_levels}')
        return v.upper()

    @validator('log_format')
    def validate_log_format(cls, v):
        """Ensure log format is valid."""
        valid_formats = ['json', 'console']
        if v.lower() not in valid_formats:
            raise ValueError(f'log_format must be one of: {valid_formats}')
        return v.lower()

    class Config:
        """Pydantic configuration."""
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"  # Ignore extra fields from .env

    def get_log_file_path(self) -> Optional[Path]:
        """Get log file path as Path object."""
        if self.log_file:
            return Path(self.log_file)
        return None

    def is_production(self) -> bool:
        """Check if running in production mode."""
        return not self.debug and not self.test_mode


# Global configuration instance
config = CatalogConfig()
