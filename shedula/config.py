# shedula/config.py - Runtime configuration
from dotenv import load_dotenv

load_dotenv()
from typing import Optional, Union
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator


STORAGE_BACKENDS = ("file", "memory", "redis", "none")


class Settings(BaseSettings):
    """Application settings with validation and environment variable support (Pydantic V2 Syntax)"""

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="allow",
        case_sensitive=False,
        populate_by_name=True,
    )

    # Application
    app_name: str = Field(default="Shedula", alias="APP_NAME")
    app_version: str = "1.0.0"
    environment: str = Field(default="development", alias="ENVIRONMENT")
    debug: bool = Field(default=False, alias="DEBUG")

    # Remote record store
    database_url: str = Field(default="sqlite:///./shedula.db", alias="DATABASE_URL")

    # Local key-value storage
    storage_backend: str = Field(default="file", alias="STORAGE_BACKEND")
    storage_dir: str = Field(default="./.shedula_storage", alias="STORAGE_DIR")
    redis_url: Optional[str] = Field(default=None, alias="REDIS_URL")

    # Slot calendar and mock directory
    slot_days: int = Field(default=7, alias="SLOT_DAYS")
    slot_availability: float = Field(default=0.6, alias="SLOT_AVAILABILITY")
    directory_size: int = Field(default=70, alias="DIRECTORY_SIZE")
    directory_seed: Optional[int] = Field(default=None, alias="DIRECTORY_SEED")
    seed_directory_on_startup: bool = Field(default=True, alias="SEED_DIRECTORY_ON_STARTUP")

    # Booking
    token_prefix: str = Field(default="A", alias="TOKEN_PREFIX")

    # Logging
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_json: bool = Field(default=False, alias="LOG_JSON")

    # CORS
    cors_origins: Union[str, list[str]] = Field(default=["http://localhost:3000"], alias="CORS_ORIGINS")

    # --- Pydantic V2 Validators ---
    @field_validator("cors_origins", mode='before')
    @classmethod
    def parse_cors_origins(cls, v):
        if isinstance(v, str):
            if not v.strip():
                return ["http://localhost:3000"]
            return [origin.strip() for origin in v.split(',') if origin.strip()]
        return v

    @field_validator("database_url")
    @classmethod
    def validate_database_url(cls, v):
        if not v:
            raise ValueError("DATABASE_URL is required")
        if not v.startswith(("postgresql://", "postgresql+psycopg2://", "sqlite:///", "sqlite://")):
            raise ValueError("DATABASE_URL must be a valid PostgreSQL or SQLite URL")
        return v

    @field_validator("storage_backend")
    @classmethod
    def validate_storage_backend(cls, v):
        v = v.lower()
        if v not in STORAGE_BACKENDS:
            raise ValueError(f"STORAGE_BACKEND must be one of {', '.join(STORAGE_BACKENDS)}")
        return v

    @field_validator("slot_availability")
    @classmethod
    def validate_slot_availability(cls, v):
        if not 0.0 <= v <= 1.0:
            raise ValueError("SLOT_AVAILABILITY must be between 0 and 1")
        return v

    @field_validator("slot_days", "directory_size")
    @classmethod
    def validate_positive(cls, v):
        if v < 1:
            raise ValueError("SLOT_DAYS and DIRECTORY_SIZE must be positive")
        return v

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @property
    def is_development(self) -> bool:
        return self.environment.lower() == "development"

    @property
    def redis_enabled(self) -> bool:
        return bool(self.redis_url)


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


# Environment-specific configurations
class DevelopmentConfig(Settings):
    """Development environment configuration"""
    debug: bool = True
    environment: str = "development"


class ProductionConfig(Settings):
    """Production environment configuration"""
    debug: bool = False
    environment: str = "production"
    log_json: bool = True


class TestingConfig(Settings):
    """Testing environment configuration"""
    debug: bool = True
    environment: str = "testing"
    database_url: str = "sqlite:///./test.db"
    storage_backend: str = "memory"
    seed_directory_on_startup: bool = False


def get_config_by_env(env: str) -> Settings:
    """Get configuration by environment name"""
    configs = {
        "development": DevelopmentConfig,
        "production": ProductionConfig,
        "testing": TestingConfig
    }

    config_class = configs.get(env.lower(), Settings)
    return config_class()

# Note: Do not instantiate settings at import time. Use `get_settings()` instead.
