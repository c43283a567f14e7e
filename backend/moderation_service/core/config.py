"""
Configuration management using Pydantic settings.
Supports environment variables, .env files, and YAML configuration.
"""

import os
import yaml
from typing import Any, Dict, Optional
from enum import Enum
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache
import logging

logger = logging.getLogger(__name__)


class Environment(str, Enum):
    """Application environments."""
    DEVELOPMENT = "development"
    TESTING = "testing"
    STAGING = "staging"
    PRODUCTION = "production"


class DatabaseType(str, Enum):
    """Database types."""
    POSTGRESQL = "postgresql"
    SQLITE = "sqlite"


class LogLevel(str, Enum):
    """Log levels."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class DatabaseConfig(BaseModel):
    """Database configuration."""
    type: DatabaseType = DatabaseType.SQLITE
    url: Optional[str] = None
    host: str = "localhost"
    port: int = 5432
    name: str = "moderation.db"
    user: Optional[str] = None
    password: Optional[str] = None
    pool_size: int = 10
    echo: bool = False

    @property
    def async_connection_string(self) -> str:
        """Generate the async driver connection string for the database type."""
        if self.url:
            if self.url.startswith("postgresql://"):
                return self.url.replace("postgresql://", "postgresql+asyncpg://", 1)
            if self.url.startswith("sqlite://"):
                return self.url.replace("sqlite://", "sqlite+aiosqlite://", 1)
            return self.url

        if self.type == DatabaseType.POSTGRESQL:
            return (
                f"postgresql+asyncpg://{self.user}:{self.password}"
                f"@{self.host}:{self.port}/{self.name}"
            )
        return f"sqlite+aiosqlite:///{self.name}"


class LoggingConfig(BaseModel):
    """Logging configuration."""
    level: LogLevel = LogLevel.INFO
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    date_format: str = "%Y-%m-%d %H:%M:%S"
    json_format: bool = False
    file_path: Optional[str] = None
    max_file_size: int = 10485760  # 10MB
    backup_count: int = 5


class APIConfig(BaseModel):
    """API configuration."""
    title: str = "ReasonBridge Moderation API"
    version: str = "1.0.0"
    description: str = "Moderation actions and appeal workflow"
    docs_url: str = "/docs"
    openapi_url: str = "/openapi.json"
    api_prefix: str = "/api"
    max_page_size: int = 100


class EventBusConfig(BaseModel):
    """In-process event bus configuration."""
    enabled: bool = True
    num_workers: int = 3
    queue_size: int = 10_000
    dead_letter_queue_size: int = 1_000
    shutdown_timeout: int = 30
    source_name: str = "moderation-service"


class ModerationConfig(BaseModel):
    """Text length limits for moderation and appeal payloads."""
    min_action_reasoning_length: int = 20
    min_appeal_reason_length: int = 20
    max_appeal_reason_length: int = 5000
    min_decision_reasoning_length: int = 20
    max_decision_reasoning_length: int = 2000


class Config(BaseSettings):
    """Main application configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    # Core
    app_name: str = "moderation-service"
    environment: Environment = Environment.DEVELOPMENT
    debug: bool = False

    # Components
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    api: APIConfig = Field(default_factory=APIConfig)
    event_bus: EventBusConfig = Field(default_factory=EventBusConfig)
    moderation: ModerationConfig = Field(default_factory=ModerationConfig)

    @field_validator("environment", mode="before")
    @classmethod
    def normalize_environment(cls, v):
        if isinstance(v, str):
            return v.lower()
        return v

    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == Environment.DEVELOPMENT

    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == Environment.PRODUCTION

    def is_testing(self) -> bool:
        """Check if running in testing environment."""
        return self.environment == Environment.TESTING


def _load_yaml(config_file: Optional[str]) -> Dict[str, Any]:
    if not config_file or not os.path.exists(config_file):
        return {}
    try:
        with open(config_file, "r") as f:
            yaml_data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        logger.warning(f"Failed to load YAML config from {config_file}: {e}")
        return {}
    if yaml_data:
        logger.info(f"Loaded configuration from {config_file}")
        return yaml_data
    return {}


@lru_cache()
def get_config(config_file: Optional[str] = None) -> Config:
    """
    Get cached configuration instance.

    Args:
        config_file: Optional path to YAML configuration file. Falls back to
            the MODERATION_CONFIG_FILE environment variable.

    Returns:
        Config instance
    """
    config_file = config_file or os.getenv("MODERATION_CONFIG_FILE")
    config = Config(**_load_yaml(config_file))

    logger.info(f"Configuration loaded for {config.app_name} in {config.environment.value} environment")
    return config


def load_config(config_file: Optional[str] = None) -> Config:
    """
    Load configuration (clears cache first).

    Args:
        config_file: Optional path to YAML configuration file

    Returns:
        Config instance
    """
    get_config.cache_clear()
    return get_config(config_file)
