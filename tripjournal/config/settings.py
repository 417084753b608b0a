"""
Configuration management system using Pydantic Settings.
Supports environment-based configuration for store backends, session timing
and intention rules.
"""

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings
from typing import Optional, Dict
from enum import Enum
from pathlib import Path


class Environment(str, Enum):
    """Supported deployment environments"""
    DEVELOPMENT = "development"
    PRODUCTION = "production"
    TESTING = "testing"


class LogLevel(str, Enum):
    """Supported log levels"""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class StoreBackend(str, Enum):
    """Available persistent store backends"""
    MEMORY = "memory"
    FILE = "file"
    REDIS = "redis"


class StoreSettings(BaseSettings):
    """Persistent store configuration"""

    backend: StoreBackend = Field(default=StoreBackend.FILE)
    data_dir: str = Field(default="data", description="Directory for the file backend")
    key_prefix: str = Field(default="@")

    # Redis backend
    redis_host: str = Field(default="localhost")
    redis_port: int = Field(default=6379, ge=1, le=65535)
    redis_password: Optional[str] = Field(default=None)
    redis_db: int = Field(default=0, ge=0, le=15)
    socket_timeout: int = Field(default=5, ge=1, le=30)

    @property
    def redis_url(self) -> str:
        """Generate Redis URL from configuration"""
        auth = f":{self.redis_password}@" if self.redis_password else ""
        return f"redis://{auth}{self.redis_host}:{self.redis_port}/{self.redis_db}"

    def key(self, name: str) -> str:
        return f"{self.key_prefix}{name}"

    def get_data_dir(self) -> Path:
        """Get absolute path for the file backend"""
        return Path(self.data_dir).resolve()

    model_config = {"env_prefix": "STORE_"}


class SessionSettings(BaseSettings):
    """Active session timing configuration (minutes)"""

    come_up_minutes: int = Field(default=60, ge=1)
    peak_minutes: int = Field(default=240, ge=1)
    comedown_minutes: int = Field(default=120, ge=1)
    early_end_threshold_minutes: int = Field(default=60, ge=0)
    tick_interval_seconds: float = Field(default=1.0, gt=0)

    def phase_durations(self) -> Dict[str, int]:
        """Durations keyed by phase value, in timeline order"""
        return {
            "come-up": self.come_up_minutes,
            "peak": self.peak_minutes,
            "comedown": self.comedown_minutes,
        }

    model_config = {"env_prefix": "SESSION_"}


class IntentionSettings(BaseSettings):
    """Intention reuse and follow-up configuration"""

    usage_cap: int = Field(default=3, ge=1, le=20)

    model_config = {"env_prefix": "INTENTION_"}


class Settings(BaseSettings):
    """Main application settings"""

    app_name: str = Field(default="Trip Journal")
    app_version: str = Field(default="1.0.0")
    environment: Environment = Field(default=Environment.DEVELOPMENT)
    debug: bool = Field(default=False)

    # Logging Configuration
    log_level: LogLevel = Field(default=LogLevel.INFO)
    log_format: str = Field(default="json", description="'json' or 'text'")

    # Nested Settings
    store: StoreSettings = Field(default_factory=StoreSettings)
    session: SessionSettings = Field(default_factory=SessionSettings)
    intentions: IntentionSettings = Field(default_factory=IntentionSettings)

    @field_validator("environment", mode="before")
    @classmethod
    def validate_environment(cls, v):
        """Validate and normalize environment setting"""
        if isinstance(v, str):
            return Environment(v.lower())
        return v

    def effective_log_level(self) -> str:
        """Log level name to configure; debug mode forces DEBUG"""
        return LogLevel.DEBUG.value if self.debug else self.log_level.value

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
    }


# Global settings instance
settings = Settings()


def get_settings() -> Settings:
    """Get application settings instance"""
    return settings


def reload_settings() -> Settings:
    """Reload settings from environment and files"""
    global settings
    settings = Settings()
    return settings
