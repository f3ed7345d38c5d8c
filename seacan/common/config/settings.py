from functools import lru_cache
from typing import Optional
from enum import Enum

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator, model_validator

from seacan.common.config.constants import (
    BUILD_TIMEOUT_SECONDS,
    DEFAULT_CARGO_PATH,
    DEFAULT_MESSAGE_FORMAT,
    LISTING_TIMEOUT_SECONDS,
    MAX_PARALLEL_LISTINGS,
    STDERR_EXCERPT_CHARS,
)


class Environment(str, Enum):
    DEVELOPMENT = "development"
    CI = "ci"
    PRODUCTION = "production"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="SEACAN_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    environment: Environment = Field(
        default=Environment.DEVELOPMENT,
        description="Application environment"
    )
    debug: bool = Field(default=False, description="Debug mode flag")
    log_level: str = Field(default="INFO", description="Logging level")
    log_json: bool = Field(default=True, description="Emit JSON log records")
    log_dir: Optional[str] = Field(default=None)

    cargo_path: str = Field(
        default=DEFAULT_CARGO_PATH,
        description="Cargo executable used to drive builds"
    )
    message_format: str = Field(
        default=DEFAULT_MESSAGE_FORMAT,
        description="Value passed to cargo --message-format"
    )

    build_timeout_seconds: int = Field(default=BUILD_TIMEOUT_SECONDS, ge=1)
    listing_timeout_seconds: int = Field(default=LISTING_TIMEOUT_SECONDS, ge=1)
    max_parallel_listings: int = Field(default=MAX_PARALLEL_LISTINGS, ge=1, le=64)
    detect_ignored_tests: bool = Field(default=True)
    stderr_excerpt_chars: int = Field(default=STDERR_EXCERPT_CHARS, ge=0)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper_v = v.upper()
        if upper_v not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return upper_v

    @field_validator("message_format")
    @classmethod
    def validate_message_format(cls, v: str) -> str:
        if not v.startswith("json"):
            raise ValueError(f"Message format must be a json variant, got: {v}")
        return v

    @model_validator(mode="after")
    def validate_production_settings(self) -> "Settings":
        if self.environment == Environment.PRODUCTION and self.debug:
            raise ValueError("Debug mode must be disabled in production")
        return self

    def is_production(self) -> bool:
        return self.environment == Environment.PRODUCTION

    def is_development(self) -> bool:
        return self.environment == Environment.DEVELOPMENT


@lru_cache()
def get_settings() -> Settings:
    return Settings()
