"""Environment-driven settings via pydantic-settings."""
from functools import lru_cache
from typing import Dict

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables (or a local .env file)."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", case_sensitive=False, extra="ignore")

    # HTTP
    host: str = Field(default="0.0.0.0", description="Bind address")
    port: int = Field(default=8080, ge=1, le=65535, description="Listening port")

    # Task distribution
    queue_capacity: int = Field(default=10, ge=1, description="Maximum number of queued tasks")
    agent_enabled: bool = Field(default=True, description="Run the in-process agent loop")

    # Operation time hints handed to workers, in milliseconds
    time_addition_ms: int = Field(default=0, ge=0)
    time_subtraction_ms: int = Field(default=0, ge=0)
    time_multiplications_ms: int = Field(default=0, ge=0)
    time_divisions_ms: int = Field(default=0, ge=0)

    # Observability
    log_level: str = Field(default="INFO")

    def operation_times(self) -> Dict[str, int]:
        """Map each operator symbol to its time hint."""
        return {
            "+": self.time_addition_ms,
            "-": self.time_subtraction_ms,
            "*": self.time_multiplications_ms,
            "/": self.time_divisions_ms,
        }


@lru_cache
def get_settings() -> Settings:
    return Settings()
