"""
Application Settings
===================

Process-wide configuration loaded from the environment (and an optional ``.env``
file) using Pydantic Settings. The settings object is frozen: it is built once at
startup and handed to every component that needs it.
"""

import json
import sys
from enum import Enum
from pathlib import Path
from typing import Annotated, List, Optional, Union

from pydantic import AliasChoices, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class DeploymentMode(str, Enum):
    """Where outbound credentials come from."""

    LOCAL = "local"
    DEPLOYED = "deployed"


def default_render_command() -> List[str]:
    """Run the bundled chart renderer with the current interpreter."""
    return [sys.executable, "-m", "rugplay_gateway.core.rendering.coingraph_generator"]


class Settings(BaseSettings):
    """Main application settings with environment variable support."""

    # Application Configuration
    app_name: str = Field(default="Rugplay Gateway", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    environment: str = Field(
        default="development",
        validation_alias=AliasChoices("APP_ENV", "environment"),
        description="Environment: development, testing, production",
    )
    debug: bool = Field(default=False, description="Debug mode")

    # Server Configuration
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=3000, description="Server port")

    # Credentials
    run_mode: DeploymentMode = Field(
        default=DeploymentMode.LOCAL, description="Deployment mode: local or deployed"
    )
    api_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("RUGPLAY_API_KEY", "api_key"),
        description="Upstream API key used in local mode",
    )
    require_api_key: bool = Field(
        default=False, description="Refuse to start in local mode without an API key"
    )

    # Upstream Configuration
    upstream_base_url: str = Field(
        default="https://rugplay.com/api", description="Base URL of the market-data API"
    )
    upstream_timeout: Optional[float] = Field(
        default=None, gt=0, description="Total outbound timeout in seconds (transport default if unset)"
    )
    max_concurrent_upstream_calls: int = Field(
        default=64, gt=0, description="Maximum simultaneous outbound calls"
    )

    # Rendering Configuration
    render_command: List[str] = Field(
        default_factory=default_render_command, description="Render subprocess argv"
    )
    render_timeout: float = Field(default=60.0, gt=0, description="Render timeout in seconds")
    render_max_output_bytes: int = Field(
        default=20 * 1024 * 1024, gt=0, description="Maximum render subprocess output size"
    )
    max_concurrent_renders: int = Field(
        default=4, gt=0, description="Maximum simultaneous render subprocesses"
    )

    # HTTP Surface
    allowed_origins: Annotated[List[str], NoDecode] = Field(
        default=["*"], description="Allowed CORS origins"
    )
    static_dir: Optional[Path] = Field(default=None, description="Static asset directory")

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_dir: Optional[Path] = Field(default=None, description="Directory for rotating log files")

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment value."""
        allowed = {"development", "testing", "production"}
        if v not in allowed:
            raise ValueError(f"Environment must be one of: {allowed}")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in allowed:
            raise ValueError(f"Log level must be one of: {allowed}")
        return v.upper()

    @field_validator("upstream_base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @field_validator("allowed_origins", mode="before")
    @classmethod
    def parse_allowed_origins(cls, v: Union[str, List[str]]) -> List[str]:
        """Parse allowed origins from a JSON list, a comma-separated string or a list."""
        if isinstance(v, str):
            v = v.strip()
            if v.startswith("[") and v.endswith("]"):
                return json.loads(v)
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    @model_validator(mode="after")
    def check_api_key(self) -> "Settings":
        """Fail fast when a local deployment demands a key and none is configured."""
        if self.require_api_key and self.run_mode is DeploymentMode.LOCAL and not self.api_key:
            raise ValueError("RUGPLAY_API_KEY is required in local mode when REQUIRE_API_KEY is set")
        return self

    @property
    def is_local(self) -> bool:
        return self.run_mode is DeploymentMode.LOCAL

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )


def get_settings() -> Settings:
    """Build the settings object from the current environment.

    Called once by the application factory; components receive the result
    through their constructors.
    """
    return Settings()
