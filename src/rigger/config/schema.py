"""Configuration schema for Rigger using Pydantic."""

from __future__ import annotations

from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from rigger.core.errors import ConfigurationError


# Browser names accepted by the UI session factory
BrowserName = Literal["chromium", "chrome", "edge", "firefox", "webkit", "safari"]


class ProfileConfig(BaseModel):
    """Environment profile (qa, uat, stage, prod...)."""

    name: str = ""
    ui_base_url: Optional[str] = None
    api_base_url: Optional[str] = None
    auth_url: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None
    db_url: Optional[str] = None
    db_username: Optional[str] = None
    db_password: Optional[str] = None
    db_driver: Optional[str] = None  # e.g. "postgresql+psycopg2"


class BrowserConfig(BaseModel):
    """UI session settings."""

    name: BrowserName = "chromium"
    headless: bool = True
    timeout_ms: int = 10000  # Default action timeout
    navigation_timeout_ms: int = 30000
    viewport_width: int = 1280
    viewport_height: int = 720
    navigate_on_start: bool = True  # Open profile ui_base_url after launch


class ApiConfig(BaseModel):
    """API context settings."""

    timeout: float = 30.0  # Seconds
    token_fields: List[str] = Field(
        default_factory=lambda: ["token", "access_token", "accessToken"]
    )


class DatabaseConfig(BaseModel):
    """Database connection settings."""

    connect_timeout: int = 10  # Seconds
    autocommit: bool = False


class RetryConfig(BaseModel):
    """Retry settings for failed scenarios."""

    max_attempts: int = Field(default=2, ge=0)  # Retries after the first run
    delay: float = Field(default=1.0, ge=0)  # Seconds
    backoff: float = Field(default=1.0, ge=1.0)
    max_delay: Optional[float] = None


class ExecutionConfig(BaseModel):
    """Parallel execution settings."""

    workers: int = Field(default=4, ge=1)


class OutputConfig(BaseModel):
    """Artifact output configuration."""

    directory: str = "reports"
    screenshot_dir: str = "screenshots"  # Relative to directory
    results_file: str = "results.json"  # Relative to directory
    timestamp_format: str = "%Y%m%d-%H%M%S"


class RoutingConfig(BaseModel):
    """Tag markers recognized by the tag router."""

    ui_markers: List[str] = Field(default_factory=lambda: ["ui", "web", "selenium", "browser"])
    api_markers: List[str] = Field(default_factory=lambda: ["api", "rest", "service"])
    db_markers: List[str] = Field(default_factory=lambda: ["db", "database", "sql"])
    mixed_markers: List[str] = Field(default_factory=lambda: ["mixed"])
    environment_markers: List[str] = Field(
        default_factory=lambda: ["qa", "uat", "stage", "prod"]
    )
    data_source_markers: List[str] = Field(default_factory=lambda: ["excel", "json", "csv"])


class RiggerConfig(BaseModel):
    """Root configuration model for Rigger."""

    version: int = 1
    environment: str = "qa"  # Profile used when a scenario has no environment tag
    profiles: Dict[str, ProfileConfig] = Field(
        default_factory=lambda: {
            "qa": ProfileConfig(name="qa"),
        }
    )
    browser: BrowserConfig = Field(default_factory=BrowserConfig)
    api: ApiConfig = Field(default_factory=ApiConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    execution: ExecutionConfig = Field(default_factory=ExecutionConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
    routing: RoutingConfig = Field(default_factory=RoutingConfig)

    def get_profile(self, name: str) -> ProfileConfig:
        """Return the named profile.

        Raises:
            ConfigurationError: If the profile is not configured
        """
        profile = self.profiles.get(name)
        if profile is None:
            raise ConfigurationError(
                f"Unknown environment profile '{name}' "
                f"(configured: {', '.join(sorted(self.profiles)) or 'none'})"
            )
        if not profile.name:
            profile = profile.model_copy(update={"name": name})
        return profile

    @classmethod
    def get_default(cls) -> "RiggerConfig":
        """Return default configuration."""
        return cls()
