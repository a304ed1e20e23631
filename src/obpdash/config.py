"""Centralized configuration management for obpdash.

This module provides a Pydantic Settings-based configuration system that
consolidates the API endpoints, session cookie policy, cache and sync tuning
into one validated object with environment variable integration.
"""

import os
import re
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigurationError

_PROFILE_PATTERN = re.compile(r"^[a-zA-Z0-9_-]+$")


class ApiConfig(BaseModel):
    """Open Bank Project API configuration settings."""

    model_config = ConfigDict(frozen=True)

    mode: Literal["client", "server"] = Field(
        default="server",
        description=(
            "client: talk to the dashboard's proxy routes; "
            "server: talk to the OBP API directly"
        ),
    )
    base_url: str | None = Field(
        default=None, description="OBP API base URL (server mode)"
    )
    dashboard_url: str | None = Field(
        default=None, description="Dashboard base URL hosting /api routes (client mode)"
    )
    api_version: str = Field(default="v5.1.0", description="OBP API version")
    consumer_key: str | None = Field(
        default=None, description="OBP consumer key used for DirectLogin"
    )
    timeout_seconds: float = Field(
        default=30.0, gt=0, le=300, description="HTTP request timeout"
    )

    @field_validator("base_url", "dashboard_url")
    @classmethod
    def strip_trailing_slash(cls, v: str | None) -> str | None:
        """Normalize URLs so endpoint paths can be appended directly."""
        if v is None:
            return None
        v = v.strip().rstrip("/")
        return v or None


class SessionConfig(BaseModel):
    """Client-visible session cookie and state settings."""

    model_config = ConfigDict(frozen=True)

    cookie_name: str = Field(default="obp_token", description="Token cookie name")
    cookie_days: int = Field(
        default=7, ge=1, le=365, description="Client cookie lifetime in days"
    )
    state_path: Path | None = Field(
        default=None,
        description="Where client-visible state is persisted (default ~/.obpdash/<profile>/state.yaml)",
    )


class CacheConfig(BaseModel):
    """Resource cache settings."""

    model_config = ConfigDict(frozen=True)

    ttl_seconds: float = Field(
        default=300.0, gt=0, description="Lifetime of cached upstream payloads"
    )


class SyncConfig(BaseModel):
    """Data-sync pipeline settings."""

    model_config = ConfigDict(frozen=True)

    default_bank_id: str = Field(default="rbs", description="Fallback bank id")
    default_view_id: str = Field(default="owner", description="Fallback view id")
    retry_cooldown_seconds: float = Field(
        default=2.0,
        ge=0,
        le=60,
        description="Minimum delay before retrying after a failed sync",
    )
    export_path: Path = Field(
        default=Path("data/export"), description="Default parquet export directory"
    )


class ObpDashSettings(BaseSettings):
    """Main application settings with environment variable integration.

    Environment variables are loaded with the OBPDASH_ prefix.
    For nested configs, use double underscores: OBPDASH_API__BASE_URL

    Profile Support:
    - Loads from .env.{profile} files (e.g., .env.dev, .env.prod)
    - Falls back to .env
    """

    api: ApiConfig = Field(default_factory=ApiConfig)
    session: SessionConfig = Field(default_factory=SessionConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    sync: SyncConfig = Field(default_factory=SyncConfig)

    environment: Literal["development", "staging", "production"] = Field(
        default="development", description="Application environment"
    )
    profile: str = Field(default="default", description="User profile name")

    @field_validator("profile")
    @classmethod
    def validate_profile_name(cls, v: str) -> str:
        """Ensure profile name is safe for use as a directory name."""
        if not v:
            raise ValueError("Profile name cannot be empty")
        if not _PROFILE_PATTERN.match(v):
            raise ValueError(
                "Profile name must contain only alphanumeric characters, "
                "dashes, and underscores"
            )
        return v

    def __init__(self, **kwargs: Any):
        """Initialize settings, honoring the dashboard's legacy variables.

        Args:
            **kwargs: Additional configuration overrides
        """
        if "api" not in kwargs:
            legacy: dict[str, Any] = {}
            if base_url := os.getenv("API_BASE_URL"):
                legacy["base_url"] = base_url
            if consumer_key := os.getenv("OBP_CONSUMER_KEY"):
                legacy["consumer_key"] = consumer_key
            if api_version := os.getenv("OBP_API_VERSION"):
                legacy["api_version"] = api_version
            if legacy and not any(k.upper().startswith("OBPDASH_API__") for k in os.environ):
                kwargs["api"] = ApiConfig(**legacy)

        super().__init__(**kwargs)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: Any,
        env_settings: Any,
        dotenv_settings: Any,
        file_secret_settings: Any,
    ) -> tuple[Any, ...]:
        """Load .env.{profile} when present, otherwise .env."""
        init_dict = init_settings.init_kwargs if init_settings else {}
        profile = init_dict.get("profile", "default")  # type: ignore[reportUnknownMemberType]

        profile_env_file = Path(f".env.{profile}")
        env_file = str(profile_env_file) if profile_env_file.exists() else ".env"

        from pydantic_settings import DotEnvSettingsSource

        custom_dotenv = DotEnvSettingsSource(
            settings_cls,
            env_file=env_file,
            env_file_encoding="utf-8",
        )

        return (
            init_settings,
            env_settings,
            custom_dotenv,
            file_secret_settings,
        )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="OBPDASH_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def state_path(self) -> Path:
        """Location of the persisted client-visible state for this profile."""
        if self.session.state_path is not None:
            return self.session.state_path
        return Path.home() / ".obpdash" / self.profile / "state.yaml"

    def validate_required_endpoints(self) -> None:
        """Validate that the selected API mode has a URL to talk to.

        Raises:
            ConfigurationError: If the base URL for the selected mode is missing
        """
        if self.api.mode == "server" and not self.api.base_url:
            raise ConfigurationError(
                "API base URL is not configured (set OBPDASH_API__BASE_URL or API_BASE_URL)"
            )
        if self.api.mode == "client" and not self.api.dashboard_url:
            raise ConfigurationError(
                "Dashboard URL is not configured (set OBPDASH_API__DASHBOARD_URL)"
            )


# Global settings instances - lazy loaded per profile
_settings_cache: dict[str, ObpDashSettings] = {}
_current_profile: str = "default"


def get_settings(profile: str | None = None) -> ObpDashSettings:
    """Get the settings instance for the specified profile.

    Settings are loaded once per profile and cached.

    Args:
        profile: Profile name. Defaults to the current profile.

    Returns:
        ObpDashSettings: The configuration instance for the profile

    Raises:
        ConfigurationError: If the configuration is invalid
    """
    if profile is None:
        profile = _current_profile

    if profile in _settings_cache:
        return _settings_cache[profile]

    try:
        settings = ObpDashSettings(profile=profile)
    except ValueError as e:
        raise ConfigurationError(
            f"Configuration error for profile '{profile}': {e}"
        ) from e

    _settings_cache[profile] = settings
    return settings


def set_current_profile(profile: str) -> None:
    """Set the current active profile.

    Raises:
        ValueError: If profile name contains invalid characters
    """
    global _current_profile

    if not profile:
        raise ValueError("Profile name cannot be empty")
    if not _PROFILE_PATTERN.match(profile):
        raise ValueError(
            f"Invalid profile: {profile}. "
            "Profile name must contain only alphanumeric characters, dashes, and underscores"
        )

    _current_profile = profile


def get_current_profile() -> str:
    """Get the current active profile name."""
    return _current_profile


def reload_settings(profile: str | None = None) -> ObpDashSettings:
    """Drop the cached settings for a profile and load them again."""
    if profile is None:
        profile = _current_profile
    _settings_cache.pop(profile, None)
    return get_settings(profile)


def clear_settings_cache() -> None:
    """Forget every cached settings instance (used by tests)."""
    _settings_cache.clear()
