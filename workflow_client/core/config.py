"""Configuration management for the fraud workflow client.

Configuration is loaded from environment variables; every group has its
own prefix so deployments can override a single concern.
"""

from __future__ import annotations

from enum import Enum
from functools import lru_cache

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppEnvironment(str, Enum):
    LOCAL = "local"
    TEST = "test"
    PROD = "prod"


class LogLevel(str, Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class AppConfig(BaseSettings):
    name: str = Field(default="fraud-workflow-client")
    env: AppEnvironment = Field(default=AppEnvironment.LOCAL)
    version: str = Field(default="0.1.0")
    debug: bool = Field(default=False)
    log_level: LogLevel = Field(default=LogLevel.INFO)

    model_config = SettingsConfigDict(env_prefix="APP_")

    @field_validator("env", mode="before")
    @classmethod
    def validate_env(cls, v: str | AppEnvironment) -> AppEnvironment:
        if isinstance(v, AppEnvironment):
            return v
        return AppEnvironment(v)

    @field_validator("log_level", mode="before")
    @classmethod
    def validate_log_level(cls, v: str | LogLevel) -> LogLevel:
        if isinstance(v, LogLevel):
            return v
        return LogLevel(v.upper())


class ApiConfig(BaseSettings):
    base_url: str = Field(default="")
    timeout: float = Field(default=30.0)

    model_config = SettingsConfigDict(env_prefix="API_")

    @field_validator("base_url", mode="after")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")


class AuthorityConfig(BaseSettings):
    """External token authority (Auth0). Disabled deployments use session roles."""

    enabled: bool = Field(default=False)
    domain: str = Field(default="")
    audience: str = Field(default="")
    client_id: str = Field(default="")

    model_config = SettingsConfigDict(env_prefix="AUTH0_")

    @field_validator("enabled", mode="before")
    @classmethod
    def parse_enabled(cls, v: bool | str) -> bool:
        """Parse boolean from environment variable (string "true"/"false")."""
        if isinstance(v, str):
            return v.lower() in ("true", "1", "yes", "on")
        return v

    @property
    def roles_claim(self) -> str:
        """Namespaced ID-token claim holding the user's roles."""
        return f"{self.audience}/roles"


class PermissionsConfig(BaseSettings):
    # Scopes fetched successfully but empty: fail closed unless this is set
    role_fallback_on_empty_scopes: bool = Field(default=False)

    model_config = SettingsConfigDict(env_prefix="PERMISSIONS_")


class WorklistConfig(BaseSettings):
    refresh_interval_seconds: float = Field(default=0.0, ge=0)

    model_config = SettingsConfigDict(env_prefix="WORKLIST_")


class ObservabilityConfig(BaseSettings):
    log_record_format: str = Field(default="json")

    model_config = SettingsConfigDict(env_prefix="OTEL_")


class Settings(BaseSettings):
    app: AppConfig = Field(default_factory=AppConfig)
    api: ApiConfig = Field(default_factory=ApiConfig)
    auth0: AuthorityConfig = Field(default_factory=AuthorityConfig)
    permissions: PermissionsConfig = Field(default_factory=PermissionsConfig)
    worklist: WorklistConfig = Field(default_factory=WorklistConfig)
    observability: ObservabilityConfig = Field(default_factory=ObservabilityConfig)

    @model_validator(mode="after")
    def validate_authority_settings(self) -> Settings:
        """An enabled token authority needs a domain to obtain tokens from."""
        if self.auth0.enabled and not self.auth0.domain:
            raise ValueError("AUTH0_ENABLED=true requires AUTH0_DOMAIN to be set")
        return self


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def reload_settings() -> Settings:
    """Reload settings (useful for testing)."""
    get_settings.cache_clear()
    return get_settings()
