"""
Configuration Management for AIWallet

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
The client side (remote backend, local mirror) and the server side
(snapshot file, HTTP binding) read from the same module so a single
.env file can drive a local development setup.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class BackendSettings(BaseSettings):
    """How the client reaches the Durable Backend."""

    model_config = SettingsConfigDict(
        env_prefix="AIWALLET_BACKEND_",
        extra="ignore"
    )

    base_url: str = Field(
        default="http://localhost:3000",
        description="Base URL of the AIWallet API server"
    )
    request_timeout_ms: int = Field(
        default=3000,
        ge=100,
        le=60000,
        description="Timeout for data operations against the backend"
    )
    probe_timeout_ms: int = Field(
        default=1000,
        ge=50,
        le=10000,
        description="Timeout for the /api/health liveness probe"
    )
    local_hosts: str = Field(
        default="localhost,127.0.0.1",
        description="Comma-separated hostnames treated as a development server"
    )
    remote_enabled: bool = Field(
        default=True,
        description="Set to false to run purely against the local mirror"
    )
    force_remote: bool = Field(
        default=False,
        description="Attempt the backend even when the host is not a local one"
    )
    probe_before_call: bool = Field(
        default=False,
        description="Run the liveness probe before every remote operation"
    )

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @property
    def local_hosts_list(self) -> list[str]:
        """Get local hosts as a list."""
        return [h.strip().lower() for h in self.local_hosts.split(",") if h.strip()]


class ServerSettings(BaseSettings):
    """Durable Backend HTTP server configuration."""

    model_config = SettingsConfigDict(
        env_prefix="AIWALLET_SERVER_",
        extra="ignore"
    )

    data_file: str = Field(
        default="users.json",
        description="Path to the JSON snapshot file"
    )
    host: str = Field(
        default="127.0.0.1",
        description="Interface to bind"
    )
    port: int = Field(
        default=3000,
        ge=1,
        le=65535,
        description="Port to listen on"
    )
    static_dir: Optional[str] = Field(
        default=None,
        description="Directory of static pages served next to the API"
    )
    cors_origins: str = Field(
        default="*",
        description="Comma-separated list of allowed CORS origins"
    )

    @field_validator("static_dir")
    @classmethod
    def validate_static_dir(cls, v: Optional[str]) -> Optional[str]:
        """Warn if the static directory doesn't exist (it is simply not mounted)."""
        if v and not Path(v).is_dir():
            import warnings
            warnings.warn(
                f"Static directory not found at {v}. "
                "Static pages will not be served."
            )
        return v

    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]


class MirrorSettings(BaseSettings):
    """Client-resident local mirror configuration."""

    model_config = SettingsConfigDict(
        env_prefix="AIWALLET_MIRROR_",
        extra="ignore"
    )

    storage_path: Optional[str] = Field(
        default=".aiwallet/local_storage.json",
        description="File backing the local key/value storage (unset = in-memory)"
    )
    quota_bytes: int = Field(
        default=5 * 1024 * 1024,
        ge=1024,
        description="Maximum size of the local storage, like a browser quota"
    )


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    log_level: str = Field(
        default="INFO",
        description="Minimum level for structured logs"
    )

    # Account rules
    min_password_length: int = Field(
        default=8,
        ge=1,
        le=128,
        description="Minimum accepted password length at registration"
    )


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    @property
    def backend(self) -> BackendSettings:
        return BackendSettings()

    @property
    def server(self) -> ServerSettings:
        return ServerSettings()

    @property
    def mirror(self) -> MirrorSettings:
        return MirrorSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}.
    Useful for startup checks.
    """
    results = {}
    settings = get_settings()

    for name in ("backend", "server", "mirror", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
