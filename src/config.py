"""
Configuration module for the WordPress translation sync service.

Loads configuration from environment variables.
Covers the content store, sync behaviour, the HTTP API and plugin probes.
"""

import os
from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class DatabaseConfig:
    """PostgreSQL database configuration."""

    host: str = "localhost"
    port: int = 5432
    database: str = "wp_sync"
    user: str = "wp_sync"
    password: str = field(default="", repr=False)  # Never log password
    min_pool_size: int = 5
    max_pool_size: int = 20

    @classmethod
    def from_env(cls):
        """Load from environment variables."""
        password = os.getenv("DB_PASSWORD", "")
        if not password:
            raise ValueError(
                "DB_PASSWORD environment variable must be set. "
                "Database password cannot be empty."
            )

        return cls(
            host=os.getenv("DB_HOST", "localhost"),
            port=int(os.getenv("DB_PORT", "5432")),
            database=os.getenv("DB_NAME", "wp_sync"),
            user=os.getenv("DB_USER", "wp_sync"),
            password=password,
            min_pool_size=int(os.getenv("DB_MIN_POOL_SIZE", "5")),
            max_pool_size=int(os.getenv("DB_MAX_POOL_SIZE", "20")),
        )


@dataclass
class SyncConfig:
    """Remote fetch and sync run configuration."""

    request_timeout: float = 15.0  # seconds, per outbound HTTP call
    posts_per_page: int = 100
    max_pages: int = 10
    max_reported_errors: int = 20
    stale_sync_after: int = 3600  # seconds before a SYNCING site can be taken over
    default_owner_id: Optional[int] = None

    @classmethod
    def from_env(cls):
        """Load from environment variables."""
        owner = os.getenv("SYNC_DEFAULT_OWNER_ID", "")
        return cls(
            request_timeout=float(os.getenv("WP_REQUEST_TIMEOUT", "15")),
            posts_per_page=int(os.getenv("SYNC_POSTS_PER_PAGE", "100")),
            max_pages=int(os.getenv("SYNC_MAX_PAGES", "10")),
            max_reported_errors=int(os.getenv("SYNC_MAX_REPORTED_ERRORS", "20")),
            stale_sync_after=int(os.getenv("SYNC_STALE_AFTER", "3600")),
            default_owner_id=int(owner) if owner else None,
        )


@dataclass
class APIConfig:
    """API server configuration."""

    host: str = "0.0.0.0"
    port: int = 8000
    log_level: str = "INFO"
    cors_enabled: bool = False
    cors_origins: List[str] = field(default_factory=lambda: ["*"])

    @classmethod
    def from_env(cls):
        """Load from environment variables."""
        cors_origins = (
            os.getenv("CORS_ORIGINS", "").split(",")
            if os.getenv("CORS_ORIGINS")
            else ["*"]
        )
        return cls(
            host=os.getenv("API_HOST", "0.0.0.0"),
            port=int(os.getenv("API_PORT", "8000")),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            cors_enabled=os.getenv("CORS_ENABLED", "false").lower() == "true",
            cors_origins=cors_origins,
        )


@dataclass
class ProbeConfig:
    """Plugin probe configuration."""

    # Probe names to run (empty = every registered probe, in registry order)
    enabled_probes: List[str] = field(default_factory=list)

    @classmethod
    def from_env(cls):
        """Load from environment variables."""
        enabled_str = os.getenv("ENABLED_PROBES", "")
        enabled = (
            [p.strip() for p in enabled_str.split(",") if p.strip()]
            if enabled_str
            else []
        )
        return cls(enabled_probes=enabled)


@dataclass
class Config:
    """Main configuration object."""

    database: DatabaseConfig
    sync: SyncConfig
    api: APIConfig
    probes: ProbeConfig

    @classmethod
    def from_env(cls):
        """Load all configuration from environment variables."""
        return cls(
            database=DatabaseConfig.from_env(),
            sync=SyncConfig.from_env(),
            api=APIConfig.from_env(),
            probes=ProbeConfig.from_env(),
        )

    @classmethod
    def default(cls):
        """Return default configuration."""
        return cls(
            database=DatabaseConfig(),
            sync=SyncConfig(),
            api=APIConfig(),
            probes=ProbeConfig(),
        )


# Global config instance
config: Optional[Config] = None


def load_config() -> Config:
    """Load configuration (singleton pattern)."""
    global config
    if config is None:
        config = Config.from_env()
    return config


def get_config() -> Config:
    """Get the current configuration."""
    if config is None:
        return load_config()
    return config


def reset_config() -> None:
    """Reset configuration (mainly for testing)."""
    global config
    config = None
