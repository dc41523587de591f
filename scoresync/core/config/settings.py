"""
Settings for the scoresync service.

Simple, reliable environment variable configuration for the shared score,
its storage tiers and the daily rate.
"""

import os
import tomllib
from pathlib import Path

from dotenv import load_dotenv

# Load .env file for local development - look in current working directory
load_dotenv(".env")


def _get_version_from_pyproject() -> str:
    """
    Read version from pyproject.toml file.

    Returns:
        Version string from pyproject.toml, or fallback version
    """
    current_path = Path(__file__)
    for parent in [current_path.parent, *current_path.parents]:
        pyproject_path = parent / "pyproject.toml"
        if pyproject_path.exists():
            try:
                with open(pyproject_path, "rb") as f:
                    pyproject_data = tomllib.load(f)
                    version = pyproject_data.get("project", {}).get("version")
                    if version:
                        return version
            except (OSError, tomllib.TOMLDecodeError):
                continue

    return "0.1.0"


def _get_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _get_list(name: str) -> list[str]:
    raw = os.getenv(name, "")
    return [item.strip() for item in raw.split(",") if item.strip()]


class Settings:
    """Application settings with environment-based configuration."""

    def __init__(self):
        # ================================================================
        # Version & General Configuration
        # ================================================================
        self.version: str = _get_version_from_pyproject()
        self.port: int = int(os.getenv("PORT", "8000"))
        self.time_zone: str = os.getenv("TIME_ZONE", "UTC")
        self.log_level: str = os.getenv("LOG_LEVEL", "INFO")
        self.log_dir: str = os.getenv("LOG_DIR", "./logs")
        self.environment: str = os.getenv("ENVIRONMENT", "DEV")

        # ================================================================
        # Storage Tiers
        # ================================================================
        self.remote_store: str = os.getenv("REMOTE_STORE", "memory")
        self.local_cache: str = os.getenv("LOCAL_CACHE", "json")
        self.local_cache_dir: str = os.getenv("LOCAL_CACHE_DIR", "./cache")
        self.atomic_increment: bool = _get_bool("ATOMIC_INCREMENT", True)

        # Redis connection settings (only used if REMOTE_STORE=redis)
        self.redis_url: str | None = os.getenv("REDIS_URL")
        self.redis_max_connections: int = int(os.getenv("REDIS_MAX_CONNECTIONS", "64"))

        # ================================================================
        # Score Mechanics
        # ================================================================
        self.cooldown_seconds: int = int(os.getenv("COOLDOWN_SECONDS", "300"))
        self.history_limit: int = int(os.getenv("HISTORY_LIMIT", "20"))
        self.history_max_len: int = int(os.getenv("HISTORY_MAX_LEN", "500"))
        self.point_total: int = int(os.getenv("POINT_TOTAL", "10"))
        self.rate_seed_prefix: str = os.getenv("RATE_SEED_PREFIX", "scoresync-rate")

        # ================================================================
        # Change Feed & Collaborators
        # ================================================================
        self.feed_rate_check_seconds: float = float(
            os.getenv("FEED_RATE_CHECK_SECONDS", "60")
        )
        self.commentary_timeout: float = float(os.getenv("COMMENTARY_TIMEOUT", "3"))

        # ================================================================
        # Actor Identity
        # ================================================================
        # Peers allowed to set X-Forwarded-For: IPs, CIDR ranges or host names.
        # Empty means the socket peer is always the actor.
        self.trusted_proxies: list[str] = _get_list("TRUSTED_PROXIES")

        self._validate_settings()

    def _validate_settings(self):
        """Validate settings values."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR"]
        if self.log_level.upper() not in valid_levels:
            raise ValueError(f"LOG_LEVEL must be one of {valid_levels}")
        self.log_level = self.log_level.upper()

        valid_environments = ["DEV", "PROD"]
        if self.environment.upper() not in valid_environments:
            self.environment = "DEV"  # Default fallback
        self.environment = self.environment.upper()

        self.remote_store = self.remote_store.lower()
        if self.remote_store not in ("redis", "memory"):
            raise ValueError("REMOTE_STORE must be 'redis' or 'memory'")
        if self.remote_store == "redis" and not self.redis_url:
            raise ValueError("REDIS_URL is required when REMOTE_STORE=redis")

        self.local_cache = self.local_cache.lower()
        if self.local_cache not in ("json", "memory"):
            raise ValueError("LOCAL_CACHE must be 'json' or 'memory'")

        if self.cooldown_seconds < 0:
            raise ValueError("COOLDOWN_SECONDS must be >= 0")
        if self.history_limit < 1 or self.history_max_len < 1:
            raise ValueError("HISTORY_LIMIT and HISTORY_MAX_LEN must be >= 1")
        if self.point_total < 2:
            raise ValueError("POINT_TOTAL must be >= 2")

    @property
    def has_redis(self) -> bool:
        """Check if Redis is configured."""
        return self.redis_url is not None

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment == "DEV"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment == "PROD"


# Global settings instance
settings = Settings()
