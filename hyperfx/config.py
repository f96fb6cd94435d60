"""
Configuration Management Module

Provides centralized configuration using pydantic-settings for environment-based configuration.
"""

from pathlib import Path
from typing import List, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings

from .exceptions import ConfigurationError
from .identity import default_hfx_dir


class HyperFXConfig(BaseSettings):
    """HyperFX core configuration"""

    # Ledger engine connection
    ledger_addresses: List[str] = []  # HYPERFX_LEDGER_ADDRESSES='["3000"]'
    ledger_cluster_id: int = 0

    # Relational store connection, consumed by collaborators outside the core
    database_url: str = ""

    # Deployment identity
    hfx_dir: Optional[Path] = None  # None = ~/.hyperfx
    local_currency_ledger: int = 0  # ISO 4217 numeric code, required
    auto_generate_namespace: bool = False  # Must opt-in

    # Bootstrap policy
    tolerate_bootstrap_failures: bool = False

    # Rates
    rate_max_age_seconds: Optional[float] = None  # None = never stale

    # Logging configuration
    log_level: str = "INFO"
    log_format: str = "json"  # json or text

    class Config:
        env_prefix = "HYPERFX_"
        env_file = ".env"
        case_sensitive = False

    @field_validator("local_currency_ledger", "ledger_cluster_id")
    @classmethod
    def _non_negative(cls, value: int) -> int:
        if value < 0:
            raise ValueError("must not be negative")
        return value

    @field_validator("log_format")
    @classmethod
    def _known_format(cls, value: str) -> str:
        if value not in ("json", "text"):
            raise ValueError("log_format must be 'json' or 'text'")
        return value

    def resolved_hfx_dir(self) -> Path:
        """State directory, defaulting to ~/.hyperfx"""
        return Path(self.hfx_dir) if self.hfx_dir else default_hfx_dir()

    def validate_for_startup(self) -> None:
        """
        Check the settings every startup needs

        Raises:
            ConfigurationError: If ledger addresses or the local currency are missing
        """
        if not self.ledger_addresses:
            raise ConfigurationError("ledger_addresses is required")
        if not self.local_currency_ledger:
            raise ConfigurationError("local_currency_ledger is required")


# Global configuration instance
config = HyperFXConfig()


def get_config() -> HyperFXConfig:
    """Get global configuration instance"""
    return config


def reload_config() -> HyperFXConfig:
    """Reload configuration from environment"""
    global config
    config = HyperFXConfig()
    return config
