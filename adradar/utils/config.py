"""Configuration management system using Pydantic v2 and YAML.

This module provides type-safe configuration loading with validation
for the AdRadar engine. Per-site definitions live in a separate file
(see adradar.sites.registry); this module only holds process-wide settings.
"""

import os
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from adradar.utils.exceptions import ConfigFileNotFoundError, ConfigurationError


PROJECT_ROOT = Path(__file__).parent.parent.parent


class EngineConfig(BaseModel):
    """Settings for the extraction engine."""

    container_level_pause_ms: int = Field(default=1000, ge=0, description="Pause between container timeout levels")
    render_jitter: float = Field(default=0.15, ge=0.0, lt=1.0, description="Relative jitter applied to render delays")
    default_tokens_per_min: float = Field(default=10.0, ge=1.0, description="Rate for sites without an explicit limit")
    session_update_retries: int = Field(default=3, ge=1, description="Attempts for optimistic session updates")


class BrowserConfig(BaseModel):
    """Configuration for the Playwright page driver."""

    headless: bool = Field(default=True, description="Run browser in headless mode")
    locale: str = Field(default="pt-BR", description="Browser locale")
    timezone_id: str = Field(default="America/Sao_Paulo", description="Browser timezone")
    user_agents: list[str] = Field(
        default_factory=lambda: [
            "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36",
            "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36",
        ],
        description="User agent strings for rotation",
    )

    @field_validator('user_agents')
    @classmethod
    def validate_user_agents(cls, v: list[str]) -> list[str]:
        """Ensure at least one user agent is provided."""
        if not v:
            raise ValueError("At least one user agent is required")
        return v


class AppConfig(BaseModel):
    """Root configuration model containing all sub-configurations."""

    engine: EngineConfig = Field(default_factory=EngineConfig)
    browser: BrowserConfig = Field(default_factory=BrowserConfig)
    sites_file: str = Field(default="config/sites.yaml", description="YAML file with site definitions")
    log_level: str = Field(default="INFO", description="Logging level")

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Invalid log level. Choose from: {valid_levels}")
        return v_upper

    def sites_path(self) -> Path:
        """Resolve sites_file relative to the project root when not absolute."""
        path = Path(self.sites_file)
        if not path.is_absolute():
            path = PROJECT_ROOT / path
        return path


_config: Optional[AppConfig] = None


def load_config(config_path: Optional[Path | str] = None) -> AppConfig:
    """Load and validate configuration from YAML file.

    Args:
        config_path: Path to configuration file. Defaults to the ADRADAR_CONFIG
                    env var, then config/config.yaml in the project root. When
                    neither exists, built-in defaults are used.

    Returns:
        Validated AppConfig instance

    Raises:
        ConfigFileNotFoundError: If an explicit config path doesn't exist
        ConfigurationError: If configuration is invalid
    """
    explicit = config_path is not None
    if config_path is None:
        env_config_path = os.environ.get('ADRADAR_CONFIG')
        if env_config_path:
            config_path = Path(env_config_path)
            explicit = True
        else:
            config_path = PROJECT_ROOT / "config" / "config.yaml"
    else:
        config_path = Path(config_path)

    if not config_path.exists():
        if explicit:
            raise ConfigFileNotFoundError(
                f"Configuration file not found: {config_path}. "
                f"Copy config/config.example.yaml and customize it.",
                path=str(config_path),
            )
        return AppConfig()

    with open(config_path, 'r', encoding='utf-8') as f:
        config_dict = yaml.safe_load(f) or {}

    try:
        return AppConfig.model_validate(config_dict)
    except ValidationError as e:
        raise ConfigurationError(
            f"Invalid configuration in {config_path}: {e}",
            context={"path": str(config_path)},
        ) from e


def get_config(config_path: Optional[Path | str] = None, reload: bool = False) -> AppConfig:
    """Get configuration instance (cached after the first load).

    Args:
        config_path: Path to configuration file (only used on first call or if reload=True)
        reload: Force reload of configuration

    Returns:
        Cached or newly loaded AppConfig instance
    """
    global _config

    if _config is None or reload:
        _config = load_config(config_path)

    return _config


def reset_config() -> None:
    """Reset cached configuration (useful for testing)."""
    global _config
    _config = None
