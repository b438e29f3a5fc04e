"""
Settings for the tool guard.

Uses Pydantic Settings to load environment variables.
All settings prefixed with TOOLGUARD_ for namespace isolation.
"""

import logging

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .config.parser import ConfigParser
from .config.schema import GuardConfig
from .dispatcher import ToolDispatcher

logger = logging.getLogger(__name__)


class GuardSettings(BaseSettings):
    """
    Settings for the tool guard.

    All environment variables are prefixed with TOOLGUARD_.
    Example: TOOLGUARD_CONFIG_PATH, TOOLGUARD_HOME_DIR
    """

    config_path: str | None = Field(
        None,
        description="YAML file with tool routing (defaults apply when unset)",
    )
    home_dir: str | None = Field(
        None,
        description="Home directory for ~ expansion; overrides homeDir in YAML",
    )
    log_level: str = Field(
        "INFO",
        description="Logging level",
    )

    model_config = SettingsConfigDict(
        env_prefix="TOOLGUARD_",
        env_file=".env",
        extra="ignore",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """
        Validate log level is valid.

        Args:
            v: Log level string.

        Returns:
            Uppercase log level.

        Raises:
            ValueError: If log level is invalid.
        """
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return v.upper()

    @field_validator("home_dir")
    @classmethod
    def validate_home_dir(cls, v: str | None) -> str | None:
        """
        Validate home directory is absolute.

        Args:
            v: Home directory or None.

        Returns:
            The home directory, or None when empty.

        Raises:
            ValueError: If the path is relative.
        """
        if not v:
            return None
        if not v.startswith("/"):
            raise ValueError(f"Invalid home_dir: {v}. Must be an absolute path")
        return v


_settings: GuardSettings | None = None


def get_settings() -> GuardSettings:
    """
    Get guard settings from environment.

    Returns:
        GuardSettings instance.
    """
    global _settings
    if _settings is None:
        _settings = GuardSettings()  # type: ignore[call-arg]
    return _settings


def reset_settings() -> None:
    """
    Reset settings for testing.

    Clears the cached settings instance.
    """
    global _settings
    _settings = None


def load_config(settings: GuardSettings) -> GuardConfig:
    """
    Build the guard configuration from settings.

    Args:
        settings: Guard settings.

    Returns:
        Configuration from ``config_path`` (or defaults), with
        ``home_dir`` from settings taking precedence.

    Raises:
        FileNotFoundError: If ``config_path`` does not exist.
        ValueError: If the configuration is invalid.
    """
    if settings.config_path:
        config = ConfigParser(settings.config_path).load()
    else:
        config = GuardConfig()
    if settings.home_dir:
        config = GuardConfig(routing=config.routing, home_dir=settings.home_dir)
    return config


def build_dispatcher(settings: GuardSettings | None = None) -> ToolDispatcher:
    """
    Assemble a dispatcher for the process.

    Args:
        settings: Guard settings (read from environment when None).

    Returns:
        Configured ToolDispatcher.
    """
    settings = settings or get_settings()
    # Package logger, whichever import path loaded us
    logging.getLogger(__name__.rsplit(".", 1)[0]).setLevel(settings.log_level)
    config = load_config(settings)
    logger.info(
        f"🔒 Tool guard configured from {settings.config_path or 'defaults'}"
    )
    return ToolDispatcher(config=config)
