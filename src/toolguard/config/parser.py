"""
Configuration Parser for the Tool Guard

Loads YAML configuration files and converts them to typed Python objects.
Supports environment variable expansion using ${VAR} or ${VAR:-default} syntax.

Example:
    tools:
      shell: [bash]
      write: [write, edit, multiedit]
      browser: [browser]
      navigateAction: navigate
    homeDir: ${HOME}
"""

import os
import re
from pathlib import Path
from typing import Any

import yaml

from .schema import (
    DEFAULT_BROWSER_TOOLS,
    DEFAULT_SHELL_TOOLS,
    DEFAULT_WRITE_TOOLS,
    GuardConfig,
    ToolRouting,
)


class ConfigParser:
    """
    YAML configuration parser with environment variable expansion.

    Usage:
        parser = ConfigParser("config/toolguard.yaml")
        config = parser.load()
    """

    def __init__(self, config_path: str) -> None:
        """
        Initialize parser with configuration file path.

        Args:
            config_path: Path to YAML configuration file

        Raises:
            FileNotFoundError: If config file doesn't exist
        """
        self.config_path = Path(config_path)
        if not self.config_path.exists():
            raise FileNotFoundError(
                f"Configuration file not found: {self.config_path}"
            )

    def load(self) -> GuardConfig:
        """
        Load and parse configuration file.

        Returns:
            Parsed and validated configuration

        Raises:
            yaml.YAMLError: If YAML parsing fails
            ValueError: If configuration is invalid
        """
        with open(self.config_path, "r", encoding="utf-8") as f:
            raw_config = yaml.safe_load(f)

        # An empty file means "all defaults"
        if raw_config is None:
            raw_config = {}

        if not isinstance(raw_config, dict):
            raise ValueError(
                f"Invalid configuration: expected dict, got {type(raw_config)}"
            )

        expanded = self._expand_env_vars(raw_config)

        return self._parse_config(expanded)

    def _expand_env_vars(self, config: Any) -> Any:
        """
        Recursively expand ${ENV_VAR} and ${ENV_VAR:-default} placeholders.

        Args:
            config: Configuration value (can be dict, list, str, etc.)

        Returns:
            Configuration with environment variables expanded
        """

        def expand_value(value: Any) -> Any:
            if isinstance(value, str):
                pattern = r"\$\{([^}:]+)(?::-(.*))?\}"

                def replacer(match: re.Match[str]) -> str:
                    env_var = match.group(1)
                    default = match.group(2) or ""
                    return os.getenv(env_var, default)

                return re.sub(pattern, replacer, value)
            elif isinstance(value, dict):
                return {k: expand_value(v) for k, v in value.items()}
            elif isinstance(value, list):
                return [expand_value(v) for v in value]
            else:
                return value

        return expand_value(config)

    def _parse_config(self, raw: dict[str, Any]) -> GuardConfig:
        """
        Parse raw dictionary into GuardConfig.

        Args:
            raw: Raw configuration dictionary

        Returns:
            Validated configuration object

        Raises:
            ValueError: If configuration is invalid
        """
        tools_raw = raw.get("tools") or {}
        if not isinstance(tools_raw, dict):
            raise ValueError("'tools' must be a mapping")

        routing = ToolRouting(
            shell=self._parse_patterns(tools_raw, "shell", DEFAULT_SHELL_TOOLS),
            write=self._parse_patterns(tools_raw, "write", DEFAULT_WRITE_TOOLS),
            browser=self._parse_patterns(tools_raw, "browser", DEFAULT_BROWSER_TOOLS),
            navigate_action=str(tools_raw.get("navigateAction", "navigate")),
        )

        return GuardConfig(
            routing=routing,
            home_dir=raw.get("homeDir") or None,
        )

    def _parse_patterns(
        self,
        raw: dict[str, Any],
        key: str,
        default: tuple[str, ...],
    ) -> tuple[str, ...]:
        """
        Parse a list of tool patterns.

        Args:
            raw: Raw ``tools`` mapping
            key: Group name
            default: Patterns used when the key is absent

        Returns:
            Patterns as a tuple

        Raises:
            ValueError: If the value is not a list of strings
        """
        if key not in raw:
            return default
        value = raw[key]
        if isinstance(value, str):
            value = [value]
        if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
            raise ValueError(f"'tools.{key}' must be a list of tool name patterns")
        return tuple(value)
