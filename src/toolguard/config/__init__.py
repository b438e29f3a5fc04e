"""Configuration system for the tool guard."""

from .parser import ConfigParser
from .schema import GuardConfig, ToolRouting

__all__ = [
    "ConfigParser",
    "GuardConfig",
    "ToolRouting",
]
