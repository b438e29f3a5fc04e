"""
Tool Guard - Pre-execution Safety Engine for Agent Tool Calls

This package provides a static policy gate with:
- Shell command classification (8 ordered rule categories)
- Write-path guarding for system and credential directories
- Browser URL guarding for local-file and browser-internal schemes
- A dispatcher routing arbitrary tool calls to the right guard
- Agent Framework middleware that short-circuits denied invocations

The engine inspects requested actions; it does not sandbox execution.
"""

from .commands import CommandClassifier, validate_command
from .dispatcher import ToolDispatcher, classify_tool_call, validate_tool_call
from .models import Rule, RuleCategory, RuleSet, ToolCall, ValidationResult
from .paths import PathGuard, validate_write_path
from .urls import UrlGuard, validate_browser_url

__version__ = "0.1.0"

__all__ = [
    "CommandClassifier",
    "PathGuard",
    "Rule",
    "RuleCategory",
    "RuleSet",
    "ToolCall",
    "ToolDispatcher",
    "UrlGuard",
    "ValidationResult",
    "classify_tool_call",
    "validate_browser_url",
    "validate_command",
    "validate_tool_call",
    "validate_write_path",
]
