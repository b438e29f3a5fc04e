"""
Tool Dispatcher: routes tool calls to the guard that applies.

A tool call is first classified into one of four variants:

    ShellCommandCall     → CommandClassifier (``command``)
    FileWriteCall        → PathGuard (``file_path``)
    BrowserNavigateCall  → UrlGuard (``url``, only when ``action == "navigate"``)
    UnguardedCall        → always allowed

Tool identity is structural: the name is reduced to its last namespace
segment so the same guard attaches however the transport prefixes it.
A matched tool missing its field (or carrying a non-string) is unguarded;
the dispatcher only denies on a positive rule match.
"""

import fnmatch
import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from .commands import CommandClassifier
from .config.schema import GuardConfig, ToolRouting
from .models import ALLOWED, ToolCall, ValidationResult
from .paths import PathGuard
from .urls import UrlGuard

logger = logging.getLogger(__name__)

_NAMESPACE_SEPARATOR = re.compile(r"__|[./:]")


@dataclass(frozen=True)
class ShellCommandCall:
    """Shell tool invocation."""

    tool_name: str
    command: str


@dataclass(frozen=True)
class FileWriteCall:
    """File-write tool invocation."""

    tool_name: str
    file_path: str


@dataclass(frozen=True)
class BrowserNavigateCall:
    """Browser navigation."""

    tool_name: str
    url: str


@dataclass(frozen=True)
class UnguardedCall:
    """Any call no guard applies to."""

    tool_name: str


GuardedCall = ShellCommandCall | FileWriteCall | BrowserNavigateCall | UnguardedCall


def tool_identity(tool_name: str) -> str:
    """
    Reduce a possibly namespaced tool name to its identity.

    Args:
        tool_name: Tool name, e.g. ``Bash`` or ``mcp__pocket-agent__browser``.

    Returns:
        Lower-cased last namespace segment.
    """
    return _NAMESPACE_SEPARATOR.split(tool_name.strip())[-1].lower()


def _matches(identity: str, patterns: tuple[str, ...]) -> bool:
    return any(fnmatch.fnmatchcase(identity, pat.lower()) for pat in patterns)


def classify_tool_call(
    tool_name: Any,
    arguments: Any,
    routing: ToolRouting | None = None,
) -> GuardedCall:
    """
    Classify a tool call into the variant its guard understands.

    Args:
        tool_name: Tool name as supplied by the transport.
        arguments: Argument bag.
        routing: Tool identity routing (defaults apply when None).

    Returns:
        The guarded variant, or UnguardedCall when no guard applies or the
        expected field is missing or not a string.
    """
    if not isinstance(tool_name, str):
        return UnguardedCall(tool_name=str(tool_name))
    if routing is None:
        routing = ToolRouting()
    if not isinstance(arguments, Mapping):
        return UnguardedCall(tool_name=tool_name)

    identity = tool_identity(tool_name)

    if _matches(identity, routing.shell):
        command = arguments.get("command")
        if isinstance(command, str):
            return ShellCommandCall(tool_name=tool_name, command=command)

    elif _matches(identity, routing.write):
        file_path = arguments.get("file_path")
        if isinstance(file_path, str):
            return FileWriteCall(tool_name=tool_name, file_path=file_path)

    elif _matches(identity, routing.browser):
        url = arguments.get("url")
        if arguments.get("action") == routing.navigate_action and isinstance(url, str):
            return BrowserNavigateCall(tool_name=tool_name, url=url)

    return UnguardedCall(tool_name=tool_name)


class ToolDispatcher:
    """
    Entry point of the safety engine.

    Called synchronously by the tool pipeline before a tool has any effect.
    Holds only immutable configuration and stateless guards, so one
    instance can serve concurrent callers.
    """

    def __init__(
        self,
        config: GuardConfig | None = None,
        commands: CommandClassifier | None = None,
        paths: PathGuard | None = None,
        urls: UrlGuard | None = None,
    ) -> None:
        """
        Initialize the dispatcher.

        Args:
            config: Guard configuration (defaults apply when None).
            commands: Shell command classifier.
            paths: Write-path guard. Built from ``config.home_dir`` when None.
            urls: Browser URL guard.
        """
        self.config = config or GuardConfig()
        self.commands = commands or CommandClassifier()
        self.paths = paths or PathGuard(home=self.config.home_dir)
        self.urls = urls or UrlGuard()

        routing = self.config.routing
        logger.info(
            f"🔒 ToolDispatcher initialized (shell={list(routing.shell)}, "
            f"write={list(routing.write)}, browser={list(routing.browser)})"
        )

    def route(self, tool_name: Any, arguments: Any) -> GuardedCall:
        """Classify a call using this dispatcher's routing."""
        return classify_tool_call(tool_name, arguments, self.config.routing)

    def validate(self, tool_name: Any, arguments: Any) -> ValidationResult:
        """
        Validate a tool call.

        Args:
            tool_name: Tool name as supplied by the transport.
            arguments: Argument bag.

        Returns:
            The applicable guard's verdict; approval for unguarded calls.
        """
        call = self.route(tool_name, arguments)

        if isinstance(call, ShellCommandCall):
            result = self.commands.validate(call.command)
        elif isinstance(call, FileWriteCall):
            result = self.paths.validate(call.file_path)
        elif isinstance(call, BrowserNavigateCall):
            result = self.urls.validate(call.url)
        else:
            logger.debug(f"  ⏭️ No guard for tool '{call.tool_name}'")
            return ALLOWED

        if not result.allowed:
            logger.warning(f"🛑 Blocked {call.tool_name}: {result.reason}")
        return result

    def validate_call(self, call: ToolCall) -> ValidationResult:
        """Validate a ToolCall."""
        return self.validate(call.name, call.arguments)


_default_dispatcher = ToolDispatcher()


def validate_tool_call(tool_name: Any, arguments: Any) -> ValidationResult:
    """Validate a tool call with the default dispatcher."""
    return _default_dispatcher.validate(tool_name, arguments)
