"""
Configuration Schema for the Tool Guard

Defines which tool identities route to which guard. Configuration is loaded
once at startup (see ``ConfigParser``) and never mutated afterwards.
"""

from dataclasses import dataclass, field

DEFAULT_SHELL_TOOLS: tuple[str, ...] = ("bash",)
DEFAULT_WRITE_TOOLS: tuple[str, ...] = ("write", "edit", "multiedit")
DEFAULT_BROWSER_TOOLS: tuple[str, ...] = ("browser",)


@dataclass(frozen=True)
class ToolRouting:
    """
    Tool identity patterns per guard.

    Patterns are matched with ``fnmatch`` against the lower-cased last
    namespace segment of a tool name (``mcp__server__browser`` → ``browser``).

    Attributes:
        shell: Tools whose ``command`` argument is a shell command.
        write: Tools whose ``file_path`` argument is a write target.
        browser: Tools whose ``url`` argument is navigated to.
        navigate_action: ``action`` value that makes a browser call a navigation.
    """

    shell: tuple[str, ...] = DEFAULT_SHELL_TOOLS
    write: tuple[str, ...] = DEFAULT_WRITE_TOOLS
    browser: tuple[str, ...] = DEFAULT_BROWSER_TOOLS
    navigate_action: str = "navigate"

    def __post_init__(self) -> None:
        """
        Validate routing after initialization.

        Raises:
            ValueError: If a group is empty, a pattern is blank, a pattern
                appears in more than one group, or the navigate action is empty.
        """
        groups = {"shell": self.shell, "write": self.write, "browser": self.browser}
        seen: dict[str, str] = {}
        for group, patterns in groups.items():
            if not patterns:
                raise ValueError(f"Tool routing '{group}' must list at least one pattern")
            for pattern in patterns:
                if not pattern or not pattern.strip():
                    raise ValueError(f"Tool routing '{group}' contains an empty pattern")
                key = pattern.lower()
                if key in seen and seen[key] != group:
                    raise ValueError(
                        f"Pattern '{pattern}' is routed to both "
                        f"'{seen[key]}' and '{group}'"
                    )
                seen[key] = group

        if not self.navigate_action:
            raise ValueError("navigate_action cannot be empty")


@dataclass(frozen=True)
class GuardConfig:
    """
    Root configuration for the tool guard.

    Attributes:
        routing: Tool identity routing.
        home_dir: Home directory for ``~`` expansion (None = current user's).
    """

    routing: ToolRouting = field(default_factory=ToolRouting)
    home_dir: str | None = None

    def __post_init__(self) -> None:
        """
        Validate configuration after initialization.

        Raises:
            ValueError: If home_dir is set but not absolute.
        """
        if self.home_dir is not None and not self.home_dir.startswith("/"):
            raise ValueError(f"home_dir must be an absolute path, got '{self.home_dir}'")
