"""
Write-path guard.

Denies file writes into system configuration, system binaries, the user's
SSH directory and the macOS system tree. Paths are normalized textually;
symlinks are not resolved. Prefixes are compared case-insensitively, as
the default macOS volume is case-insensitive (``~/.SSH`` is ``~/.ssh``).
"""

import logging
import os
import posixpath
from typing import Any

from .models import ALLOWED, Rule, RuleCategory, RuleSet, ValidationResult

logger = logging.getLogger(__name__)

_HOME_PREFIXES = ("~", "$HOME", "${HOME}")


def _under(path: str, root: str) -> bool:
    path, root = path.casefold(), root.casefold()
    return path == root or path.startswith(root.rstrip("/") + "/")


def _under_prefix(root: str):
    return lambda path: _under(path, root)


class PathGuard:
    """
    Allow/deny verdicts for filesystem write targets.

    The home directory is fixed at construction, so verdicts never depend
    on process state that changes after startup.
    """

    def __init__(self, home: str | None = None) -> None:
        """
        Initialize the guard.

        Args:
            home: Home directory used to expand ``~`` and ``$HOME``.
                Defaults to the current user's home.
        """
        self.home = posixpath.normpath(home or os.path.expanduser("~"))
        self.rules = RuleSet(
            name="path",
            rules=(
                Rule(
                    _under_prefix("/etc"),
                    "Cannot write to system configuration directory",
                    RuleCategory.PROTECTED_PATH,
                ),
                Rule(
                    _under_prefix("/usr"),
                    "Cannot write to system binaries directory",
                    RuleCategory.PROTECTED_PATH,
                ),
                Rule(
                    _under_prefix(posixpath.join(self.home, ".ssh")),
                    "Cannot write to SSH directory",
                    RuleCategory.PROTECTED_PATH,
                ),
                Rule(
                    _under_prefix("/System"),
                    "Cannot write to macOS system directory",
                    RuleCategory.PROTECTED_PATH,
                ),
            ),
        )

    def resolve(self, path: str) -> str | None:
        """
        Resolve a path for comparison.

        Args:
            path: Raw write target.

        Returns:
            Normalized absolute path, or None for relative paths.
        """
        path = path.strip()
        for prefix in _HOME_PREFIXES:
            if path == prefix or path.startswith(prefix + "/"):
                path = self.home + path[len(prefix):]
                break
        if not path.startswith("/"):
            return None
        # normpath keeps a leading "//"
        return "/" + posixpath.normpath(path).lstrip("/")

    def validate(self, path: Any) -> ValidationResult:
        """
        Check a write target.

        Args:
            path: File path the tool will write. Non-strings are allowed.

        Returns:
            Denial naming the protected directory, otherwise approval.
        """
        if not isinstance(path, str):
            return ALLOWED
        resolved = self.resolve(path)
        if resolved is None:
            return ALLOWED
        result = self.rules.evaluate(resolved)
        if not result.allowed:
            logger.debug(f"  🚫 Path rule hit: {path} → {resolved}")
        return result


_default_guard = PathGuard()


def validate_write_path(path: Any) -> ValidationResult:
    """Check a write target against the default guard."""
    return _default_guard.validate(path)
