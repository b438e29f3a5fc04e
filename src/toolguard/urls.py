"""
Browser navigation guard.

Denies ``file://`` URLs and browser-internal schemes. Every other scheme,
``http`` and ``https`` included, is allowed; hosts are not inspected.
"""

import re
from typing import Any

from .models import ALLOWED, Rule, RuleCategory, RuleSet, ValidationResult

_SCHEME = re.compile(r"^([A-Za-z][A-Za-z0-9+.-]*):")
_TAB_OR_NEWLINE = re.compile(r"[\t\n\r]")
_C0_CONTROL_OR_SPACE = "".join(chr(c) for c in range(0x21))

INTERNAL_SCHEMES: frozenset[str] = frozenset({
    "about",
    "brave",
    "chrome",
    "chrome-extension",
    "chrome-search",
    "chrome-untrusted",
    "devtools",
    "edge",
    "moz-extension",
    "opera",
    "resource",
    "view-source",
    "vivaldi",
})

URL_RULES = RuleSet(
    name="url",
    rules=(
        Rule(
            lambda scheme: scheme == "file",
            "Local file access via browser blocked",
            RuleCategory.BLOCKED_URL_SCHEME,
        ),
        Rule(
            lambda scheme: scheme in INTERNAL_SCHEMES,
            "Browser internal URL blocked",
            RuleCategory.BLOCKED_URL_SCHEME,
        ),
    ),
)


def url_scheme(url: str) -> str | None:
    """
    Extract the lower-cased scheme of a URL.

    The URL is cleaned the way browsers parse it first: tabs and newlines
    are removed anywhere, then leading and trailing C0 controls and spaces
    are stripped.

    Args:
        url: URL as given to the browser tool.

    Returns:
        Scheme without the colon, or None if the URL has none.
    """
    cleaned = _TAB_OR_NEWLINE.sub("", url).strip(_C0_CONTROL_OR_SPACE)
    match = _SCHEME.match(cleaned)
    return match.group(1).lower() if match else None


class UrlGuard:
    """Allow/deny verdicts for browser navigation targets."""

    def __init__(self, rules: RuleSet = URL_RULES) -> None:
        self.rules = rules

    def validate(self, url: Any) -> ValidationResult:
        """
        Check a navigation target.

        Args:
            url: URL to navigate to. Non-strings are allowed.

        Returns:
            Denial for local-file and browser-internal URLs, otherwise approval.
        """
        if not isinstance(url, str):
            return ALLOWED
        scheme = url_scheme(url)
        if scheme is None:
            return ALLOWED
        return self.rules.evaluate(scheme)


_default_guard = UrlGuard()


def validate_browser_url(url: Any) -> ValidationResult:
    """Check a navigation target against the default guard."""
    return _default_guard.validate(url)
