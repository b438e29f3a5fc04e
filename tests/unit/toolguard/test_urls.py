"""
Unit tests for UrlGuard.

Tests cover local-file and browser-internal schemes, scheme parsing,
and allowed web URLs.
"""

import pytest

from src.toolguard.models import ValidationResult
from src.toolguard.urls import UrlGuard, url_scheme, validate_browser_url

FILE_BLOCKED = ValidationResult(allowed=False, reason="Local file access via browser blocked")
INTERNAL_BLOCKED = ValidationResult(allowed=False, reason="Browser internal URL blocked")


@pytest.fixture
def guard() -> UrlGuard:
    """Create a UrlGuard with default rules."""
    return UrlGuard()


class TestBlockedUrls:
    """Tests for denied navigation targets."""

    def test_file_url(self, guard: UrlGuard) -> None:
        """Test file:// URLs are denied."""
        assert guard.validate("file:///etc/passwd") == FILE_BLOCKED

    def test_chrome_url(self, guard: UrlGuard) -> None:
        """Test chrome:// URLs are denied."""
        assert guard.validate("chrome://settings") == INTERNAL_BLOCKED

    def test_about_url(self, guard: UrlGuard) -> None:
        """Test about: URLs are denied."""
        assert guard.validate("about:config") == INTERNAL_BLOCKED

    @pytest.mark.parametrize(
        "url",
        [
            "chrome-extension://abcdef/popup.html",
            "edge://flags",
            "moz-extension://1234/page.html",
            "devtools://devtools/bundled/inspector.html",
            "view-source:https://example.com",
            "about:blank",
        ],
        ids=["chrome-extension", "edge", "moz-extension", "devtools", "view-source", "about-blank"],
    )
    def test_vendor_internal_schemes(self, guard: UrlGuard, url: str) -> None:
        """Test other vendor-internal schemes share the internal reason."""
        assert guard.validate(url) == INTERNAL_BLOCKED

    @pytest.mark.parametrize(
        "url",
        ["FILE:///etc/passwd", "  file:///tmp/x", "File://localhost/etc/hosts"],
        ids=["upper", "leading-space", "mixed-case"],
    )
    def test_file_scheme_variants(self, guard: UrlGuard, url: str) -> None:
        """Test scheme matching is case-insensitive and ignores leading blanks."""
        assert guard.validate(url) == FILE_BLOCKED

    @pytest.mark.parametrize(
        "url",
        [
            "fi\tle:///etc/passwd",
            "fi\nle:///etc/passwd",
            "f\ri\tl\ne:///etc/passwd",
            "\x01file:///etc/passwd",
            "\x00\x1f file:///etc/passwd",
            "file:///etc/passwd\x00",
        ],
        ids=["tab", "newline", "mixed-breaks", "leading-control", "leading-nul-space", "trailing-nul"],
    )
    def test_browser_cleanup_applied(self, guard: UrlGuard, url: str) -> None:
        """Test tabs, newlines and edge control characters are dropped as browsers do."""
        assert guard.validate(url) == FILE_BLOCKED

    def test_internal_scheme_with_tab(self, guard: UrlGuard) -> None:
        """Test internal schemes are cleaned the same way."""
        assert guard.validate("chro\tme://settings") == INTERNAL_BLOCKED


class TestAllowedUrls:
    """Tests for allowed navigation targets."""

    @pytest.mark.parametrize(
        "url",
        [
            "https://example.com",
            "http://localhost:3000",
            "HTTPS://EXAMPLE.COM/path?q=1",
            "example.com",
            "localhost:3000",
            "",
        ],
        ids=["https", "http-localhost", "upper-https", "no-scheme", "host-port", "empty"],
    )
    def test_allowed(self, guard: UrlGuard, url: str) -> None:
        """Test web URLs and scheme-less input are allowed."""
        assert guard.validate(url) == ValidationResult(allowed=True)

    def test_non_string_allowed(self, guard: UrlGuard) -> None:
        """Test non-string input matches no rule."""
        assert guard.validate(None) == ValidationResult(allowed=True)


class TestUrlScheme:
    """Tests for url_scheme."""

    @pytest.mark.parametrize(
        "url,expected",
        [
            ("https://example.com", "https"),
            ("about:config", "about"),
            ("Chrome://settings", "chrome"),
            ("/relative/path", None),
            ("", None),
        ],
        ids=["https", "about", "mixed-case", "path", "empty"],
    )
    def test_scheme(self, url: str, expected: str | None) -> None:
        """Test scheme extraction."""
        assert url_scheme(url) == expected


def test_validate_browser_url() -> None:
    """Test the module-level helper uses the default guard."""
    assert validate_browser_url("file:///etc/passwd") == FILE_BLOCKED
    assert validate_browser_url("https://example.com").allowed is True
