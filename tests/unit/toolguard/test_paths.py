"""
Unit tests for PathGuard.

Tests cover each protected directory, home expansion, textual
normalization and the allowed workspace/relative paths.
"""

import pytest

from src.toolguard.models import RuleCategory, ValidationResult
from src.toolguard.paths import PathGuard, validate_write_path

HOME = "/Users/user"


@pytest.fixture
def guard() -> PathGuard:
    """Create a PathGuard with a fixed home directory."""
    return PathGuard(home=HOME)


class TestProtectedDirectories:
    """Tests for denied write targets."""

    def test_etc(self, guard: PathGuard) -> None:
        """Test /etc paths are denied."""
        assert guard.validate("/etc/passwd") == ValidationResult(
            allowed=False, reason="Cannot write to system configuration directory"
        )

    def test_usr(self, guard: PathGuard) -> None:
        """Test /usr paths are denied."""
        assert guard.validate("/usr/bin/node") == ValidationResult(
            allowed=False, reason="Cannot write to system binaries directory"
        )

    def test_ssh(self, guard: PathGuard) -> None:
        """Test ~/.ssh paths are denied."""
        assert guard.validate("~/.ssh/authorized_keys") == ValidationResult(
            allowed=False, reason="Cannot write to SSH directory"
        )

    def test_macos_system(self, guard: PathGuard) -> None:
        """Test /System paths are denied."""
        assert guard.validate("/System/Library/Extensions/test.kext") == ValidationResult(
            allowed=False, reason="Cannot write to macOS system directory"
        )

    def test_category(self, guard: PathGuard) -> None:
        """Test denials carry the protected-path category."""
        assert guard.validate("/etc/hosts").category == RuleCategory.PROTECTED_PATH

    @pytest.mark.parametrize(
        "path,reason",
        [
            ("/etc", "Cannot write to system configuration directory"),
            ("/usr/local/bin/tool", "Cannot write to system binaries directory"),
            (f"{HOME}/.ssh/id_ed25519", "Cannot write to SSH directory"),
            ("$HOME/.ssh/config", "Cannot write to SSH directory"),
            ("${HOME}/.ssh/config", "Cannot write to SSH directory"),
            ("~/.ssh", "Cannot write to SSH directory"),
            ("/tmp/../etc/shadow", "Cannot write to system configuration directory"),
            ("//etc//sudoers", "Cannot write to system configuration directory"),
            ("/./usr/bin/env", "Cannot write to system binaries directory"),
        ],
        ids=[
            "etc-itself", "usr-local", "absolute-ssh", "dollar-home", "braced-home",
            "ssh-itself", "dot-dot", "double-slash", "dot-segment",
        ],
    )
    def test_resolved_forms(self, guard: PathGuard, path: str, reason: str) -> None:
        """Test home-relative and unnormalized paths are resolved before matching."""
        assert guard.validate(path) == ValidationResult(allowed=False, reason=reason)

    @pytest.mark.parametrize(
        "path,reason",
        [
            ("/Users/user/.SSH/authorized_keys", "Cannot write to SSH directory"),
            ("/users/USER/.ssh/config", "Cannot write to SSH directory"),
            ("~/.Ssh/id_rsa", "Cannot write to SSH directory"),
            ("/ETC/hosts", "Cannot write to system configuration directory"),
            ("/Usr/local/bin/tool", "Cannot write to system binaries directory"),
            ("/system/Library/Extensions/x.kext", "Cannot write to macOS system directory"),
        ],
        ids=["upper-ssh", "upper-home", "tilde-mixed-ssh", "upper-etc", "mixed-usr", "lower-system"],
    )
    def test_case_insensitive_prefixes(self, guard: PathGuard, path: str, reason: str) -> None:
        """Test protected prefixes match regardless of case."""
        assert guard.validate(path) == ValidationResult(allowed=False, reason=reason)


class TestAllowedPaths:
    """Tests for allowed write targets."""

    @pytest.mark.parametrize(
        "path",
        [
            "/Users/user/projects/myapp/src/index.ts",
            "./src/index.ts",
            "src/index.ts",
            "~/projects/notes.md",
            "/etcetera/file",
            "/usrlocal/file",
            "/tmp/output.log",
            "~/.sshconfig-backup",
            "",
        ],
        ids=[
            "workspace", "dot-relative", "relative", "home-project", "etc-prefix-sibling",
            "usr-prefix-sibling", "tmp", "ssh-prefix-sibling", "empty",
        ],
    )
    def test_allowed(self, guard: PathGuard, path: str) -> None:
        """Test ordinary paths are allowed."""
        assert guard.validate(path) == ValidationResult(allowed=True)

    def test_relative_traversal_not_resolved(self, guard: PathGuard) -> None:
        """Test relative paths are not resolved against the working directory."""
        assert guard.validate("../../etc/passwd").allowed is True

    def test_other_users_ssh_allowed(self, guard: PathGuard) -> None:
        """Test only the configured home's .ssh is protected."""
        assert guard.validate("/home/other/.ssh/authorized_keys").allowed is True

    @pytest.mark.parametrize("value", [None, 7, {"path": "/etc"}], ids=["none", "int", "dict"])
    def test_non_string_allowed(self, guard: PathGuard, value: object) -> None:
        """Test non-string input matches no rule."""
        assert guard.validate(value) == ValidationResult(allowed=True)


class TestResolve:
    """Tests for PathGuard.resolve."""

    def test_expands_tilde(self, guard: PathGuard) -> None:
        """Test ~ expands to the configured home."""
        assert guard.resolve("~/a/b") == f"{HOME}/a/b"

    def test_bare_tilde(self, guard: PathGuard) -> None:
        """Test a bare ~ is the home directory."""
        assert guard.resolve("~") == HOME

    def test_relative_is_none(self, guard: PathGuard) -> None:
        """Test relative paths do not resolve."""
        assert guard.resolve("./a") is None

    def test_other_user_tilde_is_relative(self, guard: PathGuard) -> None:
        """Test ~user forms are not expanded."""
        assert guard.resolve("~root/.ssh") is None

    def test_normalizes(self, guard: PathGuard) -> None:
        """Test textual normalization."""
        assert guard.resolve("/a//b/./c/../d") == "/a/b/d"


class TestDefaultGuard:
    """Tests for the module-level helper."""

    def test_validate_write_path(self) -> None:
        """Test validate_write_path uses the default guard."""
        assert validate_write_path("/etc/passwd").allowed is False
        assert validate_write_path("./src/index.ts").allowed is True

    def test_default_home(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test the default home comes from the user's environment."""
        monkeypatch.setenv("HOME", "/home/tester")
        guard = PathGuard()
        assert guard.home == "/home/tester"
        assert guard.validate("~/.ssh/known_hosts").allowed is False
