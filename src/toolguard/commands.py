"""
Shell command classifier.

Classifies a shell command string, before it is executed, as allowed or
denied. Rules are grouped into categories evaluated in precedence order:

    1. System destruction (rm of root/home, disk overwrite, mkfs, fork bomb)
    2. Shutdown / reboot / runlevel changes
    3. Killing init or every process
    4. Reverse shells
    5. Security bypass (SIP, SELinux, firewall flush)
    6. History tampering
    7. Permission / ownership changes on root
    8. Pipe-to-shell of remotely fetched scripts

Arguments and flags are matched case-sensitively. Program names are folded
to lower case, since macOS volumes resolve ``REBOOT`` to ``reboot``. The
command is tokenized quote-aware and every statement is scanned: statements
are split on ``;``, ``&&``, ``||``, ``&``, newlines, parentheses and command
substitution, and ``sh -c`` / ``eval`` scripts are scanned recursively up to
``_MAX_NESTING`` levels (chained ``eval eval ...`` counts as one). Leading
``sudo``, ``env``, assignments and shell keywords are stripped, and programs
are identified by basename.
"""

import logging
import re
import shlex
from collections.abc import Callable, Iterator
from functools import lru_cache
from typing import Any

from .models import ALLOWED, Rule, RuleCategory, RuleSet, ValidationResult

logger = logging.getLogger(__name__)

Argv = tuple[str, ...]
Pipeline = tuple[Argv, ...]

_BLANKS = re.compile(r"[ \t\r\f\v]+")
_FD_PREFIX = re.compile(r"(?<![\w/.-])\d+(?=[<>])")
_FALLBACK_TOKEN = re.compile(r"[();<>|&]+|[^\s();<>|&]+")
_PUNCTUATION = frozenset("();<>|&")
_SUBSTITUTION = re.compile(r"\$\(([^()]*)\)|`([^`]*)`")
_ASSIGNMENT = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*=")

# Scripts nested deeper than this are parsed but not expanded further
_MAX_NESTING = 16

_SHELLS = frozenset({"bash", "sh", "zsh", "dash", "ksh"})
_KEYWORDS = frozenset({"{", "}", "!", "if", "then", "elif", "else", "do", "while", "until"})
_WRAPPERS = frozenset({"nohup", "time", "exec", "command", "builtin"})
_ESCALATORS = frozenset({"sudo", "doas"})
_SUDO_VALUE_FLAGS = frozenset({"-u", "-g", "-h", "-p", "-C", "-D", "-r", "-t", "-U", "-T"})
_ENV_VALUE_FLAGS = frozenset({"-u", "--unset", "-C", "--chdir"})

_ROOT_TARGETS = frozenset({"/", "/*"})
_HOME_CONTENTS = frozenset({
    "~/", "~/*",
    "$HOME", "$HOME/", "$HOME/*",
    "${HOME}", "${HOME}/", "${HOME}/*",
})

_DISK = r"/dev/(?:sd[a-z]|hd[a-z]|vd[a-z]|xvd[a-z]|nvme\d|mmcblk\d|r?disk\d)"
_DISK_DEVICE = re.compile(_DISK)
_DISK_REDIRECT = re.compile(r">\|?\s*" + _DISK)
_FORK_BOMB = re.compile(
    r"(?:\bfunction\s+(?P<kw>[\w:.-]+)\s*(?:\(\s*\))?|(?P<name>[\w:.-]+)\s*\(\s*\))"
    r"\s*\{(?P<body>[^}]*)\}"
)
_DEV_TCP = re.compile(r"/dev/tcp/")
_HISTORY_FILE = re.compile(r"^\.(?:\w+_)?history$")
_HISTORY_REDIRECT = re.compile(
    r"(?<!>)>(?!>)\|?\s*[\"']?(?:\S*/)?\.(?:\w+_)?history\b"
)
_HISTORY_DISABLE = re.compile(
    r"\bHISTFILE=[\"']?/dev/null|\bHISTSIZE=[\"']?0\b|\bset\s+\+o\s+history\b"
)
_SIGNAL = re.compile(r"^-(?:\d+|[A-Z][A-Z0-9+-]*)$")
_SYMBOLIC_MODE = re.compile(r"^([ugoa]*)([+=])([rwxXst]*)$")
_FETCH_SUBSTITUTION = re.compile(
    r"(?:\b(?:ba|z|da|k)?sh\s+(?:-\S+\s+)*|(?:^|[\s;&|])(?:source|\.)\s+)"
    r"(?:<\(|[\"']?\$\(|`)\s*(?:sudo\s+)?(?P<tool>curl|wget)\b"
)


def normalize_command(command: str) -> str:
    """
    Normalize a command for matching.

    Joins line continuations and collapses runs of blanks. Newlines are
    kept since they separate statements.

    Args:
        command: Raw command string.

    Returns:
        Normalized command.
    """
    joined = command.replace("\\\n", " ")
    return _BLANKS.sub(" ", joined).strip()


def _basename(word: str) -> str:
    return word.rsplit("/", 1)[-1]


def _program(word: str) -> str:
    return _basename(word).lower()


def _tokenize(command: str) -> list[str]:
    """Split into words and operator tokens, honouring shell quoting."""
    source = _FD_PREFIX.sub("", command.replace("\n", " ; "))
    lexer = shlex.shlex(source, posix=True, punctuation_chars=True)
    lexer.whitespace_split = True
    lexer.commenters = ""
    try:
        return list(lexer)
    except ValueError:
        # Unbalanced quotes or a trailing escape
        return _FALLBACK_TOKEN.findall(source)


def _strip_prefix(argv: list[str]) -> list[str]:
    """Drop keywords, wrappers, assignments and privilege escalation."""
    i = 0
    while i < len(argv):
        word = argv[i]
        program = _program(word)
        if word in _KEYWORDS or program in _WRAPPERS or _ASSIGNMENT.match(word):
            i += 1
        elif program in _ESCALATORS:
            i += 1
            while i < len(argv) and argv[i].startswith("-"):
                i += 2 if argv[i] in _SUDO_VALUE_FLAGS else 1
        elif program == "env":
            i += 1
            while i < len(argv) and (
                argv[i].startswith("-") or _ASSIGNMENT.match(argv[i])
            ):
                i += 2 if argv[i] in _ENV_VALUE_FLAGS else 1
        else:
            break
    rest = argv[i:]
    if rest:
        rest[0] = _program(rest[0])
    return rest


def _has_short_flag(word: str, letters: str) -> bool:
    return (
        word.startswith("-")
        and not word.startswith("--")
        and any(letter in word[1:] for letter in letters)
    )


def _split_flags(args: Argv) -> tuple[list[str], list[str]]:
    """Separate option words from operands (``--`` ends options)."""
    flags: list[str] = []
    operands: list[str] = []
    options_done = False
    for word in args:
        if options_done or word == "-" or not word.startswith("-"):
            operands.append(word)
        elif word == "--":
            options_done = True
        else:
            flags.append(word)
    return flags, operands


def _squash_slashes(path: str) -> str:
    return re.sub(r"/{2,}", "/", path)


@lru_cache(maxsize=512)
def _pipelines(command: str, depth: int = 0) -> tuple[Pipeline, ...]:
    """
    Parse a normalized command into pipelines of argument vectors.

    Args:
        command: Normalized command string.
        depth: Nesting level of ``command`` within the top-level command.

    Returns:
        Every pipeline in the command, including those nested in command
        substitutions and ``sh -c`` / ``eval`` scripts up to
        ``_MAX_NESTING`` levels deep.
    """
    pipelines: list[Pipeline] = []
    stages: list[Argv] = []
    words: list[str] = []
    redirect = False

    def end_stage() -> None:
        argv = _strip_prefix(words[:])
        words.clear()
        if argv:
            stages.append(tuple(argv))

    def end_pipeline() -> None:
        end_stage()
        if stages:
            pipelines.append(tuple(stages))
            stages.clear()

    for token in _tokenize(command):
        if token and all(ch in _PUNCTUATION for ch in token):
            if ("<" in token or ">" in token) and not ("(" in token or ")" in token):
                redirect = True
                continue
            redirect = False
            if token in ("|", "|&"):
                end_stage()
            else:
                end_pipeline()
            continue
        if redirect:
            redirect = False
            continue
        words.append(token)
    end_pipeline()

    if depth >= _MAX_NESTING:
        return tuple(pipelines)

    scripts = [
        match.group(1) if match.group(1) is not None else match.group(2)
        for match in _SUBSTITUTION.finditer(command)
    ]
    for pipeline in pipelines:
        for argv in pipeline:
            script = _inline_script(argv)
            if script is not None:
                scripts.append(script)

    nested: list[Pipeline] = []
    for script in scripts:
        nested.extend(_pipelines(normalize_command(script), depth + 1))
    return tuple(pipelines + nested)


def _inline_script(argv: Argv) -> str | None:
    """Return the script run by ``sh -c`` or ``eval``, if any."""
    if argv[0] in _SHELLS:
        for i, word in enumerate(argv[1:-1], start=1):
            if _has_short_flag(word, "c"):
                return argv[i + 1]
    elif argv[0] == "eval":
        words = list(argv[1:])
        while words and _program(words[0]) == "eval":
            del words[0]
        if words:
            return " ".join(words)
    return None


def _invocations(command: str, *programs: str) -> Iterator[Argv]:
    """Yield every invocation of the given programs in the command."""
    for pipeline in _pipelines(command):
        for argv in pipeline:
            if argv[0] in programs:
                yield argv


# --- System destruction -----------------------------------------------------


def _recursive_rm_targets(command: str) -> Iterator[str]:
    for argv in _invocations(command, "rm"):
        flags, operands = _split_flags(argv[1:])
        if any(_has_short_flag(f, "rR") or f == "--recursive" for f in flags):
            yield from (_squash_slashes(o) for o in operands)


def _deletes_root_or_home(command: str) -> bool:
    return any(t in ("/", "~") for t in _recursive_rm_targets(command))


def _deletes_everything_under_root(command: str) -> bool:
    return any(t == "/*" for t in _recursive_rm_targets(command))


def _deletes_home_contents(command: str) -> bool:
    return any(t in _HOME_CONTENTS for t in _recursive_rm_targets(command))


def _overwrites_disk(command: str) -> bool:
    if _DISK_REDIRECT.search(command):
        return True
    return any(
        arg.startswith("of=") and _DISK_DEVICE.match(arg[3:])
        for argv in _invocations(command, "dd")
        for arg in argv[1:]
    )


def _formats_filesystem(command: str) -> bool:
    return any(
        argv[0] == "mkfs" or argv[0].startswith("mkfs.")
        for pipeline in _pipelines(command)
        for argv in pipeline
    )


def _is_fork_bomb(command: str) -> bool:
    """Detect a function whose body pipes itself into itself in the background."""
    for match in _FORK_BOMB.finditer(command):
        name = re.escape(match.group("kw") or match.group("name"))
        self_pipe = rf"(?<![\w:.-]){name}\s*\|\s*{name}(?![\w:.-])\s*&"
        if re.search(self_pipe, match.group("body")):
            return True
    return False


# --- Shutdown ---------------------------------------------------------------


def _shuts_down(command: str) -> bool:
    for argv in _invocations(command, "shutdown", "halt", "poweroff", "systemctl"):
        if argv[0] == "systemctl":
            if any(a in ("poweroff", "halt") for a in argv[1:]):
                return True
        elif "-c" not in argv[1:]:
            return True
    return False


def _reboots(command: str) -> bool:
    return any(
        argv[0] == "reboot" or "reboot" in argv[1:]
        for argv in _invocations(command, "reboot", "systemctl")
    )


def _changes_runlevel(command: str) -> bool:
    return any(
        argv[1:2] in (("0",), ("6",))
        for argv in _invocations(command, "init", "telinit")
    )


# --- Kill -------------------------------------------------------------------


def _kill_targets(command: str) -> Iterator[str]:
    """Yield kill targets; the signal argument is skipped."""
    for argv in _invocations(command, "kill"):
        args = list(argv[1:])
        if args and args[0] in ("-s", "-n"):
            args = args[2:]
        elif args and _SIGNAL.match(args[0]):
            args = args[1:]
        if args and args[0] == "--":
            args = args[1:]
        yield from args


def _kills_init(command: str) -> bool:
    return "1" in _kill_targets(command)


def _kills_everything(command: str) -> bool:
    return "-1" in _kill_targets(command)


# --- Reverse shells ---------------------------------------------------------


def _uses_dev_tcp(command: str) -> bool:
    return bool(_DEV_TCP.search(command))


def _netcat_exec(command: str) -> bool:
    return any(
        _has_short_flag(a, "e")
        or a in ("--exec", "--sh-exec")
        or a.startswith(("--exec=", "--sh-exec="))
        for argv in _invocations(command, "nc", "ncat", "netcat")
        for a in argv[1:]
    )


def _socat_exec(command: str) -> bool:
    return any(
        a.lower().startswith(("exec:", "system:"))
        for argv in _invocations(command, "socat")
        for a in argv[1:]
    )


# --- Security bypass --------------------------------------------------------


def _disables_sip(command: str) -> bool:
    return any(argv[1:2] == ("disable",) for argv in _invocations(command, "csrutil"))


def _disables_selinux(command: str) -> bool:
    return any(
        len(argv) > 1 and argv[1].lower() in ("0", "permissive")
        for argv in _invocations(command, "setenforce")
    )


def _flushes_firewall(command: str) -> bool:
    return any(
        a in ("-F", "--flush")
        for argv in _invocations(command, "iptables", "ip6tables")
        for a in argv[1:]
    )


# --- History ----------------------------------------------------------------


def _clears_history(command: str) -> bool:
    return any(
        _has_short_flag(a, "c")
        for argv in _invocations(command, "history")
        for a in argv[1:]
    )


def _wipes_history_file(command: str) -> bool:
    if _HISTORY_REDIRECT.search(command):
        return True
    return any(
        _HISTORY_FILE.match(_basename(operand))
        for argv in _invocations(command, "rm", "truncate", "shred")
        for operand in _split_flags(argv[1:])[1]
    )


def _disables_history_logging(command: str) -> bool:
    if _HISTORY_DISABLE.search(command):
        return True
    return any("HISTFILE" in argv[1:] for argv in _invocations(command, "unset"))


# --- Permissions ------------------------------------------------------------


def _is_world_writable(mode: str) -> bool:
    if re.fullmatch(r"[0-7]{3,4}", mode):
        return bool(int(mode[-1]) & 2)
    for clause in mode.split(","):
        match = _SYMBOLIC_MODE.match(clause)
        if match and "w" in match.group(3):
            who = match.group(1)
            if not who or "o" in who or "a" in who:
                return True
    return False


def _root_world_writable(command: str) -> bool:
    for argv in _invocations(command, "chmod"):
        _, operands = _split_flags(argv[1:])
        if len(operands) < 2 or not _is_world_writable(operands[0]):
            continue
        if any(_squash_slashes(t) in _ROOT_TARGETS for t in operands[1:]):
            return True
    return False


def _recursive_root_chown(command: str) -> bool:
    for argv in _invocations(command, "chown", "chgrp"):
        flags, operands = _split_flags(argv[1:])
        if not any(_has_short_flag(f, "R") or f == "--recursive" for f in flags):
            continue
        # With --reference there is no owner operand
        if any(f.startswith("--reference") for f in flags):
            targets = operands
        else:
            targets = operands[1:]
        if any(_squash_slashes(t) in _ROOT_TARGETS for t in targets):
            return True
    return False


# --- Pipe to shell ----------------------------------------------------------


def _pipes_to_shell(tool: str) -> Callable[[str], bool]:
    """Build a predicate for ``<tool> ... | <shell>`` and its substitution forms."""

    def predicate(command: str) -> bool:
        for pipeline in _pipelines(command):
            for i, argv in enumerate(pipeline):
                if argv[0] == tool and any(
                    later[0] in _SHELLS for later in pipeline[i + 1:]
                ):
                    return True
        return any(
            match.group("tool") == tool
            for match in _FETCH_SUBSTITUTION.finditer(command)
        )

    return predicate


_C = RuleCategory

COMMAND_RULES = RuleSet(
    name="command",
    rules=(
        Rule(_deletes_root_or_home, "Attempted to delete root or home directory", _C.SYSTEM_DESTRUCTION),
        Rule(_deletes_everything_under_root, "Attempted to delete all files from root", _C.SYSTEM_DESTRUCTION),
        Rule(_deletes_home_contents, "Attempted to delete home directory contents", _C.SYSTEM_DESTRUCTION),
        Rule(_overwrites_disk, "Attempted to overwrite disk device", _C.SYSTEM_DESTRUCTION),
        Rule(_formats_filesystem, "Attempted to format filesystem", _C.SYSTEM_DESTRUCTION),
        Rule(_is_fork_bomb, "Fork bomb detected", _C.SYSTEM_DESTRUCTION),
        Rule(_shuts_down, "System shutdown command blocked", _C.SYSTEM_SHUTDOWN),
        Rule(_reboots, "System reboot command blocked", _C.SYSTEM_SHUTDOWN),
        Rule(_changes_runlevel, "Runlevel shutdown/reboot blocked", _C.SYSTEM_SHUTDOWN),
        Rule(_kills_init, "Attempted to kill init process", _C.KILL_CRITICAL_PROCESS),
        Rule(_kills_everything, "Attempted to kill all processes", _C.KILL_CRITICAL_PROCESS),
        Rule(_uses_dev_tcp, "Reverse shell via /dev/tcp detected", _C.REVERSE_SHELL),
        Rule(_netcat_exec, "Netcat reverse shell detected", _C.REVERSE_SHELL),
        Rule(_socat_exec, "Socat reverse shell detected", _C.REVERSE_SHELL),
        Rule(_disables_sip, "Attempted to disable macOS SIP", _C.SECURITY_BYPASS),
        Rule(_disables_selinux, "Attempted to disable SELinux", _C.SECURITY_BYPASS),
        Rule(_flushes_firewall, "Attempted to flush all firewall rules", _C.SECURITY_BYPASS),
        Rule(_clears_history, "Attempted to clear command history", _C.HISTORY_TAMPERING),
        Rule(_wipes_history_file, "Attempted to wipe shell history", _C.HISTORY_TAMPERING),
        Rule(_disables_history_logging, "Attempted to disable history logging", _C.HISTORY_TAMPERING),
        Rule(_root_world_writable, "Attempted to make root world-writable", _C.DANGEROUS_PERMISSIONS),
        Rule(_recursive_root_chown, "Attempted to recursively change root ownership", _C.DANGEROUS_PERMISSIONS),
        Rule(_pipes_to_shell("curl"), "Pipe from curl to shell blocked", _C.PIPE_TO_SHELL),
        Rule(_pipes_to_shell("wget"), "Pipe from wget to shell blocked", _C.PIPE_TO_SHELL),
    ),
)


class CommandClassifier:
    """
    Allow/deny verdicts for shell commands.

    Stateless; a single instance may be shared across threads.
    """

    def __init__(self, rules: RuleSet = COMMAND_RULES) -> None:
        """
        Initialize the classifier.

        Args:
            rules: Ordered command rules.
        """
        self.rules = rules

    def validate(self, command: Any) -> ValidationResult:
        """
        Classify a shell command.

        Args:
            command: Command string the agent intends to run. Anything
                other than a string is allowed.

        Returns:
            Denial with the first matching rule's reason, otherwise approval.
        """
        if not isinstance(command, str):
            return ALLOWED
        result = self.rules.evaluate(normalize_command(command))
        if not result.allowed:
            logger.debug(f"  🚫 Command rule hit ({result.category.value}): {result.reason}")
        return result


_default_classifier = CommandClassifier()


def validate_command(command: Any) -> ValidationResult:
    """Classify a command with the default rule set."""
    return _default_classifier.validate(command)
