"""
Core types for the tool-call safety engine.

A guard is an ordered RuleSet. Each Rule pairs a pure predicate with the
reason returned when it matches. Evaluation is first-match-wins; when no
rule matches the subject is allowed.
"""

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class RuleCategory(str, Enum):
    """Semantic group a denial rule belongs to."""

    SYSTEM_DESTRUCTION = "system_destruction"
    SYSTEM_SHUTDOWN = "system_shutdown"
    KILL_CRITICAL_PROCESS = "kill_critical_process"
    REVERSE_SHELL = "reverse_shell"
    SECURITY_BYPASS = "security_bypass"
    HISTORY_TAMPERING = "history_tampering"
    DANGEROUS_PERMISSIONS = "dangerous_permissions"
    PIPE_TO_SHELL = "pipe_to_shell"
    PROTECTED_PATH = "protected_path"
    BLOCKED_URL_SCHEME = "blocked_url_scheme"


@dataclass(frozen=True)
class ValidationResult:
    """
    Verdict of a guard.

    Attributes:
        allowed: Whether the action may proceed.
        reason: What was attempted. Present if and only if denied.
        category: Category of the rule that denied the action. Not part
            of equality, so results compare as ``{allowed, reason}``.
    """

    allowed: bool
    reason: str | None = None
    category: RuleCategory | None = field(default=None, compare=False)

    def __post_init__(self) -> None:
        """
        Enforce the reason/allowed invariant.

        Raises:
            ValueError: If a denial has no reason or an approval has one.
        """
        if self.allowed and self.reason is not None:
            raise ValueError("An allowed result cannot carry a reason")
        if not self.allowed and not self.reason:
            raise ValueError("A denied result must carry a reason")

    @classmethod
    def allow(cls) -> "ValidationResult":
        """Return an approval."""
        return cls(allowed=True)

    @classmethod
    def deny(
        cls, reason: str, category: RuleCategory | None = None
    ) -> "ValidationResult":
        """Return a denial with the given reason."""
        return cls(allowed=False, reason=reason, category=category)

    def to_dict(self) -> dict[str, Any]:
        """
        Serialize to the shape returned to the tool pipeline.

        Returns:
            ``{"allowed": True}`` or ``{"allowed": False, "reason": ...}``.
        """
        if self.allowed:
            return {"allowed": True}
        return {"allowed": False, "reason": self.reason}


ALLOWED = ValidationResult.allow()


@dataclass(frozen=True)
class Rule:
    """
    A single denial pattern.

    Attributes:
        predicate: Pure function of the normalized subject.
        reason: Reason reported when the predicate matches.
        category: Category the rule belongs to.
    """

    predicate: Callable[[str], bool]
    reason: str
    category: RuleCategory


@dataclass(frozen=True)
class RuleSet:
    """
    Ordered rules scoped to one guard.

    Attributes:
        name: Guard name (for logging).
        rules: Rules in precedence order.
    """

    name: str
    rules: tuple[Rule, ...]

    def evaluate(self, subject: Any) -> ValidationResult:
        """
        Return the verdict of the first matching rule.

        Args:
            subject: Normalized input. Anything other than a string
                matches no rule.

        Returns:
            Denial from the first matching rule, otherwise approval.
        """
        if not isinstance(subject, str):
            return ALLOWED
        for rule in self.rules:
            if rule.predicate(subject):
                return ValidationResult.deny(rule.reason, rule.category)
        return ALLOWED

    def categories(self) -> list[RuleCategory]:
        """Return the distinct categories in precedence order."""
        seen: list[RuleCategory] = []
        for rule in self.rules:
            if rule.category not in seen:
                seen.append(rule.category)
        return seen


@dataclass(frozen=True)
class ToolCall:
    """
    A tool invocation requested by the agent.

    Attributes:
        name: Tool identifier, possibly namespaced by its transport.
        arguments: Untyped argument bag.
    """

    name: str
    arguments: Mapping[str, Any] = field(default_factory=dict)
