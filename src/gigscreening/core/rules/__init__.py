"""Advisory validation rules and their runner."""

from __future__ import annotations

from typing import Any, Iterable, Protocol, runtime_checkable

from ...schemas import Screening, Submission, ValidationFlag
from .completeness import RequiredFieldsRule, SourceUrlRule
from .justification import JustificationLengthRule
from .time_limit import TimeLimitConfig, TimeLimitRule


@runtime_checkable
class ValidationRule(Protocol):
    """Rule contract: one advisory flag per submission."""

    name: str

    def check(self, screening: Screening, submission: Submission, context: dict[str, Any]) -> ValidationFlag:
        """Return the flag for this rule."""


class RuleRunner:
    """Apply every configured rule; flags never block scoring."""

    def __init__(self, rules: Iterable[ValidationRule]) -> None:
        self._rules = list(rules)

    @property
    def rule_names(self) -> list[str]:
        return [rule.name for rule in self._rules]

    def run(
        self,
        screening: Screening,
        submission: Submission,
        context: dict[str, Any] | None = None,
    ) -> list[ValidationFlag]:
        return [rule.check(screening, submission, context or {}) for rule in self._rules]


def default_rules() -> list[ValidationRule]:
    return [
        JustificationLengthRule(),
        TimeLimitRule(),
        RequiredFieldsRule(),
        SourceUrlRule(),
    ]


__all__ = [
    "ValidationRule",
    "RuleRunner",
    "default_rules",
    "JustificationLengthRule",
    "TimeLimitRule",
    "TimeLimitConfig",
    "RequiredFieldsRule",
    "SourceUrlRule",
]
