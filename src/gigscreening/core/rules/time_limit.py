"""Time-limit compliance rule."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ...schemas import Screening, Submission, ValidationFlag


@dataclass
class TimeLimitConfig:
    grace_minutes: float = 0.0


class TimeLimitRule:
    """Record time-limit overruns reported by the caller.

    The engine never measures wall-clock time; it only compares the elapsed
    minutes attached to the submission against the screening limit.
    """

    name = "time_limit"

    def __init__(self, *, config: TimeLimitConfig | None = None) -> None:
        self._config = config or TimeLimitConfig()

    def check(self, screening: Screening, submission: Submission, context: dict[str, Any]) -> ValidationFlag:
        limit = screening.time_limit
        elapsed = submission.elapsed_minutes
        if limit is None:
            return ValidationFlag(rule=self.name, passed=True, detail="No time limit")
        if elapsed is None:
            return ValidationFlag(rule=self.name, passed=True, detail="Elapsed time not reported")

        allowed = limit + self._config.grace_minutes
        if elapsed > allowed:
            return ValidationFlag(
                rule=self.name,
                passed=False,
                detail=f"Took {elapsed:g} min, limit {limit:g} min",
            )
        return ValidationFlag(
            rule=self.name,
            passed=True,
            detail=f"Took {elapsed:g} of {limit:g} min",
        )
