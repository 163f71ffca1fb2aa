"""Error taxonomy surfaced by the engine."""

from __future__ import annotations

from typing import Any


class EngineError(Exception):
    """Base class for recoverable engine rejections."""

    code = "engine_error"

    def __init__(self, message: str, **details: Any) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.code, "message": self.message, **self.details}


class ValidationError(EngineError):
    """Submitted answer or admin input has the wrong shape."""

    code = "validation_error"


class ConfigurationError(EngineError):
    """Screening definition cannot be scored."""

    code = "configuration_error"


class NotFound(EngineError):
    """Referenced worker, screening or submission does not exist."""

    code = "not_found"


class InvalidTransition(EngineError):
    """Requested status change is not in the allowed set."""

    code = "invalid_transition"

    def __init__(self, from_status: str, to_status: str, message: str | None = None, **details: Any) -> None:
        super().__init__(
            message or f"Cannot move worker from {from_status!r} to {to_status!r}",
            from_status=from_status,
            to_status=to_status,
            **details,
        )
        self.from_status = from_status
        self.to_status = to_status


class GuardRejected(InvalidTransition):
    """Transition exists in the table but its precondition is not met."""

    code = "guard_rejected"

    def __init__(self, from_status: str, to_status: str, reason: str) -> None:
        super().__init__(
            from_status,
            to_status,
            f"Cannot move worker from {from_status!r} to {to_status!r}: {reason}",
            reason=reason,
        )
        self.reason = reason


class StaleState(InvalidTransition):
    """Another writer changed the worker first."""

    code = "stale_state"


class AttemptExceeded(EngineError):
    """Worker has used every screening attempt."""

    code = "attempt_exceeded"

    def __init__(self, worker_id: str, attempt_count: int, max_attempts: int) -> None:
        super().__init__(
            f"Worker {worker_id!r} has used {attempt_count} of {max_attempts} attempts",
            worker_id=worker_id,
            attempt_count=attempt_count,
            max_attempts=max_attempts,
        )


class AlreadyFinalized(EngineError):
    """Submission was already closed by an earlier decision."""

    code = "already_finalized"

    def __init__(self, submission_id: str, status: str) -> None:
        super().__init__(
            f"Submission {submission_id!r} is already {status}",
            submission_id=submission_id,
            submission_status=status,
        )


__all__ = [
    "EngineError",
    "ValidationError",
    "ConfigurationError",
    "NotFound",
    "InvalidTransition",
    "GuardRejected",
    "StaleState",
    "AttemptExceeded",
    "AlreadyFinalized",
]
