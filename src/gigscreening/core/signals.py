"""Worker risk signals and pipeline board grouping."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Iterable, Literal

import pendulum

from ..schemas import WorkerProfile, WorkerStatus
from .lifecycle import PIPELINE_COLUMNS

Severity = Literal["info", "warning", "critical"]

# Statuses where a long dwell time is expected.
_SETTLED_STATUSES: frozenset[WorkerStatus] = frozenset(
    {WorkerStatus.WORKING, WorkerStatus.COMPLETED, WorkerStatus.SUSPENDED}
)
_ACTIVE_STATUSES: frozenset[WorkerStatus] = frozenset(
    {WorkerStatus.READY_TO_WORK, WorkerStatus.ASSIGNED, WorkerStatus.WORKING}
)
_SCREENING_STATUSES: frozenset[WorkerStatus] = frozenset(
    {WorkerStatus.SCREENING_UNLOCKED, WorkerStatus.TRAINING_VIEWED}
)


@dataclass
class SignalConfig:
    """Day thresholds for time-based signals."""

    stuck_days: int = 14
    screening_stale_days: int = 7
    application_pending_days: int = 3


@dataclass(slots=True, frozen=True)
class RiskSignal:
    code: str
    severity: Severity
    message: str


class RiskSignals:
    """Derive at-a-glance risk indicators for a worker."""

    def __init__(
        self,
        *,
        config: SignalConfig | None = None,
        now_provider: Callable[[], Any] | None = None,
    ) -> None:
        self._config = config or SignalConfig()
        self._now_provider = now_provider or pendulum.now

    def evaluate(self, worker: WorkerProfile, now: datetime | None = None) -> list[RiskSignal]:
        reference = pendulum.instance(now if now is not None else self._now_provider())
        status = worker.worker_status
        signals: list[RiskSignal] = []

        if status is WorkerStatus.FAILED:
            signals.append(
                RiskSignal(
                    "failed_screening",
                    "critical",
                    f"Failed screening test (attempt {worker.attempt_count}/{worker.max_attempts})",
                )
            )
            if worker.attempt_count >= worker.max_attempts:
                signals.append(RiskSignal("attempts_exhausted", "critical", "No screening attempts left"))

        if status is WorkerStatus.SUSPENDED:
            signals.append(RiskSignal("suspended", "critical", "Worker account is currently suspended"))
        elif worker.was_suspended:
            signals.append(RiskSignal("was_suspended", "warning", "Worker was previously suspended"))

        days_in_state = self._days_since(worker.status_changed_at or worker.created_at, reference)
        if (
            days_in_state is not None
            and days_in_state > self._config.stuck_days
            and status not in _SETTLED_STATUSES
        ):
            signals.append(
                RiskSignal(
                    "stuck",
                    "warning",
                    f"In {status.value!r} for {days_in_state} days",
                )
            )

        if status in _ACTIVE_STATUSES and worker.projects_completed == 0:
            signals.append(RiskSignal("no_projects", "info", "Worker has not completed any projects yet"))

        if (
            status in _SCREENING_STATUSES
            and days_in_state is not None
            and days_in_state > self._config.screening_stale_days
        ):
            signals.append(
                RiskSignal(
                    "screening_stale",
                    "warning",
                    f"Screening unlocked {days_in_state} days ago but not completed",
                )
            )

        if 1 < worker.attempt_count < worker.max_attempts:
            signals.append(
                RiskSignal(
                    "retry_attempt",
                    "info",
                    f"On screening attempt {worker.attempt_count} of {worker.max_attempts}",
                )
            )

        if worker.attempt_count == worker.max_attempts - 1 and status is WorkerStatus.TEST_SUBMITTED:
            signals.append(RiskSignal("last_attempt", "warning", "One screening attempt left"))

        if status is WorkerStatus.APPLIED and not worker.application_approved:
            days_pending = self._days_since(worker.created_at, reference)
            if days_pending is not None and days_pending > self._config.application_pending_days:
                signals.append(
                    RiskSignal(
                        "application_pending",
                        "info",
                        f"Application pending for {days_pending} days",
                    )
                )

        return signals

    @staticmethod
    def _days_since(value: datetime | None, reference: pendulum.DateTime) -> int | None:
        if value is None:
            return None
        return reference.diff(pendulum.instance(value), abs=True).in_days()


def pipeline_board(workers: Iterable[WorkerProfile]) -> dict[str, list[WorkerProfile]]:
    """Group workers into pipeline columns, preserving input order."""
    board: dict[str, list[WorkerProfile]] = {status.value: [] for status in PIPELINE_COLUMNS}
    for worker in workers:
        board[worker.worker_status.value].append(worker)
    return board
