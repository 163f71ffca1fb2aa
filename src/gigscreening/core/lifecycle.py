"""Worker lifecycle state machine."""

from __future__ import annotations

from typing import Any, Callable

import pendulum
import structlog

from ..errors import GuardRejected, InvalidTransition
from ..schemas import WorkerProfile, WorkerStatus
from .attempts import AttemptTracker

S = WorkerStatus

TRANSITIONS: dict[WorkerStatus, frozenset[WorkerStatus]] = {
    S.APPLIED: frozenset({S.SCREENING_UNLOCKED, S.SUSPENDED}),
    S.SCREENING_UNLOCKED: frozenset({S.TRAINING_VIEWED, S.TEST_SUBMITTED, S.SUSPENDED}),
    S.TRAINING_VIEWED: frozenset({S.TEST_SUBMITTED, S.SUSPENDED}),
    S.TEST_SUBMITTED: frozenset({S.READY_TO_WORK, S.FAILED, S.SUSPENDED}),
    S.FAILED: frozenset({S.SCREENING_UNLOCKED, S.SUSPENDED}),
    S.READY_TO_WORK: frozenset({S.ASSIGNED, S.SUSPENDED}),
    S.ASSIGNED: frozenset({S.WORKING, S.READY_TO_WORK, S.SUSPENDED}),
    S.WORKING: frozenset({S.PROOF_SUBMITTED, S.READY_TO_WORK, S.SUSPENDED}),
    S.PROOF_SUBMITTED: frozenset({S.COMPLETED, S.WORKING, S.SUSPENDED}),
    S.SUSPENDED: frozenset({S.READY_TO_WORK}),
    S.COMPLETED: frozenset(),
}

# Kanban order used by the admin pipeline board.
PIPELINE_COLUMNS: tuple[WorkerStatus, ...] = (
    S.APPLIED,
    S.SCREENING_UNLOCKED,
    S.TRAINING_VIEWED,
    S.TEST_SUBMITTED,
    S.READY_TO_WORK,
    S.ASSIGNED,
    S.WORKING,
    S.PROOF_SUBMITTED,
    S.COMPLETED,
    S.SUSPENDED,
    S.FAILED,
)

Guard = Callable[[WorkerProfile], None]


def allowed_transitions(status: WorkerStatus | str) -> frozenset[WorkerStatus]:
    try:
        return TRANSITIONS[WorkerStatus(status)]
    except ValueError:
        return frozenset()


def can_transition(from_status: WorkerStatus | str, to_status: WorkerStatus | str) -> bool:
    try:
        target = WorkerStatus(to_status)
    except ValueError:
        return False
    return target in allowed_transitions(from_status)


class LifecycleMachine:
    """Single authority for worker status changes.

    Every mutation goes through :meth:`transition`, which consults the
    transition table and the guards before returning an updated copy of the
    worker. Rejected requests raise and leave the input untouched.
    """

    def __init__(
        self,
        *,
        attempts: AttemptTracker | None = None,
        now_provider: Callable[[], Any] | None = None,
    ) -> None:
        self._attempts = attempts or AttemptTracker()
        self._now_provider = now_provider or pendulum.now
        self._guards: dict[tuple[WorkerStatus, WorkerStatus], Guard] = {
            (S.APPLIED, S.SCREENING_UNLOCKED): self._require_approved_application,
            (S.FAILED, S.SCREENING_UNLOCKED): self._require_attempts_left,
        }
        self._logger = structlog.get_logger(__name__)

    def transition(
        self,
        worker: WorkerProfile,
        target: WorkerStatus | str,
        **updates: Any,
    ) -> WorkerProfile:
        current = worker.worker_status
        try:
            target_status = WorkerStatus(target)
        except ValueError as exc:
            raise InvalidTransition(current.value, str(target), f"Unknown worker status {target!r}") from exc

        if target_status not in TRANSITIONS[current]:
            self._logger.warning(
                "lifecycle.rejected",
                worker_id=worker.worker_id,
                from_status=current.value,
                to_status=target_status.value,
            )
            raise InvalidTransition(current.value, target_status.value)

        guard = self._guards.get((current, target_status))
        if guard is not None:
            guard(worker)

        if target_status is WorkerStatus.SUSPENDED:
            updates.setdefault("was_suspended", True)

        updated = worker.model_copy(
            update={
                **updates,
                "worker_status": target_status,
                "status_changed_at": self._now_provider(),
            }
        )
        self._logger.info(
            "lifecycle.transition",
            worker_id=worker.worker_id,
            from_status=current.value,
            to_status=target_status.value,
        )
        return updated

    def unlock_screening(self, worker: WorkerProfile) -> WorkerProfile:
        return self.transition(worker, S.SCREENING_UNLOCKED)

    def mark_training_viewed(self, worker: WorkerProfile) -> WorkerProfile:
        return self.transition(worker, S.TRAINING_VIEWED)

    def allow_retry(self, worker: WorkerProfile) -> WorkerProfile:
        if worker.worker_status is not S.FAILED:
            raise InvalidTransition(
                worker.worker_status.value,
                S.SCREENING_UNLOCKED.value,
                "Retry is only possible from 'failed'",
            )
        return self.transition(worker, S.SCREENING_UNLOCKED)

    def assign(self, worker: WorkerProfile) -> WorkerProfile:
        return self.transition(worker, S.ASSIGNED)

    def start_work(self, worker: WorkerProfile) -> WorkerProfile:
        return self.transition(worker, S.WORKING)

    def suspend(self, worker: WorkerProfile) -> WorkerProfile:
        return self.transition(worker, S.SUSPENDED)

    def unsuspend(self, worker: WorkerProfile) -> WorkerProfile:
        if worker.worker_status is not S.SUSPENDED:
            raise InvalidTransition(
                worker.worker_status.value,
                S.READY_TO_WORK.value,
                "Worker is not suspended",
            )
        return self.transition(worker, S.READY_TO_WORK)

    @staticmethod
    def _require_approved_application(worker: WorkerProfile) -> None:
        if not worker.application_approved:
            raise GuardRejected(
                S.APPLIED.value,
                S.SCREENING_UNLOCKED.value,
                "application has not been approved",
            )

    def _require_attempts_left(self, worker: WorkerProfile) -> None:
        self._attempts.ensure_can_attempt(worker)
