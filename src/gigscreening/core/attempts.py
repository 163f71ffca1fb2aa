"""Per-worker screening attempt accounting."""

from __future__ import annotations

from ..errors import AttemptExceeded
from ..schemas import WorkerProfile


class AttemptTracker:
    """Enforce the attempt quota.

    Attempts are counted per worker across every screening they take, not per
    screening.
    """

    def can_attempt(self, worker: WorkerProfile) -> bool:
        return worker.attempt_count < worker.max_attempts

    def attempts_remaining(self, worker: WorkerProfile) -> int:
        return max(worker.max_attempts - worker.attempt_count, 0)

    def ensure_can_attempt(self, worker: WorkerProfile) -> None:
        if not self.can_attempt(worker):
            raise AttemptExceeded(worker.worker_id, worker.attempt_count, worker.max_attempts)

    def record_attempt(self, worker: WorkerProfile) -> WorkerProfile:
        return worker.model_copy(update={"attempt_count": worker.attempt_count + 1})
