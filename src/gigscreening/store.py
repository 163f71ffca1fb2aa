"""In-memory state store with per-worker optimistic concurrency."""

from __future__ import annotations

import threading
from typing import Any, Iterable

from .errors import AlreadyFinalized, NotFound, StaleState, ValidationError
from .schemas import Screening, Submission, WorkerProfile


class InMemoryStore:
    """Workers, screenings and submissions keyed by id.

    Worker saves are compare-and-swap on ``version``: the caller passes the
    version it read, and a mismatch means another operation won the race.
    Submission saves refuse to overwrite a finalized submission.
    """

    def __init__(
        self,
        *,
        workers: Iterable[WorkerProfile] = (),
        screenings: Iterable[Screening] = (),
        submissions: Iterable[Submission] = (),
    ) -> None:
        self._lock = threading.Lock()
        self._workers = {worker.worker_id: worker for worker in workers}
        self._screenings = {screening.screening_id: screening for screening in screenings}
        self._submissions = {submission.submission_id: submission for submission in submissions}

    def get_worker(self, worker_id: str) -> WorkerProfile:
        with self._lock:
            try:
                return self._workers[worker_id]
            except KeyError as exc:
                raise NotFound(f"Unknown worker {worker_id!r}", worker_id=worker_id) from exc

    def add_worker(self, worker: WorkerProfile) -> None:
        with self._lock:
            if worker.worker_id in self._workers:
                raise ValidationError(f"Worker {worker.worker_id!r} is already registered", worker_id=worker.worker_id)
            self._workers[worker.worker_id] = worker

    def workers(self) -> list[WorkerProfile]:
        with self._lock:
            return list(self._workers.values())

    def get_screening(self, screening_id: str) -> Screening:
        with self._lock:
            try:
                return self._screenings[screening_id]
            except KeyError as exc:
                raise NotFound(f"Unknown screening {screening_id!r}", screening_id=screening_id) from exc

    def add_screening(self, screening: Screening) -> None:
        with self._lock:
            self._screenings[screening.screening_id] = screening

    def screenings(self) -> dict[str, Screening]:
        with self._lock:
            return dict(self._screenings)

    def get_submission(self, submission_id: str) -> Submission:
        with self._lock:
            try:
                return self._submissions[submission_id]
            except KeyError as exc:
                raise NotFound(
                    f"Unknown submission {submission_id!r}", submission_id=submission_id
                ) from exc

    def latest_submission(self, worker_id: str, screening_id: str) -> Submission:
        with self._lock:
            matches = [
                item
                for item in self._submissions.values()
                if item.worker_id == worker_id and item.screening_id == screening_id
            ]
        if not matches:
            raise NotFound(
                f"No submission by worker {worker_id!r} for screening {screening_id!r}",
                worker_id=worker_id,
                screening_id=screening_id,
            )
        return max(matches, key=lambda item: item.submitted_at)

    def submissions(self) -> list[Submission]:
        with self._lock:
            return list(self._submissions.values())

    def commit(
        self,
        worker: WorkerProfile,
        *,
        expected_version: int,
        submission: Submission | None = None,
    ) -> WorkerProfile:
        """Persist a worker (and optionally its submission) atomically.

        Returns the stored worker with its version bumped.
        """
        with self._lock:
            stored = self._workers.get(worker.worker_id)
            if stored is None:
                raise NotFound(f"Unknown worker {worker.worker_id!r}", worker_id=worker.worker_id)
            if stored.version != expected_version:
                raise StaleState(
                    stored.worker_status.value,
                    worker.worker_status.value,
                    f"Worker {worker.worker_id!r} was modified concurrently",
                    expected_version=expected_version,
                    actual_version=stored.version,
                )
            if submission is not None:
                previous = self._submissions.get(submission.submission_id)
                if previous is not None and previous.is_final:
                    raise AlreadyFinalized(previous.submission_id, previous.submission_status)

            saved = worker.model_copy(update={"version": expected_version + 1})
            self._workers[saved.worker_id] = saved
            if submission is not None:
                self._submissions[submission.submission_id] = submission
            return saved

    def snapshot(self) -> dict[str, Any]:
        with self._lock:
            return {
                "workers": [item.model_dump(mode="json") for item in self._workers.values()],
                "screenings": [item.model_dump(mode="json") for item in self._screenings.values()],
                "submissions": [item.model_dump(mode="json") for item in self._submissions.values()],
            }

    @classmethod
    def from_snapshot(cls, data: dict[str, Any]) -> "InMemoryStore":
        return cls(
            workers=[WorkerProfile.model_validate(item) for item in data.get("workers", [])],
            screenings=[Screening.model_validate(item) for item in data.get("screenings", [])],
            submissions=[Submission.model_validate(item) for item in data.get("submissions", [])],
        )
