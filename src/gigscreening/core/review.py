"""Review queue and admin decision gateway for manual/hybrid screenings."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Iterable, Literal, Mapping, Sequence

import pendulum
import structlog

from ..errors import AlreadyFinalized, InvalidTransition, ValidationError
from ..schemas import (
    RubricAward,
    Screening,
    ScreeningRecord,
    Submission,
    ValidationFlag,
    WorkerProfile,
    WorkerStatus,
)
from .lifecycle import LifecycleMachine
from .scoring import ScoringEngine

ReviewAction = Literal["approve", "reject"]


@dataclass(slots=True)
class ReviewResult:
    """Outcome of an admin decision."""

    action: ReviewAction
    new_status: WorkerStatus
    submission: Submission
    worker: WorkerProfile


@dataclass(slots=True)
class QueueEntry:
    """Pending submission as presented to a reviewer."""

    submission_id: str
    worker_id: str
    screening_id: str
    evaluation_mode: str
    submitted_at: datetime
    auto_score: float | None
    auto_pass: bool | None
    pass_threshold: float
    meets_threshold: bool | None
    validation_flags: list[ValidationFlag] = field(default_factory=list)
    rubric_template: list[RubricAward] = field(default_factory=list)


class ReviewQueue:
    """List submissions awaiting an admin decision."""

    def pending(
        self,
        submissions: Iterable[Submission],
        screenings: Mapping[str, Screening],
    ) -> list[QueueEntry]:
        entries: list[QueueEntry] = []
        for submission in submissions:
            if submission.submission_status != "pending_review":
                continue
            screening = screenings.get(submission.screening_id)
            if screening is None:
                continue
            threshold = screening.effective_pass_threshold
            auto_score = submission.auto_score
            entries.append(
                QueueEntry(
                    submission_id=submission.submission_id,
                    worker_id=submission.worker_id,
                    screening_id=submission.screening_id,
                    evaluation_mode=screening.evaluation_mode,
                    submitted_at=submission.submitted_at,
                    auto_score=auto_score,
                    auto_pass=submission.auto_pass,
                    pass_threshold=threshold,
                    meets_threshold=None if auto_score is None else auto_score >= threshold,
                    validation_flags=list(submission.validation_flags),
                    rubric_template=ScoringEngine.rubric_template(screening),
                )
            )
        entries.sort(key=lambda entry: entry.submitted_at)
        return entries


class ReviewGateway:
    """Apply approve/reject decisions and drive the paired transition."""

    _TARGETS: dict[str, WorkerStatus] = {
        "approve": WorkerStatus.READY_TO_WORK,
        "reject": WorkerStatus.FAILED,
    }

    def __init__(
        self,
        *,
        machine: LifecycleMachine,
        scoring: ScoringEngine,
        now_provider: Callable[[], Any] | None = None,
    ) -> None:
        self._machine = machine
        self._scoring = scoring
        self._now_provider = now_provider or pendulum.now
        self._logger = structlog.get_logger(__name__)

    def review(
        self,
        screening: Screening,
        submission: Submission,
        worker: WorkerProfile,
        action: str,
        *,
        admin_score: float | None = None,
        rubric_breakdown: Sequence[Mapping[str, Any] | RubricAward] | None = None,
    ) -> ReviewResult:
        if action not in self._TARGETS:
            raise ValidationError(f"Unknown review action {action!r}", action=action)
        if submission.submission_status != "pending_review":
            raise AlreadyFinalized(submission.submission_id, submission.submission_status)
        if submission.worker_id != worker.worker_id:
            raise ValidationError(
                "Submission does not belong to this worker",
                submission_id=submission.submission_id,
                worker_id=worker.worker_id,
            )
        target = self._TARGETS[action]
        if worker.worker_status is not WorkerStatus.TEST_SUBMITTED:
            raise InvalidTransition(
                worker.worker_status.value,
                target.value,
                f"Review decisions apply only to workers in 'test_submitted', worker is {worker.worker_status.value!r}",
            )

        score, breakdown, extra_flags = self._resolve_score(
            screening, submission, admin_score, rubric_breakdown
        )

        approved = action == "approve"
        reviewed_at = self._now_provider()
        record = ScreeningRecord(
            screening_id=screening.screening_id,
            completed_at=reviewed_at,
            score=score,
            passed=approved,
            submission_status="approved" if approved else "rejected",
            tier=self._scoring.assign_tier(score) if approved else None,
        )

        updated_worker = self._machine.transition(
            worker,
            target,
            screenings_completed=worker.screenings_completed + (record,),
        )
        updated_submission = submission.model_copy(
            update={
                "score": score,
                "admin_score": score if (admin_score is not None or rubric_breakdown) else None,
                "rubric_breakdown": tuple(breakdown),
                "validation_flags": submission.validation_flags + tuple(extra_flags),
                "submission_status": record.submission_status,
                "reviewed_at": reviewed_at,
            }
        )

        self._logger.info(
            "review.applied",
            submission_id=submission.submission_id,
            worker_id=worker.worker_id,
            action=action,
            score=score,
            new_status=updated_worker.worker_status.value,
        )
        return ReviewResult(
            action=action,  # type: ignore[arg-type]
            new_status=updated_worker.worker_status,
            submission=updated_submission,
            worker=updated_worker,
        )

    def _resolve_score(
        self,
        screening: Screening,
        submission: Submission,
        admin_score: float | None,
        rubric_breakdown: Sequence[Mapping[str, Any] | RubricAward] | None,
    ) -> tuple[float | None, list[RubricAward], list[ValidationFlag]]:
        if rubric_breakdown:
            rubric = self._scoring.score_rubric(screening, rubric_breakdown)
            if admin_score is not None and admin_score != rubric.score:
                self._logger.warning(
                    "review.admin_score_ignored",
                    submission_id=submission.submission_id,
                    admin_score=admin_score,
                    rubric_score=rubric.score,
                )
            return rubric.score, rubric.breakdown, rubric.flags

        if admin_score is not None:
            if not 0 <= admin_score <= 100:
                raise ValidationError(
                    f"Admin score {admin_score!r} must be between 0 and 100",
                    admin_score=admin_score,
                )
            return float(admin_score), list(submission.rubric_breakdown), []

        stored = submission.score if submission.score is not None else submission.auto_score
        return stored, list(submission.rubric_breakdown), []
