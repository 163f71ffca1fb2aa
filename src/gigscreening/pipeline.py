"""Submission and review orchestration."""

from __future__ import annotations

import json
import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import Any, Callable, Mapping, Sequence

import pendulum
import structlog

from . import __version__
from .core import (
    AttemptTracker,
    LifecycleMachine,
    PayoutLedger,
    QueueEntry,
    ReviewGateway,
    ReviewQueue,
    RiskSignal,
    RiskSignals,
    RuleRunner,
    ScoringEngine,
    parse_answers,
    validate_submission,
)
from .errors import EngineError, InvalidTransition
from .schemas import RubricAward, ScreeningRecord, Submission, WorkerProfile, WorkerStatus
from .store import InMemoryStore

_SUBMITTABLE: frozenset[WorkerStatus] = frozenset(
    {WorkerStatus.SCREENING_UNLOCKED, WorkerStatus.TRAINING_VIEWED}
)

# Status changes that carry side effects and must go through their own operation.
_OWNED_TARGETS: dict[WorkerStatus, str] = {
    WorkerStatus.TEST_SUBMITTED: "submit",
    WorkerStatus.PROOF_SUBMITTED: "submit_proof",
    WorkerStatus.COMPLETED: "approve_proof",
}
_OWNED_EXITS: dict[WorkerStatus, str] = {
    WorkerStatus.TEST_SUBMITTED: "review",
    WorkerStatus.PROOF_SUBMITTED: "approve_proof or reject_proof",
}


@dataclass(slots=True)
class SubmitResult:
    """Worker-facing response to a screening submission."""

    submission_id: str
    score: float | None
    auto_score: float | None
    auto_pass: bool | None
    submission_status: str
    attempts_remaining: int
    new_status: str
    validation_flags: list[dict[str, Any]] = field(default_factory=list)
    rubric_breakdown: list[dict[str, Any]] = field(default_factory=list)
    question_credits: list[dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(slots=True)
class ReviewOutcome:
    """Admin-facing response to a review decision."""

    action: str
    new_status: str
    submission_id: str
    score: float | None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class StateFile:
    """Load and persist JSON state snapshots."""

    def load(self, path: Path) -> InMemoryStore:
        if not path.exists():
            return InMemoryStore()
        with path.open("r", encoding="utf-8") as handle:
            try:
                data = json.load(handle)
            except json.JSONDecodeError as exc:
                raise ValueError(f"Invalid state JSON: {exc}") from exc
        if not isinstance(data, dict):
            raise ValueError("State file must contain a JSON object")
        return InMemoryStore.from_snapshot(data)

    def save(self, path: Path, store: InMemoryStore) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(
            json.dumps(store.snapshot(), ensure_ascii=False, indent=2),
            encoding="utf-8",
        )


class AuditLogger:
    """Append-only audit logger writing JSON lines."""

    def __init__(self, path: Path):
        self._path = path
        self._path.parent.mkdir(parents=True, exist_ok=True)

    def append(self, record: dict) -> None:
        entry = {"timestamp": pendulum.now().to_iso8601_string(), "app_version": __version__, **record}
        with self._path.open("a", encoding="utf-8") as handle:
            handle.write(json.dumps(entry, ensure_ascii=False, default=json_default))
            handle.write("\n")


class ScreeningPipeline:
    """End-to-end orchestration over the store.

    Each public method is one unit of work: read the worker, compute the new
    state through the core components, then commit with a version check.
    """

    def __init__(
        self,
        *,
        store: InMemoryStore,
        scoring: ScoringEngine,
        rules: RuleRunner,
        attempts: AttemptTracker,
        machine: LifecycleMachine,
        gateway: ReviewGateway,
        ledger: PayoutLedger,
        queue: ReviewQueue | None = None,
        signals: RiskSignals | None = None,
        audit_logger: AuditLogger | None = None,
        default_max_attempts: int | None = None,
        now_provider: Callable[[], Any] | None = None,
    ) -> None:
        self.store = store
        self._scoring = scoring
        self._rules = rules
        self._attempts = attempts
        self._machine = machine
        self._gateway = gateway
        self._ledger = ledger
        self._queue = queue or ReviewQueue()
        self._signals = signals or RiskSignals()
        self._audit = audit_logger
        self._default_max_attempts = default_max_attempts or 2
        self._now_provider = now_provider or pendulum.now
        self._logger = structlog.get_logger(__name__)

    def register_worker(
        self,
        *,
        worker_id: str,
        user_id: str | None = None,
        position_id: str | None = None,
        application_approved: bool = False,
        max_attempts: int | None = None,
    ) -> WorkerProfile:
        """Create an applicant record in the 'applied' state."""
        now = self._now_provider()
        worker = WorkerProfile(
            worker_id=worker_id,
            user_id=user_id,
            position_id=position_id,
            application_approved=application_approved,
            max_attempts=max_attempts or self._default_max_attempts,
            created_at=now,
            status_changed_at=now,
        )
        self.store.add_worker(worker)
        self._logger.info("worker.registered", worker_id=worker_id, max_attempts=worker.max_attempts)
        return worker

    def approve_application(self, *, worker_id: str) -> WorkerProfile:
        """Set the application approval flag required to unlock screening."""
        return self._apply(
            worker_id,
            lambda worker: worker.model_copy(update={"application_approved": True}),
            "approve_application",
        )

    def submit(
        self,
        *,
        worker_id: str,
        screening_id: str,
        answers: Sequence[Any],
        elapsed_minutes: float | None = None,
    ) -> SubmitResult:
        log = self._logger.bind(worker_id=worker_id, screening_id=screening_id)
        try:
            worker = self.store.get_worker(worker_id)
            screening = self.store.get_screening(screening_id)
            self._scoring.check_configuration(screening)

            if worker.worker_status not in _SUBMITTABLE:
                raise InvalidTransition(worker.worker_status.value, WorkerStatus.TEST_SUBMITTED.value)
            self._attempts.ensure_can_attempt(worker)

            parsed = parse_answers(screening, answers)
            validate_submission(screening, parsed)
            result = self._scoring.score(screening, parsed)

            submitted_at = self._now_provider()
            submission = Submission(
                submission_id=uuid.uuid4().hex,
                worker_id=worker_id,
                screening_id=screening_id,
                answers=tuple(parsed),
                submitted_at=submitted_at,
                elapsed_minutes=elapsed_minutes,
                score=result.score,
                auto_score=result.auto_score,
                auto_pass=result.auto_pass,
                rubric_breakdown=tuple(result.rubric_breakdown),
            )
            flags = self._rules.run(screening, submission)

            updated = self._attempts.record_attempt(worker)
            updated = self._machine.transition(updated, WorkerStatus.TEST_SUBMITTED)

            if screening.evaluation_mode == "auto":
                passed = bool(result.auto_pass)
                record = ScreeningRecord(
                    screening_id=screening_id,
                    completed_at=submitted_at,
                    score=result.score,
                    passed=passed,
                    submission_status="auto_graded",
                    tier=self._scoring.assign_tier(result.score) if passed else None,
                )
                updated = self._machine.transition(
                    updated,
                    WorkerStatus.READY_TO_WORK if passed else WorkerStatus.FAILED,
                    screenings_completed=updated.screenings_completed + (record,),
                )
                status = "auto_graded"
            else:
                status = "pending_review"

            submission = submission.model_copy(
                update={"validation_flags": tuple(flags), "submission_status": status}
            )
            saved = self.store.commit(updated, expected_version=worker.version, submission=submission)
        except EngineError as exc:
            log.warning("submission.rejected", error=exc.code, detail=exc.message)
            raise

        response = SubmitResult(
            submission_id=submission.submission_id,
            score=submission.score,
            auto_score=submission.auto_score,
            auto_pass=submission.auto_pass,
            submission_status=submission.submission_status,
            attempts_remaining=self._attempts.attempts_remaining(saved),
            new_status=saved.worker_status.value,
            validation_flags=[flag.model_dump() for flag in submission.validation_flags],
            rubric_breakdown=[item.model_dump() for item in submission.rubric_breakdown],
            question_credits=[
                {"question_id": item.question_id, "points": item.points, "credit": item.credit, "earned": item.earned}
                for item in result.credits
            ],
        )
        log.info(
            "submission.scored",
            submission_id=submission.submission_id,
            evaluation_mode=screening.evaluation_mode,
            score=submission.score,
            auto_score=submission.auto_score,
            submission_status=submission.submission_status,
            new_status=response.new_status,
        )
        if self._audit:
            self._audit.append({"event": "submit", "worker_id": worker_id, "screening_id": screening_id, **response.to_dict()})
        return response

    def review(
        self,
        *,
        screening_id: str,
        worker_id: str,
        action: str,
        admin_score: float | None = None,
        rubric_breakdown: Sequence[Mapping[str, Any] | RubricAward] | None = None,
    ) -> ReviewOutcome:
        log = self._logger.bind(worker_id=worker_id, screening_id=screening_id)
        try:
            worker = self.store.get_worker(worker_id)
            screening = self.store.get_screening(screening_id)
            submission = self.store.latest_submission(worker_id, screening_id)
            result = self._gateway.review(
                screening,
                submission,
                worker,
                action,
                admin_score=admin_score,
                rubric_breakdown=rubric_breakdown,
            )
            saved = self.store.commit(
                result.worker,
                expected_version=worker.version,
                submission=result.submission,
            )
        except EngineError as exc:
            log.warning("review.rejected", action=action, error=exc.code, detail=exc.message)
            raise

        outcome = ReviewOutcome(
            action=result.action,
            new_status=saved.worker_status.value,
            submission_id=result.submission.submission_id,
            score=result.submission.score,
        )
        if self._audit:
            self._audit.append(
                {
                    "event": "review",
                    "worker_id": worker_id,
                    "screening_id": screening_id,
                    "admin_score": admin_score,
                    "rubric_breakdown": [item.model_dump() for item in result.submission.rubric_breakdown],
                    **outcome.to_dict(),
                }
            )
        return outcome

    def transition(self, *, worker_id: str, target: WorkerStatus | str) -> WorkerProfile:
        """Apply an explicit admin transition (unlock, retry, assign, suspend, ...)."""
        return self._apply(worker_id, lambda worker: self._admin_transition(worker, target), "transition")

    def allow_retry(self, *, worker_id: str) -> WorkerProfile:
        return self._apply(worker_id, self._machine.allow_retry, "allow_retry")

    def submit_proof(self, *, worker_id: str, payout: Decimal | str | float) -> WorkerProfile:
        return self._apply(worker_id, lambda worker: self._ledger.submit_proof(worker, payout), "submit_proof")

    def approve_proof(self, *, worker_id: str) -> WorkerProfile:
        return self._apply(worker_id, self._ledger.approve_proof, "approve_proof")

    def reject_proof(self, *, worker_id: str) -> WorkerProfile:
        return self._apply(worker_id, self._ledger.reject_proof, "reject_proof")

    def pending_reviews(self) -> list[QueueEntry]:
        return self._queue.pending(self.store.submissions(), self.store.screenings())

    def risk_signals(self, *, worker_id: str, now: datetime | None = None) -> list[RiskSignal]:
        return self._signals.evaluate(self.store.get_worker(worker_id), now=now)

    def _admin_transition(self, worker: WorkerProfile, target: WorkerStatus | str) -> WorkerProfile:
        try:
            target_status = WorkerStatus(target)
        except ValueError:
            return self._machine.transition(worker, target)

        current = worker.worker_status
        operation = _OWNED_TARGETS.get(target_status)
        if operation is None and target_status is not WorkerStatus.SUSPENDED:
            operation = _OWNED_EXITS.get(current)
        if operation is not None:
            raise InvalidTransition(
                current.value,
                target_status.value,
                f"Moving from {current.value!r} to {target_status.value!r} requires {operation}",
                operation=operation,
            )
        return self._machine.transition(worker, target_status)

    def _apply(
        self,
        worker_id: str,
        operation: Callable[[WorkerProfile], WorkerProfile],
        event: str,
    ) -> WorkerProfile:
        log = self._logger.bind(worker_id=worker_id, operation=event)
        try:
            worker = self.store.get_worker(worker_id)
            updated = operation(worker)
            saved = self.store.commit(updated, expected_version=worker.version)
        except EngineError as exc:
            log.warning("operation.rejected", error=exc.code, detail=exc.message)
            raise
        if self._audit:
            self._audit.append(
                {
                    "event": event,
                    "worker_id": worker_id,
                    "from_status": worker.worker_status.value,
                    "new_status": saved.worker_status.value,
                }
            )
        return saved


def json_default(value):  # type: ignore[override]
    if isinstance(value, pendulum.DateTime):
        return value.to_iso8601_string()
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")
