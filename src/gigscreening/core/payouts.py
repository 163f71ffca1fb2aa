"""Proof-of-work submission and earnings credit."""

from __future__ import annotations

from decimal import Decimal, InvalidOperation

import structlog

from ..errors import InvalidTransition, ValidationError
from ..schemas import WorkerProfile, WorkerStatus
from .lifecycle import LifecycleMachine


class PayoutLedger:
    """Move project payouts between pending and total earnings.

    Earnings are only touched here, alongside the paired lifecycle
    transition, so the two never drift apart.
    """

    def __init__(self, *, machine: LifecycleMachine) -> None:
        self._machine = machine
        self._logger = structlog.get_logger(__name__)

    def submit_proof(self, worker: WorkerProfile, payout: Decimal | str | float) -> WorkerProfile:
        amount = self._to_amount(payout)
        updated = self._machine.transition(
            worker,
            WorkerStatus.PROOF_SUBMITTED,
            pending_earnings=worker.pending_earnings + amount,
            active_payout=amount,
        )
        self._logger.info("payout.pending", worker_id=worker.worker_id, amount=str(amount))
        return updated

    def approve_proof(self, worker: WorkerProfile) -> WorkerProfile:
        amount = self._active_payout(worker, WorkerStatus.COMPLETED)
        updated = self._machine.transition(
            worker,
            WorkerStatus.COMPLETED,
            pending_earnings=worker.pending_earnings - amount,
            total_earnings=worker.total_earnings + amount,
            active_payout=None,
            projects_completed=worker.projects_completed + 1,
        )
        self._logger.info("payout.credited", worker_id=worker.worker_id, amount=str(amount))
        return updated

    def reject_proof(self, worker: WorkerProfile) -> WorkerProfile:
        amount = self._active_payout(worker, WorkerStatus.WORKING)
        updated = self._machine.transition(
            worker,
            WorkerStatus.WORKING,
            pending_earnings=worker.pending_earnings - amount,
            active_payout=None,
        )
        self._logger.info("payout.withdrawn", worker_id=worker.worker_id, amount=str(amount))
        return updated

    @staticmethod
    def _active_payout(worker: WorkerProfile, target: WorkerStatus) -> Decimal:
        if worker.worker_status is not WorkerStatus.PROOF_SUBMITTED or worker.active_payout is None:
            raise InvalidTransition(
                worker.worker_status.value,
                target.value,
                "No proof of work is awaiting a decision",
            )
        return worker.active_payout

    @staticmethod
    def _to_amount(payout: Decimal | str | float) -> Decimal:
        try:
            amount = Decimal(str(payout))
        except InvalidOperation as exc:
            raise ValidationError(f"Invalid payout amount {payout!r}") from exc
        if not amount.is_finite() or amount <= 0:
            raise ValidationError(f"Payout must be positive, got {payout!r}")
        return amount
