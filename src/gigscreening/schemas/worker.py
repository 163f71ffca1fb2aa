"""Worker profile schema."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from .submission import SubmissionStatus

Tier = Literal["bronze", "silver", "gold"]


class WorkerStatus(str, Enum):
    """Lifecycle stage of a worker."""

    APPLIED = "applied"
    SCREENING_UNLOCKED = "screening_unlocked"
    TRAINING_VIEWED = "training_viewed"
    TEST_SUBMITTED = "test_submitted"
    FAILED = "failed"
    READY_TO_WORK = "ready_to_work"
    ASSIGNED = "assigned"
    WORKING = "working"
    PROOF_SUBMITTED = "proof_submitted"
    COMPLETED = "completed"
    SUSPENDED = "suspended"


class ScreeningRecord(BaseModel):
    """Finalized screening outcome kept in the worker history."""

    screening_id: str
    completed_at: datetime
    score: float | None = None
    passed: bool
    submission_status: SubmissionStatus
    tier: Tier | None = None

    model_config = ConfigDict(extra="forbid", frozen=True)


class WorkerProfile(BaseModel):
    """Durable per-worker record read and written by the state machine."""

    worker_id: str
    user_id: str | None = None
    position_id: str | None = None
    application_approved: bool = False
    worker_status: WorkerStatus = WorkerStatus.APPLIED
    attempt_count: int = Field(default=0, ge=0)
    max_attempts: int = Field(default=2, ge=1)
    screenings_completed: tuple[ScreeningRecord, ...] = ()
    total_earnings: Decimal = Decimal("0")
    pending_earnings: Decimal = Decimal("0")
    active_payout: Decimal | None = None
    projects_completed: int = Field(default=0, ge=0)
    was_suspended: bool = False
    version: int = Field(default=0, ge=0)
    created_at: datetime | None = None
    status_changed_at: datetime | None = None

    model_config = ConfigDict(extra="forbid", frozen=True)
