"""Submission records and derived scoring fields."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from .answer import Answer

SubmissionStatus = Literal["pending_review", "approved", "rejected", "auto_graded"]

FINAL_STATUSES: frozenset[str] = frozenset({"approved", "rejected", "auto_graded"})


class ValidationFlag(BaseModel):
    """Advisory rule outcome attached to a submission."""

    rule: str
    passed: bool
    detail: str = ""

    model_config = ConfigDict(extra="forbid", frozen=True)


class RubricAward(BaseModel):
    """Rubric line with the points a reviewer awarded."""

    criteria: str
    weight: float
    max_score: float
    awarded: float | None = None

    model_config = ConfigDict(extra="forbid", frozen=True)


class Submission(BaseModel):
    """One attempt at a screening, index-aligned with its questions."""

    submission_id: str
    worker_id: str
    screening_id: str
    answers: tuple[Answer, ...] = ()
    submitted_at: datetime
    elapsed_minutes: float | None = Field(default=None, ge=0)
    score: float | None = None
    auto_score: float | None = None
    auto_pass: bool | None = None
    validation_flags: tuple[ValidationFlag, ...] = ()
    rubric_breakdown: tuple[RubricAward, ...] = ()
    submission_status: SubmissionStatus = "pending_review"
    admin_score: float | None = None
    reviewed_at: datetime | None = None

    model_config = ConfigDict(extra="forbid", frozen=True)

    @property
    def is_final(self) -> bool:
        return self.submission_status in FINAL_STATUSES
