"""Screening definition schema."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .question import Question

EvaluationMode = Literal["auto", "manual", "hybrid"]


class RubricCriterion(BaseModel):
    """Weighted rubric line used by reviewers."""

    criteria: str
    weight: float = Field(default=1.0, gt=0)
    max_score: float = Field(default=10.0, gt=0)

    model_config = ConfigDict(extra="forbid")


class Screening(BaseModel):
    """Gated test a worker must pass before paid assignments."""

    screening_id: str
    title: str = ""
    category: str | None = None
    questions: list[Question] = Field(default_factory=list)
    evaluation_mode: EvaluationMode = "hybrid"
    passing_score: float = Field(default=70.0, ge=0, le=100)
    pass_threshold: float | None = Field(default=None, ge=0, le=100)
    rubric: list[RubricCriterion] = Field(default_factory=list)
    min_justification_words: int = Field(default=30, ge=0)
    time_limit: float | None = Field(default=None, gt=0)

    model_config = ConfigDict(extra="forbid")

    @model_validator(mode="after")
    def _check_rubric(self) -> "Screening":
        names = [item.criteria for item in self.rubric]
        if len(names) != len(set(names)):
            raise ValueError("rubric criteria must be unique")
        return self

    @property
    def effective_pass_threshold(self) -> float:
        return self.passing_score if self.pass_threshold is None else self.pass_threshold

    def rubric_criterion(self, name: str) -> RubricCriterion | None:
        for item in self.rubric:
            if item.criteria == name:
                return item
        return None
