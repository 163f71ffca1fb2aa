"""Pydantic schema definitions for screenings, submissions and workers."""

from __future__ import annotations

from .answer import (
    Answer,
    ChoiceAnswer,
    CodingAnswer,
    FactCheckAnswer,
    MultiChoiceAnswer,
    MultimodalAnswer,
    RankingAnswer,
    RedTeamAnswer,
    TextAnswer,
)
from .question import (
    ChoiceQuestion,
    CodingQuestion,
    FactCheckQuestion,
    MultiChoiceQuestion,
    MultimodalQuestion,
    Question,
    RankingQuestion,
    RedTeamQuestion,
    TextQuestion,
)
from .screening import EvaluationMode, RubricCriterion, Screening
from .submission import RubricAward, Submission, SubmissionStatus, ValidationFlag
from .worker import ScreeningRecord, Tier, WorkerProfile, WorkerStatus

__all__ = [
    "Answer",
    "ChoiceAnswer",
    "CodingAnswer",
    "FactCheckAnswer",
    "MultiChoiceAnswer",
    "MultimodalAnswer",
    "RankingAnswer",
    "RedTeamAnswer",
    "TextAnswer",
    "ChoiceQuestion",
    "CodingQuestion",
    "FactCheckQuestion",
    "MultiChoiceQuestion",
    "MultimodalQuestion",
    "Question",
    "RankingQuestion",
    "RedTeamQuestion",
    "TextQuestion",
    "EvaluationMode",
    "RubricCriterion",
    "Screening",
    "RubricAward",
    "Submission",
    "SubmissionStatus",
    "ValidationFlag",
    "ScreeningRecord",
    "Tier",
    "WorkerProfile",
    "WorkerStatus",
]
