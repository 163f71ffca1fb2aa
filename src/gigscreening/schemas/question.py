"""Screening question variants."""

from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

Verdict = Literal["true", "false", "misleading", "unverifiable"]
RankingChoice = Literal["A", "B"]

VERDICTS: tuple[str, ...] = ("true", "false", "misleading", "unverifiable")


class QuestionBase(BaseModel):
    """Fields shared by every question type."""

    id: str
    prompt: str = ""
    points: float = Field(default=1.0, ge=0)
    optional: bool = False

    model_config = ConfigDict(extra="forbid")


class ChoiceQuestion(QuestionBase):
    """Pick exactly one option."""

    type: Literal["single", "multiple_choice"] = "single"
    options: list[str] = Field(min_length=1)
    correct_answer: str | None = None

    @model_validator(mode="after")
    def _check_key(self) -> "ChoiceQuestion":
        if self.correct_answer is not None and self.correct_answer not in self.options:
            raise ValueError(f"correct_answer {self.correct_answer!r} is not an option")
        return self


class MultiChoiceQuestion(QuestionBase):
    """Pick any subset of options."""

    type: Literal["multi"] = "multi"
    options: list[str] = Field(min_length=1)
    correct_answers: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_key(self) -> "MultiChoiceQuestion":
        unknown = [item for item in self.correct_answers if item not in self.options]
        if unknown:
            raise ValueError(f"correct_answers contain unknown options: {unknown}")
        return self


class RankingQuestion(QuestionBase):
    """Compare two candidate responses and justify the preference."""

    type: Literal["ranking"] = "ranking"
    response_a: str = ""
    response_b: str = ""
    preferred: RankingChoice | None = None
    min_words: int | None = Field(default=None, ge=0)


class FactCheckQuestion(QuestionBase):
    type: Literal["fact_check"] = "fact_check"
    claim: str = ""
    correct_verdict: Verdict | None = None
    min_words: int | None = Field(default=None, ge=0)


class RedTeamQuestion(QuestionBase):
    type: Literal["red_team"] = "red_team"
    expected_vulnerability: str | None = None
    min_words: int | None = Field(default=None, ge=0)


class MultimodalQuestion(QuestionBase):
    type: Literal["multimodal"] = "multimodal"
    image_url: str = ""
    expected_rating: int | None = Field(default=None, ge=1, le=5)
    min_words: int | None = Field(default=None, ge=0)


class CodingQuestion(QuestionBase):
    type: Literal["coding"] = "coding"
    code_language: str = ""


class TextQuestion(QuestionBase):
    type: Literal["text", "written"] = "text"


Question = Annotated[
    Union[
        ChoiceQuestion,
        MultiChoiceQuestion,
        RankingQuestion,
        FactCheckQuestion,
        RedTeamQuestion,
        MultimodalQuestion,
        CodingQuestion,
        TextQuestion,
    ],
    Field(discriminator="type"),
]


def is_auto_gradable(question: Question) -> bool:
    """Return True when the question carries an answer key."""
    if isinstance(question, ChoiceQuestion):
        return question.correct_answer is not None
    if isinstance(question, MultiChoiceQuestion):
        return bool(question.correct_answers)
    if isinstance(question, RankingQuestion):
        return question.preferred is not None
    if isinstance(question, FactCheckQuestion):
        return question.correct_verdict is not None
    if isinstance(question, RedTeamQuestion):
        return bool(question.expected_vulnerability)
    if isinstance(question, MultimodalQuestion):
        return question.expected_rating is not None
    return False
