"""Answer parsing and structural validation against question shapes."""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Any, Callable, Sequence

from pydantic import BaseModel, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from ..errors import ValidationError
from ..schemas.answer import (
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
from ..schemas.question import (
    VERDICTS,
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
from ..schemas.screening import Screening

_CAMEL_RE = re.compile(r"(?<!^)(?=[A-Z])")
_WORD_RE = re.compile(r"\S+")

_ANSWER_ADAPTER: TypeAdapter[Answer] = TypeAdapter(Answer)

_KIND_BY_QUESTION: dict[type, str] = {
    ChoiceQuestion: "choice",
    MultiChoiceQuestion: "multi",
    RankingQuestion: "ranking",
    FactCheckQuestion: "fact_check",
    RedTeamQuestion: "red_team",
    MultimodalQuestion: "multimodal",
    CodingQuestion: "coding",
    TextQuestion: "text",
}


@dataclass(slots=True, frozen=True)
class ValidationOutcome:
    """Result of checking one answer against its question."""

    ok: bool
    reason: str | None = None


_OK = ValidationOutcome(ok=True)


def word_count(text: str | None) -> int:
    if not text:
        return 0
    return len(_WORD_RE.findall(text))


def answer_kind(question: Question) -> str:
    return _KIND_BY_QUESTION[type(question)]


def parse_answer(question: Question, raw: Any) -> Answer:
    """Coerce an untyped answer blob into the variant the question expects.

    Raw payloads follow the worker-facing form: plain strings for choice,
    coding and text questions, lists for multi-select, and objects for the
    structured task types. Object keys may be camelCase or snake_case.
    """
    kind = answer_kind(question)

    if isinstance(raw, BaseModel):
        if getattr(raw, "kind", None) != kind:
            raise ValidationError(
                f"Question {question.id!r} expects a {kind} answer",
                question_id=question.id,
            )
        return raw  # type: ignore[return-value]

    if raw is None:
        payload: dict[str, Any] = {}
    elif kind in ("choice", "coding", "text"):
        if isinstance(raw, dict):
            payload = _snake_keys(raw)
            payload.pop("kind", None)
        elif isinstance(raw, str):
            field_name = {"choice": "selected", "coding": "code", "text": "text"}[kind]
            payload = {field_name: raw}
        else:
            raise _shape_error(question, kind, raw)
    elif kind == "multi":
        if not isinstance(raw, (list, tuple)):
            raise _shape_error(question, kind, raw)
        payload = {"selected": list(raw)}
    else:
        if not isinstance(raw, dict):
            raise _shape_error(question, kind, raw)
        payload = _snake_keys(raw)
        payload.pop("kind", None)

    payload["kind"] = kind
    try:
        return _ANSWER_ADAPTER.validate_python(payload)
    except PydanticValidationError as exc:
        raise ValidationError(
            f"Answer for question {question.id!r} is malformed",
            question_id=question.id,
            errors=[err["msg"] for err in exc.errors()],
        ) from exc


def parse_answers(screening: Screening, raw_answers: Sequence[Any]) -> list[Answer]:
    """Parse an index-aligned list of raw answers."""
    if len(raw_answers) != len(screening.questions):
        raise ValidationError(
            f"Expected {len(screening.questions)} answers, got {len(raw_answers)}",
            expected=len(screening.questions),
            received=len(raw_answers),
        )
    return [parse_answer(question, raw) for question, raw in zip(screening.questions, raw_answers)]


def is_blank(answer: Answer) -> bool:
    """Return True when the worker left the answer empty."""
    if isinstance(answer, ChoiceAnswer):
        return not answer.selected.strip()
    if isinstance(answer, MultiChoiceAnswer):
        return not answer.selected
    if isinstance(answer, RankingAnswer):
        return not answer.choice and not answer.justification.strip()
    if isinstance(answer, FactCheckAnswer):
        return not answer.verdict and not answer.explanation.strip()
    if isinstance(answer, RedTeamAnswer):
        return not (answer.prompt.strip() or answer.expected_vulnerability.strip() or answer.explanation.strip())
    if isinstance(answer, MultimodalAnswer):
        return answer.rating is None and not answer.description.strip() and not answer.issues
    if isinstance(answer, CodingAnswer):
        return not answer.code.strip()
    if isinstance(answer, TextAnswer):
        return not answer.text.strip()
    return True


def validate_answer(
    question: Question,
    answer: Answer,
    *,
    min_justification_words: int = 0,
) -> ValidationOutcome:
    """Check that an answer fits the question's shape. Pure."""
    kind = answer_kind(question)
    if answer.kind != kind:
        return ValidationOutcome(False, f"expected a {kind} answer, got {answer.kind}")

    if is_blank(answer):
        if question.optional:
            return _OK
        return ValidationOutcome(False, "answer is required")

    validator = _VALIDATORS[kind]
    return validator(question, answer, min_justification_words)


def validate_submission(screening: Screening, answers: Sequence[Answer]) -> None:
    """Raise ValidationError on the first answer that does not fit its question."""
    if len(answers) != len(screening.questions):
        raise ValidationError(
            f"Expected {len(screening.questions)} answers, got {len(answers)}",
            expected=len(screening.questions),
            received=len(answers),
        )
    for index, (question, answer) in enumerate(zip(screening.questions, answers)):
        outcome = validate_answer(
            question,
            answer,
            min_justification_words=screening.min_justification_words,
        )
        if not outcome.ok:
            raise ValidationError(
                f"Question {index + 1} ({question.id}): {outcome.reason}",
                question_index=index,
                question_id=question.id,
                reason=outcome.reason,
            )


def _validate_choice(question: ChoiceQuestion, answer: ChoiceAnswer, _: int) -> ValidationOutcome:
    if answer.selected not in question.options:
        return ValidationOutcome(False, f"{answer.selected!r} is not one of the options")
    return _OK


def _validate_multi(question: MultiChoiceQuestion, answer: MultiChoiceAnswer, _: int) -> ValidationOutcome:
    unknown = [item for item in answer.selected if item not in question.options]
    if unknown:
        return ValidationOutcome(False, f"unknown options selected: {', '.join(unknown)}")
    if len(set(answer.selected)) != len(answer.selected):
        return ValidationOutcome(False, "options selected more than once")
    return _OK


def _validate_ranking(question: RankingQuestion, answer: RankingAnswer, minimum: int) -> ValidationOutcome:
    if answer.choice not in ("A", "B"):
        return ValidationOutcome(False, "choice must be 'A' or 'B'")
    required = question.min_words if question.min_words is not None else minimum
    words = word_count(answer.justification)
    if words == 0:
        return ValidationOutcome(False, "justification is required")
    if words < required:
        return ValidationOutcome(False, f"justification has {words} words, minimum is {required}")
    return _OK


def _validate_fact_check(question: FactCheckQuestion, answer: FactCheckAnswer, _: int) -> ValidationOutcome:
    if answer.verdict not in VERDICTS:
        return ValidationOutcome(False, f"verdict must be one of {', '.join(VERDICTS)}")
    return _OK


def _validate_red_team(question: RedTeamQuestion, answer: RedTeamAnswer, _: int) -> ValidationOutcome:
    if not answer.explanation.strip() and not answer.prompt.strip():
        return ValidationOutcome(False, "adversarial prompt or explanation is required")
    return _OK


def _validate_multimodal(question: MultimodalQuestion, answer: MultimodalAnswer, _: int) -> ValidationOutcome:
    rating = answer.rating
    if rating is None:
        return ValidationOutcome(False, "rating is required")
    if not math.isfinite(rating):
        return ValidationOutcome(False, "rating must be a finite number")
    if isinstance(rating, bool) or float(rating) != int(rating):
        return ValidationOutcome(False, "rating must be an integer")
    if not 1 <= int(rating) <= 5:
        return ValidationOutcome(False, "rating must be between 1 and 5")
    return _OK


def _validate_free_text(question: Question, answer: Answer, _: int) -> ValidationOutcome:
    return _OK


_VALIDATORS: dict[str, Callable[[Any, Any, int], ValidationOutcome]] = {
    "choice": _validate_choice,
    "multi": _validate_multi,
    "ranking": _validate_ranking,
    "fact_check": _validate_fact_check,
    "red_team": _validate_red_team,
    "multimodal": _validate_multimodal,
    "coding": _validate_free_text,
    "text": _validate_free_text,
}


def _snake_keys(raw: dict[str, Any]) -> dict[str, Any]:
    return {_CAMEL_RE.sub("_", str(key)).lower(): value for key, value in raw.items()}


def _shape_error(question: Question, kind: str, raw: Any) -> ValidationError:
    return ValidationError(
        f"Answer for question {question.id!r} must be a {kind} answer, got {type(raw).__name__}",
        question_id=question.id,
    )
