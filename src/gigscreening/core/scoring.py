"""Screening score computation."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Sequence

from rapidfuzz import fuzz

from ..errors import ConfigurationError, ValidationError
from ..schemas.answer import (
    Answer,
    ChoiceAnswer,
    FactCheckAnswer,
    MultiChoiceAnswer,
    MultimodalAnswer,
    RankingAnswer,
    RedTeamAnswer,
)
from ..schemas.question import (
    ChoiceQuestion,
    FactCheckQuestion,
    MultiChoiceQuestion,
    MultimodalQuestion,
    Question,
    RankingQuestion,
    RedTeamQuestion,
    is_auto_gradable,
)
from ..schemas.screening import Screening
from ..schemas.submission import RubricAward, ValidationFlag
from ..schemas.worker import Tier


@dataclass
class ScoringConfig:
    """Tunables for automatic grading."""

    over_selection_penalty: float = 1.0
    red_team_min_similarity: float = 80.0
    multimodal_rating_tolerance: int = 0
    tier_cutoffs: dict[str, float] = field(
        default_factory=lambda: {"gold": 90.0, "silver": 75.0}
    )


@dataclass(slots=True)
class QuestionCredit:
    """Points earned by a single auto-gradable question."""

    question_id: str
    points: float
    credit: float

    @property
    def earned(self) -> float:
        return self.points * self.credit


@dataclass(slots=True)
class ScoreResult:
    """Scoring output before review."""

    score: float | None
    auto_score: float | None
    auto_pass: bool | None
    rubric_breakdown: list[RubricAward] = field(default_factory=list)
    credits: list[QuestionCredit] = field(default_factory=list)


@dataclass(slots=True)
class RubricScore:
    """Reviewer rubric total with any clamping flags."""

    score: float
    breakdown: list[RubricAward]
    flags: list[ValidationFlag]


class ScoringEngine:
    """Compute scores according to the screening's evaluation mode."""

    def __init__(self, *, config: ScoringConfig | None = None) -> None:
        self._config = config or ScoringConfig()

    def check_configuration(self, screening: Screening) -> None:
        if not screening.questions:
            raise ConfigurationError(
                f"Screening {screening.screening_id!r} has no questions",
                screening_id=screening.screening_id,
            )
        if screening.evaluation_mode == "auto" and not any(
            is_auto_gradable(question) for question in screening.questions
        ):
            raise ConfigurationError(
                f"Screening {screening.screening_id!r} is auto-graded but has no answer keys",
                screening_id=screening.screening_id,
            )

    def score(self, screening: Screening, answers: Sequence[Answer]) -> ScoreResult:
        self.check_configuration(screening)

        if screening.evaluation_mode == "manual":
            return ScoreResult(
                score=None,
                auto_score=None,
                auto_pass=None,
                rubric_breakdown=self.rubric_template(screening),
            )

        credits = self.auto_credits(screening, answers)
        auto_score = self._normalize(credits)
        auto_pass = None if auto_score is None else auto_score >= screening.passing_score

        if screening.evaluation_mode == "auto":
            return ScoreResult(
                score=auto_score,
                auto_score=auto_score,
                auto_pass=auto_pass,
                credits=credits,
            )

        return ScoreResult(
            score=None,
            auto_score=auto_score,
            auto_pass=auto_pass,
            rubric_breakdown=self.rubric_template(screening),
            credits=credits,
        )

    def auto_credits(self, screening: Screening, answers: Sequence[Answer]) -> list[QuestionCredit]:
        credits: list[QuestionCredit] = []
        for question, answer in zip(screening.questions, answers):
            if not is_auto_gradable(question):
                continue
            credits.append(
                QuestionCredit(
                    question_id=question.id,
                    points=question.points,
                    credit=self._credit(question, answer),
                )
            )
        return credits

    @staticmethod
    def rubric_template(screening: Screening) -> list[RubricAward]:
        return [
            RubricAward(criteria=item.criteria, weight=item.weight, max_score=item.max_score)
            for item in screening.rubric
        ]

    def score_rubric(
        self,
        screening: Screening,
        awards: Iterable[Mapping[str, Any] | RubricAward],
    ) -> RubricScore:
        """Weighted rubric total scaled to 0-100.

        Each criterion contributes ``weight * awarded / max_score``; the sum is
        divided by the total weight of the screening rubric, so criteria the
        reviewer left out count as zero.
        """
        awarded_by_name: dict[str, float] = {}
        flags: list[ValidationFlag] = []

        for raw in awards:
            name, awarded = self._award_fields(raw)
            criterion = screening.rubric_criterion(name)
            if criterion is None:
                raise ConfigurationError(
                    f"Rubric criterion {name!r} is not defined for screening {screening.screening_id!r}",
                    screening_id=screening.screening_id,
                    criteria=name,
                )
            if name in awarded_by_name:
                raise ValidationError(f"Rubric criterion {name!r} awarded twice", criteria=name)

            clamped = min(max(awarded, 0.0), criterion.max_score)
            if clamped != awarded:
                flags.append(
                    ValidationFlag(
                        rule="rubric_award_clamped",
                        passed=False,
                        detail=f"{name}: {awarded:g} clamped to {clamped:g} (max {criterion.max_score:g})",
                    )
                )
            awarded_by_name[name] = clamped

        if not awarded_by_name:
            raise ValidationError("Rubric breakdown is empty")

        breakdown = [
            RubricAward(
                criteria=item.criteria,
                weight=item.weight,
                max_score=item.max_score,
                awarded=awarded_by_name.get(item.criteria, 0.0),
            )
            for item in screening.rubric
        ]

        total_weight = sum(item.weight for item in breakdown)
        weighted = sum(item.weight * (item.awarded or 0.0) / item.max_score for item in breakdown)
        return RubricScore(
            score=round(weighted / total_weight * 100, 2),
            breakdown=breakdown,
            flags=flags,
        )

    def assign_tier(self, score: float | None) -> Tier | None:
        if score is None:
            return None
        cutoffs = self._config.tier_cutoffs
        if score >= cutoffs.get("gold", 90.0):
            return "gold"
        if score >= cutoffs.get("silver", 75.0):
            return "silver"
        return "bronze"

    def _credit(self, question: Question, answer: Answer) -> float:
        if isinstance(question, ChoiceQuestion) and isinstance(answer, ChoiceAnswer):
            return 1.0 if answer.selected == question.correct_answer else 0.0
        if isinstance(question, MultiChoiceQuestion) and isinstance(answer, MultiChoiceAnswer):
            return self._multi_credit(question.correct_answers, answer.selected)
        if isinstance(question, RankingQuestion) and isinstance(answer, RankingAnswer):
            return 1.0 if answer.choice == question.preferred else 0.0
        if isinstance(question, FactCheckQuestion) and isinstance(answer, FactCheckAnswer):
            return 1.0 if answer.verdict == question.correct_verdict else 0.0
        if isinstance(question, RedTeamQuestion) and isinstance(answer, RedTeamAnswer):
            return self._red_team_credit(question.expected_vulnerability or "", answer.expected_vulnerability)
        if isinstance(question, MultimodalQuestion) and isinstance(answer, MultimodalAnswer):
            if answer.rating is None or question.expected_rating is None:
                return 0.0
            diff = abs(int(answer.rating) - question.expected_rating)
            return 1.0 if diff <= self._config.multimodal_rating_tolerance else 0.0
        return 0.0

    def _multi_credit(self, correct: Sequence[str], selected: Sequence[str]) -> float:
        expected = set(correct)
        chosen = set(selected)
        hits = len(chosen & expected)
        wrong = len(chosen - expected)
        raw = (hits - self._config.over_selection_penalty * wrong) / len(expected)
        return min(max(raw, 0.0), 1.0)

    def _red_team_credit(self, expected: str, given: str) -> float:
        expected_norm = expected.strip().lower()
        given_norm = given.strip().lower()
        if not expected_norm or not given_norm:
            return 0.0
        if expected_norm == given_norm:
            return 1.0
        ratio = fuzz.token_set_ratio(expected_norm, given_norm)
        return 1.0 if ratio >= self._config.red_team_min_similarity else 0.0

    @staticmethod
    def _normalize(credits: Sequence[QuestionCredit]) -> float | None:
        total_points = sum(item.points for item in credits)
        if not credits or total_points <= 0:
            return None
        earned = sum(item.earned for item in credits)
        return round(earned / total_points * 100, 2)

    @staticmethod
    def _award_fields(raw: Mapping[str, Any] | RubricAward) -> tuple[str, float]:
        if isinstance(raw, RubricAward):
            name, awarded = raw.criteria, raw.awarded
        elif isinstance(raw, Mapping):
            name, awarded = raw.get("criteria"), raw.get("awarded")
        else:
            raise ValidationError(f"Rubric award must be an object, got {type(raw).__name__}")
        if not name:
            raise ValidationError("Rubric award is missing 'criteria'")
        if awarded is None:
            raise ValidationError(f"Rubric criterion {name!r} has no awarded value", criteria=name)
        try:
            value = float(awarded)
        except (TypeError, ValueError) as exc:
            raise ValidationError(
                f"Rubric criterion {name!r} has a non-numeric award", criteria=name
            ) from exc
        if not math.isfinite(value):
            raise ValidationError(f"Rubric criterion {name!r} has a non-finite award", criteria=name)
        return str(name), value
