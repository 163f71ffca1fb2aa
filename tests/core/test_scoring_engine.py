from __future__ import annotations

from typing import Any

import pytest

from gigscreening.core import ScoringConfig, ScoringEngine, parse_answers
from gigscreening.errors import ConfigurationError, ValidationError
from gigscreening.schemas import (
    ChoiceQuestion,
    MultiChoiceQuestion,
    MultimodalQuestion,
    RedTeamQuestion,
    RubricCriterion,
    Screening,
    TextQuestion,
)


def build_screening(**kwargs: Any) -> Screening:
    defaults: dict[str, Any] = {
        "screening_id": "SCR-001",
        "evaluation_mode": "auto",
        "questions": [
            ChoiceQuestion(id="q1", options=["A", "B", "C"], correct_answer="B"),
            ChoiceQuestion(id="q2", options=["A", "B", "C"], correct_answer="A"),
        ],
    }
    defaults.update(kwargs)
    return Screening(**defaults)


def score(engine: ScoringEngine, screening: Screening, raw_answers: list[Any]):
    return engine.score(screening, parse_answers(screening, raw_answers))


def test_auto_mode_all_correct_scores_full_marks():
    engine = ScoringEngine()
    screening = build_screening()

    result = score(engine, screening, ["B", "A"])

    assert result.score == 100
    assert result.auto_score == 100
    assert result.auto_pass is True
    assert result.rubric_breakdown == []


def test_auto_mode_below_passing_score_fails():
    engine = ScoringEngine()
    screening = build_screening()

    result = score(engine, screening, ["B", "C"])

    assert result.score == 50
    assert result.auto_pass is False


def test_points_weight_questions():
    engine = ScoringEngine()
    screening = build_screening(
        questions=[
            ChoiceQuestion(id="q1", options=["A", "B"], correct_answer="A", points=3),
            ChoiceQuestion(id="q2", options=["A", "B"], correct_answer="A", points=1),
        ]
    )

    result = score(engine, screening, ["A", "B"])

    assert result.score == 75


def test_ungraded_questions_are_excluded_from_denominator():
    engine = ScoringEngine()
    screening = build_screening(
        questions=[
            ChoiceQuestion(id="q1", options=["A", "B"], correct_answer="A"),
            TextQuestion(id="q2"),
        ]
    )

    result = score(engine, screening, ["A", "free text"])

    assert result.score == 100


def test_multi_select_partial_credit_with_over_selection_penalty():
    engine = ScoringEngine()
    screening = build_screening(
        questions=[
            MultiChoiceQuestion(id="q1", options=["a", "b", "c", "d"], correct_answers=["a", "b"]),
        ]
    )

    assert score(engine, screening, [["a"]]).score == 50
    assert score(engine, screening, [["a", "b", "c"]]).score == 50
    assert score(engine, screening, [["c", "d"]]).score == 0


def test_multi_select_penalty_is_configurable():
    engine = ScoringEngine(config=ScoringConfig(over_selection_penalty=0.0))
    screening = build_screening(
        questions=[
            MultiChoiceQuestion(id="q1", options=["a", "b", "c"], correct_answers=["a", "b"]),
        ]
    )

    assert score(engine, screening, [["a", "b", "c"]]).score == 100


def test_red_team_vulnerability_matches_fuzzily():
    engine = ScoringEngine()
    screening = build_screening(
        questions=[RedTeamQuestion(id="q1", expected_vulnerability="prompt injection")],
    )

    result = score(
        engine,
        screening,
        [{"prompt": "Ignore all rules", "expectedVulnerability": "Prompt Injection attack", "explanation": "x"}],
    )

    assert result.score == 100


def test_multimodal_rating_tolerance():
    screening = build_screening(
        questions=[MultimodalQuestion(id="q1", image_url="https://example.org/a.png", expected_rating=4)],
    )
    answers = [{"description": "blurry", "rating": 3}]

    assert score(ScoringEngine(), screening, answers).score == 0
    tolerant = ScoringEngine(config=ScoringConfig(multimodal_rating_tolerance=1))
    assert score(tolerant, screening, answers).score == 100


def test_hybrid_mode_keeps_auto_score_as_diagnostic():
    engine = ScoringEngine()
    screening = build_screening(
        evaluation_mode="hybrid",
        rubric=[RubricCriterion(criteria="clarity"), RubricCriterion(criteria="accuracy")],
    )

    result = score(engine, screening, ["B", "A"])

    assert result.score is None
    assert result.auto_score == 100
    assert [item.criteria for item in result.rubric_breakdown] == ["clarity", "accuracy"]
    assert all(item.awarded is None for item in result.rubric_breakdown)


def test_manual_mode_has_no_automatic_score():
    engine = ScoringEngine()
    screening = build_screening(evaluation_mode="manual", questions=[TextQuestion(id="q1")])

    result = score(engine, screening, ["essay"])

    assert result.score is None
    assert result.auto_score is None
    assert result.auto_pass is None


def test_zero_questions_is_configuration_error():
    engine = ScoringEngine()

    with pytest.raises(ConfigurationError):
        engine.score(build_screening(questions=[]), [])


def test_auto_mode_without_answer_keys_is_configuration_error():
    engine = ScoringEngine()

    with pytest.raises(ConfigurationError):
        engine.check_configuration(build_screening(questions=[TextQuestion(id="q1")]))


def test_rubric_score_weighted_average():
    engine = ScoringEngine()
    screening = build_screening(
        evaluation_mode="hybrid",
        rubric=[RubricCriterion(criteria="clarity"), RubricCriterion(criteria="accuracy")],
    )

    rubric = engine.score_rubric(
        screening,
        [
            {"criteria": "clarity", "weight": 1, "max_score": 10, "awarded": 8},
            {"criteria": "accuracy", "weight": 1, "max_score": 10, "awarded": 10},
        ],
    )

    assert rubric.score == 90
    assert rubric.flags == []


def test_rubric_score_is_scale_invariant():
    engine = ScoringEngine()
    small = build_screening(
        rubric=[
            RubricCriterion(criteria="clarity", weight=1, max_score=10),
            RubricCriterion(criteria="accuracy", weight=3, max_score=10),
        ]
    )
    large = build_screening(
        rubric=[
            RubricCriterion(criteria="clarity", weight=2, max_score=100),
            RubricCriterion(criteria="accuracy", weight=6, max_score=100),
        ]
    )

    first = engine.score_rubric(small, [{"criteria": "clarity", "awarded": 5}, {"criteria": "accuracy", "awarded": 10}])
    second = engine.score_rubric(large, [{"criteria": "clarity", "awarded": 50}, {"criteria": "accuracy", "awarded": 100}])

    assert first.score == second.score == 87.5


def test_rubric_award_above_max_is_clamped_and_flagged():
    engine = ScoringEngine()
    screening = build_screening(rubric=[RubricCriterion(criteria="clarity", max_score=10)])

    rubric = engine.score_rubric(screening, [{"criteria": "clarity", "awarded": 12}])

    assert rubric.score == 100
    assert rubric.breakdown[0].awarded == 10
    assert rubric.flags[0].rule == "rubric_award_clamped"


def test_rubric_unknown_criterion_rejected():
    engine = ScoringEngine()
    screening = build_screening(rubric=[RubricCriterion(criteria="clarity")])

    with pytest.raises(ConfigurationError):
        engine.score_rubric(screening, [{"criteria": "style", "awarded": 5}])


def test_rubric_empty_breakdown_rejected():
    engine = ScoringEngine()
    screening = build_screening(rubric=[RubricCriterion(criteria="clarity")])

    with pytest.raises(ValidationError):
        engine.score_rubric(screening, [])


def test_rubric_missing_criteria_count_as_zero():
    engine = ScoringEngine()
    screening = build_screening(
        rubric=[RubricCriterion(criteria="clarity"), RubricCriterion(criteria="accuracy")],
    )

    rubric = engine.score_rubric(screening, [{"criteria": "clarity", "awarded": 10}])

    assert rubric.score == 50
    assert [(item.criteria, item.awarded) for item in rubric.breakdown] == [("clarity", 10), ("accuracy", 0)]


@pytest.mark.parametrize(
    "award",
    [
        ["clarity"],
        "clarity",
        {"criteria": "clarity", "awarded": float("nan")},
        {"criteria": "clarity", "awarded": float("inf")},
        {"criteria": "clarity", "awarded": "lots"},
    ],
)
def test_rubric_malformed_award_rejected(award: Any):
    engine = ScoringEngine()
    screening = build_screening(rubric=[RubricCriterion(criteria="clarity")])

    with pytest.raises(ValidationError):
        engine.score_rubric(screening, [award])


def test_auto_credits_are_reported_per_question():
    screening = build_screening()

    result = score(ScoringEngine(), screening, ["B", "C"])

    assert [(item.question_id, item.credit) for item in result.credits] == [("q1", 1.0), ("q2", 0.0)]
    assert sum(item.earned for item in result.credits) == 1


@pytest.mark.parametrize(
    ("value", "tier"),
    [(95, "gold"), (90, "gold"), (80, "silver"), (70, "bronze"), (None, None)],
)
def test_assign_tier(value: float | None, tier: str | None):
    assert ScoringEngine().assign_tier(value) == tier
