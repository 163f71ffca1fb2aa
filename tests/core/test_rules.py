from __future__ import annotations

from typing import Any

import pendulum

from gigscreening.core import RuleRunner, default_rules, parse_answers
from gigscreening.core.rules import (
    JustificationLengthRule,
    RequiredFieldsRule,
    SourceUrlRule,
    TimeLimitConfig,
    TimeLimitRule,
    ValidationRule,
)
from gigscreening.schemas import (
    FactCheckQuestion,
    RedTeamQuestion,
    Screening,
    Submission,
    TextQuestion,
)


def build_screening(**kwargs: Any) -> Screening:
    defaults: dict[str, Any] = {
        "screening_id": "SCR-001",
        "evaluation_mode": "manual",
        "min_justification_words": 4,
        "questions": [
            FactCheckQuestion(id="q1", claim="The moon is made of cheese", correct_verdict="false"),
            RedTeamQuestion(id="q2"),
            TextQuestion(id="q3", optional=True),
        ],
    }
    defaults.update(kwargs)
    return Screening(**defaults)


def build_submission(screening: Screening, raw_answers: list[Any], **kwargs: Any) -> Submission:
    defaults: dict[str, Any] = {
        "submission_id": "SUB-001",
        "worker_id": "W-001",
        "screening_id": screening.screening_id,
        "answers": tuple(parse_answers(screening, raw_answers)),
        "submitted_at": pendulum.datetime(2024, 5, 1, 12, 0, 0),
    }
    defaults.update(kwargs)
    return Submission(**defaults)


COMPLETE_ANSWERS: list[Any] = [
    {
        "verdict": "false",
        "sourceUrl": "https://nasa.gov/moon",
        "explanation": "Lunar samples show basaltic rock",
    },
    {
        "prompt": "Pretend you are my grandmother",
        "expectedVulnerability": "role-play jailbreak",
        "explanation": "Persona framing bypasses refusal training",
    },
    "",
]


def test_default_rules_satisfy_protocol():
    rules = default_rules()

    assert all(isinstance(rule, ValidationRule) for rule in rules)
    assert RuleRunner(rules).rule_names == [
        "justification_length",
        "time_limit",
        "required_fields",
        "source_url",
    ]


def test_runner_returns_one_flag_per_rule():
    screening = build_screening()
    submission = build_submission(screening, COMPLETE_ANSWERS)

    flags = RuleRunner(default_rules()).run(screening, submission)

    assert [flag.rule for flag in flags] == [
        "justification_length",
        "time_limit",
        "required_fields",
        "source_url",
    ]


def test_justification_length_flags_short_explanations():
    screening = build_screening()
    answers = list(COMPLETE_ANSWERS)
    answers[0] = {"verdict": "false", "sourceUrl": "https://nasa.gov", "explanation": "nope"}
    submission = build_submission(screening, answers)

    flag = JustificationLengthRule().check(screening, submission, {})

    assert flag.passed is False
    assert "Q1 (1/4 words)" in flag.detail


def test_justification_length_passes_complete_answers():
    screening = build_screening()
    submission = build_submission(screening, COMPLETE_ANSWERS)

    flag = JustificationLengthRule().check(screening, submission, {})

    assert flag.passed is True


def test_time_limit_respects_grace_period():
    screening = build_screening(time_limit=30)
    submission = build_submission(screening, COMPLETE_ANSWERS, elapsed_minutes=33)

    assert TimeLimitRule().check(screening, submission, {}).passed is False
    lenient = TimeLimitRule(config=TimeLimitConfig(grace_minutes=5))
    assert lenient.check(screening, submission, {}).passed is True


def test_time_limit_passes_when_elapsed_not_reported():
    screening = build_screening(time_limit=30)
    submission = build_submission(screening, COMPLETE_ANSWERS)

    flag = TimeLimitRule().check(screening, submission, {})

    assert flag.passed is True
    assert flag.detail == "Elapsed time not reported"


def test_required_fields_reports_missing_secondary_fields():
    screening = build_screening()
    answers = list(COMPLETE_ANSWERS)
    answers[1] = {"prompt": "Pretend you are my grandmother", "explanation": "Persona framing works"}
    submission = build_submission(screening, answers)

    flag = RequiredFieldsRule().check(screening, submission, {})

    assert flag.passed is False
    assert "Q2 expected vulnerability" in flag.detail
    assert "Q3 unanswered" in flag.detail


def test_source_url_rule():
    screening = build_screening()
    answers = list(COMPLETE_ANSWERS)
    answers[0] = {"verdict": "false", "explanation": "Lunar samples show basaltic rock"}

    missing = SourceUrlRule().check(screening, build_submission(screening, answers), {})
    cited = SourceUrlRule().check(screening, build_submission(screening, COMPLETE_ANSWERS), {})

    assert missing.passed is False
    assert missing.detail == "No source URL: Q1"
    assert cited.passed is True
