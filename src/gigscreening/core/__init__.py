"""Core evaluation and lifecycle components."""

from __future__ import annotations

# NOTE: keep imports explicit for export clarity.
from .answers import (
    ValidationOutcome,
    parse_answer,
    parse_answers,
    validate_answer,
    validate_submission,
)
from .attempts import AttemptTracker
from .lifecycle import (
    PIPELINE_COLUMNS,
    TRANSITIONS,
    LifecycleMachine,
    allowed_transitions,
    can_transition,
)
from .payouts import PayoutLedger
from .review import QueueEntry, ReviewGateway, ReviewQueue, ReviewResult
from .rules import RuleRunner, ValidationRule, default_rules
from .scoring import RubricScore, ScoreResult, ScoringConfig, ScoringEngine
from .signals import RiskSignal, RiskSignals, SignalConfig, pipeline_board

__all__ = [
    "ValidationOutcome",
    "parse_answer",
    "parse_answers",
    "validate_answer",
    "validate_submission",
    "AttemptTracker",
    "PIPELINE_COLUMNS",
    "TRANSITIONS",
    "LifecycleMachine",
    "allowed_transitions",
    "can_transition",
    "PayoutLedger",
    "QueueEntry",
    "ReviewGateway",
    "ReviewQueue",
    "ReviewResult",
    "RuleRunner",
    "ValidationRule",
    "default_rules",
    "RubricScore",
    "ScoreResult",
    "ScoringConfig",
    "ScoringEngine",
    "RiskSignal",
    "RiskSignals",
    "SignalConfig",
    "pipeline_board",
]
