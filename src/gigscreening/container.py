"""Dependency injection container for the screening engine."""

from __future__ import annotations

from dependency_injector import containers, providers

from .core import (
    AttemptTracker,
    LifecycleMachine,
    PayoutLedger,
    ReviewGateway,
    ReviewQueue,
    RiskSignals,
    RuleRunner,
    ScoringEngine,
)
from .core.rules import JustificationLengthRule, RequiredFieldsRule, SourceUrlRule, TimeLimitRule
from .core.rules.time_limit import TimeLimitConfig
from .core.scoring import ScoringConfig
from .core.signals import SignalConfig
from .pipeline import ScreeningPipeline
from .store import InMemoryStore


class EngineContainer(containers.DeclarativeContainer):
    """Dependency-injector container definition."""

    config = providers.Configuration()

    store = providers.Singleton(InMemoryStore)

    attempts = providers.Singleton(AttemptTracker)
    machine = providers.Singleton(LifecycleMachine, attempts=attempts)
    scoring = providers.Singleton(ScoringEngine)

    justification_rule = providers.Singleton(JustificationLengthRule)
    time_limit_rule = providers.Singleton(TimeLimitRule)
    required_fields_rule = providers.Singleton(RequiredFieldsRule)
    source_url_rule = providers.Singleton(SourceUrlRule)

    rule_runner = providers.Singleton(
        RuleRunner,
        rules=providers.List(
            justification_rule,
            time_limit_rule,
            required_fields_rule,
            source_url_rule,
        ),
    )

    gateway = providers.Singleton(ReviewGateway, machine=machine, scoring=scoring)
    ledger = providers.Singleton(PayoutLedger, machine=machine)
    review_queue = providers.Singleton(ReviewQueue)
    signals = providers.Singleton(RiskSignals)

    pipeline = providers.Factory(
        ScreeningPipeline,
        store=store,
        scoring=scoring,
        rules=rule_runner,
        attempts=attempts,
        machine=machine,
        gateway=gateway,
        ledger=ledger,
        queue=review_queue,
        signals=signals,
        default_max_attempts=config.lifecycle.default_max_attempts,
    )


def create_container(
    *,
    settings: dict | None = None,
    store: InMemoryStore | None = None,
) -> EngineContainer:
    """Instantiate container with optional overrides."""

    container = EngineContainer()

    if store is not None:
        container.store.override(providers.Object(store))

    if not settings:
        return container

    lifecycle_settings = settings.get("lifecycle", {}) if isinstance(settings, dict) else {}
    if lifecycle_settings:
        container.config.override({"lifecycle": lifecycle_settings})

    if "scoring" in settings:
        scoring_config = ScoringConfig(**settings["scoring"])
        container.scoring.override(providers.Singleton(ScoringEngine, config=scoring_config))

    if "rules" in settings:
        rule_settings = settings["rules"]
        if "time_limit_grace_minutes" in rule_settings:
            time_config = TimeLimitConfig(grace_minutes=rule_settings["time_limit_grace_minutes"])
            container.time_limit_rule.override(providers.Singleton(TimeLimitRule, config=time_config))

    if "signals" in settings:
        signal_config = SignalConfig(**settings["signals"])
        container.signals.override(providers.Singleton(RiskSignals, config=signal_config))

    return container
