"""Pydantic configuration schema for CLI YAML input."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, ValidationError


class ScoringSettings(BaseModel):
    over_selection_penalty: float | None = None
    red_team_min_similarity: float | None = None
    multimodal_rating_tolerance: int | None = None
    tier_cutoffs: dict[str, float] | None = None


class RuleSettings(BaseModel):
    time_limit_grace_minutes: float | None = None


class LifecycleSettings(BaseModel):
    default_max_attempts: int | None = Field(default=None, ge=1)


class SignalSettings(BaseModel):
    stuck_days: int | None = None
    screening_stale_days: int | None = None
    application_pending_days: int | None = None


class AppConfig(BaseModel):
    scoring: ScoringSettings = Field(default_factory=ScoringSettings)
    rules: RuleSettings = Field(default_factory=RuleSettings)
    lifecycle: LifecycleSettings = Field(default_factory=LifecycleSettings)
    signals: SignalSettings = Field(default_factory=SignalSettings)

    def to_settings(self) -> dict[str, Any]:
        settings: dict[str, Any] = {}
        for section in ("scoring", "rules", "lifecycle", "signals"):
            values = getattr(self, section).model_dump(exclude_none=True)
            if values:
                settings[section] = values
        return settings


def load_config(raw: Any) -> AppConfig:
    if not isinstance(raw, dict):
        raise ValidationError.from_exception_data(
            "AppConfig",
            [{"type": "dict_type", "loc": ("config",), "input": raw}],
        )
    return AppConfig.model_validate(raw)
