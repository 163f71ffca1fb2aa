from __future__ import annotations

import json
from pathlib import Path

import pytest
import structlog
from pydantic import ValidationError as PydanticValidationError

from gigscreening.config import ConfigManager, read_settings
from gigscreening.container import create_container
from gigscreening.logging import configure_logging
from gigscreening.schemas.config import AppConfig, load_config
from gigscreening.store import InMemoryStore


def test_create_container_with_overrides():
    container = create_container(
        settings={
            "scoring": {"over_selection_penalty": 0.5, "tier_cutoffs": {"gold": 95, "silver": 80}},
            "rules": {"time_limit_grace_minutes": 3},
            "lifecycle": {"default_max_attempts": 3},
            "signals": {"stuck_days": 21, "application_pending_days": 5},
        }
    )

    scoring = container.scoring()
    time_rule = container.time_limit_rule()
    signals = container.signals()
    pipeline = container.pipeline()

    assert scoring._config.over_selection_penalty == 0.5
    assert scoring.assign_tier(92) == "silver"
    assert time_rule._config.grace_minutes == 3
    assert signals._config.stuck_days == 21
    assert signals._config.application_pending_days == 5
    assert pipeline._default_max_attempts == 3


def test_container_defaults_and_rule_order():
    container = create_container()

    runner = container.rule_runner()

    assert runner.rule_names == ["justification_length", "time_limit", "required_fields", "source_url"]
    assert container.pipeline()._default_max_attempts == 2


def test_container_uses_supplied_store():
    store = InMemoryStore()

    container = create_container(store=store)

    assert container.pipeline().store is store


def test_load_config_validation():
    data = {
        "scoring": {"red_team_min_similarity": 70},
        "lifecycle": {"default_max_attempts": 4},
    }
    app_config = load_config(data)
    assert isinstance(app_config, AppConfig)
    settings = app_config.to_settings()
    assert settings == {
        "scoring": {"red_team_min_similarity": 70},
        "lifecycle": {"default_max_attempts": 4},
    }


def test_load_config_rejects_non_mapping():
    with pytest.raises(PydanticValidationError):
        load_config(["scoring"])


def test_load_config_rejects_zero_attempts():
    with pytest.raises(PydanticValidationError):
        load_config({"lifecycle": {"default_max_attempts": 0}})


def test_config_manager_reads_yaml(tmp_path: Path):
    (tmp_path / "engine.yaml").write_text(
        "rules:\n  time_limit_grace_minutes: 2\nsignals:\n  screening_stale_days: 3\n",
        encoding="utf-8",
    )

    settings = ConfigManager(tmp_path).load_settings("engine")

    assert settings == {
        "rules": {"time_limit_grace_minutes": 2},
        "signals": {"screening_stale_days": 3},
    }
    assert read_settings(tmp_path / "engine.yaml") == settings


def test_configure_logging_emits_json_lines(capsys: pytest.CaptureFixture[str]):
    configure_logging("debug")
    try:
        structlog.get_logger("gigscreening.test").info("engine.ready", worker_id="W-001")
    finally:
        structlog.reset_defaults()

    line = capsys.readouterr().err.strip().splitlines()[-1]
    event = json.loads(line)
    assert event["event"] == "engine.ready"
    assert event["worker_id"] == "W-001"
    assert event["level"] == "info"
