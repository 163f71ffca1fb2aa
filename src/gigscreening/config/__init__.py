"""Configuration management utilities."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from ..schemas.config import AppConfig, load_config


class ConfigManager:
    """YAML-backed configuration loader."""

    def __init__(self, base_path: str | Path):
        self._base_path = Path(base_path)

    def load(self, name: str) -> dict[str, Any]:
        """Load a YAML configuration by name without file extension."""
        path = self._base_path / f"{name}.yaml"
        with path.open("r", encoding="utf-8") as handle:
            return yaml.safe_load(handle) or {}

    def load_settings(self, name: str) -> dict[str, Any]:
        """Load and validate a configuration, returning container settings."""
        return load_config(self.load(name)).to_settings()


def read_settings(path: str | Path) -> dict[str, Any]:
    """Validate a standalone YAML file into container settings."""
    with Path(path).open("r", encoding="utf-8") as handle:
        raw = yaml.safe_load(handle) or {}
    return load_config(raw).to_settings()


__all__ = ["AppConfig", "ConfigManager", "read_settings"]
