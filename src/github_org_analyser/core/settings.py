"""Persistent user overrides for report thresholds.

This is the explicit settings-update path: overrides are stored as the
camelCase settings surface in a JSON file and resolved into an immutable
``ThresholdSet`` on demand. Report builders never read this file directly.
"""

from __future__ import annotations

import contextlib
import json
import logging
import os
import uuid
from pathlib import Path
from typing import Any

from github_org_analyser.core.config import ThresholdSet
from github_org_analyser.core.exceptions import ConfigurationError


class SettingsStore:
    """JSON-file store for threshold overrides.

    Args:
        path: Settings file. Defaults to ~/.github_org_analyser/settings.json
        logger: Optional logger for load/save warnings
    """

    def __init__(self, path: Path | None = None, logger: logging.Logger | None = None):
        if path is None:
            path = Path.home() / ".github_org_analyser" / "settings.json"
        self.path = Path(path)
        self.logger = logger or logging.getLogger(__name__)

    def load(self) -> dict[str, Any]:
        """Return stored overrides, or an empty dict when missing or unreadable."""
        if not self.path.exists():
            return {}
        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            self.logger.warning(f"Failed to load settings from {self.path}: {e}")
            return {}
        if not isinstance(data, dict):
            self.logger.warning(f"Ignoring settings in {self.path}: expected a JSON object")
            return {}
        return data

    def save(self, overrides: dict[str, Any]) -> None:
        """Validate and write overrides via atomic write-then-rename."""
        ThresholdSet.resolve(overrides)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_name(f".{self.path.name}.{uuid.uuid4().hex}.tmp")
        try:
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(overrides, f, indent=2)
            os.replace(tmp_path, self.path)
        except OSError as e:
            with contextlib.suppress(OSError):
                tmp_path.unlink()
            raise ConfigurationError("Failed to save settings", config_file=str(self.path), details=str(e)) from e

    def update_value(self, path: str, value: Any) -> dict[str, Any]:
        """Set a single override by dot path, e.g. ``"thresholds.staleBranchDays"``.

        Returns:
            The full override mapping after the update

        Raises:
            ConfigurationError: If the path is malformed or the value is invalid
        """
        keys = [part for part in path.split(".") if part]
        if len(keys) < 2:
            raise ConfigurationError(f"Invalid settings path '{path}'", field=path)

        overrides = self.load()
        node = overrides
        for key in keys[:-1]:
            child = node.get(key)
            if not isinstance(child, dict):
                child = {}
                node[key] = child
            node = child
        node[keys[-1]] = value

        self.save(overrides)
        self.logger.info(f"Updated setting {path} = {value!r}")
        return overrides

    def reset(self) -> None:
        """Drop all overrides so the built-in defaults apply again."""
        with contextlib.suppress(FileNotFoundError):
            self.path.unlink()
        self.logger.info("Settings reset to defaults")

    def resolve(self) -> ThresholdSet:
        return ThresholdSet.resolve(self.load())
