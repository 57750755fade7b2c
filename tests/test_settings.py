"""Tests for persisted threshold overrides"""

import json

import pytest

from github_org_analyser.core.exceptions import ConfigurationError
from github_org_analyser.core.settings import SettingsStore


@pytest.fixture
def store(tmp_path):
    return SettingsStore(tmp_path / "settings" / "settings.json")


class TestSettingsStore:
    """Test load, update and reset of overrides"""

    def test_missing_file_gives_defaults(self, store):
        assert store.load() == {}
        assert store.resolve().thresholds.stale_branch_days == 90

    def test_update_value_persists(self, store):
        overrides = store.update_value("thresholds.staleBranchDays", 30)
        assert overrides == {"thresholds": {"staleBranchDays": 30}}
        assert json.loads(store.path.read_text(encoding="utf-8")) == overrides
        assert store.resolve().thresholds.stale_branch_days == 30

    def test_updates_accumulate(self, store):
        store.update_value("thresholds.staleBranchDays", 30)
        store.update_value("cache.ttlHours", 6)
        settings = store.resolve()
        assert settings.thresholds.stale_branch_days == 30
        assert settings.cache.ttl_hours == 6

    def test_invalid_value_not_written(self, store):
        store.update_value("thresholds.oldPRDays", 10)
        with pytest.raises(ConfigurationError):
            store.update_value("thresholds.oldPRDays", "soon")
        assert store.load() == {"thresholds": {"oldPRDays": 10}}

    def test_zero_ttl_rejected(self, store):
        with pytest.raises(ConfigurationError):
            store.update_value("cache.ttlHours", 0)

    @pytest.mark.parametrize("path", ["thresholds", "", "."])
    def test_malformed_path(self, store, path):
        with pytest.raises(ConfigurationError):
            store.update_value(path, 1)

    def test_corrupt_file_ignored(self, store):
        store.path.parent.mkdir(parents=True)
        store.path.write_text("{oops", encoding="utf-8")
        assert store.load() == {}

    def test_reset(self, store):
        store.update_value("thresholds.staleBranchDays", 30)
        store.reset()
        assert not store.path.exists()
        assert store.resolve().thresholds.stale_branch_days == 90
