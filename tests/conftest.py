"""Pytest configuration and fixtures for GitHub Org Analyser tests"""

from datetime import UTC, datetime, timedelta
from unittest.mock import Mock

import pytest

from github_org_analyser.api.client import GitHubClient, RepositoryRecord
from github_org_analyser.cache import ExpiringCache, MemoryStore
from github_org_analyser.core.config import RetryConfig
from github_org_analyser.core.dates import format_timestamp

NOW = datetime(2026, 6, 15, 12, 0, 0, tzinfo=UTC)


@pytest.fixture(autouse=True)
def clean_retry_env(monkeypatch):
    """Keep retry environment overrides from leaking into tests"""
    for name in ("MAX_RETRIES", "RETRY_BASE_DELAY", "RETRY_MAX_DELAY", "GITHUB_TOKEN", "LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def iso():
    """Format 'days before NOW' as a GitHub timestamp"""

    def _iso(days_before: float) -> str:
        return format_timestamp(NOW - timedelta(days=days_before))

    return _iso


@pytest.fixture
def fast_retry():
    """Retry config without backoff delays"""
    return RetryConfig(max_retries=2, base_delay=0, max_delay=0, jitter=False)


@pytest.fixture
def make_repo():
    """Build a RepositoryRecord with GitHub-like defaults"""

    def _make_repo(name: str, **overrides) -> RepositoryRecord:
        values = {
            "name": name,
            "full_name": f"acme/{name}",
            "url": f"https://github.com/acme/{name}",
            "pushed_at": NOW - timedelta(days=5),
            "created_at": NOW - timedelta(days=900),
        }
        values.update(overrides)
        return RepositoryRecord(**values)

    return _make_repo


class FakeClock:
    """Epoch-seconds clock that tests can move forward"""

    def __init__(self, start: datetime = NOW):
        self.seconds = start.timestamp()

    def __call__(self) -> float:
        return self.seconds

    def advance(self, hours: float = 0, seconds: float = 0) -> None:
        self.seconds += hours * 3600 + seconds


@pytest.fixture
def cache_clock():
    return FakeClock()


@pytest.fixture
def memory_cache(cache_clock):
    """Expiring cache over an in-memory store with a controllable clock"""
    return ExpiringCache(MemoryStore(), clock=cache_clock)


@pytest.fixture
def mock_client():
    """GitHubClient mock whose best-effort operations return their neutral defaults"""
    client = Mock(spec=GitHubClient)

    client.get_organization.return_value = {"login": "acme", "name": "Acme Corp", "html_url": "https://github.com/acme"}
    client.list_org_repositories.return_value = []
    client.list_org_members.return_value = []

    for name in (
        "list_branches",
        "list_open_pull_requests",
        "list_repo_teams",
        "list_repo_collaborators",
        "list_repo_direct_collaborators",
        "list_org_admins",
        "list_org_installations",
        "list_outside_collaborators",
        "get_dependabot_alerts_open",
        "get_budgets",
    ):
        getattr(client, name).return_value = []

    for name in (
        "get_last_pull_request",
        "get_branch",
        "get_repository",
        "get_user",
        "get_app_by_slug",
        "compare_refs",
        "get_copilot_billing",
        "get_billing_usage",
    ):
        getattr(client, name).return_value = None

    client.get_repo_languages.return_value = {}
    client.get_branch_protection.return_value = True
    client.is_vulnerability_alerts_enabled.return_value = True
    return client
