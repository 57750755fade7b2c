"""Tests for the security report"""

import asyncio

import pytest

from github_org_analyser.reports import SecurityReportBuilder
from github_org_analyser.reports.models import AlertSummary
from github_org_analyser.reports.security import alert_severity, severity_sort_key


def alerts(**counts):
    return [
        {"security_advisory": {"severity": severity}} for severity, count in counts.items() for _ in range(count)
    ]


@pytest.fixture
def builder(mock_client, memory_cache, now):
    return SecurityReportBuilder(mock_client, memory_cache, clock=lambda: now, quiet=True)


def run(builder):
    outcome = asyncio.run(builder.build("acme"))
    assert outcome.ok, outcome.error
    return outcome.result


class TestSeverity:
    """Test severity extraction and ordering"""

    @pytest.mark.parametrize(
        ("alert", "expected"),
        [
            ({"security_advisory": {"severity": "critical"}}, "critical"),
            ({"security_advisory": {"severity": "moderate"}}, "medium"),
            ({"security_vulnerability": {"severity": "HIGH"}}, "high"),
            ({}, "low"),
        ],
    )
    def test_alert_severity(self, alert, expected):
        assert alert_severity(alert) == expected

    def test_sort_key_orders_critical_then_high(self):
        rows = [
            AlertSummary("b", "", "", "public", critical=2, high=0, total_alerts=2),
            AlertSummary("c", "", "", "public", critical=1, high=5, total_alerts=6),
            AlertSummary("a", "", "", "public", critical=2, high=1, total_alerts=3),
        ]
        ordered = sorted(rows, key=severity_sort_key)
        assert [(r.critical, r.high) for r in ordered] == [(2, 1), (2, 0), (1, 5)]


class TestSecurityReport:
    """Test the security report build"""

    def test_repos_sorted_by_severity(self, builder, mock_client, make_repo):
        mock_client.list_org_repositories.return_value = [make_repo("b"), make_repo("c"), make_repo("a")]
        per_repo = {
            "a": alerts(critical=2, high=1),
            "b": alerts(critical=2),
            "c": alerts(critical=1, high=5),
        }
        mock_client.get_dependabot_alerts_open.side_effect = lambda org, repo: per_repo[repo]

        result = run(builder)
        rows = result.section("reposWithAlerts").rows
        assert [(r["critical"], r["high"]) for r in rows] == [(2, 1), (2, 0), (1, 5)]
        assert rows[0]["alertsUrl"] == "https://github.com/acme/a/security/dependabot"
        assert result.summary["severityTotals"] == {"critical": 5, "high": 6, "medium": 0, "low": 0}
        assert result.summary["totalAlerts"] == 11

    def test_disabled_repos_listed_without_alert_fetch(self, builder, mock_client, make_repo):
        mock_client.list_org_repositories.return_value = [make_repo("off"), make_repo("on")]
        mock_client.is_vulnerability_alerts_enabled.side_effect = lambda org, repo: repo == "on"

        result = run(builder)
        disabled = result.section("dependabotDisabled").rows
        assert [row["name"] for row in disabled] == ["off"]
        assert disabled[0]["settingsUrl"] == "https://github.com/acme/off/settings/security_analysis"
        assert [call.args[1] for call in mock_client.get_dependabot_alerts_open.await_args_list] == ["on"]

    def test_repos_without_alerts_omitted(self, builder, mock_client, make_repo):
        mock_client.list_org_repositories.return_value = [make_repo("clean")]
        result = run(builder)
        assert result.section("reposWithAlerts").total == 0
        assert result.section("dependabotDisabled").total == 0

    def test_archived_and_forks_excluded(self, builder, mock_client, make_repo):
        mock_client.list_org_repositories.return_value = [
            make_repo("kept"),
            make_repo("archived", archived=True),
            make_repo("fork", fork=True),
        ]
        run(builder)
        checked = [call.args[1] for call in mock_client.is_vulnerability_alerts_enabled.await_args_list]
        assert checked == ["kept"]

    def test_display_limit(self, mock_client, memory_cache, make_repo, now):
        mock_client.list_org_repositories.return_value = [make_repo(f"r{i}") for i in range(4)]
        mock_client.get_dependabot_alerts_open.return_value = alerts(low=1)
        builder = SecurityReportBuilder(
            mock_client, memory_cache, {"displayLimits": {"maxAlertRepos": 1}}, clock=lambda: now, quiet=True
        )
        section = run(builder).section("reposWithAlerts")
        assert section.total == 4
        assert len(section.rows) == 1
