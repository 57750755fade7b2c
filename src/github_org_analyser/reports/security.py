"""Security report: open Dependabot alerts by severity and repositories with alerts disabled."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from github_org_analyser.api.client import RepositoryRecord
from github_org_analyser.core.config import ThresholdSet
from github_org_analyser.core.constants import REPORT_SECURITY
from github_org_analyser.reports.base import ReportBuilder
from github_org_analyser.reports.models import AlertSummary, DependabotDisabledRepository, ReportSection

SEVERITIES = ("critical", "high", "medium", "low")


@dataclass
class RepoAlerts:
    repo: RepositoryRecord
    enabled: bool
    alerts: list[dict[str, Any]] = field(default_factory=list)


def alert_severity(alert: dict[str, Any]) -> str:
    """Advisory severity, falling back to the vulnerability severity, then "low"."""
    for source in ("security_advisory", "security_vulnerability"):
        severity = (alert.get(source) or {}).get("severity")
        if severity:
            severity = str(severity).lower()
            # The advisory database reports "moderate" where the alert API says "medium".
            return "medium" if severity == "moderate" else severity
    return "low"


def severity_sort_key(summary: AlertSummary) -> tuple[int, ...]:
    """Descending by critical, high, medium, low, then total."""
    return (-summary.critical, -summary.high, -summary.medium, -summary.low, -summary.total_alerts)


class SecurityReportBuilder(ReportBuilder):
    """Summarizes open Dependabot alerts across the active repositories."""

    report_type = REPORT_SECURITY

    async def collect(self, org: str, settings: ThresholdSet) -> list[RepoAlerts]:
        repos = await self.list_active_repositories(org)

        async def scan(repo: RepositoryRecord) -> RepoAlerts:
            if not await self.client.is_vulnerability_alerts_enabled(org, repo.name):
                return RepoAlerts(repo=repo, enabled=False)
            alerts = await self.client.get_dependabot_alerts_open(org, repo.name)
            return RepoAlerts(repo=repo, enabled=True, alerts=alerts)

        return await self.gather_bounded(repos, scan, desc="Checking Dependabot alerts")

    def aggregate(
        self, org: str, data: list[RepoAlerts], settings: ThresholdSet, now: datetime
    ) -> tuple[list[ReportSection], dict[str, Any]]:
        limits = settings.display_limits
        with_alerts: list[AlertSummary] = []
        disabled: list[DependabotDisabledRepository] = []
        totals = dict.fromkeys(SEVERITIES, 0)

        for entry in data:
            repo = entry.repo
            if not entry.enabled:
                disabled.append(
                    DependabotDisabledRepository(
                        name=repo.name,
                        url=repo.url,
                        settings_url=f"{repo.url}/settings/security_analysis",
                        visibility=repo.visibility,
                    )
                )
                continue
            if not entry.alerts:
                continue

            counts = dict.fromkeys(SEVERITIES, 0)
            for alert in entry.alerts:
                severity = alert_severity(alert)
                counts[severity if severity in counts else "low"] += 1
            for severity, count in counts.items():
                totals[severity] += count
            with_alerts.append(
                AlertSummary(
                    name=repo.name,
                    url=repo.url,
                    alerts_url=f"{repo.url}/security/dependabot",
                    visibility=repo.visibility,
                    total_alerts=len(entry.alerts),
                    **counts,
                )
            )

        with_alerts.sort(key=severity_sort_key)
        sections = [
            ReportSection.from_rows("reposWithAlerts", with_alerts, limits.max_alert_repos),
            ReportSection.from_rows("dependabotDisabled", disabled, limits.max_dependabot_disabled_repos),
        ]
        summary = {
            "activeRepoCount": len(data),
            "totalAlerts": sum(totals.values()),
            "severityTotals": totals,
        }
        return sections, summary
