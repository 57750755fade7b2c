"""
GitHub Org Analyser report builders.

One builder per dashboard tab:
- home: organization overview, repository breakdown, top languages/topics
- cleanup: inactive repositories, stale branches, old pull requests
- security: Dependabot alerts by severity, alerts disabled
- governance-repo: unprotected default branches, no delegated admin, fork lineage
- governance-org: owners, installed apps, outside collaborators
- costs: seats, Copilot, Actions minutes, budgets

Example usage:
    from github_org_analyser.reports import create_builder

    async with GitHubClient(resolve_credential()) as client:
        builder = create_builder("cleanup", client, ExpiringCache(FileStore()))
        outcome = await builder.build("my-org")
"""

from __future__ import annotations

from typing import Any

from github_org_analyser.core.constants import (
    REPORT_CLEANUP,
    REPORT_COSTS,
    REPORT_GOVERNANCE_ORG,
    REPORT_GOVERNANCE_REPO,
    REPORT_HOME,
    REPORT_SECURITY,
)
from github_org_analyser.reports.base import ReportBuilder, active_repositories
from github_org_analyser.reports.cleanup import CleanupReportBuilder
from github_org_analyser.reports.costs import CostsReportBuilder
from github_org_analyser.reports.governance_org import OrgGovernanceReportBuilder
from github_org_analyser.reports.governance_repo import RepoGovernanceReportBuilder
from github_org_analyser.reports.home import HomeReportBuilder
from github_org_analyser.reports.models import BuildOutcome, BuildState, ReportResult, ReportSection
from github_org_analyser.reports.security import SecurityReportBuilder

BUILDERS: dict[str, type[ReportBuilder]] = {
    REPORT_HOME: HomeReportBuilder,
    REPORT_CLEANUP: CleanupReportBuilder,
    REPORT_SECURITY: SecurityReportBuilder,
    REPORT_GOVERNANCE_REPO: RepoGovernanceReportBuilder,
    REPORT_GOVERNANCE_ORG: OrgGovernanceReportBuilder,
    REPORT_COSTS: CostsReportBuilder,
}


def create_builder(report_type: str, *args: Any, **kwargs: Any) -> ReportBuilder:
    """Instantiate the builder registered for ``report_type``.

    Raises:
        ValueError: If the report type is unknown
    """
    try:
        builder_cls = BUILDERS[report_type]
    except KeyError:
        raise ValueError(f"Unknown report type '{report_type}' (expected one of {sorted(BUILDERS)})") from None
    return builder_cls(*args, **kwargs)


__all__ = [
    "BUILDERS",
    "BuildOutcome",
    "BuildState",
    "CleanupReportBuilder",
    "CostsReportBuilder",
    "HomeReportBuilder",
    "OrgGovernanceReportBuilder",
    "RepoGovernanceReportBuilder",
    "ReportBuilder",
    "ReportResult",
    "ReportSection",
    "SecurityReportBuilder",
    "active_repositories",
    "create_builder",
]
