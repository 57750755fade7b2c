"""Cleanup report: inactive repositories, stale branches and old pull requests."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from github_org_analyser.api.client import RepositoryRecord
from github_org_analyser.core.config import ThresholdSet
from github_org_analyser.core.constants import REPORT_CLEANUP
from github_org_analyser.core.dates import days_ago, days_between, format_timestamp, months_ago, parse_timestamp
from github_org_analyser.reports.base import ReportBuilder
from github_org_analyser.reports.models import (
    InactiveRepository,
    OldestPullRequest,
    OldPullRequestFinding,
    ReportSection,
    StaleBranchFinding,
)


@dataclass
class RepoActivity:
    """Raw per-repository fetch results.

    Attributes:
        repo: The active repository
        last_pr: Most recently updated pull request, if any
        non_default_branches: Branch list without the default branch
        open_prs: Open pull requests
        branch_details: Per-branch details in ``non_default_branches`` order, or
            None when the branch count exceeded the warning threshold
    """

    repo: RepositoryRecord
    last_pr: dict[str, Any] | None = None
    non_default_branches: list[dict[str, Any]] = field(default_factory=list)
    open_prs: list[dict[str, Any]] = field(default_factory=list)
    branch_details: list[dict[str, Any] | None] | None = None

    @property
    def over_branch_limit(self) -> bool:
        return self.branch_details is None


def _commit_date(branch: dict[str, Any] | None) -> datetime | None:
    if not branch:
        return None
    commit = branch.get("commit") or {}
    return parse_timestamp(((commit.get("commit") or {}).get("author") or {}).get("date"))


def _commit_author(branch: dict[str, Any]) -> str | None:
    commit = branch.get("commit") or {}
    login = (commit.get("author") or {}).get("login")
    if login:
        return login
    return ((commit.get("commit") or {}).get("author") or {}).get("name")


class CleanupReportBuilder(ReportBuilder):
    """Finds housekeeping candidates among the active repositories."""

    report_type = REPORT_CLEANUP

    async def collect(self, org: str, settings: ThresholdSet) -> list[RepoActivity]:
        repos = await self.list_active_repositories(org)
        branch_limit = settings.thresholds.branch_count_warning

        async def enrich(repo: RepositoryRecord) -> RepoActivity:
            last_pr, branches, open_prs = await asyncio.gather(
                self.client.get_last_pull_request(org, repo.name),
                self.client.list_branches(org, repo.name),
                self.client.list_open_pull_requests(org, repo.name),
            )
            activity = RepoActivity(
                repo=repo,
                last_pr=last_pr,
                non_default_branches=[b for b in branches if b.get("name") != repo.default_branch],
                open_prs=open_prs,
            )
            if len(activity.non_default_branches) > branch_limit:
                self.logger.debug(
                    f"{repo.name}: {len(activity.non_default_branches)} branches exceeds {branch_limit}, "
                    "skipping branch details"
                )
                return activity
            activity.branch_details = list(
                await asyncio.gather(
                    *(self.client.get_branch(org, repo.name, b["name"]) for b in activity.non_default_branches)
                )
            )
            return activity

        return await self.gather_bounded(repos, enrich, desc="Scanning repositories")

    def aggregate(
        self, org: str, data: list[RepoActivity], settings: ThresholdSet, now: datetime
    ) -> tuple[list[ReportSection], dict[str, Any]]:
        limits = settings.display_limits
        inactive = self._inactive_repositories(data, settings, now)
        stale = self._stale_branches(data, settings, now)
        old_prs = self._old_pull_requests(data, settings, now)

        sections = [
            ReportSection.from_rows("inactiveRepos", inactive, limits.max_inactive_repos),
            ReportSection.from_rows("staleBranches", stale, limits.max_stale_branch_repos),
            ReportSection.from_rows("oldPullRequests", old_prs, limits.max_old_pr_repos),
        ]
        summary = {
            "activeRepoCount": len(data),
            "totalOldPRs": sum(finding.old_pr_count for finding in old_prs),
            "branchWarningCount": sum(1 for finding in stale if finding.is_warning),
            "thresholds": {
                "inactiveRepoMonths": settings.thresholds.inactive_repo_months,
                "staleBranchDays": settings.thresholds.stale_branch_days,
                "oldPRDays": settings.thresholds.old_pr_days,
                "branchCountWarning": settings.thresholds.branch_count_warning,
            },
        }
        return sections, summary

    def _inactive_repositories(
        self, data: list[RepoActivity], settings: ThresholdSet, now: datetime
    ) -> list[InactiveRepository]:
        cutoff = months_ago(now, settings.thresholds.inactive_repo_months)
        rows = []
        for activity in data:
            repo = activity.repo
            last_commit = repo.pushed_at
            last_pr = parse_timestamp((activity.last_pr or {}).get("updated_at"))
            candidates = [d for d in (last_commit, last_pr) if d is not None]
            last_activity = max(candidates) if candidates else repo.created_at
            if last_activity is None:
                self.logger.debug(f"{repo.name}: no push, pull request or creation date; skipping inactivity check")
                continue
            if last_activity >= cutoff:
                continue
            rows.append(
                InactiveRepository(
                    name=repo.name,
                    url=repo.url,
                    last_commit_date=format_timestamp(last_commit),
                    last_pr_date=format_timestamp(last_pr),
                    last_activity=format_timestamp(last_activity),
                    is_last_activity_pr=last_pr is not None and (last_commit is None or last_pr > last_commit),
                    days_inactive=days_between(last_activity, now),
                )
            )
        rows.sort(key=lambda row: row.days_inactive, reverse=True)
        return rows

    def _stale_branches(
        self, data: list[RepoActivity], settings: ThresholdSet, now: datetime
    ) -> list[StaleBranchFinding]:
        cutoff = days_ago(now, settings.thresholds.stale_branch_days)
        rows = []
        for activity in data:
            repo = activity.repo
            if activity.over_branch_limit:
                rows.append(
                    StaleBranchFinding(
                        repo_name=repo.name,
                        repo_url=repo.url,
                        is_warning=True,
                        branch_count=len(activity.non_default_branches),
                        stale_branch_count=0,
                    )
                )
                continue

            stale_count = 0
            authors: list[str] = []
            for detail in activity.branch_details:
                committed = _commit_date(detail)
                if committed is None or committed >= cutoff:
                    continue
                stale_count += 1
                author = _commit_author(detail)
                if author and author not in authors:
                    authors.append(author)

            if stale_count:
                rows.append(
                    StaleBranchFinding(
                        repo_name=repo.name,
                        repo_url=repo.url,
                        branch_count=len(activity.non_default_branches),
                        stale_branch_count=stale_count,
                        total_branches=len(activity.non_default_branches),
                        authors=authors,
                    )
                )

        # Warnings sort first (by branch count), then detailed rows by stale count.
        rows.sort(key=lambda row: (0, -row.branch_count) if row.is_warning else (1, -row.stale_branch_count))
        return rows

    def _old_pull_requests(
        self, data: list[RepoActivity], settings: ThresholdSet, now: datetime
    ) -> list[OldPullRequestFinding]:
        cutoff = days_ago(now, settings.thresholds.old_pr_days)
        rows = []
        for activity in data:
            aged = []
            for pr in activity.open_prs:
                created = parse_timestamp(pr.get("created_at"))
                if created is not None and created < cutoff:
                    aged.append((created, pr))
            if not aged:
                continue
            oldest_created, oldest = min(aged, key=lambda item: item[0])
            rows.append(
                OldPullRequestFinding(
                    repo_name=activity.repo.name,
                    repo_url=activity.repo.url,
                    old_pr_count=len(aged),
                    total_prs=len(activity.open_prs),
                    oldest_pr=OldestPullRequest(
                        number=oldest.get("number", 0),
                        url=oldest.get("html_url", ""),
                        days_open=days_between(oldest_created, now),
                    ),
                )
            )
        rows.sort(key=lambda row: row.oldest_pr.days_open, reverse=True)
        return rows
