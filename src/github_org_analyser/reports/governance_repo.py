"""Repository governance report: unprotected default branches, missing admin delegation, fork lineage."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from github_org_analyser.api.client import RepositoryRecord
from github_org_analyser.core.config import ThresholdSet
from github_org_analyser.core.constants import REPORT_GOVERNANCE_REPO
from github_org_analyser.core.dates import format_timestamp
from github_org_analyser.core.exceptions import APIError
from github_org_analyser.reports.base import ReportBuilder, active_repositories
from github_org_analyser.reports.models import ForkLineage, NoAdminRepository, ReportSection, UnprotectedRepository


@dataclass
class RepoAccess:
    """Access-control facts for one active repository.

    Attributes:
        protected: Default-branch protection; None when it could not be determined
    """

    repo: RepositoryRecord
    protected: bool | None
    teams: list[dict[str, Any]] = field(default_factory=list)
    collaborators: list[dict[str, Any]] = field(default_factory=list)

    @property
    def admin_team_count(self) -> int:
        return sum(1 for team in self.teams if team.get("permission") == "admin")

    @property
    def admin_collaborator_count(self) -> int:
        return sum(1 for user in self.collaborators if (user.get("permissions") or {}).get("admin") is True)

    @property
    def has_delegated_admin(self) -> bool:
        # Organization owners are admins everywhere and are not counted here.
        return self.admin_team_count + self.admin_collaborator_count > 0


@dataclass
class ForkDetails:
    repo: RepositoryRecord
    details: dict[str, Any] | None = None
    languages: dict[str, int] = field(default_factory=dict)
    comparison: dict[str, int] | None = None


@dataclass
class RepoGovernanceData:
    access: list[RepoAccess]
    forks: list[ForkDetails]


def top_languages(languages: dict[str, int], limit: int) -> list[str]:
    """Language names by bytes of code, largest first."""
    return [name for name, _ in sorted(languages.items(), key=lambda item: item[1], reverse=True)[:limit]]


class RepoGovernanceReportBuilder(ReportBuilder):
    """Checks branch protection and admin delegation, and traces forks back to their source."""

    report_type = REPORT_GOVERNANCE_REPO

    async def collect(self, org: str, settings: ThresholdSet) -> RepoGovernanceData:
        repos = await self.client.list_org_repositories(org)
        active = active_repositories(repos)
        forks = [repo for repo in repos if repo.fork and not repo.archived]
        self.logger.info(f"Found {len(repos)} repositories in {org}: {len(active)} active, {len(forks)} forks")

        async def inspect(repo: RepositoryRecord) -> RepoAccess:
            protected, teams, collaborators = await asyncio.gather(
                self._branch_protection(org, repo),
                self.client.list_repo_teams(org, repo.name),
                self.client.list_repo_direct_collaborators(org, repo.name),
            )
            return RepoAccess(repo=repo, protected=protected, teams=teams, collaborators=collaborators)

        async def trace(fork: RepositoryRecord) -> ForkDetails:
            details, languages = await asyncio.gather(
                self.client.get_repository(org, fork.name),
                self.client.get_repo_languages(org, fork.name),
            )
            result = ForkDetails(repo=fork, details=details, languages=languages)
            source = (details or {}).get("source")
            if source:
                source_owner = (source.get("owner") or {}).get("login", "")
                base = f"{source_owner}:{source.get('default_branch', 'main')}"
                result.comparison = await self.client.compare_refs(org, fork.name, base, fork.default_branch)
            return result

        access = await self.gather_bounded(active, inspect, desc="Checking access controls")
        fork_details = await self.gather_bounded(forks, trace, desc="Tracing forks", unit="fork")
        return RepoGovernanceData(access=access, forks=fork_details)

    async def _branch_protection(self, org: str, repo: RepositoryRecord) -> bool | None:
        try:
            return await self.client.get_branch_protection(org, repo.name, repo.default_branch)
        except APIError as e:
            self.logger.warning(f"Branch protection for {repo.name} could not be determined: {e}")
            return None

    def aggregate(
        self, org: str, data: RepoGovernanceData, settings: ThresholdSet, now: datetime
    ) -> tuple[list[ReportSection], dict[str, Any]]:
        limits = settings.display_limits

        unprotected = [
            UnprotectedRepository(
                name=entry.repo.name,
                url=entry.repo.url,
                default_branch=entry.repo.default_branch,
                visibility=entry.repo.visibility,
                settings_url=f"{entry.repo.url}/settings/branches",
            )
            for entry in data.access
            if entry.protected is False
        ]
        no_admin = [
            NoAdminRepository(
                name=entry.repo.name,
                url=entry.repo.url,
                collaborator_count=len(entry.collaborators),
                visibility=entry.repo.visibility,
                settings_url=f"{entry.repo.url}/settings/access",
            )
            for entry in data.access
            if not entry.has_delegated_admin
        ]
        forks = [self._fork_lineage(fork, limits.fork_languages) for fork in data.forks]
        forks.sort(key=lambda row: row.fork_last_pushed or "", reverse=True)

        sections = [
            ReportSection.from_rows("unprotectedRepos", unprotected, limits.max_unprotected_repos),
            ReportSection.from_rows("noAdminRepos", no_admin, limits.max_no_admin_repos),
            ReportSection.from_rows("forkedRepos", forks, limits.max_forked_repos),
        ]
        summary = {
            "activeRepoCount": len(data.access),
            "forkCount": len(data.forks),
            "protectionUnknownCount": sum(1 for entry in data.access if entry.protected is None),
        }
        return sections, summary

    @staticmethod
    def _fork_lineage(fork: ForkDetails, language_limit: int) -> ForkLineage:
        row = ForkLineage(
            name=fork.repo.name,
            url=fork.repo.url,
            fork_last_pushed=format_timestamp(fork.repo.pushed_at),
            languages=top_languages(fork.languages, language_limit),
        )
        details = fork.details or {}
        source = details.get("source")
        if not source:
            return row
        parent = details.get("parent") or {}
        row.source_name = source.get("full_name")
        row.source_url = source.get("html_url")
        row.parent_name = parent.get("full_name")
        row.parent_url = parent.get("html_url")
        row.source_stars = source.get("stargazers_count")
        row.source_watchers = source.get("subscribers_count", source.get("watchers_count"))
        row.commits_behind = fork.comparison["behind_by"] if fork.comparison else None
        return row
