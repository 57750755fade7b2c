"""Organization governance report: owners, installed GitHub Apps and outside collaborators."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from github_org_analyser.api.client import RepositoryRecord
from github_org_analyser.core.config import ThresholdSet
from github_org_analyser.core.constants import REPORT_GOVERNANCE_ORG
from github_org_analyser.reports.base import ReportBuilder
from github_org_analyser.reports.models import ReportSection


@dataclass
class OrgGovernanceData:
    organization: dict[str, Any]
    admins: list[dict[str, Any]] = field(default_factory=list)
    installations: list[tuple[dict[str, Any], dict[str, Any] | None]] = field(default_factory=list)
    outside_collaborators: list[dict[str, Any]] = field(default_factory=list)
    # login -> names of repositories the outside collaborator can access
    collaborator_repos: dict[str, list[str]] = field(default_factory=dict)


def _admin_row(admin: dict[str, Any]) -> dict[str, Any]:
    return {
        "login": admin.get("login"),
        "name": admin.get("name"),
        "email": admin.get("email"),
        "company": admin.get("company"),
        "url": admin.get("html_url"),
        "avatarUrl": admin.get("avatar_url"),
    }


def _app_row(installation: dict[str, Any], app: dict[str, Any] | None) -> dict[str, Any]:
    # The installation account is the org itself; the app owner comes from the app lookup when available.
    owner = (app or {}).get("owner") or installation.get("account") or {}
    return {
        "appSlug": installation.get("app_slug", ""),
        "appName": (app or {}).get("name") or installation.get("app_slug", ""),
        "appUrl": (app or {}).get("html_url"),
        "ownerLogin": owner.get("login"),
        "ownerType": owner.get("type"),
        "repositorySelection": installation.get("repository_selection"),
        "permissions": installation.get("permissions") or {},
        "createdAt": installation.get("created_at"),
        "updatedAt": installation.get("updated_at"),
        "settingsUrl": installation.get("html_url"),
    }


def _unused_seats(organization: dict[str, Any]) -> dict[str, int] | None:
    plan = organization.get("plan")
    if not plan:
        return None
    total = plan.get("seats") or 0
    filled = plan.get("filled_seats") or 0
    return {"total": total, "filled": filled, "unused": total - filled}


class OrgGovernanceReportBuilder(ReportBuilder):
    report_type = REPORT_GOVERNANCE_ORG

    async def collect(self, org: str, settings: ThresholdSet) -> OrgGovernanceData:
        organization = await self.client.get_organization(org)
        admins, installations, outside = await asyncio.gather(
            self.client.list_org_admins(org),
            self.client.list_org_installations(org),
            self.client.list_outside_collaborators(org),
        )

        async def profile(admin: dict[str, Any]) -> dict[str, Any]:
            user = await self.client.get_user(admin.get("login", ""))
            return user or admin

        async def app_for(installation: dict[str, Any]) -> tuple[dict[str, Any], dict[str, Any] | None]:
            slug = installation.get("app_slug")
            return installation, (await self.client.get_app_by_slug(slug) if slug else None)

        return OrgGovernanceData(
            organization=organization or {},
            admins=await self.gather_bounded(admins, profile, desc="Loading owners", unit="user"),
            installations=await self.gather_bounded(installations, app_for, desc="Loading apps", unit="app"),
            outside_collaborators=outside,
            collaborator_repos=await self._collaborator_repos(org, outside),
        )

    async def _collaborator_repos(self, org: str, outside: list[dict[str, Any]]) -> dict[str, list[str]]:
        """Map each outside collaborator to the repositories listing them as a collaborator."""
        logins = {user.get("login") for user in outside if user.get("login")}
        if not logins:
            return {}
        repos = await self.list_active_repositories(org)

        async def collaborators(repo: RepositoryRecord) -> tuple[str, list[dict[str, Any]]]:
            return repo.name, await self.client.list_repo_collaborators(org, repo.name)

        access: dict[str, list[str]] = {login: [] for login in logins}
        for repo_name, users in await self.gather_bounded(repos, collaborators, desc="Mapping collaborator access"):
            for user in users:
                if user.get("login") in access:
                    access[user["login"]].append(repo_name)
        return access

    def aggregate(
        self, org: str, data: OrgGovernanceData, settings: ThresholdSet, now: datetime
    ) -> tuple[list[ReportSection], dict[str, Any]]:
        limits = settings.display_limits
        apps = sorted((_app_row(inst, app) for inst, app in data.installations), key=lambda row: row["appSlug"])
        outside = []
        for user in data.outside_collaborators:
            repos = data.collaborator_repos.get(user.get("login"), [])
            outside.append(
                {
                    "login": user.get("login"),
                    "url": user.get("html_url"),
                    "avatarUrl": user.get("avatar_url"),
                    "repoCount": len(repos),
                    "repos": repos,
                }
            )

        sections = [
            ReportSection.from_rows("orgAdmins", [_admin_row(a) for a in data.admins], limits.max_org_admins),
            ReportSection.from_rows("installedApps", apps, limits.max_installed_apps),
            ReportSection.from_rows("outsideCollaborators", outside, limits.max_outside_collaborators),
        ]

        organization = data.organization
        summary = {
            "organization": {
                "login": organization.get("login", org),
                "name": organization.get("name"),
                "description": organization.get("description"),
                "url": organization.get("html_url"),
                "createdAt": organization.get("created_at"),
                "twoFactorRequirementEnabled": organization.get("two_factor_requirement_enabled"),
                "defaultRepositoryPermission": organization.get("default_repository_permission"),
                "membersCanCreateRepositories": organization.get("members_can_create_repositories"),
            },
            "unusedSeats": _unused_seats(organization),
            "adminCount": len(data.admins),
            "installedAppCount": len(data.installations),
            "outsideCollaboratorCount": len(data.outside_collaborators),
        }
        return sections, summary
