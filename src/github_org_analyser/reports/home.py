"""Home report: organization overview, repository breakdown, top languages and topics."""

from __future__ import annotations

import asyncio
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from github_org_analyser.api.client import RepositoryRecord
from github_org_analyser.core.config import ThresholdSet
from github_org_analyser.core.constants import REPORT_HOME
from github_org_analyser.reports.base import ReportBuilder, active_repositories
from github_org_analyser.reports.models import ReportSection


@dataclass
class OverviewData:
    organization: dict[str, Any]
    repos: list[RepositoryRecord] = field(default_factory=list)
    members: list[dict[str, Any]] = field(default_factory=list)


def repository_breakdown(repos: list[RepositoryRecord]) -> dict[str, int]:
    """Counts by kind (fork, private, public) and archived state. Forks are counted only as forks."""
    breakdown = {
        "publicActive": 0,
        "publicArchived": 0,
        "privateActive": 0,
        "privateArchived": 0,
        "forkedActive": 0,
        "forkedArchived": 0,
    }
    for repo in repos:
        kind = "forked" if repo.fork else "private" if repo.private else "public"
        breakdown[f"{kind}{'Archived' if repo.archived else 'Active'}"] += 1
    breakdown["total"] = len(repos)
    return breakdown


def _ranked(counter: Counter, limit: int) -> list[dict[str, Any]]:
    return [{"name": name, "count": count} for name, count in counter.most_common(limit)]


class HomeReportBuilder(ReportBuilder):
    report_type = REPORT_HOME

    async def collect(self, org: str, settings: ThresholdSet) -> OverviewData:
        organization, repos, members = await asyncio.gather(
            self.client.get_organization(org),
            self.client.list_org_repositories(org),
            self.client.list_org_members(org),
        )
        return OverviewData(organization=organization or {}, repos=repos, members=members)

    def aggregate(
        self, org: str, data: OverviewData, settings: ThresholdSet, now: datetime
    ) -> tuple[list[ReportSection], dict[str, Any]]:
        limits = settings.display_limits
        languages = Counter(repo.language for repo in active_repositories(data.repos) if repo.language)
        topics = Counter(topic for repo in data.repos for topic in repo.topics)

        top_languages = _ranked(languages, limits.top_languages)
        top_topics = _ranked(topics, limits.top_topics)
        sections = [
            ReportSection("topLanguages", total=len(languages), rows=top_languages, display_limit=limits.top_languages),
            ReportSection("topTopics", total=len(topics), rows=top_topics, display_limit=limits.top_topics),
        ]

        organization = data.organization
        summary = {
            "organization": {
                "login": organization.get("login", org),
                "name": organization.get("name"),
                "description": organization.get("description"),
                "url": organization.get("html_url"),
                "avatarUrl": organization.get("avatar_url"),
                "blog": organization.get("blog"),
                "location": organization.get("location"),
                "createdAt": organization.get("created_at"),
            },
            "memberCount": len(data.members),
            "repoBreakdown": repository_breakdown(data.repos),
        }
        return sections, summary
