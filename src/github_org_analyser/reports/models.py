"""
Report data models.

This module contains the dataclasses produced by the report builders and
stored (as plain JSON) in the report cache.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any

from github_org_analyser.core.exceptions import ReportBuildError

_CAMEL_OVERRIDES = {"pr": "PR", "prs": "PRs"}


def camelize(name: str) -> str:
    """snake_case -> camelCase, keeping the "PR" acronym upper-case (last_pr_date -> lastPRDate)."""
    head, *rest = name.split("_")
    return head + "".join(_CAMEL_OVERRIDES.get(part, part.capitalize()) for part in rest)


def camelize_keys(value: Any) -> Any:
    if isinstance(value, dict):
        return {camelize(key): camelize_keys(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [camelize_keys(item) for item in value]
    return value


class ReportRow:
    """Mixin for row dataclasses: ``to_row()`` gives the camelCase dict stored in a section."""

    def to_row(self) -> dict[str, Any]:
        return camelize_keys(asdict(self))


class BuildState(Enum):
    """States of a single report build."""

    IDLE = "idle"
    CACHE_HIT = "cache_hit"
    CACHE_MISS = "cache_miss"
    FETCHING = "fetching"
    AGGREGATING = "aggregating"
    CACHED = "cached"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class ReportSection:
    """A named, sorted result list truncated for display.

    Attributes:
        name: Section identifier (e.g. "staleBranches")
        total: Number of rows before truncation
        rows: Rows after truncation (at most display_limit)
        display_limit: Configured cap on returned rows
    """

    name: str
    total: int
    rows: list[dict[str, Any]] = field(default_factory=list)
    display_limit: int = 0

    @classmethod
    def from_rows(cls, name: str, rows: list[Any], display_limit: int) -> ReportSection:
        """Record the total, then truncate ``rows`` (already sorted) to ``display_limit``."""
        converted = [row.to_row() if isinstance(row, ReportRow) else row for row in rows]
        return cls(name=name, total=len(converted), rows=converted[:display_limit], display_limit=display_limit)

    @property
    def truncated(self) -> bool:
        return self.total > len(self.rows)

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "total": self.total, "rows": self.rows, "displayLimit": self.display_limit}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ReportSection:
        return cls(
            name=data["name"],
            total=int(data["total"]),
            rows=list(data.get("rows", [])),
            display_limit=int(data.get("displayLimit", 0)),
        )


@dataclass(frozen=True)
class ReportResult:
    """Output of one report build. Immutable; superseded wholesale by the next build.

    Attributes:
        report_type: Report type identifier
        org: Organization login
        generated_at: ISO-8601 UTC build time
        sections: Truncated result lists by name
        summary: Report-specific totals and aggregates
    """

    report_type: str
    org: str
    generated_at: str
    sections: dict[str, ReportSection] = field(default_factory=dict)
    summary: dict[str, Any] = field(default_factory=dict)

    def section(self, name: str) -> ReportSection:
        return self.sections[name]

    def to_dict(self) -> dict[str, Any]:
        return {
            "reportType": self.report_type,
            "org": self.org,
            "generatedAt": self.generated_at,
            "sections": {name: section.to_dict() for name, section in self.sections.items()},
            "summary": self.summary,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ReportResult:
        """Rebuild a result from its cached form.

        Raises:
            KeyError, TypeError, ValueError: If ``data`` is not a cached report
        """
        return cls(
            report_type=data["reportType"],
            org=data["org"],
            generated_at=data["generatedAt"],
            sections={name: ReportSection.from_dict(section) for name, section in data["sections"].items()},
            summary=dict(data.get("summary") or {}),
        )


@dataclass
class BuildOutcome:
    """Terminal outcome of ``ReportBuilder.build``.

    Attributes:
        report_type: Report type identifier
        org: Organization login
        state: BuildState.DONE or BuildState.FAILED
        result: Report on success
        error: Failure reason on failure
        from_cache: True when served from the cache without network calls
        transitions: Every state visited, in order
    """

    report_type: str
    org: str
    state: BuildState = BuildState.IDLE
    result: ReportResult | None = None
    error: str | None = None
    from_cache: bool = False
    transitions: list[BuildState] = field(default_factory=lambda: [BuildState.IDLE])

    @property
    def ok(self) -> bool:
        return self.state is BuildState.DONE

    def raise_for_state(self) -> ReportResult:
        """Return the result, or raise ReportBuildError for a failed build."""
        if self.state is not BuildState.DONE or self.result is None:
            raise ReportBuildError(self.report_type, self.org, self.error)
        return self.result


# ==================== CLEANUP ROWS ====================


@dataclass
class InactiveRepository(ReportRow):
    name: str
    url: str
    last_commit_date: str | None
    last_pr_date: str | None
    last_activity: str | None
    is_last_activity_pr: bool
    days_inactive: int


@dataclass
class StaleBranchFinding(ReportRow):
    """Stale branches for one repository, or a "too many branches" marker when ``is_warning``."""

    repo_name: str
    repo_url: str
    is_warning: bool = False
    branch_count: int = 0
    stale_branch_count: int = 0
    total_branches: int = 0
    authors: list[str] = field(default_factory=list)


@dataclass
class OldestPullRequest(ReportRow):
    number: int
    url: str
    days_open: int


@dataclass
class OldPullRequestFinding(ReportRow):
    repo_name: str
    repo_url: str
    old_pr_count: int
    total_prs: int
    oldest_pr: OldestPullRequest


# ==================== SECURITY ROWS ====================


@dataclass
class AlertSummary(ReportRow):
    name: str
    url: str
    alerts_url: str
    visibility: str
    critical: int = 0
    high: int = 0
    medium: int = 0
    low: int = 0
    total_alerts: int = 0


@dataclass
class DependabotDisabledRepository(ReportRow):
    name: str
    url: str
    settings_url: str
    visibility: str


# ==================== GOVERNANCE ROWS ====================


@dataclass
class UnprotectedRepository(ReportRow):
    name: str
    url: str
    default_branch: str
    visibility: str
    settings_url: str


@dataclass
class NoAdminRepository(ReportRow):
    name: str
    url: str
    collaborator_count: int
    visibility: str
    settings_url: str


@dataclass
class ForkLineage(ReportRow):
    """A fork and, when GitHub still knows it, the repository it was forked from."""

    name: str
    url: str
    fork_last_pushed: str | None
    source_name: str | None = None
    source_url: str | None = None
    parent_name: str | None = None
    parent_url: str | None = None
    source_stars: int | None = None
    source_watchers: int | None = None
    commits_behind: int | None = None
    languages: list[str] = field(default_factory=list)
