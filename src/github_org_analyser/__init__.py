"""
GitHub Org Analyser - cached reports on a GitHub organization's repositories.

Queries the GitHub REST API for repository, membership, billing and security
metadata, aggregates it into per-tab reports, and memoizes each report in an
expiring key/value cache keyed by organization and report type.
"""

from __future__ import annotations

from github_org_analyser.core.version import __version__

__all__ = [
    "__version__",
    "ExpiringCache",
    "FileStore",
    "GitHubClient",
    "MemoryStore",
    "ReportTab",
    "ThresholdSet",
    "create_builder",
    "resolve_credential",
    "setup_logging",
]


from github_org_analyser.core.lazy import make_getattr

__getattr__ = make_getattr(
    __name__,
    {
        "ExpiringCache": "github_org_analyser.cache.expiring",
        "FileStore": "github_org_analyser.cache.store",
        "GitHubClient": "github_org_analyser.api.client",
        "MemoryStore": "github_org_analyser.cache.store",
        "ReportTab": "github_org_analyser.presentation.table",
        "ThresholdSet": "github_org_analyser.core.config",
        "create_builder": "github_org_analyser.reports",
        "resolve_credential": "github_org_analyser.core.credentials",
        "setup_logging": "github_org_analyser.core.logging",
    },
)
