"""
Presentation helpers consumed by a UI layer.

``ReportTab`` encodes the tab lifecycle (build on first visibility, rebuild
on refresh, discard the result of a superseded build) and
``paginate_rows`` sorts and pages a section's rows for a data table.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any

import pandas as pd

from github_org_analyser.core.constants import DEFAULT_ROWS_PER_PAGE
from github_org_analyser.reports.base import ReportBuilder
from github_org_analyser.reports.models import BuildOutcome, BuildState, ReportResult


@dataclass
class TablePage:
    """One page of table rows.

    Attributes:
        rows: Rows on this page
        page: Zero-based page index
        rows_per_page: Page size
        total_rows: Rows across all pages
        total_pages: Number of pages (at least 1)
    """

    rows: list[dict[str, Any]] = field(default_factory=list)
    page: int = 0
    rows_per_page: int = DEFAULT_ROWS_PER_PAGE
    total_rows: int = 0
    total_pages: int = 1


def paginate_rows(
    rows: list[dict[str, Any]],
    page: int = 0,
    rows_per_page: int = DEFAULT_ROWS_PER_PAGE,
    sort_by: str | None = None,
    descending: bool = False,
) -> TablePage:
    """Sort ``rows`` by a (dotted) column and return the requested page.

    Missing values sort last in both directions and ties keep their
    original order. Unknown sort columns leave the order unchanged.

    Raises:
        ValueError: If ``rows_per_page`` is not positive or ``page`` is negative
    """
    if rows_per_page <= 0:
        raise ValueError(f"rows_per_page must be positive, got {rows_per_page}")
    if page < 0:
        raise ValueError(f"page must not be negative, got {page}")

    ordered = list(rows)
    if sort_by and ordered:
        keys = pd.json_normalize(ordered)
        if sort_by in keys.columns:
            try:
                index = keys.sort_values(sort_by, ascending=not descending, na_position="last", kind="stable").index
            except TypeError:
                # mixed value types in the column; keep input order
                index = keys.index
            ordered = [ordered[i] for i in index]

    total_rows = len(ordered)
    start = page * rows_per_page
    return TablePage(
        rows=ordered[start : start + rows_per_page],
        page=page,
        rows_per_page=rows_per_page,
        total_rows=total_rows,
        total_pages=max(1, math.ceil(total_rows / rows_per_page)),
    )


class ReportTab:
    """Lifecycle of one report tab for one organization.

    Args:
        builder: Report builder backing this tab
        org: Organization currently shown
        logger: Logger instance
    """

    def __init__(self, builder: ReportBuilder, org: str, logger: logging.Logger | None = None):
        self.builder = builder
        self.org = org
        self.logger = logger or logging.getLogger(__name__)
        self.state = BuildState.IDLE
        self.result: ReportResult | None = None
        self.error: str | None = None
        self.loading = False
        self._generation = 0

    @property
    def loaded(self) -> bool:
        return self.result is not None

    async def on_visible(self) -> BuildOutcome | None:
        """Build (cache-first) the first time the tab is shown; later calls are no-ops."""
        if self.loaded or self.loading:
            return None
        return await self._run(skip_cache=False)

    async def refresh(self) -> BuildOutcome | None:
        """Rebuild from the API, bypassing (but then rewriting) the cache."""
        return await self._run(skip_cache=True)

    def switch_org(self, org: str) -> None:
        """Show another organization; any in-flight build for the old one is discarded when it finishes."""
        self.org = org
        self._generation += 1
        self.state = BuildState.IDLE
        self.result = None
        self.error = None
        self.loading = False

    async def _run(self, skip_cache: bool) -> BuildOutcome | None:
        self._generation += 1
        generation = self._generation
        org = self.org
        self.loading = True
        self.error = None

        outcome = await self.builder.build(org, skip_cache=skip_cache)

        if generation != self._generation:
            self.logger.debug(f"Discarding superseded {self.builder.report_type} build for {org}")
            return None

        self.loading = False
        self.state = outcome.state
        if outcome.ok:
            self.result = outcome.result
        else:
            self.error = outcome.error
        return outcome
