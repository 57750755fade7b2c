"""
Shared report-builder machinery.

Every builder follows the same state machine per ``build`` call:

    IDLE -> CACHE_HIT -> DONE
    IDLE -> CACHE_MISS -> FETCHING -> AGGREGATING -> CACHED -> DONE

with FETCHING and AGGREGATING able to end in FAILED. A cache hit never
touches the network. Subclasses implement ``collect`` (all API traffic)
and ``aggregate`` (pure classification, sorting and truncation).
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable, Iterable, Mapping
from datetime import datetime
from typing import Any, ClassVar, TypeVar

from tqdm import tqdm

from github_org_analyser.api.client import GitHubClient, RepositoryRecord
from github_org_analyser.cache.expiring import ExpiringCache
from github_org_analyser.core.config import ThresholdSet, WorkerConfig
from github_org_analyser.core.constants import DEFAULT_WORKERS
from github_org_analyser.core.dates import format_timestamp, utc_now
from github_org_analyser.core.logging import with_log_context
from github_org_analyser.reports.models import BuildOutcome, BuildState, ReportResult, ReportSection

T = TypeVar("T")
R = TypeVar("R")


def active_repositories(repos: Iterable[RepositoryRecord]) -> list[RepositoryRecord]:
    """Repositories that are neither archived nor forks, in input order."""
    return [repo for repo in repos if repo.is_active]


class ReportBuilder(ABC):
    """Base class for the per-tab report builders.

    Args:
        client: GitHub API client
        cache: Report cache; None disables caching
        settings: Resolved ``ThresholdSet`` or a camelCase override mapping
            (resolved against the defaults once per build)
        worker_config: Concurrency caps (default: 10 repositories at a time)
        clock: Returns the current aware UTC datetime
        quiet: Suppress tqdm progress output
        logger: Logger instance
    """

    report_type: ClassVar[str]

    def __init__(
        self,
        client: GitHubClient,
        cache: ExpiringCache | None = None,
        settings: ThresholdSet | Mapping[str, Any] | None = None,
        *,
        worker_config: WorkerConfig | None = None,
        clock: Callable[[], datetime] = utc_now,
        quiet: bool = False,
        logger: logging.Logger | None = None,
    ):
        self.client = client
        self.cache = cache
        self.settings = settings
        self.worker_config = worker_config or DEFAULT_WORKERS
        self.clock = clock
        self.quiet = quiet
        self.logger = logger or logging.getLogger(__name__)

    # ==================== BUILD ====================

    async def build(self, org: str, skip_cache: bool = False) -> BuildOutcome:
        """Build the report for ``org``.

        Args:
            org: Organization login
            skip_cache: Bypass the cache for reads (the result is still cached)

        Returns:
            BuildOutcome in state DONE (with ``result``) or FAILED (with ``error``)
        """
        log = with_log_context(self.logger, org=org, report_type=self.report_type)
        outcome = BuildOutcome(report_type=self.report_type, org=org)

        def enter(state: BuildState) -> None:
            log.debug(f"{self.report_type}[{org}]: {outcome.state.value} -> {state.value}")
            outcome.state = state
            outcome.transitions.append(state)

        if not skip_cache and self.cache is not None:
            cached = self._load_cached(org, log)
            if cached is not None:
                enter(BuildState.CACHE_HIT)
                outcome.result = cached
                outcome.from_cache = True
                enter(BuildState.DONE)
                log.info(f"Serving cached {self.report_type} report for {org}")
                return outcome

        enter(BuildState.CACHE_MISS)
        enter(BuildState.FETCHING)
        try:
            settings = ThresholdSet.resolve(self.settings)
            now = self.clock()
            # 1. Fetch everything this report needs
            data = await self.collect(org, settings)
            # 2. Classify, sort and truncate
            enter(BuildState.AGGREGATING)
            sections, summary = self.aggregate(org, data, settings, now)
        except Exception as e:
            reason = str(e) or type(e).__name__
            log.error(
                f"Failed to build {self.report_type} report for {org}: {reason}",
                exc_info=log.isEnabledFor(logging.DEBUG),
            )
            outcome.error = reason
            enter(BuildState.FAILED)
            return outcome

        result = ReportResult(
            report_type=self.report_type,
            org=org,
            generated_at=format_timestamp(now) or "",
            sections={section.name: section for section in sections},
            summary=summary,
        )
        outcome.result = result

        # 3. Cache for the configured TTL
        if self.cache is not None and self.cache.put(org, self.report_type, result.to_dict(), settings.cache.ttl_hours):
            enter(BuildState.CACHED)
        enter(BuildState.DONE)
        log.info(f"Built {self.report_type} report for {org}")
        return outcome

    def _load_cached(self, org: str, log: logging.Logger | logging.LoggerAdapter) -> ReportResult | None:
        payload = self.cache.get(org, self.report_type)
        if payload is None:
            return None
        try:
            return ReportResult.from_dict(payload)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            log.warning(f"Ignoring malformed cached {self.report_type} report for {org}: {e}")
            self.cache.invalidate(org, self.report_type)
            return None

    # ==================== SUBCLASS HOOKS ====================

    @abstractmethod
    async def collect(self, org: str, settings: ThresholdSet) -> Any:
        """Fetch phase. Exceptions raised here fail the build."""

    @abstractmethod
    def aggregate(
        self, org: str, data: Any, settings: ThresholdSet, now: datetime
    ) -> tuple[list[ReportSection], dict[str, Any]]:
        """Turn fetched data into sorted, truncated sections plus a summary."""

    # ==================== HELPERS ====================

    async def list_active_repositories(self, org: str) -> list[RepositoryRecord]:
        """Top-level repository fetch (aborting) reduced to the active set."""
        repos = await self.client.list_org_repositories(org)
        active = active_repositories(repos)
        self.logger.info(f"Found {len(repos)} repositories in {org}, {len(active)} active")
        return active

    async def gather_bounded(
        self,
        items: list[T],
        fn: Callable[[T], Awaitable[R]],
        desc: str = "Analyzing repositories",
        unit: str = "repo",
    ) -> list[R]:
        """Run ``fn`` over ``items`` with bounded concurrency; results keep input order."""
        if not items:
            return []
        slots = asyncio.Semaphore(max(1, self.worker_config.max_concurrent_repos))

        with tqdm(
            total=len(items),
            desc=desc,
            unit=unit,
            bar_format="{l_bar}{bar}| {n_fmt}/{total_fmt} [{elapsed}<{remaining}]",
            leave=False,
            disable=self.quiet,
        ) as pbar:

            async def run(item: T) -> R:
                async with slots:
                    result = await fn(item)
                pbar.update(1)
                return result

            return list(await asyncio.gather(*(run(item) for item in items)))
