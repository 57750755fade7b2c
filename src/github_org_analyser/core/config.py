"""Configuration dataclasses for GitHub Org Analyser.

These dataclasses centralize all configuration options for type safety
and easy testing. Report thresholds are resolved once per build from the
built-in defaults deep-merged with optional user overrides, and the resolved
``ThresholdSet`` is then passed explicitly to the report builders.
"""

from __future__ import annotations

import copy
import logging
import math
from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from typing import Any

from github_org_analyser.core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass
class RetryConfig:
    """Configuration for retry logic with exponential backoff.

    Attributes:
        max_retries: Maximum number of retry attempts (default: 3)
        base_delay: Initial delay in seconds (default: 1.0)
        max_delay: Maximum delay cap in seconds (default: 30.0)
        exponential_base: Multiplier for exponential backoff (default: 2)
        jitter: Add randomization to delays (default: True)
    """

    max_retries: int = 3
    base_delay: float = 1.0
    max_delay: float = 30.0
    exponential_base: int = 2
    jitter: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {
            "max_retries": self.max_retries,
            "base_delay": self.base_delay,
            "max_delay": self.max_delay,
            "exponential_base": self.exponential_base,
            "jitter": self.jitter,
        }


@dataclass
class LogConfig:
    """Configuration for logging behavior.

    Attributes:
        level: Logging level string (default: "INFO")
        file_max_bytes: Maximum size per log file (default: 10MB)
        file_backup_count: Number of backup log files (default: 5)
    """

    level: str = "INFO"
    file_max_bytes: int = 10 * 1024 * 1024  # 10MB
    file_backup_count: int = 5


@dataclass
class WorkerConfig:
    """Configuration for concurrent GitHub API fan-out.

    Attributes:
        max_concurrent_repos: Repositories enriched at the same time by one build (default: 10)
        max_concurrent_requests: In-flight HTTP requests per client (default: 20)
    """

    max_concurrent_repos: int = 10
    max_concurrent_requests: int = 20


# ==================== THRESHOLD SET ====================


def _setting(default: Any, key: str) -> Any:
    """Declare a dataclass field together with its camelCase settings key."""
    return field(default=default, metadata={"key": key})


@dataclass(frozen=True)
class Thresholds:
    """Numeric cutoffs used to classify repositories.

    Attributes:
        inactive_repo_months: Months without push or PR activity before a repo is inactive
        stale_branch_days: Days since last commit before a branch is stale
        old_pr_days: Days an open pull request may stay open before it is old
        branch_count_warning: Non-default branch count above which branch details are skipped
    """

    inactive_repo_months: int = _setting(12, "inactiveRepoMonths")
    stale_branch_days: int = _setting(90, "staleBranchDays")
    old_pr_days: int = _setting(60, "oldPRDays")
    branch_count_warning: int = _setting(50, "branchCountWarning")


@dataclass(frozen=True)
class DisplayLimits:
    """Per-report caps on the number of rows returned for presentation."""

    max_inactive_repos: int = _setting(50, "maxInactiveRepos")
    max_stale_branch_repos: int = _setting(50, "maxStaleBranchRepos")
    max_old_pr_repos: int = _setting(50, "maxOldPRRepos")
    max_alert_repos: int = _setting(50, "maxAlertRepos")
    max_dependabot_disabled_repos: int = _setting(50, "maxDependabotDisabledRepos")
    max_unprotected_repos: int = _setting(50, "maxUnprotectedRepos")
    max_no_admin_repos: int = _setting(50, "maxNoAdminRepos")
    max_forked_repos: int = _setting(50, "maxForkedRepos")
    max_installed_apps: int = _setting(100, "maxInstalledApps")
    max_outside_collaborators: int = _setting(100, "maxOutsideCollaborators")
    max_org_admins: int = _setting(100, "maxOrgAdmins")
    max_budgets: int = _setting(50, "maxBudgets")
    top_languages: int = _setting(5, "topLanguages")
    top_topics: int = _setting(10, "topTopics")
    fork_languages: int = _setting(3, "forkLanguages")


@dataclass(frozen=True)
class BillingSettings:
    """Pricing inputs for the costs report.

    Attributes:
        price_per_user_month: Seat price in USD (default: 21.0, GitHub Enterprise list price)
        included_actions_minutes: Actions minutes included per month (default: 50000)
    """

    price_per_user_month: float = _setting(21.0, "pricePerUserMonth")
    included_actions_minutes: int = _setting(50000, "includedActionsMinutes")


@dataclass(frozen=True)
class CacheSettings:
    """Report cache settings.

    Attributes:
        ttl_hours: Hours a cached report stays valid (default: 24)
    """

    ttl_hours: float = _setting(24, "ttlHours")


_SECTIONS: dict[str, tuple[str, type]] = {
    "thresholds": ("thresholds", Thresholds),
    "display_limits": ("displayLimits", DisplayLimits),
    "billing": ("billing", BillingSettings),
    "cache": ("cache", CacheSettings),
}

# Fields that accept fractional values; everything else must be a whole number.
_FLOAT_FIELDS = {"price_per_user_month", "ttl_hours"}


def deep_merge(base: Mapping[str, Any], override: Mapping[str, Any] | None) -> dict[str, Any]:
    """Recursively merge ``override`` into a copy of ``base``.

    Nested mappings are merged key by key; any other override value (scalars,
    lists, None) replaces the base value wholesale. Neither input is mutated.
    """
    result = copy.deepcopy(dict(base))
    if not override:
        return result
    for key, value in override.items():
        if isinstance(value, Mapping) and isinstance(result.get(key), Mapping):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = copy.deepcopy(value)
    return result


def _coerce_number(value: Any, path: str, allow_float: bool) -> int | float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigurationError(f"Setting '{path}' must be a number", field=path, details=f"got {value!r}")
    if isinstance(value, float) and not math.isfinite(value):
        raise ConfigurationError(f"Setting '{path}' must be finite", field=path, details=f"got {value!r}")
    if value < 0:
        raise ConfigurationError(f"Setting '{path}' must not be negative", field=path, details=f"got {value!r}")
    if allow_float:
        return value
    if isinstance(value, float):
        if not value.is_integer():
            raise ConfigurationError(
                f"Setting '{path}' must be a whole number", field=path, details=f"got {value!r}"
            )
        return int(value)
    return value


def _build_section(section_cls: type, section_key: str, raw: Any) -> Any:
    if raw is None:
        raw = {}
    if not isinstance(raw, Mapping):
        raise ConfigurationError(f"Setting '{section_key}' must be an object", field=section_key)
    kwargs = {}
    for f in fields(section_cls):
        key = f.metadata["key"]
        if key in raw:
            kwargs[f.name] = _coerce_number(raw[key], f"{section_key}.{key}", f.name in _FLOAT_FIELDS)
    unknown = set(raw) - {f.metadata["key"] for f in fields(section_cls)}
    if unknown:
        logger.debug(f"Ignoring unknown settings under '{section_key}': {sorted(unknown)}")
    return section_cls(**kwargs)


@dataclass(frozen=True)
class ThresholdSet:
    """Immutable, fully resolved configuration read by every report builder.

    Attributes:
        thresholds: Classification cutoffs
        display_limits: Per-report row caps
        billing: Pricing inputs for the costs report
        cache: Cache TTL settings
    """

    thresholds: Thresholds = field(default_factory=Thresholds)
    display_limits: DisplayLimits = field(default_factory=DisplayLimits)
    billing: BillingSettings = field(default_factory=BillingSettings)
    cache: CacheSettings = field(default_factory=CacheSettings)

    def __post_init__(self) -> None:
        if self.cache.ttl_hours <= 0:
            raise ConfigurationError(
                "Setting 'cache.ttlHours' must be greater than zero",
                field="cache.ttlHours",
                details=f"got {self.cache.ttl_hours!r}",
            )

    @property
    def ttl_ms(self) -> int:
        return int(self.cache.ttl_hours * 3600 * 1000)

    def to_dict(self) -> dict[str, Any]:
        """Return the camelCase settings surface for this set."""
        out: dict[str, Any] = {}
        for attr, (section_key, section_cls) in _SECTIONS.items():
            section = getattr(self, attr)
            out[section_key] = {f.metadata["key"]: getattr(section, f.name) for f in fields(section_cls)}
        return out

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ThresholdSet:
        kwargs = {}
        for attr, (section_key, section_cls) in _SECTIONS.items():
            kwargs[attr] = _build_section(section_cls, section_key, data.get(section_key))
        return cls(**kwargs)

    @classmethod
    def resolve(cls, overrides: Mapping[str, Any] | ThresholdSet | None = None) -> ThresholdSet:
        """Deep-merge ``overrides`` over the built-in defaults.

        Args:
            overrides: camelCase settings mapping, an already resolved set, or None

        Raises:
            ConfigurationError: If an override value is invalid
        """
        if isinstance(overrides, ThresholdSet):
            return overrides
        if overrides is not None and not isinstance(overrides, Mapping):
            raise ConfigurationError("Settings overrides must be a mapping", details=type(overrides).__name__)
        return cls.from_dict(deep_merge(cls().to_dict(), overrides))
