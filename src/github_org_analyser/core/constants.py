"""Constants and default values for GitHub Org Analyser.

This module centralizes magic numbers, default configurations and
identifiers used throughout the application.
"""

from typing import Any

from github_org_analyser.core.config import (
    LogConfig,
    RetryConfig,
    ThresholdSet,
    WorkerConfig,
)

# ==================== GITHUB API ====================

GITHUB_API_BASE_URL: str = "https://api.github.com"
GITHUB_API_VERSION: str = "2022-11-28"
GITHUB_ACCEPT_HEADER: str = "application/vnd.github+json"
DEFAULT_PAGE_SIZE: int = 100  # Collection endpoints end on the first page shorter than this
DEFAULT_HTTP_TIMEOUT: float = 30.0  # Seconds per request

# ==================== WORKER LIMITS ====================

DEFAULT_ORG_REPORT_WORKERS: int = 10  # Repositories enriched concurrently per report build

# ==================== CACHE DEFAULTS ====================

CACHE_NAMESPACE: str = "github-org-analyser"
MS_PER_HOUR: int = 3600 * 1000

# ==================== REPORT TYPES ====================

REPORT_CLEANUP: str = "cleanup"
REPORT_SECURITY: str = "security"
REPORT_GOVERNANCE_REPO: str = "governance-repo"
REPORT_GOVERNANCE_ORG: str = "governance-org"
REPORT_COSTS: str = "costs"
REPORT_HOME: str = "home"

REPORT_TYPES: tuple[str, ...] = (
    REPORT_HOME,
    REPORT_CLEANUP,
    REPORT_SECURITY,
    REPORT_GOVERNANCE_REPO,
    REPORT_GOVERNANCE_ORG,
    REPORT_COSTS,
)

# ==================== PRESENTATION ====================

ROWS_PER_PAGE_OPTIONS: tuple[int, ...] = (5, 10, 25, 50)
DEFAULT_ROWS_PER_PAGE: int = 10

# ==================== DEFAULT CONFIG INSTANCES ====================

DEFAULT_RETRY = RetryConfig()
DEFAULT_LOG = LogConfig()
DEFAULT_WORKERS = WorkerConfig(max_concurrent_repos=DEFAULT_ORG_REPORT_WORKERS)
DEFAULT_THRESHOLDS = ThresholdSet()

DEFAULT_RETRY_CONFIG: dict[str, Any] = DEFAULT_RETRY.to_dict()

# ==================== RETRYABLE ERRORS ====================

# HTTP status codes that should trigger a retry
RETRYABLE_STATUS_CODES: set[int] = {408, 429, 500, 502, 503, 504}
