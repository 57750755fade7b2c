"""Core module - Foundation components with no internal dependencies.

This module provides the basic building blocks used throughout the application:
- Version information
- Custom exceptions
- Configuration dataclasses and the resolved ThresholdSet
- Constants and defaults
"""

from github_org_analyser.core.version import __version__

from github_org_analyser.core.exceptions import (
    OrgAnalyserError,
    ConfigurationError,
    APIError,
    RetryableHTTPError,
    CacheError,
    StorageQuotaExceeded,
    ReportBuildError,
)

from github_org_analyser.core.config import (
    RetryConfig,
    LogConfig,
    WorkerConfig,
    Thresholds,
    DisplayLimits,
    BillingSettings,
    CacheSettings,
    ThresholdSet,
    deep_merge,
)

from github_org_analyser.core.constants import (
    GITHUB_API_BASE_URL,
    DEFAULT_PAGE_SIZE,
    DEFAULT_ORG_REPORT_WORKERS,
    CACHE_NAMESPACE,
    REPORT_TYPES,
    RETRYABLE_STATUS_CODES,
    DEFAULT_RETRY,
    DEFAULT_WORKERS,
    DEFAULT_THRESHOLDS,
    DEFAULT_RETRY_CONFIG,
)

__all__ = [
    # Version
    '__version__',
    # Exceptions
    'OrgAnalyserError',
    'ConfigurationError',
    'APIError',
    'RetryableHTTPError',
    'CacheError',
    'StorageQuotaExceeded',
    'ReportBuildError',
    # Config dataclasses
    'RetryConfig',
    'LogConfig',
    'WorkerConfig',
    'Thresholds',
    'DisplayLimits',
    'BillingSettings',
    'CacheSettings',
    'ThresholdSet',
    'deep_merge',
    # Constants
    'GITHUB_API_BASE_URL',
    'DEFAULT_PAGE_SIZE',
    'DEFAULT_ORG_REPORT_WORKERS',
    'CACHE_NAMESPACE',
    'REPORT_TYPES',
    'RETRYABLE_STATUS_CODES',
    'DEFAULT_RETRY',
    'DEFAULT_WORKERS',
    'DEFAULT_THRESHOLDS',
    'DEFAULT_RETRY_CONFIG',
]
