"""API module - GitHub REST API integration.

This module provides:
- The async GitHub client with pagination and best-effort defaults
- Error message helpers with actionable suggestions
- Retry logic with exponential backoff
"""

from github_org_analyser.api.resilience import (
    RETRYABLE_EXCEPTIONS,
    ErrorMessageHelper,
    make_api_call_with_retry,
)

__all__ = [
    "RETRYABLE_EXCEPTIONS",
    "ErrorMessageHelper",
    "make_api_call_with_retry",
    # Client (lazy)
    "GitHubClient",
    "RepositoryRecord",
]


from github_org_analyser.core.lazy import make_getattr

__getattr__ = make_getattr(
    __name__,
    {
        "GitHubClient": "github_org_analyser.api.client",
        "RepositoryRecord": "github_org_analyser.api.client",
    },
)
