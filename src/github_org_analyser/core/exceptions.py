"""Custom exceptions for GitHub Org Analyser.

All exception classes are designed to provide clear, actionable error messages
with context about what went wrong and how to fix it.
"""


class OrgAnalyserError(Exception):
    """Base exception for all GitHub Org Analyser errors."""

    def __init__(self, message: str, details: str | None = None):
        self.message = message
        self.details = details
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message}: {self.details}"
        return self.message


class ConfigurationError(OrgAnalyserError):
    """Exception raised for configuration-related errors.

    Examples:
        - Missing GITHUB_TOKEN
        - Non-numeric threshold override
        - Zero or negative cache TTL
        - Invalid JSON in the settings file
    """

    def __init__(
        self, message: str, config_file: str | None = None, field: str | None = None, details: str | None = None
    ):
        self.config_file = config_file
        self.field = field
        super().__init__(message, details)


class APIError(OrgAnalyserError):
    """Exception raised for GitHub API communication failures.

    Wraps HTTP errors and network failures with context about
    the operation that failed.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        operation: str | None = None,
        details: str | None = None,
        original_error: Exception | None = None,
    ):
        self.status_code = status_code
        self.operation = operation
        self.original_error = original_error
        super().__init__(message, details)

    @property
    def is_not_found(self) -> bool:
        return self.status_code == 404

    def __str__(self) -> str:
        parts = [self.message]
        if self.status_code:
            parts.append(f"HTTP {self.status_code}")
        if self.operation:
            parts.append(f"during {self.operation}")
        if self.details:
            parts.append(self.details)
        return " - ".join(parts)


class RetryableHTTPError(Exception):
    """Exception raised when the API returns a retryable HTTP status code."""

    def __init__(self, status_code: int, message: str = "", retry_after: float | None = None):
        self.status_code = status_code
        self.retry_after = retry_after
        super().__init__(f"HTTP {status_code}: {message}" if message else f"HTTP {status_code}")


class CacheError(OrgAnalyserError):
    """Exception raised by a cache storage backend.

    Attributes:
        key: Storage key involved in the failed operation
    """

    def __init__(self, message: str, key: str | None = None, details: str | None = None):
        self.key = key
        super().__init__(message, details)


class StorageQuotaExceeded(CacheError):
    """Raised when a write would push the store past its byte quota.

    Attributes:
        used_bytes: Bytes already stored before the write
        limit_bytes: Configured quota
    """

    def __init__(self, key: str, used_bytes: int = 0, limit_bytes: int | None = None):
        self.used_bytes = used_bytes
        self.limit_bytes = limit_bytes
        details = f"{used_bytes} bytes used of {limit_bytes}" if limit_bytes is not None else None
        super().__init__(f"Storage quota exceeded writing '{key}'", key=key, details=details)


class ReportBuildError(OrgAnalyserError):
    """Exception raised when a report build ends in the failed state.

    Attributes:
        report_type: Report type identifier (e.g. "cleanup")
        org: Organization login the report was built for
    """

    def __init__(self, report_type: str, org: str, reason: str | None = None):
        self.report_type = report_type
        self.org = org
        self.reason = reason
        super().__init__(f"Failed to build '{report_type}' report for '{org}'", reason)
