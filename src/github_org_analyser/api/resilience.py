"""API resilience utilities for GitHub Org Analyser.

This module provides retry logic with exponential backoff and
actionable error messages for GitHub API communication.
"""

import asyncio
import logging
import math
import os
import random
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import httpx

from github_org_analyser.core.config import RetryConfig
from github_org_analyser.core.constants import DEFAULT_RETRY_CONFIG
from github_org_analyser.core.exceptions import RetryableHTTPError

T = TypeVar("T")


def _parse_env_numeric(value: str | None, cast: Callable[[str], Any]) -> Any | None:
    """Parse an environment value, returning None when invalid."""
    if value is None:
        return None
    try:
        parsed = cast(value)
    except (TypeError, ValueError):
        return None
    if isinstance(parsed, float) and not math.isfinite(parsed):
        return None
    return parsed


def _effective_retry_config(base: RetryConfig | None = None) -> dict[str, Any]:
    """Return retry config with MAX_RETRIES / RETRY_BASE_DELAY / RETRY_MAX_DELAY overrides applied."""
    cfg = base.to_dict() if base is not None else dict(DEFAULT_RETRY_CONFIG)
    logger = logging.getLogger(__name__)

    for env_name, key, cast in (
        ("MAX_RETRIES", "max_retries", int),
        ("RETRY_BASE_DELAY", "base_delay", float),
        ("RETRY_MAX_DELAY", "max_delay", float),
    ):
        if env_name not in os.environ:
            continue
        parsed = _parse_env_numeric(os.environ.get(env_name), cast)
        if parsed is not None and parsed >= 0:
            cfg[key] = parsed
        else:
            logger.warning(f"Ignoring invalid {env_name}={os.environ.get(env_name)!r}; using default {cfg[key]}")

    if cfg["max_delay"] < cfg["base_delay"]:
        logger.warning(
            f"Ignoring invalid retry delay window (max_delay={cfg['max_delay']} < base_delay={cfg['base_delay']}); "
            f"using max_delay={cfg['base_delay']}"
        )
        cfg["max_delay"] = cfg["base_delay"]

    return cfg


class ErrorMessageHelper:
    """Provides contextual error messages with actionable suggestions."""

    DOCS_URL = "https://docs.github.com/en/rest"
    RATE_LIMIT_URL = f"{DOCS_URL}/using-the-rest-api/rate-limits-for-the-rest-api"
    TOKEN_URL = "https://github.com/settings/tokens"

    @staticmethod
    def get_http_error_message(status_code: int, operation: str = "API call") -> str:
        """Get detailed error message with suggestions for HTTP status codes."""
        messages = {
            401: {
                "title": "Authentication Failed",
                "reason": "The GitHub token is invalid, expired or revoked",
                "suggestions": [
                    "Verify GITHUB_TOKEN is set and copied without extra spaces",
                    f"Create a new token at {ErrorMessageHelper.TOKEN_URL}",
                    "Fine-grained tokens must be approved by the organization",
                ],
            },
            403: {
                "title": "Access Forbidden",
                "reason": "The token lacks a required scope or the rate limit is exhausted",
                "suggestions": [
                    "Grant the read:org, repo and admin:org scopes for full reports",
                    "Organization owners are required for billing and installed-app endpoints",
                    f"Check remaining quota: {ErrorMessageHelper.RATE_LIMIT_URL}",
                ],
            },
            404: {
                "title": "Resource Not Found",
                "reason": "The organization or repository does not exist or is not visible to this token",
                "suggestions": [
                    "Check the organization login for typos",
                    "Private resources return 404 when the token cannot see them",
                ],
            },
            429: {
                "title": "Rate Limit Exceeded",
                "reason": "Too many requests sent to the GitHub API",
                "suggestions": [
                    "Wait until the rate limit window resets",
                    "Lower WorkerConfig.max_concurrent_repos",
                    "Rely on the report cache instead of refreshing",
                ],
            },
            500: {
                "title": "Internal Server Error",
                "reason": "GitHub encountered an error processing the request",
                "suggestions": [
                    "This is typically a temporary issue - retry in a few minutes",
                    "Increase retry attempts (MAX_RETRIES=5)",
                    "Check https://www.githubstatus.com/ for incidents",
                ],
            },
            502: {
                "title": "Bad Gateway",
                "reason": "Upstream server error or network issue",
                "suggestions": [
                    "This is typically a temporary network issue",
                    "Wait a few minutes and retry",
                ],
            },
            503: {
                "title": "Service Unavailable",
                "reason": "The GitHub API is temporarily unavailable",
                "suggestions": [
                    "Wait 5-10 minutes and retry",
                    "Check https://www.githubstatus.com/ for incidents",
                ],
            },
            504: {
                "title": "Gateway Timeout",
                "reason": "The request took too long to complete",
                "suggestions": [
                    "Very large organizations can hit this on collection endpoints",
                    "Increase the delay window (RETRY_MAX_DELAY=60)",
                ],
            },
        }

        error_info = messages.get(
            status_code,
            {
                "title": f"HTTP {status_code}",
                "reason": "An unexpected HTTP error occurred",
                "suggestions": [
                    "Check your network connection",
                    "Verify the GitHub token is valid",
                    "Review logs for more details",
                ],
            },
        )

        output = [
            f"{'=' * 60}",
            f"HTTP {status_code}: {error_info['title']}",
            f"{'=' * 60}",
            f"Operation: {operation}",
            "",
            "Why this happened:",
            f"  {error_info['reason']}",
            "",
            "How to fix it:",
        ]
        for i, suggestion in enumerate(error_info["suggestions"], 1):
            output.append(f"  {i}. {suggestion}")
        output.append("")
        output.append(f"For more help: {ErrorMessageHelper.DOCS_URL}")
        return "\n".join(output)

    @staticmethod
    def get_network_error_message(error: Exception, operation: str = "operation") -> str:
        """Get detailed message for network-related errors."""
        error_type = type(error).__name__

        if isinstance(error, (httpx.TimeoutException, TimeoutError)):
            reason = "The request took too long and timed out"
            suggestions = [
                "Your network connection may be slow or unstable",
                "Increase retry attempts (MAX_RETRIES=5)",
            ]
        elif isinstance(error, (httpx.ConnectError, ConnectionError)):
            reason = "Cannot establish a connection to api.github.com"
            suggestions = [
                "Check your internet connection",
                "Check whether a proxy or firewall blocks api.github.com",
                "Verify DNS is working",
            ]
        else:
            reason = "A network error occurred"
            suggestions = [
                "Check your internet connection",
                "Try again in a few moments",
            ]

        output = [
            f"{'=' * 60}",
            f"Network Error: {error_type}",
            f"{'=' * 60}",
            f"During: {operation}",
            f"Error details: {error!s}",
            "",
            "Why this happened:",
            f"  {reason}",
            "",
            "How to fix it:",
        ]
        for i, suggestion in enumerate(suggestions, 1):
            output.append(f"  {i}. {suggestion}")
        return "\n".join(output)


# Exceptions that should trigger a retry (transient errors)
RETRYABLE_EXCEPTIONS: tuple[type[BaseException], ...] = (
    httpx.TransportError,
    ConnectionError,
    TimeoutError,
    RetryableHTTPError,
)


def compute_backoff_delay(attempt: int, cfg: dict[str, Any], retry_after: float | None = None) -> float:
    """Backoff for the given zero-based attempt.

    delay = min(base_delay * (exponential_base ** attempt), max_delay), then
    scaled by uniform(0.5, 1.5) when jitter is on. A server-provided
    ``retry_after`` raises the delay, still capped at max_delay.
    """
    delay = min(cfg["base_delay"] * (cfg["exponential_base"] ** attempt), cfg["max_delay"])
    if cfg["jitter"]:
        delay = delay * random.uniform(0.5, 1.5)
    if retry_after is not None:
        delay = min(max(delay, retry_after), cfg["max_delay"])
    return delay


async def make_api_call_with_retry(
    api_func: Callable[..., Awaitable[T]],
    *args: Any,
    logger: logging.Logger | None = None,
    operation_name: str = "API call",
    retry_config: RetryConfig | None = None,
    **kwargs: Any,
) -> T:
    """
    Await an API coroutine with retry logic.

    Transient failures (transport errors, retryable HTTP statuses) are retried
    with exponential backoff; any other exception propagates immediately.

    Args:
        api_func: Coroutine function performing the call
        *args: Positional arguments to pass to the function
        logger: Logger instance for retry messages
        operation_name: Human-readable name for logging
        retry_config: Base retry settings (environment overrides still apply)
        **kwargs: Keyword arguments to pass to the function

    Returns:
        Result from the API call

    Raises:
        The last exception if all retries fail
    """
    _logger = logger or logging.getLogger(__name__)
    cfg = _effective_retry_config(retry_config)
    max_retries = cfg["max_retries"]

    for attempt in range(max_retries + 1):
        try:
            result = await api_func(*args, **kwargs)
            if attempt > 0:
                _logger.info(f"✓ {operation_name} succeeded on attempt {attempt + 1}/{max_retries + 1}")
            return result
        except RETRYABLE_EXCEPTIONS as e:
            if attempt == max_retries:
                _logger.error(f"All {max_retries + 1} attempts failed for {operation_name}")
                if isinstance(e, RetryableHTTPError):
                    _logger.error("\n" + ErrorMessageHelper.get_http_error_message(e.status_code, operation_name))
                else:
                    _logger.error("\n" + ErrorMessageHelper.get_network_error_message(e, operation_name))
                raise

            delay = compute_backoff_delay(attempt, cfg, getattr(e, "retry_after", None))
            _logger.warning(
                f"⚠ {operation_name} attempt {attempt + 1}/{max_retries + 1} failed: {e!s}. Retrying in {delay:.1f}s..."
            )
            await asyncio.sleep(delay)

    # Unreachable: the last attempt either returns or raises.
    raise RuntimeError(f"Retry loop exited unexpectedly for {operation_name}")
