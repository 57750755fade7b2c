"""
Tests for retry with exponential backoff functionality
"""

import asyncio
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from github_org_analyser.api.resilience import (
    RETRYABLE_EXCEPTIONS,
    ErrorMessageHelper,
    _effective_retry_config,
    compute_backoff_delay,
    make_api_call_with_retry,
)
from github_org_analyser.core.config import RetryConfig
from github_org_analyser.core.exceptions import RetryableHTTPError


def flaky(failures, exc_factory, result="success"):
    """Coroutine function failing `failures` times before returning `result`"""
    calls = {"count": 0}

    async def func(*args, **kwargs):
        calls["count"] += 1
        if calls["count"] <= failures:
            raise exc_factory()
        return result

    return func, calls


class TestMakeApiCallWithRetry:
    """Test the async retry wrapper"""

    def test_successful_call_no_retry(self, fast_retry):
        func, calls = flaky(0, ConnectionError)
        assert asyncio.run(make_api_call_with_retry(func, retry_config=fast_retry)) == "success"
        assert calls["count"] == 1

    def test_retry_on_connection_error(self, fast_retry):
        func, calls = flaky(2, lambda: ConnectionError("Network error"))
        assert asyncio.run(make_api_call_with_retry(func, retry_config=fast_retry)) == "success"
        assert calls["count"] == 3  # 1 initial + 2 retries

    def test_retry_on_retryable_status(self, fast_retry):
        func, calls = flaky(1, lambda: RetryableHTTPError(503, "unavailable"))
        assert asyncio.run(make_api_call_with_retry(func, retry_config=fast_retry)) == "success"
        assert calls["count"] == 2

    def test_no_retry_on_value_error(self, fast_retry):
        func, calls = flaky(5, lambda: ValueError("Invalid value"))
        with pytest.raises(ValueError):
            asyncio.run(make_api_call_with_retry(func, retry_config=fast_retry))
        assert calls["count"] == 1

    def test_max_retries_exceeded(self, fast_retry):
        func, calls = flaky(10, lambda: TimeoutError("Always fails"))
        with pytest.raises(TimeoutError):
            asyncio.run(make_api_call_with_retry(func, retry_config=fast_retry))
        assert calls["count"] == 3

    def test_arguments_forwarded(self, fast_retry):
        async def echo(a, b=None):
            return (a, b)

        assert asyncio.run(make_api_call_with_retry(echo, 1, b=2, retry_config=fast_retry)) == (1, 2)

    def test_exponential_backoff_delays(self):
        func, _ = flaky(3, ConnectionError)
        config = RetryConfig(max_retries=3, base_delay=0.1, max_delay=10, jitter=False)
        with patch("github_org_analyser.api.resilience.asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
            asyncio.run(make_api_call_with_retry(func, retry_config=config))
        delays = [call.args[0] for call in mock_sleep.call_args_list]
        assert delays == pytest.approx([0.1, 0.2, 0.4])

    def test_env_overrides_max_retries(self, monkeypatch, fast_retry):
        monkeypatch.setenv("MAX_RETRIES", "0")
        func, calls = flaky(1, ConnectionError)
        with pytest.raises(ConnectionError):
            asyncio.run(make_api_call_with_retry(func, retry_config=fast_retry))
        assert calls["count"] == 1


class TestBackoff:
    """Test delay computation"""

    def test_capped_at_max_delay(self):
        cfg = RetryConfig(base_delay=1, max_delay=5, jitter=False).to_dict()
        assert compute_backoff_delay(10, cfg) == 5

    def test_jitter_within_bounds(self):
        cfg = RetryConfig(base_delay=2, max_delay=100, jitter=True).to_dict()
        for _ in range(20):
            assert 1.0 <= compute_backoff_delay(0, cfg) <= 3.0

    def test_retry_after_raises_delay(self):
        cfg = RetryConfig(base_delay=1, max_delay=30, jitter=False).to_dict()
        assert compute_backoff_delay(0, cfg, retry_after=7) == 7

    def test_retry_after_still_capped(self):
        cfg = RetryConfig(base_delay=1, max_delay=30, jitter=False).to_dict()
        assert compute_backoff_delay(0, cfg, retry_after=3600) == 30


class TestEffectiveRetryConfig:
    """Test environment overrides"""

    def test_defaults_without_env(self):
        assert _effective_retry_config() == RetryConfig().to_dict()

    def test_valid_overrides(self, monkeypatch):
        monkeypatch.setenv("MAX_RETRIES", "5")
        monkeypatch.setenv("RETRY_BASE_DELAY", "0.5")
        monkeypatch.setenv("RETRY_MAX_DELAY", "60")
        cfg = _effective_retry_config()
        assert cfg["max_retries"] == 5
        assert cfg["base_delay"] == 0.5
        assert cfg["max_delay"] == 60.0

    @pytest.mark.parametrize("value", ["abc", "-1", "nan"])
    def test_invalid_override_ignored(self, monkeypatch, value):
        monkeypatch.setenv("RETRY_BASE_DELAY", value)
        assert _effective_retry_config()["base_delay"] == 1.0

    def test_inverted_window_fixed(self, monkeypatch):
        monkeypatch.setenv("RETRY_BASE_DELAY", "10")
        monkeypatch.setenv("RETRY_MAX_DELAY", "2")
        cfg = _effective_retry_config()
        assert cfg["max_delay"] == 10.0


class TestErrorMessages:
    """Test actionable error messages"""

    def test_retryable_exceptions(self):
        assert httpx.TransportError in RETRYABLE_EXCEPTIONS
        assert RetryableHTTPError in RETRYABLE_EXCEPTIONS

    def test_known_status_message(self):
        message = ErrorMessageHelper.get_http_error_message(401, "GET /user")
        assert "Authentication Failed" in message
        assert "GET /user" in message

    def test_unknown_status_message(self):
        assert "HTTP 418" in ErrorMessageHelper.get_http_error_message(418)

    def test_network_message(self):
        message = ErrorMessageHelper.get_network_error_message(TimeoutError("slow"), "GET /orgs/acme")
        assert "timed out" in message
