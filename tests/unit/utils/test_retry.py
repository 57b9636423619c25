"""Tests for the retry utility."""

from unittest.mock import Mock, patch

import pytest

from kbforge.errors import (
    AuthenticationError,
    ConfigurationError,
    GatewayError,
    RateLimitError,
    TransientError,
)
from kbforge.utils.retry import (
    RetryConfig,
    calculate_delay,
    retry_with_backoff,
    should_retry,
)


class TestRetryConfig:
    """Tests for RetryConfig validation."""

    def test_defaults(self):
        config = RetryConfig()
        assert config.max_attempts == 3
        assert config.base_delay == 1.0
        assert config.max_delay == 60.0

    @pytest.mark.parametrize("kwargs", [
        {"max_attempts": 0},
        {"base_delay": -1},
        {"base_delay": 10, "max_delay": 5},
        {"jitter": 1.5},
    ])
    def test_invalid(self, kwargs):
        with pytest.raises(ValueError):
            RetryConfig(**kwargs)


class TestCalculateDelay:
    """Tests for calculate_delay."""

    def test_exponential(self):
        config = RetryConfig(base_delay=5.0, max_delay=300.0, jitter=0)
        assert [calculate_delay(n, config) for n in (1, 2, 3)] == [5.0, 10.0, 20.0]

    def test_capped(self):
        config = RetryConfig(base_delay=5.0, max_delay=12.0, jitter=0)
        assert calculate_delay(5, config) == 12.0

    def test_jitter_stays_in_range(self):
        config = RetryConfig(base_delay=10.0, max_delay=100.0, jitter=0.5)
        for _ in range(20):
            assert 5.0 <= calculate_delay(1, config) <= 15.0

    def test_retry_after_is_honored(self):
        config = RetryConfig(base_delay=1.0, jitter=0)
        assert calculate_delay(1, config, RateLimitError(retry_after=7.0)) == 7.0

    def test_retry_after_ignored_when_disabled(self):
        config = RetryConfig(base_delay=1.0, jitter=0, respect_retry_after=False)
        assert calculate_delay(1, config, RateLimitError(retry_after=7.0)) == 1.0


class TestShouldRetry:
    """Tests for should_retry."""

    def test_transient_error_is_retried(self):
        assert should_retry(TransientError("flaky"), 1, RetryConfig(max_attempts=3))

    def test_last_attempt_is_not_retried(self):
        assert not should_retry(TransientError("flaky"), 3, RetryConfig(max_attempts=3))

    def test_permanent_error_is_not_retried(self):
        config = RetryConfig(max_attempts=5, retry_on=(Exception,))
        assert not should_retry(ConfigurationError("missing"), 1, config)

    def test_wrapped_permanent_error_is_not_retried(self):
        config = RetryConfig(max_attempts=5, retry_on=(Exception,))
        error = GatewayError("batch failed", original_error=AuthenticationError())
        assert not should_retry(error, 1, config)

    def test_wrapped_transient_error_is_retried(self):
        error = GatewayError("batch failed", original_error=TransientError("503"))
        assert should_retry(error, 1, RetryConfig(max_attempts=3))

    def test_unlisted_error_is_not_retried(self):
        assert not should_retry(ValueError("bad"), 1, RetryConfig(max_attempts=3))

    def test_catch_all_retry_on(self):
        config = RetryConfig(max_attempts=3, retry_on=(Exception,))
        assert should_retry(ValueError("bad"), 1, config)


class TestRetryWithBackoff:
    """Tests for the retry_with_backoff decorator."""

    @patch("kbforge.utils.retry.time.sleep")
    def test_succeeds_after_transient_failures(self, mock_sleep):
        func = Mock(side_effect=[TransientError("a"), TransientError("b"), "ok"])
        func.__name__ = "embed"

        wrapped = retry_with_backoff(func, max_attempts=3, base_delay=0.5)

        assert wrapped() == "ok"
        assert func.call_count == 3
        assert mock_sleep.call_count == 2

    @patch("kbforge.utils.retry.time.sleep")
    def test_gives_up_after_max_attempts(self, mock_sleep):
        func = Mock(side_effect=TransientError("down"))
        func.__name__ = "embed"

        wrapped = retry_with_backoff(config=RetryConfig(max_attempts=2, base_delay=0, max_delay=0, jitter=0))(func)

        with pytest.raises(TransientError):
            wrapped()
        assert func.call_count == 2

    @patch("kbforge.utils.retry.time.sleep")
    def test_permanent_error_raises_immediately(self, mock_sleep):
        func = Mock(side_effect=AuthenticationError())
        func.__name__ = "embed"

        with pytest.raises(AuthenticationError):
            retry_with_backoff(func, max_attempts=5)()

        assert func.call_count == 1
        mock_sleep.assert_not_called()

    def test_preserves_function_name(self):
        @retry_with_backoff
        def embed_batch():
            return [1.0]

        assert embed_batch.__name__ == "embed_batch"
        assert embed_batch() == [1.0]
