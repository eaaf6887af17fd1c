"""
Unit tests for retry with exponential backoff.
"""
import errno
from unittest.mock import AsyncMock

import httpx
import pytest

from refashion.core.exceptions import RetryExhaustedError
from refashion.utils.retry import (
    HIGH_TOLERANCE_RETRY,
    STANDARD_RETRY,
    RetryOptions,
    calculate_delay,
    is_retryable_error,
    with_retry,
)


class StatusError(Exception):
    def __init__(self, message: str, status: int):
        super().__init__(message)
        self.status = status


def http_status_error(status_code: int) -> httpx.HTTPStatusError:
    request = httpx.Request("POST", "https://api.test/run")
    response = httpx.Response(status_code, request=request)
    return httpx.HTTPStatusError(f"HTTP {status_code}", request=request, response=response)


class TestIsRetryableError:
    """Test cases for error classification."""

    @pytest.mark.parametrize("status", [429, 500, 502, 503, 504])
    def test_retryable_status_codes(self, status):
        assert is_retryable_error(StatusError("failed", status)) is True
        assert is_retryable_error(http_status_error(status)) is True

    @pytest.mark.parametrize("status", [400, 401, 403, 404, 422])
    def test_client_errors_not_retryable(self, status):
        assert is_retryable_error(StatusError("failed", status)) is False
        assert is_retryable_error(http_status_error(status)) is False

    @pytest.mark.parametrize("message", [
        "The model is overloaded",
        "rate limit exceeded",
        "503 UNAVAILABLE",
        "RESOURCE_EXHAUSTED: quota",
        "DEADLINE_EXCEEDED",
        "INTERNAL error",
    ])
    def test_transient_messages(self, message):
        assert is_retryable_error(Exception(message)) is True

    def test_network_error_code(self):
        error = Exception("socket hang up")
        error.code = "ECONNRESET"

        assert is_retryable_error(error) is True

    def test_network_exceptions(self):
        request = httpx.Request("GET", "https://api.test")

        assert is_retryable_error(httpx.ConnectError("refused", request=request)) is True
        assert is_retryable_error(httpx.ReadTimeout("slow", request=request)) is True
        assert is_retryable_error(ConnectionResetError(errno.ECONNRESET, "reset")) is True
        assert is_retryable_error(TimeoutError()) is True

    def test_plain_errors_not_retryable(self):
        assert is_retryable_error(ValueError("bad input")) is False
        assert is_retryable_error(KeyError("missing")) is False


class TestCalculateDelay:
    """Test cases for backoff delay calculation."""

    def test_delays_non_decreasing_without_jitter(self):
        options = RetryOptions(max_retries=10, base_delay=1.0, max_delay=10.0, jitter=False)

        delays = [calculate_delay(attempt, options) for attempt in range(1, 11)]

        assert delays == sorted(delays)
        assert delays[:4] == [1.0, 2.0, 4.0, 8.0]
        assert max(delays) == 10.0

    def test_first_attempt_has_no_delay(self):
        assert calculate_delay(0, STANDARD_RETRY) == 0.0

    def test_jitter_stays_within_quarter(self):
        options = RetryOptions(base_delay=4.0, max_delay=100.0, jitter=True)

        assert calculate_delay(1, options, rng=lambda: 0.0) == pytest.approx(3.0)
        assert calculate_delay(1, options, rng=lambda: 0.5) == pytest.approx(4.0)
        assert calculate_delay(1, options, rng=lambda: 0.999999) == pytest.approx(5.0, rel=1e-4)

    def test_profiles(self):
        assert HIGH_TOLERANCE_RETRY.max_retries == 4
        assert HIGH_TOLERANCE_RETRY.base_delay == 2.0
        assert HIGH_TOLERANCE_RETRY.max_delay == 60.0
        assert STANDARD_RETRY.max_retries == 3
        assert STANDARD_RETRY.base_delay == 1.0
        assert STANDARD_RETRY.max_delay == 10.0


class TestWithRetry:
    """Test cases for with_retry."""

    @pytest.fixture
    def sleep(self):
        return AsyncMock()

    @pytest.mark.asyncio
    async def test_success_first_attempt(self, sleep):
        operation = AsyncMock(return_value="ok")

        result = await with_retry(operation, sleep=sleep)

        assert result == "ok"
        operation.assert_awaited_once()
        sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_non_retryable_error_single_attempt(self, sleep):
        operation = AsyncMock(side_effect=StatusError("Bad request", 400))

        with pytest.raises(RetryExhaustedError) as exc_info:
            await with_retry(operation, RetryOptions(max_retries=3), context="Submit job", sleep=sleep)

        assert operation.await_count == 1
        assert exc_info.value.attempts == 1
        assert exc_info.value.status == 400
        assert isinstance(exc_info.value.__cause__, StatusError)
        sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_retryable_error_exhausts_budget(self, sleep):
        operation = AsyncMock(side_effect=StatusError("Service unavailable", 503))

        with pytest.raises(RetryExhaustedError) as exc_info:
            await with_retry(operation, RetryOptions(max_retries=3), context="Upscale image", sleep=sleep)

        assert operation.await_count == 4
        assert sleep.await_count == 3
        message = str(exc_info.value)
        assert "4 attempts" in message
        assert "Upscale image" in message
        assert "Service unavailable" in message
        assert exc_info.value.status == 503

    @pytest.mark.asyncio
    async def test_recovers_after_transient_errors(self, sleep):
        operation = AsyncMock(side_effect=[Exception("model overloaded"), Exception("rate limit"), "done"])

        result = await with_retry(operation, RetryOptions(max_retries=3, jitter=False), sleep=sleep)

        assert result == "done"
        assert operation.await_count == 3
        assert [call.args[0] for call in sleep.await_args_list] == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_error_code_preserved(self, sleep):
        error = Exception("quota")
        error.code = 429
        operation = AsyncMock(side_effect=error)

        with pytest.raises(RetryExhaustedError) as exc_info:
            await with_retry(operation, RetryOptions(max_retries=1), sleep=sleep)

        assert exc_info.value.error_code == 429
        assert exc_info.value.attempts == 2
