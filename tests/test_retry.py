import time
from unittest.mock import AsyncMock, call, patch

import httpx
import pytest

from movieflix.services.retry import retry_operation


def flaky(failures: int, result="ok"):
    """Operation failing `failures` times before returning `result`; records attempt times."""
    attempts: list[float] = []

    async def operation():
        attempts.append(time.monotonic())
        if len(attempts) <= failures:
            raise ConnectionError(f"attempt {len(attempts)} failed")
        return result

    return operation, attempts


class TestRetryOperation:
    @pytest.mark.asyncio
    async def test_first_success_returns_without_waiting(self):
        operation, attempts = flaky(0)
        with patch("movieflix.services.retry.asyncio.sleep", new_callable=AsyncMock) as sleep:
            assert await retry_operation(operation) == "ok"
        assert len(attempts) == 1
        sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_backoff_doubles_between_attempts(self):
        operation, attempts = flaky(2)
        with patch("movieflix.services.retry.asyncio.sleep", new_callable=AsyncMock) as sleep:
            assert await retry_operation(operation, 3, 1.0) == "ok"
        assert len(attempts) == 3
        assert sleep.await_args_list == [call(1.0), call(2.0)]

    @pytest.mark.asyncio
    async def test_backoff_real_elapsed_time(self):
        operation, attempts = flaky(2)
        assert await retry_operation(operation, 3, 0.05) == "ok"

        first_wait = attempts[1] - attempts[0]
        second_wait = attempts[2] - attempts[1]
        assert 0.045 <= first_wait < 0.5
        assert 0.095 <= second_wait < 0.6

    @pytest.mark.asyncio
    async def test_exhaustion_raises_last_error(self):
        errors = [ConnectionError("first"), ConnectionError("second"), ConnectionError("third")]
        operation = AsyncMock(side_effect=errors)

        with patch("movieflix.services.retry.asyncio.sleep", new_callable=AsyncMock) as sleep:
            with pytest.raises(ConnectionError) as exc_info:
                await retry_operation(operation, max_retries=3)

        assert operation.await_count == 3
        assert exc_info.value is errors[2]
        # no wait after the final attempt
        assert sleep.await_count == 2

    @pytest.mark.asyncio
    async def test_errors_outside_retry_on_propagate_immediately(self):
        operation = AsyncMock(side_effect=ValueError("bad input"))

        with patch("movieflix.services.retry.asyncio.sleep", new_callable=AsyncMock) as sleep:
            with pytest.raises(ValueError):
                await retry_operation(operation, 3, 1.0, retry_on=(httpx.TransportError,))

        assert operation.await_count == 1
        sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_single_attempt_does_not_retry(self):
        operation = AsyncMock(side_effect=ConnectionError("down"))
        with pytest.raises(ConnectionError):
            await retry_operation(operation, max_retries=1)
        assert operation.await_count == 1

    @pytest.mark.asyncio
    async def test_invalid_max_retries(self):
        with pytest.raises(ValueError):
            await retry_operation(AsyncMock(), max_retries=0)
