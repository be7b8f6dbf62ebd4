import asyncio
import random

import pytest

from probate_monitor.core.errors import CrawlCancelled, NavigationFailure
from probate_monitor.utils.retry import CancellationToken, polite_delay, retry


class RecordingToken(CancellationToken):
    """Token whose sleeps return immediately but are recorded"""

    def __init__(self):
        super().__init__()
        self.sleeps = []

    async def sleep(self, seconds):
        self.raise_if_cancelled()
        self.sleeps.append(seconds)


def test_retry_returns_first_success():
    calls = []

    async def operation():
        calls.append(1)
        if len(calls) < 2:
            raise NavigationFailure("timeout")
        return "ok"

    token = RecordingToken()
    assert asyncio.run(retry(operation, max_attempts=3, base_delay=2.0, token=token)) == "ok"
    assert len(calls) == 2
    assert token.sleeps == [2.0]


def test_retry_linear_backoff_and_reraises_last_error():
    errors = [NavigationFailure("first"), NavigationFailure("second"), NavigationFailure("third")]

    async def operation():
        raise errors.pop(0)

    token = RecordingToken()
    with pytest.raises(NavigationFailure, match="third"):
        asyncio.run(retry(operation, max_attempts=3, base_delay=2.0, token=token))
    # no wait after the final attempt
    assert token.sleeps == [2.0, 4.0]


def test_retry_only_retries_listed_errors():
    calls = []

    async def operation():
        calls.append(1)
        raise KeyError("not retryable")

    with pytest.raises(KeyError):
        asyncio.run(retry(operation, token=RecordingToken(), retry_on=(NavigationFailure,)))
    assert len(calls) == 1


def test_retry_stops_when_cancelled():
    token = RecordingToken()
    token.cancel()

    async def operation():
        return "never"

    with pytest.raises(CrawlCancelled):
        asyncio.run(retry(operation, token=token))


def test_polite_delay_samples_within_range():
    token = RecordingToken()
    rng = random.Random(7)
    for _ in range(20):
        waited = asyncio.run(polite_delay(15000, 30000, token=token, rng=rng))
        assert 15.0 <= waited <= 30.0
    assert all(15.0 <= s <= 30.0 for s in token.sleeps)


def test_polite_delay_rejects_inverted_range():
    with pytest.raises(ValueError):
        asyncio.run(polite_delay(10, 5))


def test_cancel_interrupts_pending_sleep():
    async def scenario():
        token = CancellationToken()
        asyncio.get_running_loop().call_later(0.01, token.cancel)
        await token.sleep(30)

    with pytest.raises(CrawlCancelled):
        asyncio.run(asyncio.wait_for(scenario(), timeout=5))
