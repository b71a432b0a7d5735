"""Tests for the linear backoff retry helper."""
from __future__ import annotations

import pytest
from conftest import RecordingSleep

from storefront.services.retry import retry_with_backoff


class Flaky:
    def __init__(self, failures: int, error: type[Exception] = ConnectionError):
        self.failures = failures
        self.error = error
        self.calls = 0

    async def __call__(self) -> str:
        self.calls += 1
        if self.calls <= self.failures:
            raise self.error("temporarily down")
        return "ok"


@pytest.mark.asyncio
async def test_first_try_success_does_not_sleep() -> None:
    sleep = RecordingSleep()

    outcome = await retry_with_backoff(Flaky(0), sleep=sleep)

    assert outcome.succeeded
    assert outcome.attempts == 1
    assert outcome.result == "ok"
    assert sleep.delays == []


@pytest.mark.asyncio
async def test_delay_grows_linearly() -> None:
    sleep = RecordingSleep()

    outcome = await retry_with_backoff(Flaky(3), max_attempts=4, base_delay=0.5, sleep=sleep)

    assert outcome.succeeded
    assert outcome.attempts == 4
    assert sleep.delays == [0.5, 1.0, 1.5]


@pytest.mark.asyncio
async def test_exhausted_attempts_report_last_error() -> None:
    operation = Flaky(10)

    outcome = await retry_with_backoff(operation, max_attempts=3, sleep=RecordingSleep())

    assert not outcome.succeeded
    assert outcome.attempts == 3
    assert operation.calls == 3
    assert isinstance(outcome.last_error, ConnectionError)


@pytest.mark.asyncio
async def test_unlisted_errors_propagate() -> None:
    with pytest.raises(KeyError):
        await retry_with_backoff(
            Flaky(1, error=KeyError), exceptions=(ConnectionError,), sleep=RecordingSleep()
        )


@pytest.mark.asyncio
async def test_max_attempts_must_be_positive() -> None:
    with pytest.raises(ValueError):
        await retry_with_backoff(Flaky(0), max_attempts=0)
