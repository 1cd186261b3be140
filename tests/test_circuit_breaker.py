import asyncio

import pytest

from cf_scraper.circuit_breaker import CircuitBreaker
from cf_scraper.exceptions import CircuitOpenError, ScrapeTimeoutError
from cf_scraper.models import CircuitState


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.mark.asyncio
async def test_opens_after_threshold_and_half_opens_after_cooldown(clock):
    breaker = CircuitBreaker(failure_threshold=2, timeout=5, clock=clock)

    await breaker.on_failure()
    assert breaker.state == CircuitState.CLOSED
    assert await breaker.can_execute()

    await breaker.on_failure()
    assert breaker.state == CircuitState.OPEN
    assert not await breaker.can_execute()

    clock.advance(4.9)
    assert not await breaker.can_execute()

    clock.advance(0.2)
    assert await breaker.can_execute()
    assert breaker.state == CircuitState.HALF_OPEN


@pytest.mark.asyncio
async def test_half_open_success_closes(clock):
    breaker = CircuitBreaker(failure_threshold=2, timeout=5, clock=clock)
    await breaker.on_failure()
    await breaker.on_failure()
    clock.advance(6)
    assert await breaker.can_execute()

    await breaker.on_success()
    assert breaker.state == CircuitState.CLOSED
    assert breaker.failures == 0


@pytest.mark.asyncio
async def test_half_open_failure_reopens_below_threshold(clock):
    breaker = CircuitBreaker(failure_threshold=10, timeout=5, clock=clock)
    breaker.state = CircuitState.OPEN
    breaker.last_failure_time = clock()
    clock.advance(6)
    assert await breaker.can_execute()

    await breaker.on_failure()
    assert breaker.state == CircuitState.OPEN
    assert not await breaker.can_execute()


@pytest.mark.asyncio
async def test_success_after_failures_resets_count(clock):
    breaker = CircuitBreaker(failure_threshold=3, timeout=5, clock=clock)
    await breaker.on_failure()
    await breaker.on_failure()

    await breaker.on_success()
    assert breaker.state == CircuitState.CLOSED
    assert breaker.failures == 0


@pytest.mark.asyncio
async def test_call_rejects_without_invoking_when_open(clock):
    breaker = CircuitBreaker(failure_threshold=1, timeout=60, clock=clock)
    await breaker.on_failure()

    invoked = []

    async def operation():
        invoked.append(True)
        return "ok"

    with pytest.raises(CircuitOpenError) as exc_info:
        await breaker.call(operation, identifier="1850A")

    assert invoked == []
    assert exc_info.value.identifier == "1850A"
    assert exc_info.value.retry_in == pytest.approx(60)


@pytest.mark.asyncio
async def test_call_records_outcomes(clock):
    breaker = CircuitBreaker(failure_threshold=2, timeout=5, clock=clock)

    async def boom():
        raise ValueError("bad page")

    async def fine():
        return 42

    with pytest.raises(ValueError):
        await breaker.call(boom)
    assert breaker.failures == 1

    assert await breaker.call(fine) == 42
    assert breaker.failures == 0


@pytest.mark.asyncio
async def test_call_timeout_counts_as_failure(clock):
    breaker = CircuitBreaker(failure_threshold=1, timeout=5, clock=clock)

    async def slow():
        await asyncio.sleep(1)

    with pytest.raises(ScrapeTimeoutError) as exc_info:
        await breaker.call(slow, timeout=0.01, identifier="1850B")

    assert exc_info.value.identifier == "1850B"
    assert breaker.state == CircuitState.OPEN


@pytest.mark.asyncio
async def test_status_reports_time_until_reset(clock):
    breaker = CircuitBreaker(failure_threshold=1, timeout=300, clock=clock)
    assert breaker.status() == {
        "state": "closed",
        "failure_count": 0,
        "time_until_reset": 0.0,
    }

    await breaker.on_failure()
    clock.advance(100)
    status = breaker.status()
    assert status["state"] == "open"
    assert status["failure_count"] == 1
    assert status["time_until_reset"] == pytest.approx(200)


@pytest.mark.asyncio
async def test_inner_timeout_without_deadline_propagates(clock):
    breaker = CircuitBreaker(failure_threshold=3, timeout=5, clock=clock)

    async def socket_timeout():
        raise TimeoutError("socket read timed out")

    with pytest.raises(TimeoutError) as exc_info:
        await breaker.call(socket_timeout, timeout=None, identifier="1850B")

    assert not isinstance(exc_info.value, ScrapeTimeoutError)
    assert str(exc_info.value) == "socket read timed out"
    assert breaker.failures == 1
