import pytest

from gateway_node.errors import CircuitOpenError
from gateway_node.transport.circuit_breaker import BreakerStatus, CircuitBreaker, get_default_breaker


def test_breaker_opens_at_threshold(clock):
    breaker = CircuitBreaker(threshold=3, reset_seconds=30, clock=clock)
    for _ in range(2):
        breaker.record_failure()
    assert breaker.status is BreakerStatus.CLOSED

    breaker.record_failure()
    assert breaker.status is BreakerStatus.OPEN
    state = breaker.get_state()
    assert state.consecutive_failures == 3
    assert state.open_until == clock.now + 30


def test_open_breaker_rejects_with_retry_after(clock):
    breaker = CircuitBreaker(threshold=1, reset_seconds=30, clock=clock)
    breaker.record_failure()
    clock.advance(10.5)

    with pytest.raises(CircuitOpenError) as excinfo:
        breaker.before_request()
    assert excinfo.value.retry_after_seconds == 20
    assert excinfo.value.message == "Circuit breaker is open. Too many consecutive failures."
    assert excinfo.value.description == "Service will retry after 20s"


def test_half_open_lets_probe_through_and_resets_counter(clock):
    breaker = CircuitBreaker(threshold=2, reset_seconds=5, clock=clock)
    breaker.record_failure()
    breaker.record_failure()
    clock.advance(5)

    assert breaker.status is BreakerStatus.HALF_OPEN
    breaker.before_request()
    assert breaker.get_state().consecutive_failures == 0
    assert breaker.status is BreakerStatus.CLOSED


def test_success_closes_breaker(clock):
    breaker = CircuitBreaker(threshold=5, reset_seconds=30, clock=clock)
    breaker.set_state(4, 0)
    breaker.record_success()
    assert breaker.get_state().consecutive_failures == 0


def test_set_state_and_reset(clock):
    breaker = CircuitBreaker(threshold=5, reset_seconds=30, clock=clock)
    breaker.set_state(7, clock.now + 100)
    assert breaker.status is BreakerStatus.OPEN

    breaker.reset()
    assert breaker.get_state().consecutive_failures == 0
    assert breaker.get_state().open_until == 0.0
    assert breaker.status is BreakerStatus.CLOSED


def test_default_breaker_is_shared():
    assert get_default_breaker() is get_default_breaker()
