"""Tests for gitfixture.readiness.

Polling runs against a fake clock so no test actually sleeps.
"""

import httpx
import pytest

from gitfixture.readiness import Condition, HttpStatusSource, ReadinessTimeoutError, is_condition_true, wait_until


class FakeClock:
    """Monotonic clock that only moves when sleep() is called."""

    def __init__(self):
        self.now = 0.0
        self.sleeps = []

    def __call__(self):
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


class TestWaitUntil:
    def test_returns_first_truthy_value(self, clock):
        results = iter([None, False, "ready"])
        value = wait_until(lambda: next(results), sleep=clock.sleep, clock=clock)
        assert value == "ready"
        assert clock.sleeps == [5.0, 5.0]

    def test_times_out(self, clock):
        calls = []
        with pytest.raises(ReadinessTimeoutError) as exc_info:
            wait_until(lambda: calls.append(1), timeout=10, interval=5, description="tag v1", sleep=clock.sleep, clock=clock)
        assert len(calls) == 3
        assert "tag v1 not ready after 10s" in str(exc_info.value)
        assert exc_info.value.step == "wait for readiness"
        assert isinstance(exc_info.value, TimeoutError)

    def test_exceptions_count_as_not_ready(self, clock):
        attempts = []

        def flaky():
            attempts.append(1)
            if len(attempts) < 3:
                raise ConnectionError("refused")
            return True

        assert wait_until(flaky, sleep=clock.sleep, clock=clock) is True

    def test_timeout_reports_last_error(self, clock):
        def failing():
            raise ConnectionError("refused")

        with pytest.raises(ReadinessTimeoutError) as exc_info:
            wait_until(failing, timeout=5, interval=5, sleep=clock.sleep, clock=clock)
        assert isinstance(exc_info.value.last_error, ConnectionError)
        assert "last error: refused" in str(exc_info.value)


class TestConditions:
    def test_is_condition_true(self):
        conditions = [Condition(type="Reconciling", status="True"), Condition(type="Ready", status="False")]
        assert is_condition_true(conditions, "Reconciling")
        assert not is_condition_true(conditions)
        assert not is_condition_true([])


def status_client(payload, status_code=200):
    def handler(request):
        return httpx.Response(status_code, json=payload)

    return httpx.Client(transport=httpx.MockTransport(handler))


class TestHttpStatusSource:
    def test_reads_conditions(self):
        payload = {"status": {"conditions": [{"type": "Ready", "status": "True", "reason": "Succeeded"}]}}
        source = HttpStatusSource("http://cluster/apis/gitrepositories/podinfo", client=status_client(payload))
        conditions = source.conditions()
        assert conditions[0].reason == "Succeeded"
        assert source.ready()

    def test_missing_status_is_not_ready(self):
        source = HttpStatusSource("http://cluster/x", client=status_client({"metadata": {}}))
        assert source.conditions() == []
        assert not source.ready()

    def test_error_status_raises(self):
        source = HttpStatusSource("http://cluster/x", client=status_client({}, status_code=503))
        with pytest.raises(httpx.HTTPStatusError):
            source.conditions()

    def test_polls_until_ready(self, clock):
        responses = iter(
            [
                httpx.Response(404, json={}),
                httpx.Response(200, json={"status": {"conditions": [{"type": "Ready", "status": "False"}]}}),
                httpx.Response(200, json={"status": {"conditions": [{"type": "Ready", "status": "True"}]}}),
            ]
        )
        client = httpx.Client(transport=httpx.MockTransport(lambda request: next(responses)))
        source = HttpStatusSource("http://cluster/x", client=client)
        assert wait_until(source.ready, sleep=clock.sleep, clock=clock) is True
        assert len(clock.sleeps) == 2
