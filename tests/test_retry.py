import asyncio
import pytest

from core import retry as retry_mod
from core.errors import RateLimited, RetryExhausted, SchemaMismatch
from core.retry import call_with_retry


class Flaky:
    """Fails with the given errors in order, then returns 'ok'."""

    def __init__(self, *errors):
        self.errors = list(errors)
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return "ok"


@pytest.fixture
def sleeps(monkeypatch):
    waited = []

    async def fake_sleep(seconds):
        waited.append(seconds)

    monkeypatch.setattr(retry_mod.asyncio, "sleep", fake_sleep)
    return waited


def _run(coro):
    return asyncio.run(coro)


class TestCallWithRetry:
    def test_success_first_try(self, sleeps, recorder):
        op = Flaky()
        assert _run(call_with_retry(op, name="op", max_attempts=3, recorder=recorder)) == "ok"
        assert op.calls == 1
        assert recorder.events == []
        assert sleeps == []

    def test_two_failures_then_success(self, sleeps, recorder):
        op = Flaky(RuntimeError("a"), RuntimeError("b"))
        result = _run(call_with_retry(op, name="op", max_attempts=3, delay=2, recorder=recorder))
        assert result == "ok"
        assert op.calls == 3
        assert len(recorder.events) == 2
        assert [m["attempt"] for _, m, _ in recorder.events] == [1, 2]
        assert all(sev == "warn" for _, _, sev in recorder.events)

    def test_three_failures_exhausts_with_last_error(self, sleeps, recorder):
        third = RuntimeError("third")
        op = Flaky(RuntimeError("first"), RuntimeError("second"), third)
        with pytest.raises(RetryExhausted) as exc_info:
            _run(call_with_retry(op, name="op", max_attempts=3, recorder=recorder))
        assert op.calls == 3
        assert exc_info.value.last_error is third
        assert exc_info.value.attempts == 3
        assert exc_info.value.__cause__ is third
        assert len(recorder.events) == 3

    def test_fixed_delay(self, sleeps):
        op = Flaky(RuntimeError("a"), RuntimeError("b"))
        _run(call_with_retry(op, name="op", max_attempts=3, delay=2.0))
        assert sleeps == [2.0, 2.0]

    def test_exponential_delay(self, sleeps):
        op = Flaky(RateLimited("a"), RateLimited("b"), RateLimited("c"))
        _run(call_with_retry(op, name="op", max_attempts=4, delay=0.5, backoff=2.0))
        assert sleeps == [0.5, 1.0, 2.0]

    def test_no_sleep_after_last_attempt(self, sleeps):
        op = Flaky(RuntimeError("a"), RuntimeError("b"))
        with pytest.raises(RetryExhausted):
            _run(call_with_retry(op, name="op", max_attempts=2, delay=1.0))
        assert sleeps == [1.0]

    def test_non_retryable_error_is_fatal(self, sleeps, recorder):
        bad = SchemaMismatch("nope")
        op = Flaky(bad)
        with pytest.raises(SchemaMismatch):
            _run(call_with_retry(op, name="op", max_attempts=5, recorder=recorder,
                                 retry_on=lambda e: isinstance(e, RateLimited)))
        assert op.calls == 1
        assert len(recorder.events) == 1
        assert sleeps == []

    def test_retry_on_accepts_rate_limit(self, sleeps):
        op = Flaky(RateLimited("slow down"))
        result = _run(call_with_retry(op, name="op", max_attempts=2,
                                      retry_on=lambda e: isinstance(e, RateLimited)))
        assert result == "ok"
        assert op.calls == 2

    def test_single_attempt(self, sleeps):
        op = Flaky(RuntimeError("x"))
        with pytest.raises(RetryExhausted):
            _run(call_with_retry(op, name="op", max_attempts=1))
        assert op.calls == 1

    def test_invalid_policy(self):
        with pytest.raises(ValueError):
            _run(call_with_retry(Flaky(), name="op", max_attempts=0))
        with pytest.raises(ValueError):
            _run(call_with_retry(Flaky(), name="op", delay=-1))

    def test_event_metadata(self, sleeps, recorder):
        op = Flaky(RuntimeError("boom"))
        _run(call_with_retry(op, name="my_op", max_attempts=2, recorder=recorder))
        event, meta, _ = recorder.events[0]
        assert event == "Retryable Call Failed"
        assert meta == {"operation": "my_op", "attempt": 1, "error": "boom"}
