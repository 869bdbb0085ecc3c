import pytest

from chainxchange.core.exceptions import RateLimitedError, UpstreamError
from chainxchange.services.retry import RetryPolicy


class Operation:
    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def make_policy(max_attempts=3):
    sleeps = []

    async def fake_sleep(seconds):
        sleeps.append(seconds)

    return RetryPolicy(max_attempts, sleep=fake_sleep), sleeps


@pytest.mark.asyncio
async def test_success_on_first_attempt_does_not_sleep():
    policy, sleeps = make_policy()
    operation = Operation({"ok": True})

    assert await policy.run(operation) == {"ok": True}
    assert operation.calls == 1
    assert sleeps == []


@pytest.mark.asyncio
async def test_rate_limit_waits_retry_after_then_succeeds():
    policy, sleeps = make_policy()
    operation = Operation(
        RateLimitedError("slow down", retry_after=4),
        RateLimitedError("slow down", retry_after=10),
        [{"id": "bitcoin"}],
    )

    assert await policy.run(operation) == [{"id": "bitcoin"}]
    assert operation.calls == 3
    assert sleeps == [4, 10]


@pytest.mark.asyncio
async def test_rate_limit_on_every_attempt_gives_up_after_max_attempts():
    policy, sleeps = make_policy()
    last = RateLimitedError("third", retry_after=1)
    operation = Operation(
        RateLimitedError("first", retry_after=1),
        RateLimitedError("second", retry_after=1),
        last,
    )

    with pytest.raises(RateLimitedError) as exc_info:
        await policy.run(operation)

    assert exc_info.value is last
    assert operation.calls == 3
    # no wait after the final attempt
    assert sleeps == [1, 1]


@pytest.mark.asyncio
@pytest.mark.parametrize("error", [
    UpstreamError("server error", status_code=500),
    UpstreamError("not found", status_code=404),
    ValueError("bad payload"),
])
async def test_other_errors_propagate_after_one_attempt(error):
    policy, sleeps = make_policy()
    operation = Operation(error, {"never": "reached"})

    with pytest.raises(type(error)):
        await policy.run(operation)

    assert operation.calls == 1
    assert sleeps == []


@pytest.mark.asyncio
async def test_error_after_rate_limit_propagates_immediately():
    policy, sleeps = make_policy()
    operation = Operation(
        RateLimitedError("slow down", retry_after=2),
        UpstreamError("gateway", status_code=502),
        {"never": "reached"},
    )

    with pytest.raises(UpstreamError) as exc_info:
        await policy.run(operation)

    assert exc_info.value.status_code == 502
    assert operation.calls == 2
    assert sleeps == [2]


def test_max_attempts_must_be_positive():
    with pytest.raises(ValueError):
        RetryPolicy(0)
