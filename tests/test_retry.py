import asyncio

import pytest

from sabores.utils.retry import RetryPolicy


class Flaky:
    def __init__(self, failures, exc=ValueError):
        self.failures = failures
        self.exc = exc
        self.calls = 0

    def __call__(self):
        self.calls += 1
        if self.calls <= self.failures:
            raise self.exc(f"fallo {self.calls}")
        return "ok"


def test_reintenta_hasta_lograrlo():
    sleeps = []
    policy = RetryPolicy(max_attempts=3, base_delay=0.5, sleep=sleeps.append)
    func = Flaky(failures=2)

    assert policy.run(func) == "ok"
    assert func.calls == 3
    assert sleeps == [0.5, 1.0]


def test_propaga_el_ultimo_error():
    sleeps = []
    policy = RetryPolicy(max_attempts=2, base_delay=1, sleep=sleeps.append)

    with pytest.raises(ValueError, match="fallo 2"):
        policy.run(Flaky(failures=5))
    assert sleeps == [1]


def test_no_reintenta_otros_errores():
    policy = RetryPolicy(max_attempts=3, base_delay=0, retry_on=(KeyError,))
    func = Flaky(failures=1, exc=ValueError)

    with pytest.raises(ValueError):
        policy.run(func)
    assert func.calls == 1


def test_version_async():
    sleeps = []

    async def fake_sleep(seconds):
        sleeps.append(seconds)

    calls = []

    async def func():
        calls.append(1)
        if len(calls) < 3:
            raise ValueError("todavía no")
        return len(calls)

    policy = RetryPolicy(max_attempts=3, base_delay=2, async_sleep=fake_sleep)

    assert asyncio.run(policy.run_async(func)) == 3
    assert sleeps == [2, 4]


def test_max_attempts_invalido():
    with pytest.raises(ValueError):
        RetryPolicy(max_attempts=0)


def test_filtro_corta_errores_no_recuperables():
    sleeps = []
    policy = RetryPolicy(
        max_attempts=3,
        base_delay=1,
        should_retry=lambda e: "temporal" in str(e),
        sleep=sleeps.append,
    )
    permanent = Flaky(failures=5)

    with pytest.raises(ValueError):
        policy.run(permanent)
    assert permanent.calls == 1
    assert sleeps == []
