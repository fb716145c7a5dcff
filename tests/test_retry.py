from __future__ import annotations

import pytest

from jobmerge.retry import backoff_delays, retry


@pytest.fixture(autouse=True)
def no_sleep(monkeypatch: pytest.MonkeyPatch) -> list[float]:
    slept: list[float] = []
    monkeypatch.setattr("jobmerge.retry.time.sleep", slept.append)
    return slept


def test_backoff_delays_grow_and_cap() -> None:
    assert list(backoff_delays(5, base_delay=1.0, max_delay=5.0, jitter=False)) == [1.0, 2.0, 4.0, 5.0]
    assert list(backoff_delays(1)) == []


def test_retries_until_success(no_sleep: list[float]) -> None:
    calls = []

    @retry(max_attempts=3, base_delay=0.5, jitter=False, retryable=(OSError,))
    def flaky() -> str:
        calls.append(1)
        if len(calls) < 3:
            raise OSError("try again")
        return "ok"

    assert flaky() == "ok"
    assert no_sleep == [0.5, 1.0]


def test_gives_up_after_max_attempts() -> None:
    calls = []

    @retry(max_attempts=2, retryable=(OSError,))
    def always_fails() -> None:
        calls.append(1)
        raise OSError("down")

    with pytest.raises(OSError, match="down"):
        always_fails()
    assert len(calls) == 2


def test_other_exceptions_propagate_immediately() -> None:
    calls = []

    @retry(max_attempts=3, retryable=(OSError,))
    def broken() -> None:
        calls.append(1)
        raise KeyError("bug")

    with pytest.raises(KeyError):
        broken()
    assert len(calls) == 1


def test_retry_if_can_veto() -> None:
    calls = []

    @retry(max_attempts=3, retryable=(ValueError,), retry_if=lambda exc: "transient" in str(exc))
    def permanent() -> None:
        calls.append(1)
        raise ValueError("permanent")

    with pytest.raises(ValueError):
        permanent()
    assert len(calls) == 1


def test_max_attempts_must_be_positive() -> None:
    with pytest.raises(ValueError):
        retry(max_attempts=0)
