import pytest

from eatery_finder.retry import is_retryable_error, with_retry


class FlakyOperation:
    def __init__(self, failures, error_message="HTTP 503 UNAVAILABLE: The model is overloaded."):
        self.failures = failures
        self.error_message = error_message
        self.calls = 0

    def __call__(self):
        self.calls += 1
        if self.calls <= self.failures:
            raise RuntimeError(self.error_message)
        return "ok"


@pytest.mark.parametrize(
    "message",
    [
        "HTTP 503",
        "The model is overloaded",
        "HTTP 429 RESOURCE_EXHAUSTED",
        "rate limit exceeded",
        "UNAVAILABLE",
    ],
)
def test_transient_messages_are_retryable(message):
    assert is_retryable_error(RuntimeError(message))


def test_other_errors_are_not_retryable():
    assert not is_retryable_error(RuntimeError("HTTP 403 PERMISSION_DENIED"))
    assert not is_retryable_error(ValueError("bad request"))


@pytest.mark.parametrize("k", [1, 2, 3, 4])
def test_succeeds_on_kth_attempt(k):
    sleeps = []
    op = FlakyOperation(failures=k - 1)

    assert with_retry(op, max_attempts=4, base_delay=1.0, sleep=sleeps.append) == "ok"
    assert op.calls == k
    assert sleeps == [1.0 * 2 ** i for i in range(k - 1)]
    assert sum(sleeps) >= sum(1.0 * 2 ** i for i in range(k - 1))


def test_exhaustion_reraises_last_error():
    sleeps = []
    op = FlakyOperation(failures=10)

    with pytest.raises(RuntimeError, match="overloaded"):
        with_retry(op, max_attempts=4, base_delay=1.0, sleep=sleeps.append)
    assert op.calls == 4
    assert sleeps == [1.0, 2.0, 4.0]


def test_non_retryable_error_makes_one_attempt():
    sleeps = []
    op = FlakyOperation(failures=10, error_message="HTTP 401 UNAUTHENTICATED")

    with pytest.raises(RuntimeError, match="401"):
        with_retry(op, max_attempts=4, sleep=sleeps.append)
    assert op.calls == 1
    assert sleeps == []


def test_calls_do_not_share_attempt_state():
    sleeps = []
    first = FlakyOperation(failures=3)
    second = FlakyOperation(failures=3)

    assert with_retry(first, max_attempts=4, base_delay=0.5, sleep=sleeps.append) == "ok"
    assert with_retry(second, max_attempts=4, base_delay=0.5, sleep=sleeps.append) == "ok"
    assert sleeps == [0.5, 1.0, 2.0, 0.5, 1.0, 2.0]


def test_rejects_zero_attempts():
    with pytest.raises(ValueError):
        with_retry(lambda: "ok", max_attempts=0)
