"""Unit tests for the retry-with-deadline primitive."""

import itertools

import pytest

from cf_cli.helpers.retry import constant_backoff, fibonacci_backoff, retry_with_deadline


class Transient(Exception):
    pass


class Fatal(Exception):
    pass


def failing(times, result="done", error=Transient):
    """Callable that raises ``error`` ``times`` times and then returns ``result``."""
    calls = {"count": 0}

    def fn():
        calls["count"] += 1
        if calls["count"] <= times:
            raise error("not yet")
        return result

    return fn, calls


class TestBackoff:
    """Test backoff sequences."""

    def test_constant_backoff(self):
        """Test constant backoff."""
        delays = constant_backoff(5)()
        assert list(itertools.islice(delays, 3)) == [5.0, 5.0, 5.0]

    def test_fibonacci_backoff(self):
        """Test Fibonacci backoff."""
        delays = fibonacci_backoff(1)()
        assert list(itertools.islice(delays, 6)) == [1, 2, 3, 5, 8, 13]

    def test_backoff_factory_restarts(self):
        """Test each backoff factory call starts over."""
        backoff = fibonacci_backoff(2)
        first = list(itertools.islice(backoff(), 3))
        second = list(itertools.islice(backoff(), 3))
        assert first == second == [2, 4, 6]


class TestRetryWithDeadline:
    """Test retry_with_deadline."""

    def test_returns_first_success_without_sleeping(self, fake_clock):
        """Test first success returns without sleeping."""
        fn, calls = failing(0)
        result = retry_with_deadline(
            fn,
            constant_backoff(5),
            retryable=lambda e: True,
            max_duration=120,
            sleep=fake_clock.sleep,
            clock=fake_clock,
        )
        assert result == "done"
        assert calls["count"] == 1
        assert fake_clock.sleeps == []

    def test_retries_until_success(self, fake_clock):
        """Test retries until success."""
        fn, calls = failing(3)
        result = retry_with_deadline(
            fn,
            constant_backoff(5),
            retryable=lambda e: isinstance(e, Transient),
            max_duration=120,
            sleep=fake_clock.sleep,
            clock=fake_clock,
        )
        assert result == "done"
        assert calls["count"] == 4
        assert fake_clock.sleeps == [5, 5, 5]

    def test_non_retryable_error_raises_immediately(self, fake_clock):
        """Test a non-retryable error raises immediately."""
        fn, calls = failing(5, error=Fatal)
        with pytest.raises(Fatal):
            retry_with_deadline(
                fn,
                constant_backoff(5),
                retryable=lambda e: isinstance(e, Transient),
                max_duration=120,
                sleep=fake_clock.sleep,
                clock=fake_clock,
            )
        assert calls["count"] == 1

    def test_deadline_is_reached_exactly(self, fake_clock):
        """Test the deadline is reached exactly."""
        fn, calls = failing(1000)
        with pytest.raises(Transient):
            retry_with_deadline(
                fn,
                constant_backoff(5),
                retryable=lambda e: True,
                max_duration=120,
                sleep=fake_clock.sleep,
                clock=fake_clock,
            )
        assert fake_clock.now == 120
        assert calls["count"] == 25

    def test_last_delay_is_clamped_to_remaining_budget(self, fake_clock):
        """Test the last delay is clamped to the remaining budget."""
        fn, calls = failing(1000)
        with pytest.raises(Transient):
            retry_with_deadline(
                fn,
                fibonacci_backoff(1),
                retryable=lambda e: True,
                max_duration=20,
                sleep=fake_clock.sleep,
                clock=fake_clock,
            )
        assert fake_clock.sleeps == [1, 2, 3, 5, 8, 1]
        assert fake_clock.now == 20
        assert calls["count"] == 7

    def test_max_retries_zero_makes_a_single_attempt(self, fake_clock):
        """Test max_retries=0 makes a single attempt."""
        fn, calls = failing(1)
        with pytest.raises(Transient):
            retry_with_deadline(
                fn,
                fibonacci_backoff(1),
                retryable=lambda e: True,
                max_retries=0,
                sleep=fake_clock.sleep,
                clock=fake_clock,
            )
        assert calls["count"] == 1
        assert fake_clock.sleeps == []

    def test_max_retries_bounds_attempts(self, fake_clock):
        """Test max_retries bounds the number of attempts."""
        fn, calls = failing(10)
        with pytest.raises(Transient):
            retry_with_deadline(
                fn,
                constant_backoff(1),
                retryable=lambda e: True,
                max_retries=2,
                sleep=fake_clock.sleep,
                clock=fake_clock,
            )
        assert calls["count"] == 3
