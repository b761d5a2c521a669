"""Unit tests for the LockoutCounter state machine."""

from datetime import timedelta

from keygate_config import LockoutPolicy
from keygate_identity.domain.lockout import LockoutCounter, LockoutState
from tests.shared.fixtures.factories import FIXED_NOW

POLICY = LockoutPolicy(
    max_attempts=3,
    lockout_duration=timedelta(minutes=30),
    attempt_window=timedelta(hours=1),
)


def _fail(counter: LockoutCounter, times: int, now=FIXED_NOW) -> LockoutCounter:
    for _ in range(times):
        counter = counter.register_failure(now, POLICY)
    return counter


class TestLockoutCounter:
    """Tests for register_failure and the derived state."""

    def test_fresh_counter_is_clear(self):
        counter = LockoutCounter(key="account:a@example.com")

        assert counter.state(FIXED_NOW) is LockoutState.CLEAR
        assert counter.remaining_attempts(FIXED_NOW, POLICY) == 3

    def test_failures_accumulate_below_threshold(self):
        counter = _fail(LockoutCounter(key="k"), 2)

        assert counter.state(FIXED_NOW) is LockoutState.ACCUMULATING
        assert counter.failed_attempts == 2
        assert counter.first_failure_at == FIXED_NOW
        assert counter.remaining_attempts(FIXED_NOW, POLICY) == 1

    def test_threshold_failure_locks(self):
        """The max_attempts-th failure engages the lock."""
        counter = _fail(LockoutCounter(key="k"), 3)

        assert counter.state(FIXED_NOW) is LockoutState.LOCKED
        assert counter.locked_until == FIXED_NOW + timedelta(minutes=30)
        assert counter.lockout_count == 1
        assert counter.remaining_attempts(FIXED_NOW, POLICY) == 0

    def test_failures_while_locked_do_not_extend_the_lock(self):
        locked = _fail(LockoutCounter(key="k"), 3)

        later = FIXED_NOW + timedelta(minutes=5)
        again = locked.register_failure(later, POLICY)

        assert again == locked

    def test_lock_expires(self):
        locked = _fail(LockoutCounter(key="k"), 3)

        after = FIXED_NOW + timedelta(minutes=30)

        assert not locked.is_locked(after)
        assert locked.state(after) is LockoutState.CLEAR
        assert locked.remaining_attempts(after, POLICY) == 3

    def test_repeat_offender_gets_a_longer_lock(self):
        """The escalation level survives an expired lock."""
        locked = _fail(LockoutCounter(key="k"), 3)
        after = FIXED_NOW + timedelta(minutes=31)

        relocked = _fail(locked, 3, now=after)

        assert relocked.lockout_count == 2
        assert relocked.locked_until == after + timedelta(minutes=60)

    def test_failures_outside_the_window_start_a_new_tally(self):
        counter = _fail(LockoutCounter(key="k"), 2)
        much_later = FIXED_NOW + timedelta(hours=2)

        counter = counter.register_failure(much_later, POLICY)

        assert counter.failed_attempts == 1
        assert counter.first_failure_at == much_later

    def test_cleared_keeps_only_the_key(self):
        locked = _fail(LockoutCounter(key="k"), 3)

        cleared = locked.cleared()

        assert cleared == LockoutCounter(key="k")
        assert cleared.lockout_count == 0
