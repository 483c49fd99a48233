"""
Tick gating for the chaos state machine.

ClockGate throttles evaluation to one tick per interval regardless of the
request rate. WarmupGate holds chaos back until the cycle's initial delay
has elapsed. Neither gate locks on its own: the supervisor calls them while
holding its state lock.
"""


class ClockGate:
    """At most one due tick per fixed sampling interval."""

    def __init__(self, interval_s: float):
        self._interval_s = interval_s
        self._last_tick_at: float | None = None

    @property
    def last_tick_at(self) -> float | None:
        return self._last_tick_at

    def is_due(self, now: float) -> bool:
        """Check whether a tick would be due at `now` without consuming it."""
        if self._last_tick_at is None:
            return True
        return now - self._last_tick_at >= self._interval_s

    def try_advance(self, now: float) -> bool:
        """
        Consume the tick if one is due.

        Args:
            now: Current monotonic time in seconds

        Returns:
            True if a tick was due; the last tick time is then advanced to `now`
        """
        if not self.is_due(now):
            return False
        self._last_tick_at = now
        return True

    def reset(self) -> None:
        """Forget the last tick so the next request is evaluated."""
        self._last_tick_at = None


class WarmupGate:
    """Suppresses chaos until the cycle's initial delay has elapsed."""

    @staticmethod
    def remaining(now: float, cycle_started_at: float, initial_delay_s: float) -> float:
        """Seconds left before warm-up may begin (never negative)."""
        return max(0.0, initial_delay_s - (now - cycle_started_at))

    def is_open(self, now: float, cycle_started_at: float, initial_delay_s: float) -> bool:
        """Check whether the initial delay has fully elapsed."""
        return self.remaining(now, cycle_started_at, initial_delay_s) <= 0.0
