"""Periodic triggers driving a probe worker's checks."""

from __future__ import annotations

from ..constants import MAX_RATE_PER_MINUTE, MILLISECONDS_IN_MINUTE


def interval_from_rate(rate_per_min: int) -> float | None:
    """Seconds between fires for a per-minute rate; None when the rate is 0.

    Raises:
        ValueError: If the rate is negative or above one fire per millisecond
    """
    if rate_per_min < 0 or rate_per_min > MAX_RATE_PER_MINUTE:
        raise ValueError(f"rate must be between 0 and {MAX_RATE_PER_MINUTE}, got {rate_per_min}")
    if rate_per_min == 0:
        return None
    return (MILLISECONDS_IN_MINUTE // rate_per_min) / 1000.0


class PeriodicTrigger:
    """Fires every ``interval`` seconds from ``start``; never fires when disabled.

    Fires missed while nobody polled are coalesced into one.
    """

    def __init__(self, rate_per_min: int, start: float) -> None:
        self.interval = interval_from_rate(rate_per_min)
        self.next_fire = None if self.interval is None else start + self.interval

    @property
    def enabled(self) -> bool:
        return self.interval is not None

    def seconds_until(self, now: float) -> float | None:
        if self.next_fire is None:
            return None
        return max(0.0, self.next_fire - now)

    def fire_if_due(self, now: float) -> bool:
        if self.next_fire is None or now < self.next_fire:
            return False
        self.next_fire += self.interval
        if self.next_fire <= now:
            self.next_fire = now + self.interval
        return True
