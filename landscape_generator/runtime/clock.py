# landscape_generator/runtime/clock.py

"""
================================================================================
SESSION CLOCK
================================================================================
This module provides a self-contained, data-only class for tracking session
time. The landscape session uses it as the time source for the persistence
debounce and for the grass shader's wind time.

Data Contract:
---------------
- Inputs (on initialization):
    - config (dict): Optional overrides ('wind_time_scale').
- Public Methods:
    - update(real_delta_time): Advances the clock by one frame.
    - now(): Seconds of session time elapsed so far.
- Public Properties:
    - wind_time (float).
- Side Effects: None.
- Invariants: The clock only moves forward, and only through update().
================================================================================
"""

from .. import config as DEFAULTS


class SessionClock:
    """Tracks elapsed session time."""

    def __init__(self, config: dict = None):
        config = config or {}
        self.wind_time_scale = config.get('wind_time_scale', DEFAULTS.WIND_TIME_SCALE)
        self._total_seconds_elapsed = 0.0

    def update(self, real_delta_time: float):
        """
        Advances the clock by a given amount of real-world time.

        Args:
            real_delta_time (float): The time elapsed since the last frame, in seconds.
        """
        if real_delta_time <= 0:
            return # Ignore stalled or reordered frames.
        self._total_seconds_elapsed += real_delta_time

    def now(self) -> float:
        return self._total_seconds_elapsed

    @property
    def wind_time(self) -> float:
        """Wind animation time in the shader's units (milliseconds by default)."""
        return self._total_seconds_elapsed * self.wind_time_scale
