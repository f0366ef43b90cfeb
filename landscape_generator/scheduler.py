# landscape_generator/scheduler.py

"""
================================================================================
INCREMENTAL SCHEDULER
================================================================================
This module spreads a long placement run over many frames. The host loop
calls tick() once per frame; each tick advances the active job by a bounded
number of accepted placements and then returns control.

Data Contract:
---------------
- Inputs:
    - job: Any object with step(max_accepted) -> bool (True when finished)
      and result(). PlacementRun is the job used in practice.
    - on_complete: Callable receiving job.result() once the job finishes.
- Outputs: None. Results flow through on_complete.
- Side Effects: Logs progress using the provided logger.
- Invariants:
    - At most one job is active. A start request while busy is ignored.
    - on_complete fires exactly once per started job.
    - Jobs are only suspended between steps, never inside one.
    - There is no cancellation; a job runs until its own loop ends.
================================================================================
"""

import logging
import time
from typing import Any, Callable, Optional, Protocol

from . import config as DEFAULTS


class IncrementalJob(Protocol):
    def step(self, max_accepted: int) -> bool: ...
    def result(self) -> Any: ...


class IncrementalScheduler:
    """Cooperative, single-threaded driver for one incremental job at a time."""

    def __init__(self, per_tick_budget: int = DEFAULTS.PLACEMENT_CHUNK_SIZE, logger: logging.Logger = None):
        if per_tick_budget < 1:
            raise ValueError(f"per_tick_budget must be at least 1, got {per_tick_budget}")
        self.per_tick_budget = int(per_tick_budget)
        self.logger = logger or logging.getLogger(__name__)

        self._job: Optional[IncrementalJob] = None
        self._on_complete: Optional[Callable[[Any], None]] = None
        self._started_at = 0.0
        self.ticks_elapsed = 0

    @property
    def is_running(self) -> bool:
        return self._job is not None

    @property
    def active_job(self) -> Optional[IncrementalJob]:
        return self._job

    def run_incremental(self, job: IncrementalJob, on_complete: Callable[[Any], None]) -> bool:
        """
        Starts a job. Returns False (and does nothing) if one is already
        running.
        """
        if self._job is not None:
            self.logger.info("Regeneration already in progress, ignoring request.")
            return False

        self._job = job
        self._on_complete = on_complete
        self._started_at = time.perf_counter()
        self.ticks_elapsed = 0
        self.logger.debug(f"Incremental job started ({self.per_tick_budget} per tick).")
        return True

    def tick(self) -> bool:
        """
        Advances the active job by one chunk.

        Returns:
            bool: True if the active job completed during this tick.
        """
        if self._job is None:
            return False

        job = self._job
        done = job.step(self.per_tick_budget)
        self.ticks_elapsed += 1
        if not done:
            return False

        on_complete = self._on_complete
        # Clear first so on_complete may immediately start the next job.
        self._job = None
        self._on_complete = None

        elapsed = time.perf_counter() - self._started_at
        self.logger.info(f"Incremental job finished in {self.ticks_elapsed} ticks ({elapsed:.2f} s).")
        on_complete(job.result())
        return True

    def run_to_completion(self, max_ticks: int = None) -> int:
        """Ticks until the active job finishes. Returns the ticks it took."""
        ticks = 0
        while self.is_running and (max_ticks is None or ticks < max_ticks):
            self.tick()
            ticks += 1
        return ticks
